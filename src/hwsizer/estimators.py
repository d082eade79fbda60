from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .catalog import GpuCatalog
from .config import SizingPolicy
from .errors import InvalidDeploymentError
from .models import (
    BenchmarkSample,
    Demand,
    DeploymentConfig,
    GpuSpec,
    LineItem,
    WorkloadClass,
    WorkloadEstimate,
)
from .profiles import WorkloadProfiles
from .resolver import Resolution, ThroughputResolver, resolve_chain
from .utils import ceil_div


logger = logging.getLogger(__name__)

POST_PROCESSING_SOURCE = "post_processing"

WORKLOAD_ORDER = (
    WorkloadClass.ocr,
    WorkloadClass.information_extraction,
    WorkloadClass.document_classifier,
    WorkloadClass.dp,
    WorkloadClass.llm,
)


@dataclass(frozen=True)
class EstimationContext:
    catalog: GpuCatalog
    profiles: WorkloadProfiles
    policy: SizingPolicy
    resolver: ThroughputResolver
    deployment: DeploymentConfig

    def partition_memory(self, gpu: GpuSpec) -> float:
        name = self.deployment.partition_profile or ""
        if name in gpu.mig_profiles:
            return min(gpu.mig_profiles[name], gpu.vram_gb)
        reference = self.catalog.get(self.policy.partition_reference_gpu)
        if name in reference.mig_profiles:
            # A slice never exceeds the card it is carved from.
            return min(reference.mig_profiles[name], gpu.vram_gb)
        raise InvalidDeploymentError(
            f"Unknown partition profile {name!r} for {gpu.id} "
            f"(available: {', '.join(gpu.mig_profiles or reference.mig_profiles)})"
        )


def make_line_item(
    required: float,
    resolution: Optional[Resolution],
    vram_per_container: float,
    document_type: Optional[str] = None,
    derating: float = 1.0,
) -> LineItem:
    rate = resolution.rate * derating if resolution else 0.0
    containers = ceil_div(required, rate)
    return LineItem(
        document_type=document_type,
        required_throughput=required,
        throughput_per_container=round(rate, 4),
        container_count=containers,
        vram_per_container=vram_per_container,
        total_vram=containers * vram_per_container,
        source=resolution.source if resolution else "unresolved",
    )


def gpus_for_line_items(items: Sequence[LineItem], gpu: GpuSpec, ctx: EstimationContext) -> int:
    """GPU count for a set of line items under the active regime.

    - partitioned deployment: per item, containers / partitions that fit one
      container; a container larger than a partition takes a whole GPU
    - partitionable GPU: fixed containers-per-GPU cap; post-processing model
      instances take a whole GPU each
    - otherwise: VRAM bound with headroom
    """
    if not items:
        return 0
    if ctx.deployment.is_partitioned:
        memory = ctx.partition_memory(gpu)
        total = 0
        for item in items:
            slots = int(memory // item.vram_per_container) if item.vram_per_container > 0 else 0
            total += item.container_count if slots == 0 else ceil_div(item.container_count, slots)
        return total
    if gpu.partitionable:
        dedicated = sum(item.container_count for item in items if item.source == POST_PROCESSING_SOURCE)
        shared = sum(item.container_count for item in items if item.source != POST_PROCESSING_SOURCE)
        return ceil_div(shared, ctx.policy.max_containers_per_gpu) + dedicated
    vram = sum(item.total_vram for item in items)
    return ceil_div(vram, gpu.vram_gb * ctx.policy.vram_headroom)


def _build(
    workload: WorkloadClass,
    gpu: GpuSpec,
    items: List[LineItem],
    ctx: EstimationContext,
    unresolved: Sequence[str] = (),
    gpu_count: Optional[int] = None,
) -> WorkloadEstimate:
    count = gpus_for_line_items(items, gpu, ctx) if gpu_count is None else gpu_count
    return WorkloadEstimate(
        workload_class=workload,
        gpu_model=gpu.id,
        container_count=sum(item.container_count for item in items),
        gpu_count=count,
        vram_gb=float(sum(item.total_vram for item in items)),
        cost_usd=float(count * gpu.unit_price_usd),
        line_items=tuple(items),
        unresolved_document_types=tuple(unresolved),
    )


def estimate_ocr(
    demand: Demand,
    gpu: GpuSpec,
    samples: Sequence[BenchmarkSample],
    ctx: EstimationContext,
) -> WorkloadEstimate:
    """OCR runs on the aggregate request volume, not per document type."""
    if not demand.is_active(WorkloadClass.ocr):
        return _build(WorkloadClass.ocr, gpu, [], ctx)

    required = demand.aggregate_throughput
    profile = ctx.profiles.ocr
    strategies = ctx.resolver.empirical_strategies(gpu.id, WorkloadClass.ocr, None, samples)
    strategies.append(ctx.resolver.profile_strategy(gpu.id, profile))
    items = [make_line_item(required, resolve_chain(strategies), profile.vram_per_container_gb)]

    post = ctx.profiles.post_processing
    requesting = [doc for doc in demand.documents if doc.requires_post_processing]
    instances = sum(
        ceil_div(doc.required_throughput, post.baseline_throughput_per_container)
        for doc in requesting
    )
    if instances:
        items.append(
            LineItem(
                required_throughput=float(sum(doc.required_throughput for doc in requesting)),
                throughput_per_container=post.baseline_throughput_per_container,
                container_count=instances,
                vram_per_container=post.vram_per_container_gb,
                total_vram=instances * post.vram_per_container_gb,
                source=POST_PROCESSING_SOURCE,
            )
        )
    return _build(WorkloadClass.ocr, gpu, items, ctx)


def estimate_information_extraction(
    demand: Demand,
    gpu: GpuSpec,
    samples: Sequence[BenchmarkSample],
    ctx: EstimationContext,
) -> WorkloadEstimate:
    """Per-document-type extraction sizing.

    Extraction-tagged samples are preferred; OCR samples for the same document
    type stand in when none exist. Document types without any usable sample
    are left out and reported, never sized from a default.
    """
    profile = ctx.profiles.information_extraction
    items: List[LineItem] = []
    unresolved: List[str] = []
    for doc in demand.documents:
        strategies = ctx.resolver.empirical_strategies(
            gpu.id, WorkloadClass.information_extraction, doc.document_type, samples
        ) + ctx.resolver.empirical_strategies(
            gpu.id, WorkloadClass.ocr, doc.document_type, samples
        )
        resolution = resolve_chain(strategies)
        if resolution is None:
            logger.debug(
                "No benchmark data for %r on %s; excluded from extraction sizing",
                doc.document_type,
                gpu.id,
            )
            unresolved.append(doc.document_type)
            continue
        items.append(
            make_line_item(
                doc.required_throughput,
                resolution,
                profile.vram_per_container_gb,
                document_type=doc.document_type,
                derating=ctx.policy.extraction_derating,
            )
        )
    return _build(WorkloadClass.information_extraction, gpu, items, ctx, unresolved)


def estimate_document_classifier(
    demand: Demand,
    gpu: GpuSpec,
    samples: Sequence[BenchmarkSample],
    ctx: EstimationContext,
) -> WorkloadEstimate:
    if not demand.is_active(WorkloadClass.document_classifier):
        return _build(WorkloadClass.document_classifier, gpu, [], ctx)
    required = demand.aggregate_throughput
    profile = ctx.profiles.document_classifier
    strategies = ctx.resolver.empirical_strategies(
        gpu.id, WorkloadClass.document_classifier, None, samples, include_transferred=False
    )
    strategies.append(ctx.resolver.profile_strategy(gpu.id, profile))
    items = [make_line_item(required, resolve_chain(strategies), profile.vram_per_container_gb)]
    return _build(WorkloadClass.document_classifier, gpu, items, ctx)


def estimate_dp(
    demand: Demand,
    gpu: GpuSpec,
    samples: Sequence[BenchmarkSample],
    ctx: EstimationContext,
) -> WorkloadEstimate:
    if not demand.is_active(WorkloadClass.dp):
        return _build(WorkloadClass.dp, gpu, [], ctx)
    required = demand.dp_throughput
    profile = ctx.profiles.dp

    if ctx.deployment.is_partitioned:
        # Partitioned DP capacity is a measured constant, not resolved.
        fixed = ctx.profiles.dp_partitioned
        resolution = Resolution(fixed.baseline_throughput_per_container, "partition_profile")
        item = make_line_item(required, resolution, profile.vram_per_container_gb)
        count = ceil_div(item.container_count, fixed.containers_per_gpu or ctx.policy.max_containers_per_gpu)
        return _build(WorkloadClass.dp, gpu, [item], ctx, gpu_count=count)

    strategies = ctx.resolver.empirical_strategies(
        gpu.id, WorkloadClass.dp, None, samples, include_transferred=False
    )
    strategies.append(ctx.resolver.profile_strategy(gpu.id, profile))
    items = [make_line_item(required, resolve_chain(strategies), profile.vram_per_container_gb)]
    return _build(WorkloadClass.dp, gpu, items, ctx)


def estimate_llm(
    demand: Demand,
    gpu: GpuSpec,
    samples: Sequence[BenchmarkSample],
    ctx: EstimationContext,
) -> WorkloadEstimate:
    """Closed-form: one container per concurrent user, no benchmark lookup."""
    if not demand.is_active(WorkloadClass.llm):
        return _build(WorkloadClass.llm, gpu, [], ctx)
    users = demand.llm.concurrent_users
    per_user = ctx.profiles.llm.vram_per_user(demand.llm.prompt_size, demand.llm.streaming)
    item = LineItem(
        required_throughput=float(users),
        throughput_per_container=1.0,
        container_count=users,
        vram_per_container=round(per_user, 1),
        total_vram=float(math.ceil(round(users * per_user, 9))),
        source="closed_form",
    )
    return _build(WorkloadClass.llm, gpu, [item], ctx)


ESTIMATORS = {
    WorkloadClass.ocr: estimate_ocr,
    WorkloadClass.information_extraction: estimate_information_extraction,
    WorkloadClass.document_classifier: estimate_document_classifier,
    WorkloadClass.dp: estimate_dp,
    WorkloadClass.llm: estimate_llm,
}


def estimate_all(
    demand: Demand,
    gpu: GpuSpec,
    samples: Sequence[BenchmarkSample],
    ctx: EstimationContext,
) -> Dict[WorkloadClass, WorkloadEstimate]:
    return {workload: ESTIMATORS[workload](demand, gpu, samples, ctx) for workload in WORKLOAD_ORDER}
