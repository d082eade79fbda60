"""
Sizing engine: runs the per-workload estimators for every candidate GPU,
picks the headline recommendation and packs it into servers.

A ``SizingEngine`` holds only immutable configuration (catalog, profiles,
policy); every call is a pure function of its arguments.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .catalog import DEFAULT_CATALOG, GpuCatalog
from .config import SizingPolicy
from .errors import InvalidDeploymentError
from .estimators import POST_PROCESSING_SOURCE, EstimationContext, estimate_all
from .models import (
    BenchmarkSample,
    ComparisonEntry,
    Demand,
    DeploymentConfig,
    GpuRecommendation,
    GpuSpec,
    ServerLayout,
    SizingResult,
    WorkloadClass,
    WorkloadEstimate,
)
from .normalize import BenchmarkNormalizer
from .packing import pack_servers as _pack_servers
from .profiles import DEFAULT_PROFILES, WorkloadProfiles
from .resolver import ThroughputResolver
from .utils import ceil_div


logger = logging.getLogger(__name__)

Breakdown = Dict[WorkloadClass, WorkloadEstimate]


class SizingEngine:
    def __init__(
        self,
        catalog: Optional[GpuCatalog] = None,
        profiles: Optional[WorkloadProfiles] = None,
        policy: Optional[SizingPolicy] = None,
    ) -> None:
        self.catalog = catalog or DEFAULT_CATALOG
        self.profiles = profiles or DEFAULT_PROFILES
        self.policy = policy or SizingPolicy()
        self.normalizer = BenchmarkNormalizer(self.catalog, self.policy.reference_gpu)
        self.resolver = ThroughputResolver(self.catalog, self.normalizer, self.policy)

    def _context(self, deployment: DeploymentConfig) -> EstimationContext:
        return EstimationContext(
            catalog=self.catalog,
            profiles=self.profiles,
            policy=self.policy,
            resolver=self.resolver,
            deployment=deployment,
        )

    def check_deployment(self, deployment: DeploymentConfig) -> None:
        if not deployment.is_partitioned:
            return
        known = set(self.catalog.get(self.policy.partition_reference_gpu).mig_profiles)
        for spec in self.catalog:
            known.update(spec.mig_profiles)
        if deployment.partition_profile not in known:
            raise InvalidDeploymentError(
                f"Unknown partition profile {deployment.partition_profile!r} "
                f"(known: {', '.join(sorted(known))})"
            )

    def validate_samples(self, samples: Iterable[BenchmarkSample]) -> List[BenchmarkSample]:
        """Drop partitioned rates reported for GPUs that cannot be partitioned."""
        valid = []
        for sample in samples:
            if sample.partitioned_rate is not None and not self.catalog.is_partitionable(sample.gpu_id):
                logger.warning(
                    "Ignoring partitioned rate for %s on non-partitionable GPU %r",
                    sample.workload_class.value,
                    sample.gpu_id,
                )
                sample = sample.model_copy(update={"partitioned_rate": None})
            valid.append(sample)
        return valid

    def breakdown(
        self,
        demand: Demand,
        gpu: GpuSpec,
        deployment: DeploymentConfig,
        samples: Sequence[BenchmarkSample] = (),
    ) -> Breakdown:
        return estimate_all(demand, gpu, samples, self._context(deployment))

    def headline_count(self, breakdown: Breakdown, gpu: GpuSpec, deployment: DeploymentConfig) -> int:
        estimates = breakdown.values()
        if deployment.is_partitioned:
            return sum(estimate.gpu_count for estimate in estimates)
        if gpu.partitionable:
            containers = sum(estimate.container_count for estimate in estimates)
            return ceil_div(containers, self.policy.max_containers_per_gpu)
        vram = sum(estimate.vram_gb for estimate in estimates)
        return ceil_div(vram, gpu.vram_gb * self.policy.vram_headroom)

    def cpu_cores(self, breakdown: Breakdown) -> int:
        return self.policy.base_cpu_cores + sum(
            item.container_count * self._profile_for(workload, item.source).cpu_cores_per_container
            for workload, estimate in breakdown.items()
            for item in estimate.line_items
        )

    def ram_gb(self, breakdown: Breakdown) -> int:
        return self.policy.base_ram_gb + sum(
            item.container_count * self._profile_for(workload, item.source).ram_gb_per_container
            for workload, estimate in breakdown.items()
            for item in estimate.line_items
        )

    def _profile_for(self, workload: WorkloadClass, source: str):
        if source == POST_PROCESSING_SOURCE:
            return self.profiles.post_processing
        return self.profiles.for_class(workload)

    def _breakdowns(
        self,
        demand: Demand,
        deployment: DeploymentConfig,
        samples: Sequence[BenchmarkSample],
        pinned: Optional[GpuSpec] = None,
    ) -> Dict[str, Breakdown]:
        models = self.catalog.comparison_models()
        if pinned is not None and all(spec.id != pinned.id for spec in models):
            models.append(pinned)
        return {spec.id: self.breakdown(demand, spec, deployment, samples) for spec in models}

    def _comparison(
        self,
        breakdowns: Dict[str, Breakdown],
        deployment: DeploymentConfig,
    ) -> Dict[str, ComparisonEntry]:
        table = {}
        for spec in self.catalog.comparison_models():
            breakdown = breakdowns[spec.id]
            count = self.headline_count(breakdown, spec, deployment)
            table[spec.id] = ComparisonEntry(
                model=spec.id,
                count=count,
                total_vram=float(count * spec.vram_gb),
                total_cost=float(count * spec.unit_price_usd),
                container_count=sum(estimate.container_count for estimate in breakdown.values()),
            )
        return table

    def select_gpu(
        self,
        deployment: DeploymentConfig,
        breakdowns: Dict[str, Breakdown],
    ) -> Tuple[GpuSpec, Optional[str]]:
        """Pinned model, or the cheapest one unless a container needs a large card."""
        if not deployment.auto_select:
            return self.catalog.get(deployment.preferred_gpu), None
        cheapest = self.catalog.cheapest()
        largest = max(
            (
                item.vram_per_container
                for estimate in breakdowns[cheapest.id].values()
                for item in estimate.line_items
            ),
            default=0.0,
        )
        if largest >= self.policy.large_container_vram_gb:
            large = self.catalog.get(self.policy.large_container_gpu)
            return large, (
                f"Auto-selected {large.id}: a container needs {largest:g} GB "
                f"(threshold {self.policy.large_container_vram_gb:g} GB)"
            )
        return cheapest, None

    def _size(
        self,
        demand: Demand,
        deployment: DeploymentConfig,
        samples: Sequence[BenchmarkSample],
    ) -> Tuple[SizingResult, Dict[str, Breakdown]]:
        self.check_deployment(deployment)
        valid = self.validate_samples(samples)
        pinned = None if deployment.auto_select else self.catalog.get(deployment.preferred_gpu)
        breakdowns = self._breakdowns(demand, deployment, valid, pinned)
        gpu, note = self.select_gpu(deployment, breakdowns)
        breakdown = breakdowns[gpu.id]

        count = self.headline_count(breakdown, gpu, deployment)
        total_vram = float(sum(estimate.vram_gb for estimate in breakdown.values()))
        cpu = self.cpu_cores(breakdown)
        ram = self.ram_gb(breakdown)
        gaps = tuple(
            f"{doc_type}: no benchmark data for information extraction on {gpu.id}"
            for doc_type in breakdown[WorkloadClass.information_extraction].unresolved_document_types
        )
        for gap in gaps:
            logger.warning("Excluded from extraction sizing: %s", gap)
        notes = (note,) if note else ()
        logger.info("Recommended %d x %s (%.1f GB VRAM, %d cores, %d GB RAM)", count, gpu.id, total_vram, cpu, ram)

        result = SizingResult(
            recommended_gpu=GpuRecommendation(model=gpu.id, count=count, vram_needed=total_vram),
            cpu_cores=cpu,
            ram_gb=ram,
            per_workload=breakdown,
            comparison_table=self._comparison(breakdowns, deployment),
            server_layout=_pack_servers(count, cpu, ram, gpu.id, self.policy),
            total_vram_gb=total_vram,
            deployment=deployment,
            echoed_demand=demand,
            echoed_samples=tuple(samples),
            gaps=gaps,
            notes=notes,
        )
        return result, breakdowns

    def size_hardware(
        self,
        demand: Demand,
        deployment: DeploymentConfig,
        samples: Optional[Sequence[BenchmarkSample]] = None,
    ) -> SizingResult:
        result, _ = self._size(demand, deployment, samples or ())
        return result

    def recalculate_for_base_gpu(
        self,
        prior: SizingResult,
        new_base_gpu: str,
        demand: Optional[Demand] = None,
        samples: Optional[Sequence[BenchmarkSample]] = None,
    ) -> SizingResult:
        """Re-size the headline for a different GPU.

        The comparison table always comes from the prior call's original
        inputs, and the result echoes those originals, so recalculating
        repeatedly never drifts.
        """
        gpu = self.catalog.get(new_base_gpu)
        deployment = prior.deployment.model_copy(update={"preferred_gpu": gpu.id})
        headline, _ = self._size(
            demand if demand is not None else prior.echoed_demand,
            deployment,
            prior.echoed_samples if samples is None else samples,
        )
        _, original = self._size(prior.echoed_demand, prior.deployment, prior.echoed_samples)
        return headline.model_copy(
            update={
                "comparison_table": self._comparison(original, prior.deployment),
                "deployment": prior.deployment,
                "echoed_demand": prior.echoed_demand,
                "echoed_samples": prior.echoed_samples,
                "notes": headline.notes + (f"Recalculated for base GPU {gpu.id}",),
            }
        )

    def pack_servers(
        self,
        gpu_count: int,
        cpu_cores: int,
        ram_gb: int,
        gpu_model: Optional[str] = None,
    ) -> ServerLayout:
        return _pack_servers(gpu_count, cpu_cores, ram_gb, gpu_model, self.policy)


@lru_cache(maxsize=1)
def default_engine() -> SizingEngine:
    return SizingEngine(policy=SizingPolicy())


def size_hardware(
    demand: Demand,
    deployment: DeploymentConfig,
    samples: Optional[Sequence[BenchmarkSample]] = None,
) -> SizingResult:
    return default_engine().size_hardware(demand, deployment, samples)


def recalculate_for_base_gpu(
    prior: SizingResult,
    new_base_gpu: str,
    demand: Optional[Demand] = None,
    samples: Optional[Sequence[BenchmarkSample]] = None,
) -> SizingResult:
    return default_engine().recalculate_for_base_gpu(prior, new_base_gpu, demand, samples)


def pack_servers(gpu_count: int, cpu_cores: int, ram_gb: int, gpu_model: Optional[str] = None) -> ServerLayout:
    return default_engine().pack_servers(gpu_count, cpu_cores, ram_gb, gpu_model)
