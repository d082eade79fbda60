"""
Per-container throughput resolution.

Every resolver returns documents/minute per container, or 0 when nothing
usable exists. Fallback chains are plain ordered lists of ``Strategy``
objects; ``resolve_chain`` stops at the first positive value.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence

from .catalog import GpuCatalog, canonical_gpu_key
from .config import SizingPolicy
from .matching import match_document_type
from .models import BenchmarkSample, WorkloadClass, WorkloadProfile
from .normalize import BenchmarkNormalizer


logger = logging.getLogger(__name__)

SECONDS_PER_MINUTE = 60


@dataclass(frozen=True)
class Strategy:
    name: str
    resolve: Callable[[], float]


@dataclass(frozen=True)
class Resolution:
    rate: float
    source: str


def resolve_chain(strategies: Iterable[Strategy]) -> Optional[Resolution]:
    for strategy in strategies:
        rate = strategy.resolve()
        if rate and rate > 0:
            logger.debug("Resolved %.3f docs/min via %s", rate, strategy.name)
            return Resolution(rate=rate, source=strategy.name)
    return None


class ThroughputResolver:
    def __init__(
        self,
        catalog: GpuCatalog,
        normalizer: BenchmarkNormalizer,
        policy: SizingPolicy,
    ) -> None:
        self.catalog = catalog
        self.normalizer = normalizer
        self.policy = policy

    def matches(
        self,
        sample: BenchmarkSample,
        workload: WorkloadClass,
        document_type: Optional[str],
    ) -> bool:
        if sample.workload_class != workload:
            return False
        if document_type is None:
            return True
        return match_document_type(
            sample.document_type, document_type, self.policy.document_match_threshold
        )

    def _candidates(
        self,
        samples: Sequence[BenchmarkSample],
        workload: WorkloadClass,
        document_type: Optional[str],
        field: str,
        partitionable_only: bool,
    ) -> List[BenchmarkSample]:
        found = []
        for sample in samples:
            if getattr(sample, field) is None:
                continue
            if partitionable_only and not self.catalog.is_partitionable(sample.gpu_id):
                continue
            if self.matches(sample, workload, document_type):
                found.append(sample)
        return found

    def _best_transferred(
        self,
        candidates: Sequence[BenchmarkSample],
        target_gpu: str,
        field: str,
    ) -> float:
        normalized = self.normalizer.to_reference_frame(candidates)
        if not normalized:
            return 0.0
        best = max(normalized, key=lambda sample: getattr(sample, field))
        on_target = self.normalizer.from_reference_frame(best, target_gpu)
        return float(getattr(on_target, field))

    def resolve_partitioned(
        self,
        target_gpu: str,
        workload: WorkloadClass,
        document_type: Optional[str],
        samples: Sequence[BenchmarkSample],
    ) -> float:
        """Single-container partition rate, derated for partition overhead.

        The largest FP32-normalized observation from any partitionable GPU
        wins and is assumed achievable on the target.
        """
        if not samples:
            return 0.0
        candidates = self._candidates(
            samples, workload, document_type, "partitioned_rate", partitionable_only=True
        )
        rate = self._best_transferred(candidates, target_gpu, "partitioned_rate")
        return rate * SECONDS_PER_MINUTE * self.policy.partition_derating

    def resolve_non_partitioned(
        self,
        target_gpu: str,
        workload: WorkloadClass,
        document_type: Optional[str],
        samples: Sequence[BenchmarkSample],
    ) -> float:
        if not samples:
            return 0.0
        target_key = canonical_gpu_key(target_gpu)
        for sample in self._candidates(
            samples, workload, document_type, "non_partitioned_rate", partitionable_only=False
        ):
            if canonical_gpu_key(sample.gpu_id) == target_key:
                return sample.non_partitioned_rate * SECONDS_PER_MINUTE
        candidates = self._candidates(
            samples, workload, document_type, "non_partitioned_rate", partitionable_only=True
        )
        rate = self._best_transferred(candidates, target_gpu, "non_partitioned_rate")
        return rate * SECONDS_PER_MINUTE

    def transferred(
        self,
        target_gpu: str,
        workload: WorkloadClass,
        document_type: Optional[str],
        samples: Sequence[BenchmarkSample],
    ) -> float:
        """First matching whole-GPU sample from any source, moved to the target."""
        for sample in self._candidates(
            samples, workload, document_type, "non_partitioned_rate", partitionable_only=False
        ):
            converted = self.normalizer.convert(sample, target_gpu)
            if converted is None:
                continue
            rate = converted.non_partitioned_rate * SECONDS_PER_MINUTE
            if self.catalog.is_partitionable(target_gpu):
                rate *= self.policy.partition_derating
            return rate
        return 0.0

    def profile_rate(self, target_gpu: str, profile: WorkloadProfile) -> float:
        rate = profile.baseline_throughput_per_container
        if rate <= 0:
            return 0.0
        if profile.reference_gpu:
            target_fp32 = self.catalog.fp32(target_gpu)
            reference_fp32 = self.catalog.fp32(profile.reference_gpu)
            if target_fp32 and reference_fp32:
                rate *= target_fp32 / reference_fp32
        if self.catalog.is_partitionable(target_gpu):
            rate *= profile.capable_gpu_derating
        return rate

    def empirical_strategies(
        self,
        target_gpu: str,
        workload: WorkloadClass,
        document_type: Optional[str],
        samples: Sequence[BenchmarkSample],
        include_transferred: bool = True,
    ) -> List[Strategy]:
        label = workload.value
        if self.catalog.is_partitionable(target_gpu):
            strategies = [
                Strategy(
                    f"partitioned:{label}",
                    lambda: self.resolve_partitioned(target_gpu, workload, document_type, samples),
                )
            ]
        else:
            strategies = [
                Strategy(
                    f"non_partitioned:{label}",
                    lambda: self.resolve_non_partitioned(target_gpu, workload, document_type, samples),
                )
            ]
        if include_transferred:
            strategies.append(
                Strategy(
                    f"transferred:{label}",
                    lambda: self.transferred(target_gpu, workload, document_type, samples),
                )
            )
        return strategies

    def profile_strategy(self, target_gpu: str, profile: WorkloadProfile) -> Strategy:
        return Strategy("profile", lambda: self.profile_rate(target_gpu, profile))
