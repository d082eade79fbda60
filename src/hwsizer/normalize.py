from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .catalog import GpuCatalog
from .errors import UnknownGpuError
from .models import BenchmarkSample


logger = logging.getLogger(__name__)


def _scale(value: Optional[float], ratio: float) -> Optional[float]:
    return None if value is None else value * ratio


class BenchmarkNormalizer:
    """Moves benchmark rates between GPU models through one reference frame.

    Rates scale linearly with FP32 TFLOPS. Every cross-model comparison goes
    via ``reference_gpu`` so that a best-of search over N samples is a single
    scan instead of pairwise conversions.
    """

    def __init__(self, catalog: GpuCatalog, reference_gpu: str = "L40S") -> None:
        self.catalog = catalog
        self.reference = catalog.get(reference_gpu)
        if not self.reference.fp32_tflops:
            raise UnknownGpuError(reference_gpu)

    def _rescale(self, sample: BenchmarkSample, ratio: float, gpu_id: str) -> BenchmarkSample:
        return sample.model_copy(
            update={
                "gpu_id": gpu_id,
                "non_partitioned_rate": _scale(sample.non_partitioned_rate, ratio),
                "partitioned_rate": _scale(sample.partitioned_rate, ratio),
            }
        )

    def to_reference(self, sample: BenchmarkSample) -> Optional[BenchmarkSample]:
        source_fp32 = self.catalog.fp32(sample.gpu_id)
        if source_fp32 is None:
            logger.warning(
                "Dropping %s sample: no FP32 figure for GPU %r",
                sample.workload_class.value,
                sample.gpu_id,
            )
            return None
        ratio = self.reference.fp32_tflops / source_fp32
        return self._rescale(sample, ratio, self.reference.id)

    def to_reference_frame(self, samples: Iterable[BenchmarkSample]) -> List[BenchmarkSample]:
        converted = (self.to_reference(sample) for sample in samples)
        return [sample for sample in converted if sample is not None]

    def from_reference_frame(self, sample: BenchmarkSample, target_gpu_id: str) -> BenchmarkSample:
        target = self.catalog.get(target_gpu_id)
        if not target.fp32_tflops:
            raise UnknownGpuError(target_gpu_id)
        ratio = target.fp32_tflops / self.reference.fp32_tflops
        return self._rescale(sample, ratio, target.id)

    def convert(self, sample: BenchmarkSample, target_gpu_id: str) -> Optional[BenchmarkSample]:
        reference = self.to_reference(sample)
        if reference is None:
            return None
        return self.from_reference_frame(reference, target_gpu_id)
