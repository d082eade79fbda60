"""
GPU catalog used by the sizing engine.

FP32 throughput is the only performance figure the engine relies on: all
cross-model throughput transfer is a linear FP32 ratio.
"""
from __future__ import annotations

import re
from typing import Dict, Iterable, List, Mapping, Optional

from .errors import UnknownGpuError
from .models import GpuSpec


GPU_SPECS: Dict[str, dict] = {
    "L40S": {
        "fp32_tflops": 91.6,
        "vram_gb": 48,
        "unit_price_usd": 8500,
        "mig_profiles": {"1g": 10, "2g": 20, "4g": 40},
        "partitionable": False,
    },
    "A100": {
        "fp32_tflops": 19.5,
        "vram_gb": 80,
        "unit_price_usd": 15000,
        "mig_profiles": {"1g": 10, "2g": 20, "3g": 40, "7g": 80},
        "partitionable": False,
    },
    "H100": {
        "fp32_tflops": 67,
        "vram_gb": 80,
        "unit_price_usd": 25000,
        "mig_profiles": {"1g": 15, "2g": 30, "3g": 60, "7g": 200},
        "partitionable": True,
    },
    "H200": {
        "fp32_tflops": 67,
        "vram_gb": 141,
        "unit_price_usd": 31000,
        "mig_profiles": {"1g": 18, "2g": 36, "3g": 72, "7g": 250},
        "partitionable": True,
    },
    # Blackwell prices and MIG layouts are estimates.
    "B100": {
        "fp32_tflops": 60,
        "vram_gb": 192,
        "unit_price_usd": 25000,
        "mig_profiles": {"1g": 23, "2g": 45, "3g": 90, "7g": 180},
        "partitionable": True,
    },
    "B200": {
        "fp32_tflops": 75,
        "vram_gb": 192,
        "unit_price_usd": 32000,
        "mig_profiles": {"1g": 23, "2g": 45, "3g": 90, "7g": 180},
        "partitionable": True,
    },
    # Workstation cards: benchmark sources only, never recommended.
    "RTX3090": {
        "fp32_tflops": 35.6,
        "vram_gb": 24,
        "unit_price_usd": 0,
        "partitionable": False,
    },
    "A6000": {
        "fp32_tflops": 38.7,
        "vram_gb": 48,
        "unit_price_usd": 0,
        "partitionable": False,
    },
}

GPU_ALIASES: Dict[str, str] = {
    "RTXA6000": "A6000",
    "NVIDIAA6000": "A6000",
    "GEFORCERTX3090": "RTX3090",
}


def canonical_gpu_key(gpu_id: str) -> str:
    """Uppercase and strip separators: 'rtx 3090' -> 'RTX3090'."""
    key = re.sub(r"[\s_\-]+", "", gpu_id or "").upper()
    if key.startswith("NVIDIA") and key not in GPU_ALIASES:
        key = key[len("NVIDIA"):]
    return GPU_ALIASES.get(key, key)


class GpuCatalog:
    """Read-only lookup over a set of ``GpuSpec`` entries."""

    def __init__(self, specs: Iterable[GpuSpec]) -> None:
        self._specs: Dict[str, GpuSpec] = {}
        for spec in specs:
            self._specs[canonical_gpu_key(spec.id)] = spec

    @classmethod
    def from_mapping(cls, data: Mapping[str, dict]) -> "GpuCatalog":
        return cls(GpuSpec(id=gpu_id, **fields) for gpu_id, fields in data.items())

    def __contains__(self, gpu_id: object) -> bool:
        return isinstance(gpu_id, str) and self.find(gpu_id) is not None

    def __iter__(self):
        return iter(self._specs.values())

    def ids(self) -> List[str]:
        return [spec.id for spec in self._specs.values()]

    def find(self, gpu_id: str) -> Optional[GpuSpec]:
        return self._specs.get(canonical_gpu_key(gpu_id))

    def get(self, gpu_id: str) -> GpuSpec:
        spec = self.find(gpu_id)
        if spec is None:
            raise UnknownGpuError(gpu_id, self.ids())
        return spec

    def fp32(self, gpu_id: str) -> Optional[float]:
        spec = self.find(gpu_id)
        if spec is None or not spec.fp32_tflops:
            return None
        return spec.fp32_tflops

    def is_partitionable(self, gpu_id: str) -> bool:
        spec = self.find(gpu_id)
        return bool(spec and spec.partitionable)

    def comparison_models(self) -> List[GpuSpec]:
        """Entries that can be recommended (priced), in catalog order."""
        return [spec for spec in self._specs.values() if spec.unit_price_usd > 0]

    def cheapest(self) -> GpuSpec:
        return min(self.comparison_models(), key=lambda spec: spec.unit_price_usd)


DEFAULT_CATALOG = GpuCatalog.from_mapping(GPU_SPECS)
