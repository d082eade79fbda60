"""
Static per-workload defaults, used when no benchmark sample resolves.

Throughputs are documents/minute per container.
"""
from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

from .models import PromptSize, WorkloadClass, WorkloadProfile


class LlmProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_vram_per_user_gb: float = 8.0
    prompt_multipliers: Dict[PromptSize, float] = Field(
        default_factory=lambda: {
            PromptSize.small: 1.0,
            PromptSize.medium: 2.0,
            PromptSize.large: 4.0,
        }
    )
    streaming_factor: float = 0.8
    cpu_cores_per_container: int = 16
    ram_gb_per_container: int = 64

    def vram_per_user(self, prompt_size: PromptSize, streaming: bool) -> float:
        multiplier = self.prompt_multipliers.get(prompt_size, 1.0)
        factor = self.streaming_factor if streaming else 1.0
        return self.base_vram_per_user_gb * multiplier * factor


class WorkloadProfiles(BaseModel):
    model_config = ConfigDict(frozen=True)

    ocr: WorkloadProfile
    post_processing: WorkloadProfile
    information_extraction: WorkloadProfile
    document_classifier: WorkloadProfile
    dp: WorkloadProfile
    dp_partitioned: WorkloadProfile
    llm: LlmProfile = Field(default_factory=LlmProfile)

    def for_class(self, workload: WorkloadClass) -> WorkloadProfile:
        if workload == WorkloadClass.ocr:
            return self.ocr
        if workload == WorkloadClass.information_extraction:
            return self.information_extraction
        if workload == WorkloadClass.document_classifier:
            return self.document_classifier
        if workload == WorkloadClass.dp:
            return self.dp
        return WorkloadProfile(
            vram_per_container_gb=self.llm.base_vram_per_user_gb,
            cpu_cores_per_container=self.llm.cpu_cores_per_container,
            ram_gb_per_container=self.llm.ram_gb_per_container,
        )


DEFAULT_PROFILES = WorkloadProfiles(
    ocr=WorkloadProfile(
        vram_per_container_gb=8.5,
        cpu_cores_per_container=4,
        ram_gb_per_container=16,
        baseline_throughput_per_container=80,
    ),
    # Post-processing LLM attached to OCR line items that request it.
    post_processing=WorkloadProfile(
        vram_per_container_gb=40,
        cpu_cores_per_container=4,
        ram_gb_per_container=16,
        baseline_throughput_per_container=40,
    ),
    information_extraction=WorkloadProfile(
        vram_per_container_gb=6,
        cpu_cores_per_container=2,
        ram_gb_per_container=4,
    ),
    document_classifier=WorkloadProfile(
        vram_per_container_gb=4,
        cpu_cores_per_container=4,
        ram_gb_per_container=16,
        baseline_throughput_per_container=200,
        reference_gpu="H100",
    ),
    # H100 whole-GPU optimum: 160.2 docs/min at 12 containers.
    dp=WorkloadProfile(
        vram_per_container_gb=12,
        cpu_cores_per_container=6,
        ram_gb_per_container=32,
        baseline_throughput_per_container=160.2 / 12,
        reference_gpu="H100",
        capable_gpu_derating=0.65,
    ),
    # H100 MIG optimum: 119.7 docs/min at 7 containers.
    dp_partitioned=WorkloadProfile(
        vram_per_container_gb=12,
        cpu_cores_per_container=6,
        ram_gb_per_container=32,
        baseline_throughput_per_container=119.7 / 7,
        reference_gpu="H100",
        containers_per_gpu=7,
    ),
)
