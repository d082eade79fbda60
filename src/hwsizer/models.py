from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


AUTO_GPU = "Auto"


class WorkloadClass(str, Enum):
    ocr = "OCR"
    dp = "DP"
    document_classifier = "DocumentClassifier"
    information_extraction = "InformationExtraction"
    llm = "LLM"


class DeploymentMode(str, Enum):
    standalone = "Standalone"
    partitioned = "Kubernetes-Partitioned"
    whole_gpu = "Kubernetes-WholeGPU"


class PromptSize(str, Enum):
    small = "Small"
    medium = "Medium"
    large = "Large"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class GpuSpec(_Frozen):
    id: str
    fp32_tflops: Optional[float] = None
    vram_gb: float
    unit_price_usd: float = 0.0
    mig_profiles: Dict[str, float] = Field(default_factory=dict)
    partitionable: bool = False


class WorkloadProfile(_Frozen):
    vram_per_container_gb: float
    cpu_cores_per_container: int
    ram_gb_per_container: int
    baseline_throughput_per_container: float = 0.0
    reference_gpu: Optional[str] = None
    capable_gpu_derating: float = 1.0
    containers_per_gpu: Optional[int] = None


class BenchmarkSample(_Frozen):
    """One empirical measurement produced by an external benchmark parser.

    Rates are requests/second. ``non_partitioned_rate`` is already a
    per-container steady-state value; ``partitioned_rate`` is the rate of a
    single container occupying one GPU partition.
    """

    gpu_id: str
    workload_class: WorkloadClass
    document_type: Optional[str] = None
    non_partitioned_rate: Optional[float] = Field(default=None, ge=0)
    partitioned_rate: Optional[float] = Field(default=None, ge=0)


class DocumentDemand(_Frozen):
    document_type: str
    required_throughput: float = Field(ge=0)
    requires_post_processing: bool = False


class LlmDemand(_Frozen):
    concurrent_users: int = Field(default=0, ge=0)
    prompt_size: PromptSize = PromptSize.small
    streaming: bool = False


class Demand(_Frozen):
    request_throughput: float = Field(default=0.0, ge=0)
    documents: Tuple[DocumentDemand, ...] = ()
    dp_throughput: float = Field(default=0.0, ge=0)
    llm: LlmDemand = Field(default_factory=LlmDemand)

    @property
    def aggregate_throughput(self) -> float:
        if self.request_throughput > 0:
            return self.request_throughput
        return float(sum(doc.required_throughput for doc in self.documents))

    def is_active(self, workload: WorkloadClass) -> bool:
        if workload in (WorkloadClass.ocr, WorkloadClass.document_classifier):
            return self.aggregate_throughput > 0
        if workload == WorkloadClass.information_extraction:
            return len(self.documents) > 0
        if workload == WorkloadClass.dp:
            return self.dp_throughput > 0
        return self.llm.concurrent_users > 0


class DeploymentConfig(_Frozen):
    mode: DeploymentMode = DeploymentMode.standalone
    partition_profile: Optional[str] = None
    preferred_gpu: str = AUTO_GPU

    @model_validator(mode="after")
    def _check_partition_profile(self) -> "DeploymentConfig":
        if self.mode == DeploymentMode.partitioned and not self.partition_profile:
            raise ValueError("partition_profile is required in Kubernetes-Partitioned mode")
        if self.mode != DeploymentMode.partitioned and self.partition_profile:
            raise ValueError("partition_profile is only valid in Kubernetes-Partitioned mode")
        return self

    @property
    def is_partitioned(self) -> bool:
        return self.mode == DeploymentMode.partitioned

    @property
    def auto_select(self) -> bool:
        return self.preferred_gpu.strip().lower() in {"auto", "auto-select", ""}


class LineItem(_Frozen):
    document_type: Optional[str] = None
    required_throughput: float
    throughput_per_container: float
    container_count: int
    vram_per_container: float
    total_vram: float
    source: str = "profile"


class WorkloadEstimate(_Frozen):
    workload_class: WorkloadClass
    gpu_model: str
    container_count: int = 0
    gpu_count: int = 0
    vram_gb: float = 0.0
    cost_usd: float = 0.0
    line_items: Tuple[LineItem, ...] = ()
    unresolved_document_types: Tuple[str, ...] = ()


class ComparisonEntry(_Frozen):
    model: str
    count: int
    total_vram: float
    total_cost: float
    container_count: int


class ServerSpec(_Frozen):
    server_number: int
    gpu_model: Optional[str] = None
    gpu_count: int
    cpu_cores: int
    ram_gb: int


class ServerLayout(_Frozen):
    total_servers: int
    servers: Tuple[ServerSpec, ...]


class GpuRecommendation(_Frozen):
    model: str
    count: int
    vram_needed: float


class SizingResult(_Frozen):
    recommended_gpu: GpuRecommendation
    cpu_cores: int
    ram_gb: int
    per_workload: Dict[WorkloadClass, WorkloadEstimate]
    comparison_table: Dict[str, ComparisonEntry]
    server_layout: ServerLayout
    total_vram_gb: float
    deployment: DeploymentConfig
    echoed_demand: Demand
    echoed_samples: Tuple[BenchmarkSample, ...] = ()
    gaps: Tuple[str, ...] = ()
    notes: Tuple[str, ...] = ()


class SizingRequest(_Frozen):
    demand: Demand = Field(default_factory=Demand)
    deployment: DeploymentConfig = Field(default_factory=DeploymentConfig)
    samples: Tuple[BenchmarkSample, ...] = ()


class Alternative(_Frozen):
    rank: int
    label: str
    deployment: DeploymentConfig
    result: SizingResult
    cost_usd: float
    savings_usd: float
    tradeoffs: Tuple[str, ...] = ()


class CostAdvice(_Frozen):
    recommended: SizingResult
    cost_usd: float
    alternatives: Tuple[Alternative, ...] = ()
    strategies: Tuple[str, ...] = ()
