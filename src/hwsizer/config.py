from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SizingPolicy(BaseSettings):
    """Policy constants used by the sizing engine.

    None of these values are derived from first principles; they encode
    operational conventions and can be overridden per engine instance or
    through ``HWSIZER_*`` environment variables.
    """

    model_config = SettingsConfigDict(env_prefix="HWSIZER_", frozen=True)

    max_containers_per_gpu: int = Field(default=7, ge=1)
    vram_headroom: float = Field(default=0.8, gt=0, le=1)
    partition_derating: float = Field(default=0.65, gt=0, le=1)
    extraction_derating: float = Field(default=0.8, gt=0, le=1)
    large_container_vram_gb: float = Field(default=45.0, gt=0)
    large_container_gpu: str = "H200"
    reference_gpu: str = "L40S"
    partition_reference_gpu: str = "H100"
    gpus_per_server: int = Field(default=4, ge=1)
    ram_headroom: float = Field(default=2.0, ge=1)
    base_cpu_cores: int = Field(default=8, ge=0)
    base_ram_gb: int = Field(default=64, ge=0)
    document_match_threshold: float = Field(default=0.95, gt=0, le=1)
