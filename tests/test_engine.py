import pytest
from pydantic import ValidationError

from hwsizer.config import SizingPolicy
from hwsizer.engine import SizingEngine, recalculate_for_base_gpu, size_hardware
from hwsizer.errors import InvalidDeploymentError, UnknownGpuError
from hwsizer.models import (
    BenchmarkSample,
    Demand,
    DeploymentConfig,
    DeploymentMode,
    DocumentDemand,
    LlmDemand,
    WorkloadClass,
)
from hwsizer.profiles import DEFAULT_PROFILES


def _demand():
    return Demand(
        request_throughput=480,
        documents=(
            DocumentDemand(document_type="진료비 영수증", required_throughput=300),
            DocumentDemand(document_type="처방전", required_throughput=180, requires_post_processing=True),
        ),
        dp_throughput=50,
        llm=LlmDemand(concurrent_users=2),
    )


def _samples():
    return [
        BenchmarkSample(gpu_id="H100", workload_class=WorkloadClass.ocr, non_partitioned_rate=1.9, partitioned_rate=0.6),
        BenchmarkSample(
            gpu_id="H100",
            workload_class=WorkloadClass.information_extraction,
            document_type="진료비 영수증",
            non_partitioned_rate=0.9,
        ),
    ]


def test_auto_picks_cheapest_model():
    result = SizingEngine().size_hardware(Demand(request_throughput=480), DeploymentConfig())
    assert result.recommended_gpu.model == "L40S"
    assert result.per_workload[WorkloadClass.ocr].container_count == 6
    # 51 GB OCR + 8 GB classifier over 38.4 GB usable per L40S
    assert result.recommended_gpu.count == 2
    assert result.cpu_cores == 8 + 6 * 4 + 2 * 4
    assert result.ram_gb == 64 + 6 * 16 + 2 * 16


def test_empty_samples_are_idempotent():
    engine = SizingEngine()
    first = engine.size_hardware(_demand(), DeploymentConfig(), [])
    second = engine.size_hardware(_demand(), DeploymentConfig(), [])
    assert first == second


def test_headline_matches_comparison_row():
    engine = SizingEngine()
    for gpu in ("Auto", "L40S", "A100", "H100", "H200", "B100", "B200"):
        result = engine.size_hardware(_demand(), DeploymentConfig(preferred_gpu=gpu), _samples())
        rec = result.recommended_gpu
        row = result.comparison_table[rec.model]
        assert row.count == rec.count
        assert row.container_count == sum(e.container_count for e in result.per_workload.values())


def test_partitionable_gpu_respects_container_cap():
    engine = SizingEngine()
    for throughput in (0, 10, 80, 480, 1000, 2345):
        for gpu in ("H100", "H200", "B100", "B200"):
            result = engine.size_hardware(Demand(request_throughput=throughput), DeploymentConfig(preferred_gpu=gpu))
            containers = sum(e.container_count for e in result.per_workload.values())
            count = result.recommended_gpu.count
            assert count * 7 >= containers
            assert count * 7 < containers + 7


def test_comparison_covers_priced_models():
    result = SizingEngine().size_hardware(_demand(), DeploymentConfig(), _samples())
    assert set(result.comparison_table) == {"L40S", "A100", "H100", "H200", "B100", "B200"}
    for model, entry in result.comparison_table.items():
        assert entry.total_cost == entry.count * SizingEngine().catalog.get(model).unit_price_usd


def test_partitioned_headline_sums_workloads():
    deployment = DeploymentConfig(mode=DeploymentMode.partitioned, partition_profile="1g", preferred_gpu="H100")
    result = SizingEngine().size_hardware(Demand(request_throughput=480), deployment)
    assert result.recommended_gpu.count == 7
    assert result.comparison_table["H100"].count == 7


def test_unknown_partition_profile_is_rejected():
    deployment = DeploymentConfig(mode=DeploymentMode.partitioned, partition_profile="9g")
    with pytest.raises(InvalidDeploymentError):
        SizingEngine().size_hardware(Demand(request_throughput=10), deployment)


def test_partition_profile_requires_partitioned_mode():
    with pytest.raises(ValidationError):
        DeploymentConfig(mode=DeploymentMode.partitioned)
    with pytest.raises(ValidationError):
        DeploymentConfig(mode=DeploymentMode.whole_gpu, partition_profile="1g")


def test_unknown_pinned_gpu_raises():
    with pytest.raises(UnknownGpuError):
        SizingEngine().size_hardware(Demand(request_throughput=10), DeploymentConfig(preferred_gpu="X9000"))


def test_large_containers_step_up_to_large_card():
    profiles = DEFAULT_PROFILES.model_copy(
        update={"ocr": DEFAULT_PROFILES.ocr.model_copy(update={"vram_per_container_gb": 50})}
    )
    result = SizingEngine(profiles=profiles).size_hardware(Demand(request_throughput=80), DeploymentConfig())
    assert result.recommended_gpu.model == "H200"
    assert any("H200" in note for note in result.notes)


def test_extraction_gaps_surface_in_result():
    result = SizingEngine().size_hardware(_demand(), DeploymentConfig(), _samples())
    assert len(result.gaps) == 1
    assert "처방전" in result.gaps[0]


def test_partitioned_rate_on_plain_gpu_is_ignored(caplog):
    engine = SizingEngine()
    sample = BenchmarkSample(gpu_id="L40S", workload_class=WorkloadClass.ocr, non_partitioned_rate=1.0, partitioned_rate=0.5)
    [cleaned] = engine.validate_samples([sample])
    assert cleaned.partitioned_rate is None
    assert cleaned.non_partitioned_rate == 1.0
    assert "non-partitionable" in caplog.text


def test_empty_demand_keeps_base_overhead():
    result = SizingEngine().size_hardware(Demand(), DeploymentConfig())
    assert result.recommended_gpu.count == 0
    assert result.cpu_cores == 8
    assert result.ram_gb == 64
    assert result.server_layout.total_servers == 1
    assert all(entry.count == 0 for entry in result.comparison_table.values())


def test_recalculation_is_stable():
    prior = size_hardware(_demand(), DeploymentConfig(), _samples())
    first = recalculate_for_base_gpu(prior, "H100")
    second = recalculate_for_base_gpu(first, "B200")
    assert first.recommended_gpu.model == "H100"
    assert second.recommended_gpu.model == "B200"
    assert first.comparison_table == second.comparison_table == prior.comparison_table
    assert second.echoed_demand == prior.echoed_demand
    assert second.deployment == prior.deployment
    assert second.recommended_gpu.count == second.comparison_table["B200"].count


def test_recalculation_with_new_demand_keeps_original_comparison():
    prior = size_hardware(_demand(), DeploymentConfig(), _samples())
    updated = recalculate_for_base_gpu(prior, "H100", demand=Demand(request_throughput=4800))
    assert updated.comparison_table == prior.comparison_table
    assert updated.recommended_gpu.count > prior.comparison_table["H100"].count


def test_custom_policy_changes_container_cap():
    engine = SizingEngine(policy=SizingPolicy(max_containers_per_gpu=3))
    result = engine.size_hardware(Demand(request_throughput=480), DeploymentConfig(preferred_gpu="H100"))
    containers = sum(e.container_count for e in result.per_workload.values())
    assert result.recommended_gpu.count == -(-containers // 3)


def test_extraction_gap_is_logged_once_per_sizing(caplog):
    caplog.set_level("WARNING")
    SizingEngine().size_hardware(_demand(), DeploymentConfig(), _samples())
    gap_records = [r for r in caplog.records if "Excluded from extraction sizing" in r.getMessage()]
    assert len(gap_records) == 1
    assert gap_records[0].levelname == "WARNING"
    assert "처방전" in gap_records[0].getMessage()
