import pytest

from hwsizer.engine import SizingEngine
from hwsizer.models import (
    BenchmarkSample,
    Demand,
    DeploymentConfig,
    DeploymentMode,
    DocumentDemand,
    LlmDemand,
    PromptSize,
    WorkloadClass,
)


def _breakdown(demand, gpu="L40S", samples=(), deployment=None):
    engine = SizingEngine()
    deployment = deployment or DeploymentConfig()
    return engine.breakdown(demand, engine.catalog.get(gpu), deployment, list(samples))


def test_ocr_profile_fallback_is_gpu_agnostic():
    for gpu in ("L40S", "H100", "B200"):
        ocr = _breakdown(Demand(request_throughput=480), gpu)[WorkloadClass.ocr]
        assert ocr.container_count == 6
        assert ocr.vram_gb == pytest.approx(51.0)
        assert ocr.line_items[0].source == "profile"


def test_ocr_adds_post_processing_instances():
    demand = Demand(
        documents=(
            DocumentDemand(document_type="진단서", required_throughput=60, requires_post_processing=True),
            DocumentDemand(document_type="처방전", required_throughput=100),
        )
    )
    ocr = _breakdown(demand)[WorkloadClass.ocr]
    assert [item.container_count for item in ocr.line_items] == [2, 2]
    assert ocr.line_items[1].vram_per_container == 40
    assert ocr.container_count == 4


def test_ocr_uses_partitioned_samples_on_capable_gpu():
    samples = [
        BenchmarkSample(gpu_id="H200", workload_class=WorkloadClass.ocr, partitioned_rate=0.4),
        BenchmarkSample(gpu_id="H100", workload_class=WorkloadClass.ocr, partitioned_rate=0.6),
    ]
    ocr = _breakdown(Demand(request_throughput=480), "H100", samples)[WorkloadClass.ocr]
    assert ocr.line_items[0].throughput_per_container == pytest.approx(23.4)
    assert ocr.container_count == 21
    assert ocr.gpu_count == 3


def test_extraction_reports_gaps_without_samples():
    demand = Demand(documents=(DocumentDemand(document_type="처방전", required_throughput=120),))
    ie = _breakdown(demand)[WorkloadClass.information_extraction]
    assert ie.line_items == ()
    assert ie.unresolved_document_types == ("처방전",)


def test_extraction_derates_transferred_rate():
    demand = Demand(documents=(DocumentDemand(document_type="처방전", required_throughput=120),))
    samples = [
        BenchmarkSample(
            gpu_id="H100",
            workload_class=WorkloadClass.information_extraction,
            document_type="처방전",
            non_partitioned_rate=1.1,
        )
    ]
    ie = _breakdown(demand, "L40S", samples)[WorkloadClass.information_extraction]
    [item] = ie.line_items
    assert item.throughput_per_container == pytest.approx(1.1 * 91.6 / 67 * 60 * 0.8, abs=1e-3)
    assert item.container_count == 2
    assert item.total_vram == 12


def test_extraction_falls_back_to_ocr_samples():
    demand = Demand(documents=(DocumentDemand(document_type="진단서", required_throughput=60),))
    samples = [
        BenchmarkSample(
            gpu_id="RTX3090",
            workload_class=WorkloadClass.ocr,
            document_type="진단 소견서",
            non_partitioned_rate=0.8,
        )
    ]
    ie = _breakdown(demand, "L40S", samples)[WorkloadClass.information_extraction]
    [item] = ie.line_items
    assert item.source == "transferred:OCR"
    assert item.container_count == 1
    assert ie.unresolved_document_types == ()


def test_dp_partitioned_uses_fixed_profile():
    deployment = DeploymentConfig(mode=DeploymentMode.partitioned, partition_profile="1g", preferred_gpu="H100")
    dp = _breakdown(Demand(dp_throughput=100), "H100", deployment=deployment)[WorkloadClass.dp]
    assert dp.container_count == 6
    assert dp.gpu_count == 1


def test_dp_whole_gpu_derated_on_capable_gpu():
    dp = _breakdown(Demand(dp_throughput=100), "H100")[WorkloadClass.dp]
    # 160.2 / 12 * 0.65 = 8.68 docs/min per container
    assert dp.container_count == 12
    assert dp.gpu_count == 2


def test_llm_vram_closed_form():
    demand = Demand(llm=LlmDemand(concurrent_users=4, prompt_size=PromptSize.medium, streaming=True))
    llm = _breakdown(demand)[WorkloadClass.llm]
    assert llm.container_count == 4
    assert llm.line_items[0].vram_per_container == pytest.approx(12.8)
    assert llm.vram_gb == 52

    demand = Demand(llm=LlmDemand(concurrent_users=3, prompt_size=PromptSize.large))
    assert _breakdown(demand)[WorkloadClass.llm].vram_gb == 96


def test_partition_packing_by_slots():
    deployment = DeploymentConfig(mode=DeploymentMode.partitioned, partition_profile="1g", preferred_gpu="H100")
    breakdown = _breakdown(Demand(request_throughput=480), "H100", deployment=deployment)
    # 8.5 GB containers fit one per 15 GB slice, 4 GB classifiers three per slice
    assert breakdown[WorkloadClass.ocr].gpu_count == 6
    assert breakdown[WorkloadClass.document_classifier].container_count == 3
    assert breakdown[WorkloadClass.document_classifier].gpu_count == 1


def test_inactive_workloads_are_empty():
    breakdown = _breakdown(Demand())
    assert all(estimate.container_count == 0 for estimate in breakdown.values())
    assert all(estimate.cost_usd == 0 for estimate in breakdown.values())


def test_post_processing_takes_whole_gpus_on_capable_card():
    demand = Demand(
        documents=(DocumentDemand(document_type="진단서", required_throughput=400, requires_post_processing=True),)
    )
    ocr = _breakdown(demand, "H100")[WorkloadClass.ocr]
    assert [item.container_count for item in ocr.line_items] == [5, 10]
    # five OCR containers share one card, ten model instances need ten
    assert ocr.gpu_count == 11
    assert ocr.cost_usd == 11 * SizingEngine().catalog.get("H100").unit_price_usd


def test_partition_memory_capped_at_card_vram():
    engine = SizingEngine()
    ctx = engine._context(
        DeploymentConfig(mode=DeploymentMode.partitioned, partition_profile="3g", preferred_gpu="L40S")
    )
    assert ctx.partition_memory(engine.catalog.get("L40S")) == 48
    ctx = engine._context(
        DeploymentConfig(mode=DeploymentMode.partitioned, partition_profile="7g", preferred_gpu="H200")
    )
    assert ctx.partition_memory(engine.catalog.get("H200")) == 141


def test_partition_slots_never_exceed_card():
    deployment = DeploymentConfig(mode=DeploymentMode.partitioned, partition_profile="3g", preferred_gpu="L40S")
    ocr = _breakdown(Demand(request_throughput=480), "L40S", deployment=deployment)[WorkloadClass.ocr]
    # 48 GB holds five 8.5 GB containers, so six need two cards
    assert ocr.container_count == 6
    assert ocr.gpu_count == 2
