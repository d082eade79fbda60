import pytest

from hwsizer.catalog import DEFAULT_CATALOG, canonical_gpu_key
from hwsizer.errors import UnknownGpuError
from hwsizer.models import BenchmarkSample, WorkloadClass
from hwsizer.normalize import BenchmarkNormalizer


def _sample(gpu_id="H100", non_partitioned=1.5, partitioned=0.6):
    return BenchmarkSample(
        gpu_id=gpu_id,
        workload_class=WorkloadClass.ocr,
        non_partitioned_rate=non_partitioned,
        partitioned_rate=partitioned,
    )


def test_round_trip_restores_rates():
    normalizer = BenchmarkNormalizer(DEFAULT_CATALOG)
    for gpu_id in ("H100", "B200", "A100", "RTX3090"):
        sample = _sample(gpu_id, partitioned=None if gpu_id in ("A100", "RTX3090") else 0.6)
        back = normalizer.from_reference_frame(normalizer.to_reference(sample), sample.gpu_id)
        assert back.non_partitioned_rate == pytest.approx(sample.non_partitioned_rate)
        if sample.partitioned_rate is not None:
            assert back.partitioned_rate == pytest.approx(sample.partitioned_rate)


def test_reference_frame_uses_fp32_ratio():
    normalizer = BenchmarkNormalizer(DEFAULT_CATALOG)
    [converted] = normalizer.to_reference_frame([_sample("H100", non_partitioned=1.0, partitioned=None)])
    assert converted.gpu_id == "L40S"
    assert converted.non_partitioned_rate == pytest.approx(91.6 / 67)
    assert converted.partitioned_rate is None


def test_unknown_source_gpu_is_dropped(caplog):
    normalizer = BenchmarkNormalizer(DEFAULT_CATALOG)
    assert normalizer.to_reference_frame([_sample("TPUv5")]) == []
    assert "TPUv5" in caplog.text


def test_unknown_target_gpu_raises():
    normalizer = BenchmarkNormalizer(DEFAULT_CATALOG)
    with pytest.raises(UnknownGpuError):
        normalizer.from_reference_frame(_sample("L40S", partitioned=None), "X9000")


def test_gpu_ids_are_matched_loosely():
    assert canonical_gpu_key("rtx 3090") == "RTX3090"
    assert canonical_gpu_key("NVIDIA H100") == "H100"
    assert DEFAULT_CATALOG.get("h-200").id == "H200"
    assert "rtx 3090" in DEFAULT_CATALOG
    assert "X9000" not in DEFAULT_CATALOG


def test_convert_back_and_forth_restores_rate():
    normalizer = BenchmarkNormalizer(DEFAULT_CATALOG)
    pairs = [("H100", "A100"), ("A100", "H100"), ("RTX3090", "B200"), ("B200", "RTX3090"), ("L40S", "H200")]
    for source, target in pairs:
        sample = _sample(source, non_partitioned=1.5, partitioned=None)
        there = normalizer.convert(sample, target)
        back = normalizer.convert(there, source)
        assert there.gpu_id == target
        assert back.gpu_id == source
        assert back.non_partitioned_rate == pytest.approx(1.5)
