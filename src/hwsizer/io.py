from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd
from pydantic import ValidationError

from .catalog import canonical_gpu_key
from .matching import best_match, normalize_document_type, remove_spaces
from .models import BenchmarkSample, SizingRequest, SizingResult


logger = logging.getLogger(__name__)

SAMPLE_COLUMNS = [
    "gpu_id",
    "workload_class",
    "document_type",
    "non_partitioned_rate",
    "partitioned_rate",
]


def load_request(path: Path) -> SizingRequest:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return SizingRequest.model_validate(data)


def load_samples_csv(path: Path) -> List[BenchmarkSample]:
    """Read benchmark samples; rows that fail validation are skipped."""
    df = pd.read_csv(path)
    missing = [c for c in SAMPLE_COLUMNS if c not in df.columns]
    for col in missing:
        df[col] = float("nan")
    df = df[SAMPLE_COLUMNS].astype(object).where(df[SAMPLE_COLUMNS].notna(), None)

    samples = []
    for row_number, record in enumerate(df.to_dict(orient="records"), start=2):
        try:
            samples.append(BenchmarkSample.model_validate(record))
        except ValidationError as exc:
            logger.warning("Skipping sample at %s:%d: %s", path, row_number, exc.errors()[0]["msg"])
    return samples


def _sample_key(sample: BenchmarkSample) -> Tuple[str, str, str]:
    doc_type = ""
    if sample.document_type:
        known = best_match(sample.document_type) or normalize_document_type(sample.document_type)
        doc_type = remove_spaces(known)
    return canonical_gpu_key(sample.gpu_id), sample.workload_class.value, doc_type


def merge_duplicate_samples(samples: Iterable[BenchmarkSample]) -> List[BenchmarkSample]:
    """Collapse samples sharing (GPU, workload class, document type).

    Each rate keeps the first non-null value seen; order of first appearance
    is preserved.
    """
    merged: Dict[Tuple[str, str, str], BenchmarkSample] = {}
    for sample in samples:
        key = _sample_key(sample)
        current = merged.get(key)
        if current is None:
            merged[key] = sample
            continue
        update = {}
        for field in ("non_partitioned_rate", "partitioned_rate"):
            if getattr(current, field) is None and getattr(sample, field) is not None:
                update[field] = getattr(sample, field)
        if update:
            merged[key] = current.model_copy(update=update)
    return list(merged.values())


def write_result_json(result: SizingResult, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(result.model_dump_json(indent=2), encoding="utf-8")
    return path


def load_result(path: Path) -> SizingResult:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return SizingResult.model_validate(data)


def load_samples(path: Optional[Path]) -> List[BenchmarkSample]:
    if path is None:
        return []
    if Path(path).suffix.lower() == ".json":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return [BenchmarkSample.model_validate(item) for item in data]
    return load_samples_csv(path)
