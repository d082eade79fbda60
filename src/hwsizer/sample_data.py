from __future__ import annotations

import json
from pathlib import Path

import pandas as pd


SAMPLE_REQUEST = {
    "demand": {
        "request_throughput": 480,
        "documents": [
            {"document_type": "진료비 영수증", "required_throughput": 300},
            {"document_type": "처방전", "required_throughput": 120},
            {"document_type": "진단서", "required_throughput": 60, "requires_post_processing": True},
        ],
        "dp_throughput": 100,
        "llm": {"concurrent_users": 4, "prompt_size": "Medium", "streaming": True},
    },
    "deployment": {"mode": "Standalone", "preferred_gpu": "Auto"},
}

SAMPLE_ROWS = [
    ("H100", "OCR", None, 1.9, 0.6),
    ("H100", "OCR", "진료비 영수증", 2.1, 0.7),
    ("L40S", "OCR", None, 2.4, None),
    ("H100", "InformationExtraction", "진료비 영수증", 0.9, 0.35),
    ("H100", "InformationExtraction", "처방전", 1.1, None),
    ("RTX3090", "OCR", "진단 소견서", 0.8, None),
    ("H200", "DP", None, None, 0.3),
]


def generate_sample_data(out_dir: Path) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)

    request_path = out_dir / "request.json"
    request_path.write_text(json.dumps(SAMPLE_REQUEST, indent=2, ensure_ascii=False), encoding="utf-8")

    df = pd.DataFrame(
        SAMPLE_ROWS,
        columns=["gpu_id", "workload_class", "document_type", "non_partitioned_rate", "partitioned_rate"],
    )
    df.to_csv(out_dir / "samples.csv", index=False)

    return out_dir
