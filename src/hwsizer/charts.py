from __future__ import annotations

from pathlib import Path
from typing import Dict

import pandas as pd
import plotly.express as px

from .models import SizingResult


def comparison_frame(result: SizingResult) -> pd.DataFrame:
    return pd.DataFrame([entry.model_dump() for entry in result.comparison_table.values()])


def workload_frame(result: SizingResult) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "workload": workload.value,
                "containers": estimate.container_count,
                "gpus": estimate.gpu_count,
                "vram_gb": estimate.vram_gb,
            }
            for workload, estimate in result.per_workload.items()
        ]
    )


def render_charts(result: SizingResult, out_dir: Path) -> Dict[str, str]:
    out_dir.mkdir(parents=True, exist_ok=True)
    outputs = {}

    df = comparison_frame(result)
    if not df.empty:
        fig = px.bar(df, x="model", y="total_cost", text="count", title="Total GPU cost by model (USD)")
        path = out_dir / "gpu_cost.html"
        fig.write_html(path)
        outputs["gpu_cost"] = str(path)

        fig = px.bar(df, x="model", y="count", title="GPUs needed by model")
        path = out_dir / "gpu_count.html"
        fig.write_html(path)
        outputs["gpu_count"] = str(path)

    workloads = workload_frame(result)
    if not workloads.empty and workloads["vram_gb"].sum() > 0:
        fig = px.bar(workloads, x="workload", y="vram_gb", text="containers", title="VRAM by workload (GB)")
        path = out_dir / "workload_vram.html"
        fig.write_html(path)
        outputs["workload_vram"] = str(path)

    return outputs
