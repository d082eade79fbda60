from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from .models import CostAdvice, SizingResult


def _format_workloads(result: SizingResult) -> List[str]:
    lines = [
        "| Workload | Containers | GPUs | VRAM (GB) | Cost (USD) |",
        "|---|---:|---:|---:|---:|",
    ]
    for workload, estimate in result.per_workload.items():
        lines.append(
            f"| {workload.value} | {estimate.container_count} | {estimate.gpu_count} "
            f"| {estimate.vram_gb:.1f} | {estimate.cost_usd:,.0f} |"
        )
    return lines


def _format_line_items(result: SizingResult) -> List[str]:
    lines = []
    for workload, estimate in result.per_workload.items():
        for item in estimate.line_items:
            label = item.document_type or "all documents"
            lines.append(
                f"- {workload.value} / {label}: {item.required_throughput:g} docs/min at "
                f"{item.throughput_per_container:g} per container -> {item.container_count} "
                f"x {item.vram_per_container:g} GB (`{item.source}`)"
            )
    return lines or ["- None"]


def render_markdown(result: SizingResult, advice: CostAdvice | None = None) -> str:
    rec = result.recommended_gpu
    lines = [
        "# Hardware Sizing Report",
        "",
        f"Deployment: `{result.deployment.mode.value}`"
        + (f" (profile `{result.deployment.partition_profile}`)" if result.deployment.partition_profile else ""),
        f"Recommended GPU: **{rec.count} x {rec.model}** ({rec.vram_needed:.1f} GB VRAM needed)",
        f"CPU: {result.cpu_cores} cores",
        f"RAM: {result.ram_gb} GB",
        "",
        "## Per-workload breakdown",
    ]
    lines.extend(_format_workloads(result))

    lines.extend(["", "## Line items"])
    lines.extend(_format_line_items(result))

    lines.extend(["", "## GPU comparison", "| Model | Count | Total VRAM (GB) | Total cost (USD) |", "|---|---:|---:|---:|"])
    for entry in result.comparison_table.values():
        marker = " *" if entry.model == rec.model else ""
        lines.append(f"| {entry.model}{marker} | {entry.count} | {entry.total_vram:g} | {entry.total_cost:,.0f} |")

    lines.extend(["", "## Servers"])
    for server in result.server_layout.servers:
        lines.append(
            f"- Server {server.server_number}: {server.gpu_count} x {server.gpu_model or 'GPU'}, "
            f"{server.cpu_cores} cores, {server.ram_gb} GB RAM"
        )

    lines.extend(["", "## Gaps"])
    lines.extend([f"- {gap}" for gap in result.gaps] or ["- None"])

    lines.extend(["", "## Notes"])
    lines.extend([f"- {note}" for note in result.notes] or ["- None"])

    if advice is not None:
        lines.extend(["", "## Cost alternatives"])
        for alt in advice.alternatives:
            lines.append(f"{alt.rank}. **{alt.label}**: saves ${alt.savings_usd:,.0f}")
            for tradeoff in alt.tradeoffs:
                lines.append(f"   - {tradeoff}")
        if not advice.alternatives:
            lines.append("- None cheaper than the recommendation")
        lines.extend([f"- {strategy}" for strategy in advice.strategies])

    return "\n".join(lines)


def render_html(result: SizingResult, advice: CostAdvice | None = None) -> str:
    md = render_markdown(result, advice)
    return f"""<html><body><pre>{md}</pre></body></html>"""


def write_report(
    result: SizingResult,
    out_dir: Path,
    html: bool = False,
    advice: CostAdvice | None = None,
) -> Dict[str, str]:
    out_dir.mkdir(parents=True, exist_ok=True)
    md_path = out_dir / "report.md"
    md_path.write_text(render_markdown(result, advice), encoding="utf-8")
    outputs = {"markdown": str(md_path)}
    if html:
        html_path = out_dir / "report.html"
        html_path.write_text(render_html(result, advice), encoding="utf-8")
        outputs["html"] = str(html_path)
    return outputs
