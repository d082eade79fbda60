from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from pydantic import ValidationError

from .advisor import optimize_cost
from .charts import render_charts
from .engine import default_engine
from .errors import SizingError
from .io import load_request, load_result, load_samples, merge_duplicate_samples, write_result_json
from .report import render_markdown, write_report
from .sample_data import generate_sample_data

app = typer.Typer(add_completion=False)


def _fail(exc: Exception) -> NoReturn:
    typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def size(
    request: Path = typer.Option(..., "--request", help="Path to request JSON"),
    samples: Optional[Path] = typer.Option(None, "--samples", help="Benchmark samples CSV or JSON"),
    gpu: Optional[str] = typer.Option(None, "--gpu", help="Pin a GPU model instead of Auto"),
    out_dir: Path = typer.Option(Path("./outputs"), help="Output directory"),
    html: bool = typer.Option(False, help="Also render HTML report and charts"),
    budget: Optional[float] = typer.Option(None, "--budget", help="GPU budget in USD for cost advice"),
) -> None:
    engine = default_engine()
    try:
        req = load_request(request)
        collected = list(req.samples) + load_samples(samples)
        deployment = req.deployment
        if gpu:
            deployment = deployment.model_copy(update={"preferred_gpu": gpu})
        advice = optimize_cost(req.demand, deployment, merge_duplicate_samples(collected), budget, engine)
    except (SizingError, ValidationError) as exc:
        _fail(exc)

    result = advice.recommended
    result_path = write_result_json(result, out_dir / "result.json")
    write_report(result, out_dir, html=html, advice=advice)
    if html:
        render_charts(result, out_dir / "charts")

    rec = result.recommended_gpu
    typer.echo(f"Recommended {rec.count} x {rec.model}, {result.cpu_cores} cores, {result.ram_gb} GB RAM")
    for gap in result.gaps:
        typer.secho(f"Gap: {gap}", fg=typer.colors.YELLOW)
    typer.echo(f"Wrote {result_path}")


@app.command()
def recalc(
    result: Path = typer.Option(..., "--result", help="Path to result.json"),
    gpu: str = typer.Option(..., "--gpu", help="New base GPU model"),
    out_dir: Path = typer.Option(Path("./outputs"), help="Output directory"),
) -> None:
    try:
        prior = load_result(result)
        updated = default_engine().recalculate_for_base_gpu(prior, gpu)
    except (SizingError, ValidationError) as exc:
        _fail(exc)

    path = write_result_json(updated, out_dir / f"result_{updated.recommended_gpu.model}.json")
    rec = updated.recommended_gpu
    typer.echo(f"Recalculated: {rec.count} x {rec.model}")
    typer.echo(f"Wrote {path}")


@app.command()
def pack(
    gpus: int = typer.Option(..., "--gpus", help="Total GPU count"),
    cpu: int = typer.Option(..., "--cpu", help="Total CPU cores"),
    ram: int = typer.Option(..., "--ram", help="Total RAM in GB"),
    gpu_model: Optional[str] = typer.Option(None, "--gpu-model", help="GPU model label"),
) -> None:
    layout = default_engine().pack_servers(gpus, cpu, ram, gpu_model)
    typer.echo(f"{layout.total_servers} server(s)")
    for server in layout.servers:
        typer.echo(
            f"  #{server.server_number}: {server.gpu_count} GPU, {server.cpu_cores} cores, {server.ram_gb} GB RAM"
        )


@app.command(name="sample-data")
def sample_data(
    out_dir: Path = typer.Option(Path("./sample_data"), help="Output directory"),
) -> None:
    generate_sample_data(out_dir)
    typer.echo(f"Sample data generated at {out_dir}")


@app.command()
def report(
    input: Path = typer.Option(..., "--input", help="Path to result.json"),
    out_dir: Optional[Path] = typer.Option(None, help="Write report files here instead of stdout"),
    html: bool = typer.Option(False, help="Also render HTML"),
) -> None:
    try:
        result = load_result(input)
    except (SizingError, ValidationError) as exc:
        _fail(exc)
    if out_dir is None:
        typer.echo(render_markdown(result))
        return
    write_report(result, out_dir, html=html)
    typer.echo(f"Report written to {out_dir}")


if __name__ == "__main__":
    app()
