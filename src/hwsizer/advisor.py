"""
Cost advisor: re-runs the public sizing call with perturbed inputs and
reports the cheaper configurations it finds.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .engine import SizingEngine, default_engine
from .models import (
    Alternative,
    BenchmarkSample,
    CostAdvice,
    Demand,
    DeploymentConfig,
    DeploymentMode,
    SizingResult,
)


logger = logging.getLogger(__name__)

MAX_ALTERNATIVES = 3
PARTITION_PROFILE = "1g"


def result_cost(result: SizingResult, engine: SizingEngine) -> float:
    rec = result.recommended_gpu
    return float(rec.count * engine.catalog.get(rec.model).unit_price_usd)


def optimize_cost(
    demand: Demand,
    deployment: DeploymentConfig,
    samples: Optional[Sequence[BenchmarkSample]] = None,
    max_budget: Optional[float] = None,
    engine: Optional[SizingEngine] = None,
) -> CostAdvice:
    engine = engine or default_engine()
    base = engine.size_hardware(demand, deployment, samples)
    base_cost = result_cost(base, engine)
    candidates: List[dict] = []
    strategies: List[str] = []

    for spec in engine.catalog.comparison_models():
        if spec.id == base.recommended_gpu.model:
            continue
        pinned = deployment.model_copy(update={"preferred_gpu": spec.id})
        result = engine.size_hardware(demand, pinned, samples)
        cost = result_cost(result, engine)
        if cost < base_cost:
            candidates.append(
                {
                    "label": f"Switch to {spec.id}",
                    "deployment": pinned,
                    "result": result,
                    "cost_usd": cost,
                    "savings_usd": base_cost - cost,
                    "tradeoffs": (
                        f"{result.recommended_gpu.count} x {spec.id} instead of "
                        f"{base.recommended_gpu.count} x {base.recommended_gpu.model}",
                        f"{result.total_vram_gb:g} GB VRAM needed",
                    ),
                }
            )

    if not deployment.is_partitioned:
        partitioned = deployment.model_copy(
            update={"mode": DeploymentMode.partitioned, "partition_profile": PARTITION_PROFILE}
        )
        result = engine.size_hardware(demand, partitioned, samples)
        cost = result_cost(result, engine)
        if cost < base_cost:
            candidates.append(
                {
                    "label": f"Kubernetes partitioning ({PARTITION_PROFILE})",
                    "deployment": partitioned,
                    "result": result,
                    "cost_usd": cost,
                    "savings_usd": base_cost - cost,
                    "tradeoffs": (
                        "Higher GPU utilization through partitioning",
                        "More cluster management overhead",
                    ),
                }
            )
            strategies.append("Partitioned GPUs would pack containers more densely.")

    if not deployment.auto_select:
        strategies.append("Auto GPU selection may find a cheaper model than the pinned one.")

    if max_budget is not None and base_cost > max_budget:
        strategies.append(
            f"Estimated GPU cost ${base_cost:,.0f} exceeds the ${max_budget:,.0f} budget; "
            "consider a cheaper model or lower throughput targets."
        )

    candidates.sort(key=lambda item: item["savings_usd"], reverse=True)
    alternatives = tuple(
        Alternative(rank=rank, **item) for rank, item in enumerate(candidates[:MAX_ALTERNATIVES], start=1)
    )
    logger.debug("Cost advisor found %d cheaper configurations", len(candidates))
    return CostAdvice(
        recommended=base,
        cost_usd=base_cost,
        alternatives=alternatives,
        strategies=tuple(strategies),
    )
