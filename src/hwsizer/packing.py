from __future__ import annotations

import math
from typing import Optional

from .config import SizingPolicy
from .models import ServerLayout, ServerSpec
from .utils import ceil_div, round_up_to_ladder


CPU_LADDER = (8, 16, 24, 32, 48, 64, 96, 128, 192, 256, 384, 512)
RAM_LADDER = (64, 128, 256, 512, 1024, 2048, 4096, 8192)


def standard_cpu_cores(cores: float) -> int:
    step = round_up_to_ladder(cores, CPU_LADDER)
    if step is not None:
        return step
    return int(math.ceil(cores / 8) * 8)


def standard_ram_gb(ram_gb: float) -> int:
    step = round_up_to_ladder(ram_gb, RAM_LADDER)
    if step is not None:
        return step
    return int(2 ** math.ceil(math.log2(ram_gb)))


def pack_servers(
    gpu_count: int,
    cpu_cores: int,
    ram_gb: int,
    gpu_model: Optional[str] = None,
    policy: Optional[SizingPolicy] = None,
) -> ServerLayout:
    """Split a GPU/CPU/RAM total into identical servers.

    GPUs are spread evenly with the remainder on the last server. CPU and RAM
    are divided evenly and rounded up to purchasable sizes; RAM is doubled
    first for headroom.
    """
    policy = policy or SizingPolicy()
    gpu_count = max(0, int(gpu_count))
    servers = max(1, ceil_div(gpu_count, policy.gpus_per_server))
    gpus_per_server = ceil_div(gpu_count, servers)
    cpu_per_server = standard_cpu_cores(ceil_div(cpu_cores, servers))
    ram_per_server = standard_ram_gb(ram_gb * policy.ram_headroom / servers)

    specs = []
    for index in range(servers):
        last = index == servers - 1
        specs.append(
            ServerSpec(
                server_number=index + 1,
                gpu_model=gpu_model,
                gpu_count=gpu_count - gpus_per_server * (servers - 1) if last else gpus_per_server,
                cpu_cores=cpu_per_server,
                ram_gb=ram_per_server,
            )
        )
    return ServerLayout(total_servers=servers, servers=tuple(specs))
