"""
Concurrency controller.

Derives how many businesses to crawl in parallel from the task's memory and
CPU allocation. Browser rendering is far heavier than plain HTTP, so the two
modes use different per-slot costs.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

RESERVED_MEMORY_MIB = 500

# Fast mode (HTTP only)
FAST_MEMORY_PER_SLOT_MIB = 50
FAST_SLOTS_PER_VCPU = 30
FAST_MAX_CONCURRENCY = 50

# Render mode (shared headless browser)
RENDER_MEMORY_PER_SLOT_MIB = 300
RENDER_SLOTS_PER_VCPU = 4
RENDER_MIN_CONCURRENCY = 3


def calculate_optimal_concurrency(memory_mib: int, cpu_units: int, fast_mode: bool) -> int:
    """
    Compute the concurrency budget for a run.

    Args:
        memory_mib: Task memory in MiB
        cpu_units: Task CPU in units where 1024 == one vCPU
        fast_mode: True when the browser tiers are disabled

    Returns:
        Number of businesses to process per wave
    """
    usable = memory_mib - RESERVED_MEMORY_MIB
    vcpus = cpu_units / 1024

    if fast_mode:
        by_memory = usable // FAST_MEMORY_PER_SLOT_MIB
        by_cpu = int(vcpus * FAST_SLOTS_PER_VCPU)
        return int(min(by_memory, by_cpu, FAST_MAX_CONCURRENCY))

    by_memory = usable // RENDER_MEMORY_PER_SLOT_MIB
    by_cpu = int(vcpus * RENDER_SLOTS_PER_VCPU)
    return int(max(min(by_memory, by_cpu), RENDER_MIN_CONCURRENCY))


def resolve_concurrency(
    explicit: Optional[int],
    memory_mib: int,
    cpu_units: int,
    fast_mode: bool,
) -> int:
    """Explicit job concurrency wins over the computed budget."""
    if explicit:
        concurrency = explicit
        logger.info(f"Concurrency: {concurrency} (explicit)")
    else:
        concurrency = calculate_optimal_concurrency(memory_mib, cpu_units, fast_mode)
        mode = "fast" if fast_mode else "render"
        logger.info(
            f"Concurrency: {concurrency} (auto, {mode} mode, {memory_mib} MiB, {cpu_units} CPU units)"
        )
    return max(int(concurrency), 1)
