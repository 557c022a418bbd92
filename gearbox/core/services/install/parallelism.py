"""
Parallel job sizing for source builds.

Auto-detection takes the smaller of the CPU count and how many builds
fit in available memory (after a 1 GB reserve), then clamps to [1, 8].
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# Rough peak memory per build, by profile
MEMORY_PER_JOB_MB = {
    "minimal": 200,
    "standard": 500,
    "maximum": 1000,
}
DEFAULT_JOB_MB = 500
RESERVED_MB = 1024
FALLBACK_AVAILABLE_MB = 4096
MIN_JOBS = 1
MAX_JOBS = 8

MEMINFO = Path("/proc/meminfo")


def available_memory_mb(meminfo: Path = MEMINFO) -> int | None:
    """``MemAvailable`` in MB, or None if it cannot be read."""
    try:
        text = meminfo.read_text(encoding="utf-8")
    except OSError:
        return None

    for line in text.splitlines():
        if line.startswith("MemAvailable:"):
            fields = line.split()
            if len(fields) >= 2 and fields[1].isdigit():
                kb = int(fields[1])
                return kb // 1024 if kb else None
    return None


def memory_limited_jobs(profile: str, available_mb: int | None) -> int:
    """How many builds of ``profile`` fit in memory."""
    per_job = MEMORY_PER_JOB_MB.get(profile or "standard", DEFAULT_JOB_MB)
    if not available_mb or available_mb <= 0:
        available_mb = FALLBACK_AVAILABLE_MB

    usable = available_mb - RESERVED_MB
    if usable < per_job:
        return 1
    return usable // per_job


def calculate_parallel_jobs(
    profile: str,
    requested: int = 0,
    *,
    cpu_count: int | None = None,
    available_mb: int | None = None,
    meminfo: Path = MEMINFO,
) -> int:
    """Resolve the worker pool size.

    Args:
        profile: Build profile (drives the per-job memory estimate).
        requested: Explicit job count; 0 means auto-detect.
        cpu_count: Override for ``os.cpu_count()``.
        available_mb: Override for the ``/proc/meminfo`` reading.
        meminfo: Path read when ``available_mb`` is not given.

    Returns:
        Number of parallel jobs, at least 1.
    """
    if requested > 0:
        return requested

    cpus = cpu_count or os.cpu_count() or 1
    if available_mb is None:
        available_mb = available_memory_mb(meminfo)
    by_memory = memory_limited_jobs(profile, available_mb)

    jobs = max(MIN_JOBS, min(cpus, by_memory, MAX_JOBS))
    logger.info(
        "Auto-detected parallel jobs: %d (CPU cores: %d, memory-limited: %d)",
        jobs, cpus, by_memory,
    )
    return jobs
