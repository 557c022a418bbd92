"""
Tests for parallel job sizing.
"""

from pathlib import Path

from gearbox.core.services.install.parallelism import (
    FALLBACK_AVAILABLE_MB,
    MAX_JOBS,
    available_memory_mb,
    calculate_parallel_jobs,
    memory_limited_jobs,
)


class TestAvailableMemory:
    def test_reads_mem_available(self, tmp_path: Path):
        meminfo = tmp_path / "meminfo"
        meminfo.write_text(
            "MemTotal:       16384000 kB\n"
            "MemFree:         1000000 kB\n"
            "MemAvailable:    8192000 kB\n"
        )
        assert available_memory_mb(meminfo) == 8000

    def test_missing_file(self, tmp_path: Path):
        assert available_memory_mb(tmp_path / "nope") is None

    def test_missing_field(self, tmp_path: Path):
        meminfo = tmp_path / "meminfo"
        meminfo.write_text("MemTotal: 100 kB\n")
        assert available_memory_mb(meminfo) is None


class TestMemoryLimitedJobs:
    def test_per_profile_cost(self):
        # 5120 MB available, 1024 reserved → 4096 usable
        assert memory_limited_jobs("minimal", 5120) == 20
        assert memory_limited_jobs("standard", 5120) == 8
        assert memory_limited_jobs("maximum", 5120) == 4

    def test_low_memory_still_one(self):
        assert memory_limited_jobs("maximum", 1500) == 1

    def test_unknown_memory_uses_fallback(self):
        assert memory_limited_jobs("standard", None) == (FALLBACK_AVAILABLE_MB - 1024) // 500


class TestCalculateParallelJobs:
    def test_explicit_request_wins(self):
        assert calculate_parallel_jobs("maximum", 12, cpu_count=2, available_mb=100) == 12

    def test_cpu_limited(self):
        assert calculate_parallel_jobs("minimal", cpu_count=2, available_mb=64000) == 2

    def test_memory_limited(self):
        assert calculate_parallel_jobs("maximum", cpu_count=16, available_mb=4096) == 3

    def test_clamped_to_max(self):
        assert calculate_parallel_jobs("minimal", cpu_count=64, available_mb=64000) == MAX_JOBS

    def test_never_below_one(self):
        assert calculate_parallel_jobs("maximum", cpu_count=1, available_mb=512) == 1

    def test_unreadable_meminfo_falls_back(self, tmp_path: Path):
        jobs = calculate_parallel_jobs("standard", cpu_count=16, meminfo=tmp_path / "nope")
        assert jobs == min(16, (FALLBACK_AVAILABLE_MB - 1024) // 500, MAX_JOBS)
