"""Operation timing for tool calls and adb invocations."""

import atexit
import functools
import json
import sys
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional

from .config import get_settings

SLOW_OPERATION_MS = 1000


@dataclass
class PerformanceMetric:
    operation: str
    duration_ms: float
    timestamp: float
    success: bool
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PerformanceSummary:
    operation: str
    count: int
    total_duration_ms: float
    average_duration_ms: float
    min_duration_ms: float
    max_duration_ms: float
    success_rate: float
    last_executed: float


class PerformanceMonitor:
    """Keeps the most recent metrics in a bounded buffer."""

    def __init__(self, max_metrics: int = 1000, enabled: bool = True):
        self.max_metrics = max_metrics
        self.enabled = enabled
        self._metrics: Deque[PerformanceMetric] = deque(maxlen=max_metrics)

    def record(self, metric: PerformanceMetric) -> None:
        if self.enabled:
            self._metrics.append(metric)

    def get_metrics(self) -> List[PerformanceMetric]:
        return list(self._metrics)

    def get_operation_metrics(self, operation: str) -> List[PerformanceMetric]:
        return [m for m in self._metrics if m.operation == operation]

    def get_summary(self, operation: str) -> Optional[PerformanceSummary]:
        metrics = self.get_operation_metrics(operation)
        if not metrics:
            return None
        durations = [m.duration_ms for m in metrics]
        successful = sum(1 for m in metrics if m.success)
        total = sum(durations)
        return PerformanceSummary(
            operation=operation,
            count=len(metrics),
            total_duration_ms=total,
            average_duration_ms=total / len(durations),
            min_duration_ms=min(durations),
            max_duration_ms=max(durations),
            success_rate=successful / len(metrics),
            last_executed=metrics[-1].timestamp,
        )

    def get_all_summaries(self) -> List[PerformanceSummary]:
        operations = dict.fromkeys(m.operation for m in self._metrics)
        return [s for s in (self.get_summary(op) for op in operations) if s is not None]

    def get_slow_operations(self, threshold_ms: float) -> List[PerformanceMetric]:
        return [m for m in self._metrics if m.duration_ms > threshold_ms]

    def get_failed_operations(self) -> List[PerformanceMetric]:
        return [m for m in self._metrics if not m.success]

    def clear(self) -> None:
        self._metrics.clear()

    def export(self) -> str:
        return json.dumps(
            {
                "metrics": [asdict(m) for m in self._metrics],
                "summaries": [asdict(s) for s in self.get_all_summaries()],
                "exported_at": time.time(),
            },
            indent=2,
            default=str,
        )


class PerformanceTimer:
    def __init__(self, operation: str, monitor: PerformanceMonitor, metadata: Optional[Dict[str, Any]] = None):
        self.operation = operation
        self.monitor = monitor
        self.metadata = metadata or {}
        self._start = time.perf_counter()

    def end(self, success: bool = True, error: Optional[str] = None) -> float:
        duration_ms = (time.perf_counter() - self._start) * 1000
        self.monitor.record(PerformanceMetric(
            operation=self.operation,
            duration_ms=duration_ms,
            timestamp=time.time(),
            success=success,
            error=error,
            metadata=self.metadata,
        ))
        return duration_ms


performance_monitor = PerformanceMonitor(max_metrics=get_settings().perf_max_metrics)


@contextmanager
def track(operation: str, monitor: Optional[PerformanceMonitor] = None,
          metadata: Optional[Dict[str, Any]] = None) -> Iterator[PerformanceTimer]:
    """Time the enclosed block and record whether it raised."""
    timer = PerformanceTimer(operation, monitor or performance_monitor, metadata)
    try:
        yield timer
    except Exception as exc:
        timer.end(False, str(exc))
        raise
    timer.end(True)


def measure_performance(operation: str, monitor: Optional[PerformanceMonitor] = None) -> Callable:
    """Decorator recording the duration of a coroutine function."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            with track(f"{operation}.{func.__name__}", monitor, {"args": len(args)}):
                return await func(*args, **kwargs)

        return wrapper

    return decorator


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def generate_performance_report(monitor: Optional[PerformanceMonitor] = None) -> str:
    monitor = monitor or performance_monitor
    summaries = monitor.get_all_summaries()
    if not summaries:
        return "No performance data available"

    summaries.sort(key=lambda s: s.total_duration_ms, reverse=True)

    lines = [
        "# Performance Report",
        "",
        f"Generated: {datetime.now(timezone.utc).isoformat()}",
        "",
        "## Summary",
        "",
        f"Total Operations: {sum(s.count for s in summaries)}",
        f"Unique Operations: {len(summaries)}",
        "",
        "## Top Operations by Total Time",
        "",
        "| Operation | Count | Avg (ms) | Min (ms) | Max (ms) | Success Rate |",
        "|-----------|-------|----------|----------|----------|-------------|",
    ]
    for s in summaries[:10]:
        lines.append(
            f"| {s.operation} | {s.count} | {s.average_duration_ms:.2f} | {s.min_duration_ms:.2f} "
            f"| {s.max_duration_ms:.2f} | {s.success_rate * 100:.1f}% |"
        )

    slow = monitor.get_slow_operations(SLOW_OPERATION_MS)
    if slow:
        lines += [
            "",
            f"## Slow Operations (>{SLOW_OPERATION_MS}ms)",
            "",
            "| Operation | Duration (ms) | Timestamp |",
            "|-----------|---------------|----------|",
        ]
        for m in slow[:10]:
            lines.append(f"| {m.operation} | {m.duration_ms:.2f} | {_iso(m.timestamp)} |")

    failed = monitor.get_failed_operations()
    if failed:
        lines += [
            "",
            "## Failed Operations",
            "",
            "| Operation | Duration (ms) | Error | Timestamp |",
            "|-----------|---------------|-------|----------|",
        ]
        for m in failed[:10]:
            error = (m.error or "Unknown")[:50]
            lines.append(f"| {m.operation} | {m.duration_ms:.2f} | {error} | {_iso(m.timestamp)} |")

    return "\n".join(lines) + "\n"


def _report_on_exit() -> None:
    if get_settings().perf_report:
        print("\n" + generate_performance_report(), file=sys.stderr)


atexit.register(_report_on_exit)
