"""Stage timing for the prefixing pipeline."""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Generator, List, Optional


@dataclass
class PerformanceMetrics:
    """Timing of one pipeline stage."""
    operation: str
    duration: float
    started_at: float
    success: bool = True


class PerformanceLogger:
    """
    Times each pipeline stage (synchronization, dependency install,
    transformation, publication) so slow external commands show up in the
    build log. A stage timed twice keeps its latest measurement.
    """

    SLOW_OPERATION_SECONDS = 120.0

    def __init__(self, logger_name: str = 'php_prefixer_build.performance'):
        self.logger = logging.getLogger(logger_name)
        self._metrics: Dict[str, PerformanceMetrics] = {}

    @contextmanager
    def time_operation(self, operation: str) -> Generator[None, None, None]:
        """
        Time the enclosed block and record it under `operation`.

        Exceptions are logged with the elapsed time and re-raised.
        """
        started_at = time.monotonic()
        self.logger.debug(f"Starting {operation}")

        success = True
        try:
            yield
        except Exception as e:
            success = False
            self.logger.error(f"{operation} failed after {time.monotonic() - started_at:.3f}s: {e}")
            raise
        finally:
            duration = time.monotonic() - started_at
            self._metrics[operation] = PerformanceMetrics(operation, duration, started_at, success)

            if success:
                self.logger.info(f"{operation} completed in {duration:.3f}s")
                if duration > self.SLOW_OPERATION_SECONDS:
                    self.logger.warning(f"Slow stage: '{operation}' took {duration:.3f}s")

    def get_metrics(self, operation: str) -> Optional[PerformanceMetrics]:
        return self._metrics.get(operation)

    def get_all_metrics(self) -> List[PerformanceMetrics]:
        return list(self._metrics.values())

    def log_summary(self) -> None:
        if not self._metrics:
            return

        total = sum(m.duration for m in self._metrics.values())
        self.logger.info(f"Timed {len(self._metrics)} stage(s) in {total:.3f}s")
        for metrics in self._metrics.values():
            status = "ok" if metrics.success else "failed"
            self.logger.info(f"  {metrics.operation}: {metrics.duration:.3f}s ({status})")
