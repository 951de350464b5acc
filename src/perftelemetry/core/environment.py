"""Telemetry clock and cooperative scheduler built on SimPy."""

import logging
import time
from typing import Any, Callable, Dict, Generator, List, Optional

import simpy
import simpy.rt

logger = logging.getLogger(__name__)


class TelemetryEnvironment:
    """Wrapper around a SimPy environment that owns the telemetry clock.

    All timestamps in the telemetry core are milliseconds on a single
    monotonic clock. Periodic work (report sends, alert checks, dashboard
    refreshes) runs as SimPy processes on the same single logical thread.

    Two clock modes are supported:

    - realtime: ``now()`` follows ``time.perf_counter`` and a
      ``simpy.rt.RealtimeEnvironment`` with one unit per millisecond runs
      scheduled processes whenever the host calls ``pump()``.
    - virtual: ``now()`` is ``env.now``; time only moves when ``advance()``
      is called. Used by tests and offline replays.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        """Initialize the telemetry environment.

        Args:
            config: Clock configuration containing:
                - realtime (optional): Follow the wall clock (default True)
                - epoch_ms (optional): Wall-clock time of ``now() == 0``
        """
        self.config: Dict[str, Any] = config or {}
        self.realtime: bool = self.config.get("realtime", True)
        self.active_processes: List[simpy.Process] = []
        self.stopped = False

        if self.realtime:
            self.env: simpy.Environment = simpy.rt.RealtimeEnvironment(
                initial_time=0, factor=0.001, strict=False
            )
            self._origin = time.perf_counter()
        else:
            self.env = simpy.Environment()
            self._origin = 0.0

        self.epoch_ms: float = self.config.get("epoch_ms", time.time() * 1000.0)

        logger.info(f"TelemetryEnvironment initialized (realtime={self.realtime})")

    def now(self) -> float:
        """Get the current monotonic time in milliseconds."""
        if self.realtime:
            return (time.perf_counter() - self._origin) * 1000.0
        return float(self.env.now)

    def wall_time(self) -> float:
        """Get the current wall-clock time in epoch milliseconds.

        Derived from the monotonic clock so that error timestamps and
        recency windows share one clock domain.
        """
        return self.epoch_ms + self.now()

    def schedule_process(self, process_generator_func: Callable, *args, **kwargs) -> simpy.Process:
        """Schedule a SimPy process (a generator function).

        Args:
            process_generator_func: A generator function that yields SimPy events
            *args: Positional arguments for the generator function
            **kwargs: Keyword arguments for the generator function

        Returns:
            The SimPy Process object
        """
        process = self.env.process(process_generator_func(*args, **kwargs))
        self.active_processes.append(process)
        logger.debug(f"Scheduled process: {process_generator_func.__name__}")
        return process

    def call_later(self, delay_ms: float, callback: Callable[[], Any]) -> simpy.Process:
        """Run ``callback`` once after ``delay_ms`` milliseconds."""

        def _delayed() -> Generator[simpy.events.Event, None, None]:
            yield self.env.timeout(delay_ms)
            if self.stopped:
                return
            try:
                callback()
            except Exception as e:
                logger.warning(f"Delayed callback failed: {e}")

        return self.schedule_process(_delayed)

    def every(self, interval_ms: float, callback: Callable[[], Any], name: str = "periodic") -> simpy.Process:
        """Run ``callback`` every ``interval_ms`` milliseconds until stopped.

        Exceptions raised by the callback are logged and the loop continues,
        so a faulty monitor never stops the scheduler.
        """

        def _periodic() -> Generator[simpy.events.Event, None, None]:
            while not self.stopped:
                yield self.env.timeout(interval_ms)
                if self.stopped:
                    break
                try:
                    callback()
                except Exception as e:
                    logger.warning(f"Periodic task '{name}' failed: {e}")

        _periodic.__name__ = name
        return self.schedule_process(_periodic)

    def advance(self, delta_ms: float) -> None:
        """Move virtual time forward, running every process due on the way.

        Events scheduled exactly at the target time are run as well.
        """
        if self.realtime:
            raise RuntimeError("advance() is only available with a virtual clock")
        if delta_ms > 0:
            self.env.run(until=self.env.now + delta_ms)
        self._drain_due()

    def pump(self) -> None:
        """Run every scheduled process due at the current time.

        In realtime mode the host application calls this from its own loop;
        in virtual mode it is a no-op because time is driven by ``advance``.
        """
        if not self.realtime:
            return
        target = self.now()
        if target > self.env.now:
            self.env.run(until=target)
        self._drain_due()

    def _drain_due(self) -> None:
        while self.env.peek() <= self.env.now:
            self.env.step()

    def stop(self) -> None:
        """Stop all periodic and delayed processes.

        Processes exit the next time they wake up; nothing in flight is
        cancelled.
        """
        self.stopped = True
        self.active_processes = []
        logger.debug("TelemetryEnvironment stopped")

    def get_simpy_env(self) -> simpy.Environment:
        """Provide access to the raw SimPy environment."""
        return self.env
