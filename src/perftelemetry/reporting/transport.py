"""Best-effort delivery of performance reports."""

import asyncio
import logging
import threading
from typing import Any, Dict, Optional, Set

import httpx
import simpy

from ..core.environment import TelemetryEnvironment
from .generator import ReportGenerator

logger = logging.getLogger(__name__)

DEFAULT_REPORT_INTERVAL_MS = 5 * 60 * 1000
HEADERS = {"Content-Type": "application/json"}


class ReportTransport:
    """Posts reports to the configured endpoint.

    Every send is best-effort: failures are logged and dropped, nothing is
    retried and nothing propagates to the caller. Fire-and-forget sends
    (``dispatch``, ``send_beacon``) never block: they run as a task on the
    caller's asyncio loop or on a background daemon thread.
    """

    def __init__(
        self,
        generator: ReportGenerator,
        config: Optional[Dict[str, Any]] = None,
        production: bool = False,
        http_transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the report transport.

        Args:
            generator: Source of reports
            config: Reporting configuration containing:
                - endpoint (optional): Default destination URL
                - interval_ms (optional): Periodic send interval (default 300000)
                - timeout_s (optional): Request timeout (default 10.0)
                - beacon_timeout_s (optional): Teardown send timeout (default 2.0)
            production: Periodic sends only run in production
            http_transport: Optional httpx transport (used to stub the network)
        """
        self.generator = generator
        self.config = config or {}
        self.production = production
        self.http_transport = http_transport

        self.endpoint: Optional[str] = self.config.get("endpoint")
        self.interval_ms: float = self.config.get("interval_ms", DEFAULT_REPORT_INTERVAL_MS)
        self.timeout_s: float = self.config.get("timeout_s", 10.0)
        self.beacon_timeout_s: float = self.config.get("beacon_timeout_s", 2.0)

        self.sent_count = 0
        self.failed_count = 0
        self._lock = threading.Lock()
        self._pending: Set[asyncio.Task] = set()
        self._workers: Set[threading.Thread] = set()

    def set_reporting_endpoint(self, endpoint: Optional[str]) -> None:
        self.endpoint = endpoint

    def _resolve_endpoint(self, endpoint: Optional[str]) -> Optional[str]:
        target = endpoint or self.endpoint
        if not target:
            logger.warning("No reporting endpoint configured for performance metrics")
        return target

    def _record_outcome(self, target: str, error: Optional[BaseException]) -> bool:
        with self._lock:
            if error is None:
                self.sent_count += 1
            else:
                self.failed_count += 1

        if error is None:
            logger.info(f"Performance report sent to {target}")
            return True
        logger.error(f"Failed to send performance report to {target}: {error}")
        return False

    def _build_payload(self, target: str) -> Optional[str]:
        try:
            return self.generator.generate_report().to_json()
        except Exception as e:
            self._record_outcome(target, e)
            return None

    def _post(self, target: str, payload: str, timeout_s: float) -> bool:
        try:
            with httpx.Client(transport=self.http_transport, timeout=timeout_s) as client:
                resp = client.post(target, content=payload, headers=HEADERS)
            resp.raise_for_status()
        except Exception as e:
            return self._record_outcome(target, e)
        return self._record_outcome(target, None)

    async def send_report(self, endpoint: Optional[str] = None) -> bool:
        """Generate and POST a report; returns whether delivery succeeded."""
        target = self._resolve_endpoint(endpoint)
        if not target:
            return False

        payload = self._build_payload(target)
        if payload is None:
            return False

        try:
            async with httpx.AsyncClient(transport=self.http_transport, timeout=self.timeout_s) as client:
                resp = await client.post(target, content=payload, headers=HEADERS)
            resp.raise_for_status()
        except Exception as e:
            return self._record_outcome(target, e)
        return self._record_outcome(target, None)

    def send_report_sync(self, endpoint: Optional[str] = None, timeout_s: Optional[float] = None) -> bool:
        """Blocking variant of ``send_report`` for callers that want the outcome."""
        target = self._resolve_endpoint(endpoint)
        if not target:
            return False

        payload = self._build_payload(target)
        if payload is None:
            return False
        return self._post(target, payload, timeout_s or self.timeout_s)

    def _send_in_background(self, target: str, payload: str, timeout_s: float) -> bool:
        """POST ``payload`` on a daemon thread; returns whether the thread started."""

        def _worker() -> None:
            try:
                self._post(target, payload, timeout_s)
            finally:
                with self._lock:
                    self._workers.discard(threading.current_thread())

        thread = threading.Thread(target=_worker, name="report-sender", daemon=True)
        with self._lock:
            self._workers.add(thread)
        try:
            thread.start()
        except RuntimeError as e:
            # Threads can no longer be started once the interpreter is finalizing
            with self._lock:
                self._workers.discard(thread)
            self._record_outcome(target, e)
            return False
        return True

    def dispatch(self, endpoint: Optional[str] = None) -> None:
        """Fire-and-forget send; returns at once.

        On a running asyncio loop the send becomes a background task;
        otherwise the report is snapshotted here and posted from a daemon
        thread.
        """
        target = self._resolve_endpoint(endpoint)
        if not target:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(self.send_report(target))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return

        payload = self._build_payload(target)
        if payload is not None:
            self._send_in_background(target, payload, self.timeout_s)

    def send_beacon(self) -> bool:
        """Teardown send: short timeout, non-blocking, never raises.

        Returns whether a send was started. Callers must not assume the
        report arrived.
        """
        if not self.endpoint:
            return False
        payload = self._build_payload(self.endpoint)
        if payload is None:
            return False
        return self._send_in_background(self.endpoint, payload, self.beacon_timeout_s)

    def wait_for_pending(self, timeout_s: Optional[float] = None) -> bool:
        """Join background sends; returns whether all of them finished."""
        with self._lock:
            workers = list(self._workers)
        for worker in workers:
            worker.join(timeout_s)
        with self._lock:
            return not self._workers

    def schedule(self, environment: TelemetryEnvironment) -> Optional[simpy.Process]:
        """Start the periodic send process (production only, endpoint required)."""
        if not self.production:
            logger.debug("Periodic reporting disabled outside production")
            return None
        if not self.endpoint:
            logger.debug("Periodic reporting disabled: no endpoint configured")
            return None

        logger.info(f"Periodic reporting every {self.interval_ms / 1000:.0f}s to {self.endpoint}")
        return environment.every(self.interval_ms, self.dispatch, name="report_sender")

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending) + len(self._workers)
