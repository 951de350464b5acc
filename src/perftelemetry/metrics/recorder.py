"""Start/end timing API over the metric store."""

import functools
import inspect
import logging
import re
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..core.environment import TelemetryEnvironment
from .models import Metric, build_metadata, merge_metadata
from .store import MetricStore

logger = logging.getLogger(__name__)

ROUTE_CHANGE_SETTLE_MS = 100
INTERACTION_SETTLE_MS = 50

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")
_OVERLAP_KEY = re.compile(r"^.+#\d+$")


def sanitize(value: str) -> str:
    """Make ``value`` safe for use inside a metric key."""
    return _UNSAFE_CHARS.sub("_", value)


class TimingRecorder:
    """Records timed operations into a ``MetricStore``.

    Overlapping operations that share a logical name are kept apart: the
    first one is stored under the name itself, later ones under
    ``"<name>#<n>"``. Ending a logical name closes its oldest in-flight
    operation; ending a ``"<name>#<n>"`` key closes exactly that one.

    In-flight state is read from the store on every call, so clearing the
    store directly leaves nothing stale behind.

    Nothing here raises into the caller for instrumentation misuse.
    """

    def __init__(self, store: MetricStore, environment: TelemetryEnvironment):
        self.store = store
        self.environment = environment

    def start_timing(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> str:
        """Start timing ``name`` and return the key it is stored under."""
        key = self._next_key(name) if self._in_flight(name) else name

        self.store.put(
            Metric(name=key, start_time=self.environment.now(), metadata=build_metadata(metadata))
        )

        if key != name:
            logger.debug(f"Timing '{name}' already in flight; tracking overlap as '{key}'")
        return key

    def end_timing(self, name: str, extra_metadata: Optional[Dict[str, Any]] = None) -> None:
        """Complete the timing for ``name``; unknown names are ignored."""
        metric = self._resolve(name)
        if metric is None:
            logger.debug(f"end_timing ignored for unknown metric '{name}'")
            return

        metric.complete(self.environment.now())
        metric.metadata = merge_metadata(metric.metadata, extra_metadata)

    def clear(self) -> None:
        self.store.clear()

    def _in_flight(self, name: str) -> List[Metric]:
        """In-flight metrics stored under ``name`` or ``"<name>#<n>"``, oldest first."""
        prefix = f"{name}#"
        pending = [
            m for m in self.store.values()
            if not m.completed
            and (m.name == name or (m.name.startswith(prefix) and m.name[len(prefix):].isdigit()))
        ]
        return sorted(pending, key=lambda m: m.start_time)

    def _next_key(self, name: str) -> str:
        n = 2
        while True:
            key = f"{name}#{n}"
            existing = self.store.get(key)
            if existing is None or existing.completed:
                return key
            n += 1

    def _resolve(self, name: str) -> Optional[Metric]:
        exact = self.store.get(name)
        if exact is not None and not exact.completed and _OVERLAP_KEY.match(name):
            return exact

        pending = self._in_flight(name)
        if pending:
            return pending[0]

        # Entries written straight into the store, or re-ending a completed one
        return exact

    # Category helpers

    def start_component_load(self, component_name: str) -> str:
        return self.start_timing(
            f"component_{component_name}", {"type": "component", "component": component_name}
        )

    def end_component_load(self, component_name: str, success: bool = True) -> None:
        self.end_timing(f"component_{component_name}", {"type": "component", "success": success})

    def start_image_load(self, src: str) -> str:
        return self.start_timing(f"image_{src}", {"type": "image", "src": src})

    def end_image_load(self, src: str, success: bool = True, size: Optional[float] = None) -> None:
        extra: Dict[str, Any] = {"type": "image", "success": success}
        if size is not None:
            extra["size"] = size
        self.end_timing(f"image_{src}", extra)

    def start_bundle_load(self, bundle_name: str) -> str:
        return self.start_timing(f"bundle_{bundle_name}", {"type": "bundle", "bundle": bundle_name})

    def end_bundle_load(self, bundle_name: str, success: bool = True, size: Optional[float] = None) -> None:
        extra: Dict[str, Any] = {"type": "bundle", "success": success}
        if size is not None:
            extra["size"] = size
        self.end_timing(f"bundle_{bundle_name}", extra)

    @staticmethod
    def api_key(endpoint: str, method: str = "GET") -> str:
        return f"api_{method.lower()}_{sanitize(endpoint)}"

    def start_api_call(self, endpoint: str, method: str = "GET") -> str:
        return self.start_timing(
            self.api_key(endpoint, method), {"type": "api", "endpoint": endpoint, "method": method}
        )

    def end_api_call(
        self,
        endpoint: str,
        method: str = "GET",
        success: bool = True,
        status_code: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        extra: Dict[str, Any] = {"type": "api", "success": success}
        if status_code is not None:
            extra["status_code"] = status_code
        if error is not None:
            extra["error"] = error
        self.end_timing(self.api_key(endpoint, method), extra)

    def track_route_change(self, from_route: str, to_route: str) -> str:
        """Time a route transition; it is closed after a short settle delay."""
        key = self.start_timing(
            f"route_change_{sanitize(from_route)}_to_{sanitize(to_route)}",
            {"type": "navigation", "from_route": from_route, "to_route": to_route},
        )
        self.environment.call_later(
            ROUTE_CHANGE_SETTLE_MS, lambda: self.end_timing(key, {"success": True})
        )
        return key

    def track_page_view(self, page_name: str) -> str:
        return self.start_timing(f"page_view_{page_name}", {"type": "page_view", "page": page_name})

    def track_user_interaction(self, action: str, element: str) -> str:
        metadata = {"type": "user_interaction", "action": action, "element": element}
        key = self.start_timing(f"interaction_{action}_{element}", metadata)
        self.environment.call_later(
            INTERACTION_SETTLE_MS, lambda: self.end_timing(key, {**metadata, "success": True})
        )
        return key

    @contextmanager
    def measure(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> Iterator[str]:
        """Time the enclosed block.

        The block's exception is recorded on the metric and re-raised.
        """
        key = self.start_timing(name, metadata)
        try:
            yield key
        except Exception as e:
            self.end_timing(key, {"success": False, "error": str(e) or type(e).__name__})
            raise
        self.end_timing(key, {"success": True})

    def timed(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> Callable:
        """Decorator that times every call of a function or coroutine function."""

        def decorator(func: Callable) -> Callable:
            if inspect.iscoroutinefunction(func):

                @functools.wraps(func)
                async def async_wrapper(*args, **kwargs):
                    with self.measure(name, metadata):
                        return await func(*args, **kwargs)

                return async_wrapper

            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                with self.measure(name, metadata):
                    return func(*args, **kwargs)

            return wrapper

        return decorator

    def track_form_submission(self, form_name: str) -> Callable:
        """Decorator timing a form submit handler."""
        return self.timed(f"form_submit_{form_name}", {"type": "form_submission", "form": form_name})
