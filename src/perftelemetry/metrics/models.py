"""Data models for timing metrics."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)


class MetricMetadata(BaseModel):
    """Generic metadata variant.

    Carries the well-known optional fields and keeps any unknown keys, so
    metrics of kinds added later still round-trip.
    """

    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    success: Optional[bool] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ComponentMetric(MetricMetadata):
    """A component mount or lazy component load."""

    type: Literal["component"] = "component"
    component: Optional[str] = None


class ImageMetric(MetricMetadata):
    """An image fetch."""

    type: Literal["image"] = "image"
    src: Optional[str] = None
    size: Optional[float] = None


class BundleMetric(MetricMetadata):
    """A code bundle (chunk) load."""

    type: Literal["bundle"] = "bundle"
    bundle: Optional[str] = None
    size: Optional[float] = None


class ApiMetric(MetricMetadata):
    """An API round trip."""

    type: Literal["api"] = "api"
    endpoint: Optional[str] = None
    method: Optional[str] = None
    status_code: Optional[int] = None


class NavigationMetric(MetricMetadata):
    """A client-side route change."""

    type: Literal["navigation"] = "navigation"
    from_route: Optional[str] = None
    to_route: Optional[str] = None


class PageLoadMetric(MetricMetadata):
    """The document navigation timing entry."""

    type: Literal["page_load"] = "page_load"
    dom_content_loaded: Optional[float] = None
    first_paint: Optional[float] = None
    first_contentful_paint: Optional[float] = None


class ResourceMetric(MetricMetadata):
    """A lazily fetched resource reported by the platform.

    ``type`` holds the platform's initiator type (``img``, ``script``, ...).
    """

    size: Optional[float] = None
    cached: Optional[bool] = None


METADATA_TYPES: Dict[str, Type[MetricMetadata]] = {
    "component": ComponentMetric,
    "image": ImageMetric,
    "bundle": BundleMetric,
    "api": ApiMetric,
    "navigation": NavigationMetric,
    "page_load": PageLoadMetric,
}


def build_metadata(data: Optional[Dict[str, Any]]) -> Optional[MetricMetadata]:
    """Build the typed metadata variant for ``data``.

    Never raises: data that does not validate against its typed variant
    falls back to the generic variant, and data that does not validate at
    all is kept unvalidated.
    """
    if data is None:
        return None
    if isinstance(data, MetricMetadata):
        return data
    if not isinstance(data, dict):
        logger.debug(f"Ignoring non-mapping metadata of type {type(data).__name__}")
        return None

    kind = data.get("type")
    model_cls = METADATA_TYPES.get(kind, MetricMetadata) if isinstance(kind, str) else MetricMetadata
    try:
        return model_cls(**data)
    except ValidationError as e:
        logger.debug(f"Metadata does not match {model_cls.__name__}: {e.error_count()} errors")

    try:
        return MetricMetadata(**data)
    except ValidationError:
        return MetricMetadata.model_construct(**data)


def merge_metadata(
    existing: Optional[MetricMetadata], extra: Optional[Dict[str, Any]]
) -> Optional[MetricMetadata]:
    """Merge ``extra`` into ``existing``; keys from ``extra`` win."""
    if not extra or not isinstance(extra, dict):
        return existing
    merged: Dict[str, Any] = existing.to_dict() if existing is not None else {}
    merged.update(extra)
    return build_metadata(merged)


@dataclass
class Metric:
    """One timed operation.

    Times are milliseconds on the telemetry monotonic clock.
    """

    name: str
    start_time: float
    end_time: Optional[float] = None
    duration: Optional[float] = None
    metadata: Optional[MetricMetadata] = None

    @property
    def type(self) -> Optional[str]:
        return self.metadata.type if self.metadata is not None else None

    @property
    def completed(self) -> bool:
        return self.end_time is not None

    def complete(self, end_time: float) -> None:
        self.end_time = end_time
        self.duration = end_time - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the wire field names."""
        data: Dict[str, Any] = {"name": self.name, "startTime": self.start_time}
        if self.end_time is not None:
            data["endTime"] = self.end_time
        if self.duration is not None:
            data["duration"] = self.duration
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Metric":
        return cls(
            name=data["name"],
            start_time=data["startTime"],
            end_time=data.get("endTime"),
            duration=data.get("duration"),
            metadata=build_metadata(data.get("metadata")),
        )
