"""Holder for independently arriving web-vitals values."""

import logging
from dataclasses import asdict, dataclass, replace
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class WebVitals:
    """Page-load quality signals. Any of them may never arrive."""

    FCP: Optional[float] = None  # First Contentful Paint (ms)
    LCP: Optional[float] = None  # Largest Contentful Paint (ms)
    FID: Optional[float] = None  # First Input Delay (ms)
    CLS: Optional[float] = None  # Cumulative Layout Shift (unitless)
    TTFB: Optional[float] = None  # Time To First Byte (ms)

    def to_dict(self) -> Dict[str, float]:
        return {k: v for k, v in asdict(self).items() if v is not None}


class VitalsCollector:
    """Pure holder; values are whatever the observation adapter last wrote."""

    def __init__(self) -> None:
        self._vitals = WebVitals()

    def set_fcp(self, value: float) -> None:
        self._vitals.FCP = value

    def set_lcp(self, value: float) -> None:
        self._vitals.LCP = value

    def set_fid(self, value: float) -> None:
        self._vitals.FID = value

    def set_ttfb(self, value: float) -> None:
        self._vitals.TTFB = value

    def add_layout_shift(self, value: float) -> None:
        self._vitals.CLS = (self._vitals.CLS or 0.0) + value

    def get_web_vitals(self) -> WebVitals:
        return replace(self._vitals)

    def reset(self) -> None:
        self._vitals = WebVitals()
        logger.debug("Web vitals reset")
