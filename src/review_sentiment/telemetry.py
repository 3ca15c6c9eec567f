"""
Best-effort telemetry for session actions.

Records are emitted at most once, never acknowledged, and never allowed to
fail the action that produced them.
"""

import datetime as dt
import json
import logging
import platform
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from review_sentiment import __version__

PREVIEW_CHARS = 240


def default_user_agent() -> str:
    """Client identifier sent with every record, e.g. review-sentiment/0.1.0 (Linux; Python 3.12.1)."""
    return f"review-sentiment/{__version__} ({platform.system()}; Python {platform.python_version()})"


@dataclass
class TelemetryRecord:
    """One spreadsheet row describing a session event."""

    event: str
    message: str
    sentiment: str = ""
    confidence: Optional[float] = None
    review_preview: str = ""
    meta: Dict[str, Any] = field(default_factory=dict)
    url: str = ""
    user_agent: str = field(default_factory=default_user_agent)
    ts_iso: str = field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc).isoformat()
    )

    @classmethod
    def build(
        cls,
        event: str,
        message: str,
        review: Optional[str] = None,
        sentiment: str = "",
        confidence: Optional[float] = None,
        preview_chars: int = PREVIEW_CHARS,
        url: str = "",
        **meta: Any
    ) -> "TelemetryRecord":
        """
        Build a record, truncating the review to a preview and keeping it out of meta.

        :param url: Corpus source the session is working against
        """
        preview = review[:preview_chars] if isinstance(review, str) else ""
        return cls(
            event=event,
            message=message,
            sentiment=sentiment,
            confidence=confidence,
            review_preview=preview,
            meta=meta,
            url=url,
        )

    def to_dict(self) -> dict:
        return {
            "ts_iso": self.ts_iso,
            "event": self.event,
            "message": self.message,
            "sentiment": self.sentiment,
            "confidence": "" if self.confidence is None else self.confidence,
            "review_preview": self.review_preview,
            "meta": json.dumps(self.meta, default=str),
            "url": self.url,
            "userAgent": self.user_agent,
        }


class TelemetrySink(ABC):
    """Destination for telemetry records."""

    @abstractmethod
    def emit(self, record: TelemetryRecord) -> None:
        """Hand off a record without blocking on delivery."""
        pass

    def close(self) -> None:
        pass


class NullTelemetry(TelemetrySink):
    def emit(self, record: TelemetryRecord) -> None:
        return None


class LoggingTelemetry(TelemetrySink):
    """Writes each record to a logger at INFO."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def emit(self, record: TelemetryRecord) -> None:
        self.logger.info(f"[telemetry] {json.dumps(record.to_dict())}")


class BeaconTelemetry(TelemetrySink):
    """
    GET beacon to a spreadsheet-backed web app: ``<endpoint>?data=<json>&_=<ms>``.

    Requests run on a single background worker so emit() returns immediately.
    Delivery failures are logged and dropped.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(__name__)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="telemetry")

    def emit(self, record: TelemetryRecord) -> None:
        self._executor.submit(self._send, record.to_dict())

    def _send(self, payload: dict) -> None:
        try:
            response = self.session.get(
                self.endpoint,
                params={
                    "data": json.dumps(payload),
                    "_": int(time.time() * 1000),
                },
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            self.logger.warning(f"Failed to send telemetry '{payload.get('event')}': {e}")

    def close(self) -> None:
        """Flush queued beacons and stop the worker."""
        self._executor.shutdown(wait=True)


def emit_safely(
    sink: Optional[TelemetrySink],
    record: TelemetryRecord,
    logger: Optional[logging.Logger] = None
) -> None:
    """Emit through sink; any sink failure is logged and dropped."""
    if sink is None:
        return
    try:
        sink.emit(record)
    except Exception as e:
        (logger or logging.getLogger(__name__)).warning(
            f"Telemetry emit failed for '{record.event}': {e}"
        )
