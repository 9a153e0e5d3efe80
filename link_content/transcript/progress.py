from __future__ import annotations

import logging

from ..core.types import ProgressEvent, ProgressSink
from ..logging_utils import log_event


logger = logging.getLogger(__name__)


def emit_progress(sink: ProgressSink | None, event: ProgressEvent) -> None:
    """Deliver a progress event; a missing sink is a no-op and sink errors are logged and dropped."""
    if sink is None:
        return
    try:
        sink(event)
    except Exception as exc:  # noqa: BLE001
        log_event(
            logger,
            "Progress sink raised; event dropped",
            level=logging.WARNING,
            event="progress_sink_error",
            kind=event.kind,
            url=event.url,
            error=f"{type(exc).__name__}: {exc}",
        )
