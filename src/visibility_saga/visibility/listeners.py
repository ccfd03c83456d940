from __future__ import annotations

import logging
from typing import Any

from visibility_saga.saga.events import AnyEvent

from .slice import SetVisibility

logger = logging.getLogger(__name__)


def log_visibility_changes(event: AnyEvent, _state: Any) -> None:
    """Store listener reporting each applied `SetVisibility`."""

    if isinstance(event, SetVisibility):
        logger.info("Visibility state updated", extra={"visible": event.payload})
