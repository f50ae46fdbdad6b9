"""Fire-and-forget notifications to observers of metadata changes."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from catalog_metadata.models import Signal

logger = logging.getLogger(__name__)

Handler = Callable[..., None]


class SignalBus:
    """Maps each signal to the handlers connected to it."""

    def __init__(self) -> None:
        self._handlers: dict[Signal, list[Handler]] = {}

    def connect(self, signal: Signal, handler: Handler) -> None:
        handlers = self._handlers.setdefault(signal, [])
        if handler not in handlers:
            handlers.append(handler)

    def disconnect(self, signal: Signal, handler: Handler) -> None:
        handlers = self._handlers.get(signal, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, signal: Signal, **kwargs: Any) -> None:
        """Call every handler; a failing handler is logged and skipped."""
        for handler in list(self._handlers.get(signal, [])):
            try:
                handler(**kwargs)
            except Exception:
                logger.exception(f"Handler for {signal.value} failed")
