"""
In-process hook bus.

Mirrors the host's ``Hooks.on`` / ``Hooks.call`` API so the invalidation
listener can be exercised without a running host.
"""

import inspect
from collections import defaultdict
from typing import Any

from compendium_index.host.interfaces import HookHandler
from compendium_index.ops.telemetry import get_logger


logger = get_logger(__name__)

# Lifecycle events the index cares about
CREATE_DOCUMENT = "createDocument"
UPDATE_DOCUMENT = "updateDocument"
DELETE_DOCUMENT = "deleteDocument"
CREATE_COMPENDIUM = "createCompendium"
DELETE_COMPENDIUM = "deleteCompendium"


class Hooks:
    """Registry of event handlers, called in registration order."""

    def __init__(self):
        self._handlers: dict[str, list[HookHandler]] = defaultdict(list)

    def on(self, event: str, handler: HookHandler) -> None:
        self._handlers[event].append(handler)

    def off(self, event: str, handler: HookHandler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers(self, event: str) -> list[HookHandler]:
        return list(self._handlers.get(event, []))

    async def call(self, event: str, *args: Any) -> int:
        """
        Invoke every handler for ``event``.

        A failing handler is logged and does not stop the others.

        Returns:
            Number of handlers that ran without raising
        """
        ok = 0
        for handler in self.handlers(event):
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
                ok += 1
            except Exception as e:
                logger.warning("hook_handler_failed", hook_event=event, error=str(e))
        return ok
