"""Live queries over the realtime database.

A :class:`LiveQuery` keeps a local copy of the JSON tree below one path,
applies every ``put``/``patch`` event from the server stream to it, and
hands the *complete* value to its consumer after each change. Any stream
failure is reported once and ends the query; nothing is retried here.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Callable
from typing import Any

from speedwatch._transport import StreamEvent, Transport
from speedwatch.exceptions import SpeedwatchTransportError, SubscriptionError

_logger = logging.getLogger(__name__)

_TERMINAL_EVENTS = frozenset({"cancel", "auth_revoked"})


def _split(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def _as_node(value: Any) -> dict[str, Any]:
    """Children of *value* as a dict (arrays are keyed by index)."""
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        return {str(index): item for index, item in enumerate(value) if item is not None}
    return {}


def apply_put(root: Any, path: str, data: Any) -> Any:
    """Replace the value at *path* (relative to *root*) and return the new root.

    A ``None`` value deletes the node.
    """
    parts = _split(path)
    if not parts:
        return copy.deepcopy(data)

    root = _as_node(root)
    node = root
    for part in parts[:-1]:
        child = _as_node(node.get(part))
        node[part] = child
        node = child

    if data is None:
        node.pop(parts[-1], None)
    else:
        node[parts[-1]] = copy.deepcopy(data)
    return root


def apply_patch(root: Any, path: str, data: Any) -> Any:
    """Merge the children in *data* into the node at *path*."""
    if not isinstance(data, dict):
        return root
    prefix = path.rstrip("/")
    for key, value in data.items():
        root = apply_put(root, f"{prefix}/{key}", value)
    return root


def apply_event(root: Any, event: StreamEvent) -> tuple[Any, bool]:
    """Apply a ``put``/``patch`` event; returns ``(new_root, changed)``."""
    if event.event not in ("put", "patch") or not isinstance(event.data, dict):
        return root, False
    path = event.data.get("path")
    if not isinstance(path, str):
        return root, False
    if event.event == "put":
        return apply_put(root, path, event.data.get("data")), True
    return apply_patch(root, path, event.data.get("data")), True


class LiveQuery:
    """Streams the full value at *path* to *on_value* until cancelled or failed."""

    def __init__(
        self,
        transport: Transport,
        path: str,
        *,
        on_value: Callable[[Any], None],
        on_error: Callable[[SubscriptionError], None],
        scope: object = None,
    ) -> None:
        self._transport = transport
        self._path = path
        self._on_value = on_value
        self._on_error = on_error
        self._scope = scope if scope is not None else path
        self._task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._closed

    def start(self) -> None:
        """Start streaming on the running event loop."""
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"speedwatch-live:{self._path}")

    def cancel(self) -> None:
        """Stop streaming; no value or error is delivered afterwards."""
        self._closed = True
        task = self._task
        if task is not None and not task.done():
            task.cancel()

    async def _run(self) -> None:
        tree: Any = None
        try:
            async for event in self._transport.stream(self._path):
                if self._closed:
                    return
                if event.event in _TERMINAL_EVENTS:
                    self._fail(f"Live query on {self._path} ended by server ({event.event}): {event.data}")
                    return
                tree, changed = apply_event(tree, event)
                if changed:
                    self._deliver(tree)
            self._fail(f"Live query on {self._path} closed by server")
        except SpeedwatchTransportError as exc:
            self._fail(f"Live query on {self._path} failed: {exc}", exc)

    def _deliver(self, tree: Any) -> None:
        if self._closed:
            return
        try:
            self._on_value(copy.deepcopy(tree))
        except Exception:
            _logger.exception("Value listener for %s raised", self._scope)

    def _fail(self, message: str, cause: BaseException | None = None) -> None:
        if self._closed:
            return
        self._closed = True
        _logger.warning("%s", message)
        error = SubscriptionError(message, scope=self._scope)
        error.__cause__ = cause
        self._on_error(error)
