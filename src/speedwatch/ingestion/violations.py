"""Violation ingestion helpers.

Translates raw store trees into typed violation entries. Records that do
not validate are skipped so one corrupt child never hides the rest.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import ValidationError

from speedwatch.models.violation import Violation, ViolationEntry

_logger = logging.getLogger(__name__)

_PUSH_KEY = re.compile(r"[-0-9A-Za-z_]{20}")
_INDEX_KEY = re.compile(r"[0-9]+")


def _children(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        return {str(index): item for index, item in enumerate(value) if item is not None}
    return {}


def _ordered_keys(children: dict[str, Any]) -> list[str]:
    """Keys in insertion order.

    Push keys sort chronologically and array nodes are ordered by index;
    any other keys keep the order in which the node holds them.
    """
    keys = list(children)
    if keys and all(_PUSH_KEY.fullmatch(key) for key in keys):
        return sorted(keys)
    if keys and all(_INDEX_KEY.fullmatch(key) for key in keys):
        return sorted(keys, key=int)
    return keys


def entries_from_tree(value: Any) -> tuple[ViolationEntry, ...]:
    """Parse one operator's node into entries in insertion order."""
    children = _children(value)
    entries: list[ViolationEntry] = []
    for key in _ordered_keys(children):
        record = children[key]
        if not isinstance(record, dict):
            continue
        try:
            violation = Violation.from_record(record)
        except ValidationError:
            _logger.debug("Skipping malformed violation record key=%s record=%s", key, record, exc_info=True)
            continue
        entries.append(ViolationEntry(key=key, violation=violation))
    return tuple(entries)


def operators_from_tree(value: Any) -> dict[str, tuple[ViolationEntry, ...]]:
    """Parse the all-operators node into ``{operator_id: entries}``."""
    return {operator_id: entries_from_tree(node) for operator_id, node in _children(value).items()}
