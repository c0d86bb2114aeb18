"""Sample source message helpers.

Location sources publish JSON objects of two kinds:

* location fixes, e.g.
  ``{"lat": 37.98, "lon": 23.72, "speed": 19.4, "time": 1751371200000}``
  (speed in metres/second)
* provider events, e.g. ``{"event": "providerDisabled"}``
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from speedwatch.detector import ProviderEvent
from speedwatch.models.sample import Sample

_logger = logging.getLogger(__name__)

_PROVIDER_EVENTS: dict[str, ProviderEvent] = {
    "providerenabled": ProviderEvent.ENABLED,
    "enabled": ProviderEvent.ENABLED,
    "providerdisabled": ProviderEvent.DISABLED,
    "disabled": ProviderEvent.DISABLED,
    "statuschanged": ProviderEvent.STATUS_CHANGED,
    "providerstatuschanged": ProviderEvent.STATUS_CHANGED,
    "status_changed": ProviderEvent.STATUS_CHANGED,
}


def parse_provider_event(payload: dict[str, Any]) -> ProviderEvent | None:
    name = payload.get("event")
    if not isinstance(name, str):
        return None
    return _PROVIDER_EVENTS.get(name.strip().lower())


def parse_sample(payload: dict[str, Any]) -> Sample | None:
    """Validate a location fix; ``None`` if the payload is not one."""
    try:
        return Sample.model_validate({**payload, "raw": payload})
    except ValidationError:
        _logger.debug("Dropping unparsable sample payload=%s", payload, exc_info=True)
        return None


def parse_source_message(payload: Any) -> Sample | ProviderEvent | None:
    """Classify a decoded source message."""
    if not isinstance(payload, dict):
        return None
    if "event" in payload:
        event = parse_provider_event(payload)
        if event is None:
            _logger.debug("Ignoring unknown provider event payload=%s", payload)
        return event
    return parse_sample(payload)
