"""Custom exception hierarchy for speedwatch."""

from __future__ import annotations


class SpeedwatchError(Exception):
    """Base exception for all speedwatch errors."""


class SpeedwatchConfigError(SpeedwatchError):
    """Invalid or missing configuration."""


class TransientConfigError(SpeedwatchError):
    """Threshold payload could not be used (missing or not numeric).

    Never raised out of :meth:`speedwatch.threshold.ThresholdConfig.on_remote_update`;
    the last good value stays in effect and the error is only logged.
    """

    def __init__(self, message: str, *, raw_value: object = None) -> None:
        self.raw_value = raw_value
        super().__init__(message)


class ViolationBuildError(SpeedwatchError, ValueError):
    """A violation was built before all of its fields were set."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"violation is missing required fields: {', '.join(missing)}")


class SpeedwatchTransportError(SpeedwatchError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        path: str = "",
    ) -> None:
        self.status_code = status_code
        self.path = path
        super().__init__(message)


class AppendError(SpeedwatchError):
    """The store rejected or failed to commit a new violation.

    Reported to the consumer as a non-fatal warning; detection keeps running
    and the append is not retried.
    """

    def __init__(self, message: str, *, operator_id: str = "") -> None:
        self.operator_id = operator_id
        super().__init__(message)


class SubscriptionError(SpeedwatchError):
    """A live listener failed or was cancelled by the store.

    Once delivered the subscription is dead; consumers must clear the data
    they display and resubscribe explicitly if they want live data again.
    """

    def __init__(self, message: str, *, scope: object = None) -> None:
        self.scope = scope
        super().__init__(message)
