"""speedwatch - Speed violation detection with live violation sync."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("speedwatch")
except PackageNotFoundError:
    __version__ = "0+local"
from speedwatch.client import SpeedwatchClient
from speedwatch.config import SpeedwatchConfig
from speedwatch.detector import (
    Advisory,
    DetectorState,
    ExceedingState,
    NormalState,
    Phase,
    ProviderEvent,
    SpeedReadout,
    ViolationDetector,
    WarningState,
)
from speedwatch.exceptions import (
    AppendError,
    SpeedwatchConfigError,
    SpeedwatchError,
    SpeedwatchTransportError,
    SubscriptionError,
    TransientConfigError,
    ViolationBuildError,
)
from speedwatch.models import Sample, Violation, ViolationBuilder, ViolationEntry
from speedwatch.projections import (
    ListProjection,
    MapProjection,
    ProjectionStatus,
    ViolationMarker,
    ViolationRow,
)
from speedwatch.session import MonitoringSession
from speedwatch.store import (
    AllOperatorsSnapshot,
    InMemoryViolationStore,
    OperatorSnapshot,
    RealtimeDatabaseStore,
    Subscription,
    SubscriptionScope,
    ViolationStore,
)
from speedwatch.threshold import ThresholdConfig, Thresholds

__all__ = [
    "__version__",
    "Advisory",
    "AllOperatorsSnapshot",
    "AppendError",
    "DetectorState",
    "ExceedingState",
    "InMemoryViolationStore",
    "ListProjection",
    "MapProjection",
    "MonitoringSession",
    "NormalState",
    "OperatorSnapshot",
    "Phase",
    "ProjectionStatus",
    "ProviderEvent",
    "RealtimeDatabaseStore",
    "Sample",
    "SpeedReadout",
    "SpeedwatchClient",
    "SpeedwatchConfig",
    "SpeedwatchConfigError",
    "SpeedwatchError",
    "SpeedwatchTransportError",
    "Subscription",
    "SubscriptionError",
    "SubscriptionScope",
    "ThresholdConfig",
    "Thresholds",
    "TransientConfigError",
    "Violation",
    "ViolationBuildError",
    "ViolationBuilder",
    "ViolationDetector",
    "ViolationEntry",
    "ViolationMarker",
    "ViolationRow",
    "ViolationStore",
    "WarningState",
]
