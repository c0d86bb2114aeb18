"""Data models for speedwatch records."""

from speedwatch.models._base import SpeedwatchBaseModel, Timestamp
from speedwatch.models.sample import Sample
from speedwatch.models.violation import Violation, ViolationBuilder, ViolationEntry

__all__ = [
    "Sample",
    "SpeedwatchBaseModel",
    "Timestamp",
    "Violation",
    "ViolationBuilder",
    "ViolationEntry",
]
