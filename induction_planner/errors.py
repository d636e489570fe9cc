"""
Error types for the Induction Planner.

Fatal errors abort a scheduling run and are reported as ``success: false``.
``UpstreamUnavailable`` and ``PersistenceFailure`` are absorbed by the pipeline.
"""
from typing import Optional


class SchedulingError(Exception):
    """Base exception for scheduling run errors."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ConfigurationMissing(SchedulingError):
    """A required credential or endpoint is not configured."""


class UpstreamUnavailable(SchedulingError):
    """The remote prediction endpoint could not produce usable candidates."""


class SnapshotFetchFailure(SchedulingError):
    """The fleet snapshot could not be loaded from the store."""


class EmptyRunError(SchedulingError):
    """A run produced zero recommendations."""


class PersistenceFailure(SchedulingError):
    """A schedule row or training record could not be written."""
    def __init__(self, message: str, trainset_id: Optional[str] = None):
        self.trainset_id = trainset_id
        super().__init__(message)
