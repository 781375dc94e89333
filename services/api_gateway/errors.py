"""
Failure modes of the snapshot service.

There are only two. Counter reads and the pause statistics are total, so
anything else escaping a request is a bug, not a handled condition.
"""

from __future__ import annotations


class SnapshotError(Exception):
    """Base class for snapshot service errors."""


class SerializationError(SnapshotError):
    """The snapshot record could not be encoded as JSON. Served as HTTP 500."""


class ListenerBindError(SnapshotError):
    """The HTTP listener could not be started. Fatal for the process."""
