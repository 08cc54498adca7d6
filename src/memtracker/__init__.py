"""Rastreador de asignación de memoria: paginación y segmentación."""

from .engine import AllocationEngine
from .errors import ErrorKind, MemoryTrackerError
from .events import Event, EventKind, make_listener
from .models import Mode, Severity

__all__ = [
    "AllocationEngine",
    "ErrorKind",
    "Event",
    "EventKind",
    "MemoryTrackerError",
    "Mode",
    "Severity",
    "make_listener",
]
