"""
Errores del motor de asignación.

Ningún error de esta taxonomía es fatal: el motor los captura en el borde de
cada operación pública, los informa como notificación de bitácora y devuelve
False al llamador.
"""

from enum import Enum


class ErrorKind(Enum):
    """Tipos de fallo que puede informar el motor."""
    INVALID_SIZE = "InvalidSize"
    INSUFFICIENT_MEMORY = "InsufficientMemory"
    INSUFFICIENT_PAGES = "InsufficientContiguousPages"
    NO_SUITABLE_BLOCK = "NoSuitableBlock"
    UNKNOWN_PROCESS = "UnknownProcess"
    INVALID_MODE = "InvalidMode"


class MemoryTrackerError(Exception):
    """Error base del motor; cada subclase fija su `kind`."""
    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidSizeError(MemoryTrackerError):
    kind = ErrorKind.INVALID_SIZE


class InsufficientMemoryError(MemoryTrackerError):
    kind = ErrorKind.INSUFFICIENT_MEMORY


class InsufficientPagesError(MemoryTrackerError):
    kind = ErrorKind.INSUFFICIENT_PAGES


class NoSuitableBlockError(MemoryTrackerError):
    kind = ErrorKind.NO_SUITABLE_BLOCK


class UnknownProcessError(MemoryTrackerError):
    kind = ErrorKind.UNKNOWN_PROCESS


class InvalidModeError(MemoryTrackerError):
    kind = ErrorKind.INVALID_MODE
