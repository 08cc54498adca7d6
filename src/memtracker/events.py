"""
Canal de notificaciones del motor hacia su controlador.

El motor publica cada notificación como un `Event` y la entrega de forma
síncrona a los oyentes registrados. `make_listener` adapta el evento a los
cuatro manejadores clásicos (memoria cambiada, fallo de página, violación de
segmento, bitácora).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .errors import ErrorKind
from .models import Severity


class EventKind(Enum):
    """Tipos de notificación emitidos por el motor."""
    MEMORY_CHANGED = "memory_changed"
    PAGE_FAULT = "page_fault"
    SEGMENT_VIOLATION = "segment_violation"
    LOG = "log"


@dataclass(frozen=True)
class Event:
    """
    Notificación emitida por el motor.

    Attributes:
        kind: Tipo de notificación.
        severity: Severidad (solo para LOG).
        message: Texto descriptivo (solo para LOG).
        error: Tipo de error asociado a una entrada de bitácora de error.
    """
    kind: EventKind
    severity: Optional[Severity] = None
    message: str = ""
    error: Optional[ErrorKind] = None

    @classmethod
    def log(cls, severity: Severity, message: str, error: Optional[ErrorKind] = None) -> "Event":
        return cls(EventKind.LOG, severity=severity, message=message, error=error)


Listener = Callable[[Event], None]


def make_listener(
    on_memory_changed: Optional[Callable[[], None]] = None,
    on_page_fault: Optional[Callable[[], None]] = None,
    on_segment_violation: Optional[Callable[[], None]] = None,
    on_log_event: Optional[Callable[[Severity, str], None]] = None,
) -> Listener:
    """
    Construye un oyente que despacha cada evento a su manejador.

    Args:
        on_memory_changed: Llamado sin argumentos cuando cambia la disposición.
        on_page_fault: Llamado sin argumentos ante un fallo de página simulado.
        on_segment_violation: Llamado sin argumentos ante una violación simulada.
        on_log_event: Llamado con (severidad, mensaje).

    Returns:
        Listener: Función que acepta un `Event`.
    """
    def listener(event: Event) -> None:
        if event.kind is EventKind.MEMORY_CHANGED and on_memory_changed:
            on_memory_changed()
        elif event.kind is EventKind.PAGE_FAULT and on_page_fault:
            on_page_fault()
        elif event.kind is EventKind.SEGMENT_VIOLATION and on_segment_violation:
            on_segment_violation()
        elif event.kind is EventKind.LOG and on_log_event:
            on_log_event(event.severity, event.message)

    return listener
