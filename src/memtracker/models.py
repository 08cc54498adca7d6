"""
Modelos de datos para el rastreador de asignación de memoria.

Este módulo define las estructuras de datos compartidas por los dos modos de
gestión (paginación y segmentación): el contenido de cada celda del mapa de
memoria, las páginas, los segmentos, los bloques libres, los registros de
procesos y las estadísticas agregadas.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Union


class Mode(Enum):
    """Modos de gestión de memoria soportados."""
    PAGING = "paging"
    SEGMENTATION = "segmentation"


class Severity(Enum):
    """Severidad de una notificación de bitácora."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


SEGMENT_KINDS = ("code", "data", "stack")


@dataclass(frozen=True)
class PageCell:
    """
    Contenido de una unidad de memoria ocupada en modo paginación.

    Attributes:
        pid: Proceso dueño de la unidad.
        process_name: Nombre visible del proceso.
        page_number: Número de página lógica (0 en orden de asignación).
        frame: Índice del marco que contiene la unidad.
    """
    pid: int
    process_name: str
    page_number: int
    frame: int


@dataclass(frozen=True)
class SegmentCell:
    """Contenido de una unidad de memoria ocupada en modo segmentación."""
    pid: int


Cell = Optional[Union[PageCell, SegmentCell]]


@dataclass(frozen=True)
class FreeBlock:
    """Rango máximo de unidades libres consecutivas."""
    start: int
    size: int

    @property
    def end(self) -> int:
        return self.start + self.size


@dataclass
class Page:
    """
    Reclamo de un proceso sobre un marco.

    Attributes:
        frame: Índice del marco asignado.
        used: Unidades efectivamente usadas dentro del marco.
    """
    frame: int
    used: int


@dataclass
class Segment:
    """
    Rango contiguo de unidades perteneciente a un proceso.

    Attributes:
        pid: Proceso dueño del segmento.
        process_name: Nombre visible del proceso.
        start: Desplazamiento inicial dentro del espacio de direcciones.
        size: Longitud del segmento.
        kind: Etiqueta descriptiva (code, data, stack...). No altera el
            comportamiento.
    """
    pid: int
    process_name: str
    start: int
    size: int
    kind: str = "code"

    @property
    def end(self) -> int:
        return self.start + self.size

    def overlaps(self, other: "Segment") -> bool:
        return self.start < other.end and other.start < self.end


@dataclass
class PagedProcess:
    """
    Registro de un proceso asignado en modo paginación.

    Attributes:
        pid: Identificador del proceso.
        name: Nombre visible.
        size: Tamaño total solicitado.
        pages: Páginas en orden de asignación.
        internal_fragmentation: Unidades desperdiciadas en la última página.
    """
    mode: ClassVar[Mode] = Mode.PAGING

    pid: int
    name: str
    size: int
    pages: List[Page] = field(default_factory=list)
    internal_fragmentation: int = 0

    @property
    def frames(self) -> List[int]:
        return [page.frame for page in self.pages]

    def to_row(self) -> dict:
        """Convierte el registro a un diccionario para visualización."""
        return {
            'pid': self.pid,
            'name': self.name,
            'size': self.size,
            'pages': len(self.pages),
            'frames': self.frames,
            'fragmentation': self.internal_fragmentation,
        }


@dataclass
class SegmentedProcess:
    """
    Registro de un proceso asignado en modo segmentación.

    El modelo admite varios segmentos por proceso aunque la operación pública
    de asignación siempre crea uno solo con un pid nuevo.
    """
    mode: ClassVar[Mode] = Mode.SEGMENTATION

    pid: int
    name: str
    size: int = 0
    segments: List[Segment] = field(default_factory=list)

    def to_row(self) -> dict:
        """Convierte el registro a un diccionario para visualización."""
        return {
            'pid': self.pid,
            'name': self.name,
            'size': self.size,
            'segments': [(s.kind, s.start, s.size) for s in self.segments],
        }


ProcessRecord = Union[PagedProcess, SegmentedProcess]


@dataclass
class MemoryStats:
    """
    Contadores agregados del motor.

    Son derivados: el mapa de memoria es la fuente de verdad y el modo de
    depuración verifica que coincidan.
    """
    total_memory: int
    used_memory: int = 0
    free_memory: int = 0
    internal_fragmentation: int = 0
    external_fragmentation: int = 0
    page_faults: int = 0
    segment_violations: int = 0

    @classmethod
    def empty(cls, total_memory: int) -> "MemoryStats":
        """Estadísticas iniciales: toda la memoria libre."""
        return cls(total_memory=total_memory, free_memory=total_memory)

    def to_dict(self, mode: Mode) -> Dict[str, int]:
        """
        Resume las estadísticas para el modo activo.

        Args:
            mode: Modo activo; decide qué fragmentación se informa.

        Returns:
            dict: Claves total, used, free, fragmentation, page_faults y
            segment_violations.
        """
        if mode is Mode.PAGING:
            fragmentation = self.internal_fragmentation
        else:
            fragmentation = self.external_fragmentation
        return {
            'total': self.total_memory,
            'used': self.used_memory,
            'free': self.free_memory,
            'fragmentation': fragmentation,
            'page_faults': self.page_faults,
            'segment_violations': self.segment_violations,
        }


ACTIONS = ("mode", "alloc", "free", "compact", "fault", "violation")


@dataclass
class Operation:
    """
    Una operación de un guion de simulación.

    Attributes:
        action: Una de ACTIONS.
        name: Nombre del proceso (alloc).
        size: Tamaño solicitado (alloc).
        kind: Tipo de segmento (alloc en segmentación).
        pid: Proceso a liberar (free).
        mode: Modo destino (mode).
    """
    action: str
    name: str = ""
    size: Optional[int] = None
    kind: str = "code"
    pid: Optional[int] = None
    mode: Optional[str] = None

    def __post_init__(self):
        if self.action not in ACTIONS:
            raise ValueError(f"Acción desconocida: {self.action!r}")
