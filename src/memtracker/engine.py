"""
Motor de asignación de memoria.

Este módulo coordina el mapa de memoria, la tabla de marcos, la lista de
segmentos y el registro de procesos bajo uno de dos modos excluyentes
(paginación o segmentación), y notifica cada cambio a su controlador.
"""

import copy
import logging
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .errors import (
    InsufficientMemoryError,
    InsufficientPagesError,
    InvalidModeError,
    InvalidSizeError,
    MemoryTrackerError,
    NoSuitableBlockError,
    UnknownProcessError,
)
from .events import Event, EventKind, Listener
from .memory import MemoryMap
from .models import (
    Cell,
    FreeBlock,
    MemoryStats,
    Mode,
    Operation,
    Page,
    PageCell,
    PagedProcess,
    ProcessRecord,
    Segment,
    SegmentCell,
    SegmentedProcess,
    Severity,
)

DEFAULT_TOTAL_MEMORY = 64
DEFAULT_PAGE_SIZE = 4

_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


class AllocationEngine:
    """
    Motor de asignación con paginación y segmentación.

    Todas las operaciones son síncronas y se ejecutan completas antes de
    devolver el control. Las fallas se informan con el valor de retorno y una
    notificación de bitácora; nunca dejan el estado modificado.
    """

    def __init__(
        self,
        total_memory_size: int = DEFAULT_TOTAL_MEMORY,
        page_size: int = DEFAULT_PAGE_SIZE,
        listeners: Optional[Iterable[Listener]] = None,
        debug_mode: bool = False,
        log_level: str = "INFO",
    ):
        """
        Inicializa el motor en modo paginación.

        Args:
            total_memory_size: Unidades del espacio de direcciones.
            page_size: Unidades por página/marco.
            listeners: Oyentes que reciben cada `Event`.
            debug_mode: Activa la validación de invariantes tras cada cambio.
            log_level: Nivel de bitácora ("INFO" o "DEBUG").

        Raises:
            ValueError: Si algún tamaño no es un entero positivo.
        """
        if not _is_positive_int(total_memory_size):
            raise ValueError(f"El tamaño total debe ser un entero positivo: {total_memory_size!r}")
        if not _is_positive_int(page_size):
            raise ValueError(f"El tamaño de página debe ser un entero positivo: {page_size!r}")

        self.total_memory_size = total_memory_size
        self.page_size = page_size
        # Fijo durante toda la vida del motor; las unidades sobrantes no son
        # direccionables en paginación.
        self.total_pages = total_memory_size // page_size
        self.debug_mode = debug_mode
        self.listeners: List[Listener] = list(listeners or [])

        self.mode = Mode.PAGING
        self.memory = MemoryMap(total_memory_size)
        self.frame_table: List[Optional[int]] = [None] * self.total_pages
        self.segments: List[Segment] = []
        self.processes: Dict[int, ProcessRecord] = {}
        self.next_pid = 1
        self.stats = MemoryStats.empty(total_memory_size)
        self.last_error: Optional[MemoryTrackerError] = None

        # Configurar logger
        self.logger = logging.getLogger('memtracker')
        self.logger.setLevel(getattr(logging, log_level.upper()))

        # Crear un handler de consola si aún no existe
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    # ------------------------------------------------------------------
    # Notificaciones
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> None:
        """Registra un oyente adicional."""
        self.listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    def _publish(self, event: Event) -> None:
        for listener in list(self.listeners):
            listener(event)

    def _log_event(self, severity: Severity, message: str, error: Optional[MemoryTrackerError] = None) -> None:
        self.logger.log(_LOG_LEVELS[severity], message)
        self._publish(Event.log(severity, message, error.kind if error else None))

    def _memory_changed(self) -> None:
        self._publish(Event(EventKind.MEMORY_CHANGED))

    def _fail(self, error: MemoryTrackerError) -> bool:
        self.last_error = error
        self._log_event(Severity.ERROR, error.message, error)
        return False

    # ------------------------------------------------------------------
    # Control de modo
    # ------------------------------------------------------------------
    def set_mode(self, mode: Union[Mode, str]) -> bool:
        """
        Cambia de modo y descarta todo el estado.

        Entrar al modo ya activo también reinicia el motor por completo.

        Args:
            mode: `Mode` o su valor ("paging" / "segmentation").

        Returns:
            bool: True si el modo fue aplicado, False si el valor no es válido.
        """
        try:
            new_mode = Mode(mode)
        except ValueError:
            return self._fail(InvalidModeError(
                f"Modo inválido: {mode!r}; debe ser 'paging' o 'segmentation'"
            ))

        self.memory.reset()
        self.frame_table = [None] * self.total_pages
        self.segments = []
        self.processes = {}
        self.next_pid = 1
        self.stats = MemoryStats.empty(self.total_memory_size)
        self.last_error = None
        self.mode = new_mode

        self._log_event(Severity.INFO, f"Cambiado al modo {new_mode.value}")
        self._memory_changed()
        return True

    # ------------------------------------------------------------------
    # Asignación
    # ------------------------------------------------------------------
    def allocate(self, name: str, size: int, segment_kind: str = "code") -> bool:
        """
        Asigna memoria a un nuevo proceso según el modo activo.

        La asignación es todo o nada: si falla, el estado no cambia y no se
        consume ningún pid.

        Args:
            name: Nombre visible del proceso.
            size: Unidades solicitadas.
            segment_kind: Tipo de segmento; solo se usa en segmentación.

        Returns:
            bool: True si la asignación tuvo éxito.
        """
        # Solo la validación y la búsqueda pueden fallar; nada se modifica
        # hasta salir de este bloque.
        try:
            self._check_request(size)
            if self.mode is Mode.PAGING:
                frames = self._find_frames(size)
            else:
                block = self._find_block(size)
        except MemoryTrackerError as error:
            return self._fail(error)

        if self.mode is Mode.PAGING:
            self._allocate_paging(name, size, frames)
        else:
            self._allocate_segmentation(name, size, segment_kind, block)

        self._validar_invariantes()
        self._memory_changed()
        return True

    def _check_request(self, size: int) -> None:
        if not _is_positive_int(size):
            raise InvalidSizeError(f"Tamaño inválido: {size!r}")
        if size > self.stats.free_memory:
            raise InsufficientMemoryError(
                f"Memoria insuficiente: se pidieron {size}, disponibles {self.stats.free_memory}"
            )

    def _mint_pid(self) -> int:
        pid = self.next_pid
        self.next_pid += 1
        return pid

    def _find_frames(self, size: int) -> List[int]:
        """Devuelve los primeros marcos libres necesarios para `size` unidades."""
        required_pages = -(-size // self.page_size)
        frames = [i for i, owner in enumerate(self.frame_table) if owner is None][:required_pages]

        if len(frames) < required_pages:
            raise InsufficientPagesError(
                f"Páginas insuficientes: se necesitan {required_pages}, libres {len(frames)}"
            )
        return frames

    def _find_block(self, size: int) -> FreeBlock:
        """Devuelve el bloque libre de mejor ajuste para `size` unidades."""
        block = self.memory.best_fit(size)
        if block is None:
            raise NoSuitableBlockError(f"No se encontró un bloque libre de {size} unidades")
        return block

    def _allocate_paging(self, name: str, size: int, frames: List[int]) -> None:
        """Reparte el pedido en los marcos ya elegidos."""
        remainder = size % self.page_size
        fragmentation = self.page_size - remainder if remainder else 0
        pid = self._mint_pid()
        self.logger.debug(f"PID {pid}: marcos elegidos {frames}")

        pages = []
        for page_number, frame in enumerate(frames):
            is_last = page_number == len(frames) - 1
            used = remainder if (is_last and remainder) else self.page_size
            pages.append(Page(frame=frame, used=used))

            self.frame_table[frame] = pid
            self.memory.fill(
                frame * self.page_size,
                self.page_size,
                PageCell(pid=pid, process_name=name, page_number=page_number, frame=frame),
            )

        self.processes[pid] = PagedProcess(
            pid=pid,
            name=name,
            size=size,
            pages=pages,
            internal_fragmentation=fragmentation,
        )

        self.stats.used_memory += size
        self.stats.free_memory -= size
        self.stats.internal_fragmentation += fragmentation

        self._log_event(
            Severity.INFO,
            f"Asignadas {size} unidades ({len(pages)} páginas) al proceso {name} (PID: {pid})",
        )
        if fragmentation > 0:
            self._log_event(Severity.INFO, f"Fragmentación interna: {fragmentation} unidades")

    def _allocate_segmentation(self, name: str, size: int, segment_kind: str, block: FreeBlock) -> None:
        """Ubica un segmento nuevo al inicio del bloque elegido."""
        pid = self._mint_pid()
        self.logger.debug(f"PID {pid}: bloque elegido [{block.start}, {block.end})")
        self._place_segment(pid, name, size, segment_kind, block.start)

        self._log_event(
            Severity.INFO,
            f"Asignado segmento {segment_kind} de {size} unidades al proceso {name} (PID: {pid})",
        )
        if self.stats.external_fragmentation > 0:
            self._log_event(
                Severity.INFO,
                f"Fragmentación externa: {self.stats.external_fragmentation} unidades",
            )

    def _place_segment(self, pid: int, name: str, size: int, segment_kind: str, start: int) -> Segment:
        """
        Registra un segmento en `start` y lo agrega al proceso `pid`.

        Crea el registro del proceso si es su primer segmento; de lo contrario
        el proceso acumula segmentos bajo el mismo pid.
        """
        segment = Segment(pid=pid, process_name=name, start=start, size=size, kind=segment_kind)
        self.memory.fill(start, size, SegmentCell(pid=pid))
        self.segments.append(segment)

        process = self.processes.get(pid)
        if process is None:
            process = SegmentedProcess(pid=pid, name=name)
            self.processes[pid] = process
        process.segments.append(segment)
        process.size += size

        self.stats.used_memory += size
        self.stats.free_memory -= size
        self._recalcular_fragmentacion_externa()
        return segment

    # ------------------------------------------------------------------
    # Liberación
    # ------------------------------------------------------------------
    def deallocate(self, pid: int) -> bool:
        """
        Libera toda la memoria del proceso indicado.

        Args:
            pid: Identificador del proceso.

        Returns:
            bool: False si no existe un proceso vivo con ese pid.
        """
        # True y 1.0 comparan igual a 1; solo se aceptan enteros.
        is_int = isinstance(pid, int) and not isinstance(pid, bool)
        process = self.processes.get(pid) if is_int else None
        if process is None:
            return self._fail(UnknownProcessError(f"No se encontró el proceso con PID {pid}"))

        if isinstance(process, PagedProcess):
            self._deallocate_paging(process)
        else:
            self._deallocate_segmentation(process)

        self._validar_invariantes()
        self._memory_changed()
        return True

    def _deallocate_paging(self, process: PagedProcess) -> None:
        for page in process.pages:
            self.frame_table[page.frame] = None
            self.memory.clear(page.frame * self.page_size, self.page_size)

        self.stats.used_memory -= process.size
        self.stats.free_memory += process.size
        self.stats.internal_fragmentation -= process.internal_fragmentation
        del self.processes[process.pid]

        self._log_event(
            Severity.INFO,
            f"Liberado el proceso {process.name} (PID: {process.pid}), {len(process.pages)} páginas",
        )

    def _deallocate_segmentation(self, process: SegmentedProcess) -> None:
        for segment in process.segments:
            self.memory.clear(segment.start, segment.size)

        self.segments = [s for s in self.segments if s.pid != process.pid]
        self.stats.used_memory -= process.size
        self.stats.free_memory += process.size
        self._recalcular_fragmentacion_externa()
        del self.processes[process.pid]

        self._log_event(
            Severity.INFO,
            f"Liberadas {process.size} unidades ({len(process.segments)} segmentos) "
            f"del proceso {process.name} (PID: {process.pid})",
        )

    # ------------------------------------------------------------------
    # Compactación y fragmentación
    # ------------------------------------------------------------------
    def compact(self) -> int:
        """
        Desplaza los segmentos hacia el inicio de la memoria.

        Deja una única región ocupada al principio y una única región libre al
        final. No cambia tamaños, dueños ni el registro de procesos. No hace
        nada fuera del modo segmentación.

        Returns:
            int: Cantidad de segmentos desplazados.
        """
        if self.mode is not Mode.SEGMENTATION:
            return 0

        moved = 0
        next_free = 0
        for segment in sorted(self.segments, key=lambda s: s.start):
            if segment.start != next_free:
                self.logger.debug(
                    f"Moviendo segmento de PID {segment.pid} de {segment.start} a {next_free}"
                )
                self.memory.move(segment.start, next_free, segment.size)
                segment.start = next_free
                moved += 1
            next_free += segment.size

        self._recalcular_fragmentacion_externa()
        self._validar_invariantes()

        self._log_event(Severity.INFO, f"Memoria compactada ({moved} segmentos desplazados)")
        self._memory_changed()
        return moved

    def _recalcular_fragmentacion_externa(self) -> None:
        if self.mode is Mode.SEGMENTATION:
            self.stats.external_fragmentation = self.memory.external_fragmentation()

    # ------------------------------------------------------------------
    # Eventos simulados
    # ------------------------------------------------------------------
    def simulate_page_fault(self) -> bool:
        """Cuenta un fallo de página simulado; solo en paginación."""
        if self.mode is not Mode.PAGING:
            return False

        self.stats.page_faults += 1
        self._publish(Event(EventKind.PAGE_FAULT))
        self._log_event(Severity.WARNING, "Fallo de página simulado")
        return True

    def simulate_segment_violation(self) -> bool:
        """Cuenta una violación de segmento simulada; solo en segmentación."""
        if self.mode is not Mode.SEGMENTATION:
            return False

        self.stats.segment_violations += 1
        self._publish(Event(EventKind.SEGMENT_VIOLATION))
        self._log_event(Severity.ERROR, "Violación de segmento simulada")
        return True

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------
    def get_stats(self) -> Dict[str, int]:
        return self.stats.to_dict(self.mode)

    def get_memory_map(self) -> Tuple[Cell, ...]:
        return tuple(self.memory.cells)

    def get_frame_table(self) -> Tuple[Optional[int], ...]:
        return tuple(self.frame_table)

    def get_segments(self) -> List[Segment]:
        return copy.deepcopy(self.segments)

    def get_processes(self) -> Dict[int, ProcessRecord]:
        """Devuelve una copia del registro; mutarla no afecta al motor."""
        return copy.deepcopy(self.processes)

    def get_free_blocks(self) -> List[FreeBlock]:
        return self.memory.find_free_blocks()

    def get_layout(self) -> List[Dict]:
        return self.memory.layout_snapshot()

    # ------------------------------------------------------------------
    # Invariantes (modo depuración)
    # ------------------------------------------------------------------
    def _validar_invariantes(self):
        """
        Valida las invariantes del motor en modo depuración.

        Raises:
            AssertionError: Si alguna invariante es violada.
        """
        if not self.debug_mode:
            return

        stats = self.stats
        # Invariante 1: conservación
        assert stats.used_memory + stats.free_memory == self.total_memory_size, \
            f"used + free != total ({stats.used_memory} + {stats.free_memory})"

        if self.mode is Mode.PAGING:
            assert not self.segments, "Hay segmentos vivos en modo paginación"
            # Invariante 2: cada marco tiene a lo sumo un dueño y coincide con su proceso
            owners: Dict[int, int] = {}
            for process in self.processes.values():
                assert isinstance(process, PagedProcess), f"Registro {process.pid} no es de paginación"
                assert sum(p.used for p in process.pages) == process.size, \
                    f"Las páginas de PID {process.pid} no suman su tamaño"
                for page in process.pages:
                    assert page.frame not in owners, f"Marco {page.frame} reclamado dos veces"
                    owners[page.frame] = process.pid
                    assert self.frame_table[page.frame] == process.pid, \
                        f"Tabla de marcos inconsistente en el marco {page.frame}"
            assert sum(owner is not None for owner in self.frame_table) == len(owners), \
                "La tabla de marcos tiene dueños sin registro"
            assert sum(p.internal_fragmentation for p in self.processes.values()) == \
                stats.internal_fragmentation, "Fragmentación interna agregada inconsistente"
            assert sum(p.size for p in self.processes.values()) == stats.used_memory, \
                "La memoria usada no coincide con los procesos"
        else:
            # Invariante 3: segmentos sin solapamiento y dentro de los límites
            ordered = sorted(self.segments, key=lambda s: s.start)
            for segment in ordered:
                assert 0 <= segment.start and segment.end <= self.total_memory_size, \
                    f"Segmento de PID {segment.pid} fuera de límites"
            for previous, current in zip(ordered, ordered[1:]):
                assert not previous.overlaps(current), \
                    f"Segmentos solapados: PID {previous.pid} y PID {current.pid}"
            assert sum(s.size for s in self.segments) == stats.used_memory, \
                "La suma de segmentos no coincide con la memoria usada"
            assert self.memory.used_units() == stats.used_memory, \
                "El mapa de memoria no coincide con la memoria usada"
            assert stats.external_fragmentation == self.memory.external_fragmentation(), \
                "Fragmentación externa desactualizada"


def apply_operation(engine: AllocationEngine, operation: Operation) -> bool:
    """
    Aplica una operación de guion sobre el motor.

    Args:
        engine: Motor destino.
        operation: Operación a ejecutar.

    Returns:
        bool: Resultado de la operación. `compact` devuelve True si el motor
        estaba en segmentación.
    """
    if operation.action == "mode":
        return engine.set_mode(operation.mode)
    if operation.action == "alloc":
        return engine.allocate(operation.name, operation.size, operation.kind)
    if operation.action == "free":
        return engine.deallocate(operation.pid)
    if operation.action == "compact":
        if engine.mode is not Mode.SEGMENTATION:
            return False
        engine.compact()
        return True
    if operation.action == "fault":
        return engine.simulate_page_fault()
    if operation.action == "violation":
        return engine.simulate_segment_violation()
    raise ValueError(f"Acción desconocida: {operation.action!r}")


def run_operations(engine: AllocationEngine, operations: Iterable[Operation]) -> List[bool]:
    """
    Ejecuta un guion completo de operaciones.

    Returns:
        list: Resultado de cada operación, en orden.
    """
    return [apply_operation(engine, operation) for operation in operations]


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0
