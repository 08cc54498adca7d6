"""
Mapa de memoria y algoritmos sobre bloques libres.

Este módulo implementa el arreglo plano de unidades compartido por ambos
modos, el descubrimiento de bloques libres, la selección Best-Fit y el cálculo
de la fragmentación externa. Los bloques libres se recalculan siempre desde
el mapa; nunca se guardan en caché.
"""

from typing import Dict, List, Optional, Tuple

from .models import Cell, FreeBlock, PageCell, SegmentCell


class MemoryMap:
    """
    Arreglo de `size` unidades, cada una vacía (None) o marcada con su dueño.

    Invariante: la longitud del arreglo no cambia durante la vida del mapa;
    solo muta el contenido de las celdas.
    """

    def __init__(self, size: int):
        """Inicializa el mapa con todas las unidades libres."""
        self.size = size
        self.cells: List[Cell] = [None] * size

    def __len__(self) -> int:
        return self.size

    def __getitem__(self, index: int) -> Cell:
        return self.cells[index]

    def reset(self) -> None:
        """Vacía todas las unidades."""
        self.cells = [None] * self.size

    def is_free(self, index: int) -> bool:
        return self.cells[index] is None

    def used_units(self) -> int:
        return sum(1 for cell in self.cells if cell is not None)

    def fill(self, start: int, length: int, cell: Cell) -> None:
        """
        Marca un rango de unidades con el mismo contenido.

        Args:
            start: Primera unidad del rango.
            length: Cantidad de unidades.
            cell: Contenido a escribir en cada unidad.
        """
        self._check_range(start, length)
        for index in range(start, start + length):
            self.cells[index] = cell

    def clear(self, start: int, length: int) -> None:
        """Libera un rango de unidades."""
        self.fill(start, length, None)

    def move(self, source: int, target: int, length: int) -> None:
        """
        Desplaza el contenido de un rango hacia una posición menor.

        Las unidades del rango original que no quedan cubiertas por el destino
        terminan libres.

        Args:
            source: Inicio del rango a mover.
            target: Nuevo inicio; debe ser menor o igual que `source`.
            length: Longitud del rango.
        """
        if target > source:
            raise ValueError("Solo se admite desplazar hacia direcciones menores")
        self._check_range(source, length)
        # Copia ascendente: cada celda de origen se lee antes de ser pisada.
        for offset in range(length):
            self.cells[target + offset] = self.cells[source + offset]
            self.cells[source + offset] = None

    def find_free_blocks(self) -> List[FreeBlock]:
        """
        Recorre el mapa de izquierda a derecha y devuelve los bloques libres.

        Returns:
            Lista de bloques máximos de unidades libres, en orden ascendente
            de inicio.
        """
        blocks = []
        start: Optional[int] = None

        for index, cell in enumerate(self.cells):
            if cell is None:
                if start is None:
                    start = index
            elif start is not None:
                blocks.append(FreeBlock(start=start, size=index - start))
                start = None

        if start is not None:
            blocks.append(FreeBlock(start=start, size=self.size - start))

        return blocks

    def best_fit(self, size: int) -> Optional[FreeBlock]:
        """
        Encuentra el bloque libre más pequeño que pueda alojar el tamaño dado.

        Ante un empate gana el bloque de menor dirección, porque el recorrido
        avanza de izquierda a derecha y solo se reemplaza con uno estrictamente
        menor.

        Args:
            size: Tamaño requerido.

        Returns:
            El bloque elegido o None si ninguno es suficientemente grande.
        """
        best: Optional[FreeBlock] = None
        for block in self.find_free_blocks():
            if block.size >= size and (best is None or block.size < best.size):
                best = block
        return best

    def external_fragmentation(self) -> int:
        """
        Memoria libre que no pertenece al bloque libre más grande.

        Es cero cuando todo el espacio libre es contiguo o no queda espacio
        libre.
        """
        blocks = self.find_free_blocks()
        if not blocks:
            return 0
        total_free = sum(block.size for block in blocks)
        largest = max(block.size for block in blocks)
        return total_free - largest

    def layout_snapshot(self) -> List[Dict]:
        """
        Genera una instantánea de la disposición para su visualización.

        Agrupa unidades consecutivas con el mismo dueño (y, en paginación,
        el mismo marco).

        Returns:
            Lista de diccionarios con las claves {start, size, pid, free}.
        """
        snapshot = []
        current_key: Optional[Tuple] = None

        for index, cell in enumerate(self.cells):
            key = _owner_key(cell)
            if snapshot and key == current_key:
                snapshot[-1]['size'] += 1
                continue
            snapshot.append({
                'start': index,
                'size': 1,
                'pid': None if cell is None else cell.pid,
                'free': cell is None,
            })
            current_key = key

        return snapshot

    def _check_range(self, start: int, length: int) -> None:
        if start < 0 or length < 0 or start + length > self.size:
            raise IndexError(
                f"Rango [{start}, {start + length}) fuera del espacio de direcciones (0..{self.size})"
            )


def _owner_key(cell: Cell) -> Optional[Tuple]:
    if cell is None:
        return None
    if isinstance(cell, PageCell):
        return ('page', cell.pid, cell.frame)
    if isinstance(cell, SegmentCell):
        return ('segment', cell.pid)
    raise TypeError(f"Contenido de celda no soportado: {cell!r}")
