"""
Input/Output operations for the memory allocation tracker.

This module handles reading operation scripts from CSV files and
rendering the engine state as plain text for the CLI.
"""

import csv
from typing import Dict, List, Optional, Sequence

from .models import Mode, Operation, ProcessRecord, PagedProcess


CSV_COLUMNS = ("action", "name", "size", "kind", "pid", "mode")


def read_operations_csv(path: str) -> List[Operation]:
    """
    Read a scripted sequence of engine operations from a CSV file.

    Expected CSV format with header: action,name,size,kind,pid,mode
    Only the ``action`` column is required; the others may be omitted or
    left blank when the action does not use them.

    Args:
        path: Path to the CSV file

    Returns:
        List[Operation]: Operations in file order
    """
    operations = []

    try:
        with open(path, 'r', newline='', encoding='utf-8') as csvfile:
            reader = csv.DictReader(csvfile)

            if reader.fieldnames is None or 'action' not in reader.fieldnames:
                raise KeyError('action')
            unknown = [name for name in reader.fieldnames if name.strip() not in CSV_COLUMNS]
            if unknown:
                raise ValueError(f"unknown columns {unknown}; expected a subset of {list(CSV_COLUMNS)}")

            for line_number, row in enumerate(reader, start=2):
                action = (row.get('action') or '').strip().lower()
                if not action:
                    continue

                operation = Operation(
                    action=action,
                    name=(row.get('name') or '').strip(),
                    size=_optional_int(row.get('size')),
                    kind=(row.get('kind') or '').strip() or 'code',
                    pid=_optional_int(row.get('pid')),
                    mode=(row.get('mode') or '').strip() or None,
                )
                _validate_operation(operation, line_number)
                operations.append(operation)

    except FileNotFoundError:
        raise FileNotFoundError(f"CSV file not found: {path}")
    except KeyError as e:
        raise ValueError(f"Missing required column in CSV: {e}")
    except ValueError as e:
        raise ValueError(f"Invalid data in CSV file: {e}")

    return operations


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    return int(value)


def _validate_operation(operation: Operation, line_number: int) -> None:
    if operation.action == "alloc" and operation.size is None:
        raise ValueError(f"line {line_number}: 'alloc' requires a size")
    if operation.action == "free" and operation.pid is None:
        raise ValueError(f"line {line_number}: 'free' requires a pid")
    if operation.action == "mode" and operation.mode is None:
        raise ValueError(f"line {line_number}: 'mode' requires a mode")


def format_stats(stats: Dict[str, int], mode: Mode) -> str:
    """Format the statistics dictionary as a single line."""
    label = "internal" if mode is Mode.PAGING else "external"
    return (
        f"total={stats['total']} used={stats['used']} free={stats['free']} "
        f"fragmentation({label})={stats['fragmentation']} "
        f"page_faults={stats['page_faults']} segment_violations={stats['segment_violations']}"
    )


def pretty_print_state(
    mode: Mode,
    stats: Dict[str, int],
    layout: List[dict],
    processes: Dict[int, ProcessRecord],
    frame_table: Optional[Sequence[Optional[int]]] = None,
    show_header: bool = True,
) -> str:
    """
    Generate a formatted string representing the current engine state.

    Args:
        mode: Active engine mode
        stats: Result of ``get_stats()``
        layout: Result of ``get_layout()``
        processes: Result of ``get_processes()``
        frame_table: Result of ``get_frame_table()`` (paging only)
        show_header: Whether to print column headers

    Returns:
        str: Formatted state string
    """
    lines = [f"Mode: {mode.value}", f"Stats: {format_stats(stats, mode)}"]

    # Layout
    lines.append("Memory:")
    if show_header:
        lines.append("  start  size  pid  free")
        lines.append("  -----  ----  ---  ----")
    for entry in layout:
        pid_str = str(entry['pid']) if entry['pid'] is not None else "---"
        free_str = "Yes" if entry['free'] else "No"
        lines.append(f"  {entry['start']:5}  {entry['size']:4}  {pid_str:>3}  {free_str:4}")

    # Frame table
    if mode is Mode.PAGING and frame_table is not None:
        lines.append("Frames:")
        owners = ["--" if owner is None else str(owner) for owner in frame_table]
        lines.append(f"  {' '.join(owners)}" if owners else "  (no frames)")

    # Processes
    lines.append("Processes:")
    if not processes:
        lines.append("  (empty)")
    for pid in sorted(processes):
        row = processes[pid].to_row()
        if isinstance(processes[pid], PagedProcess):
            detail = f"frames={row['frames']} frag={row['fragmentation']}"
        else:
            detail = " ".join(
                f"{kind}@[{start},{start + size})"
                for kind, start, size in sorted(row['segments'], key=lambda s: s[1])
            )
        lines.append(f"  pid={row['pid']} name={row['name']!r} size={row['size']} {detail}")

    return "\n".join(lines)
