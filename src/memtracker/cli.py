"""
Interfaz de línea de comandos del rastreador de asignación de memoria.

Este módulo ofrece la interfaz CLI para ejecutar guiones de operaciones,
la carga de demostración o una sesión interactiva, y mostrar el estado final.
"""

import argparse
import shlex
import sys
from typing import List, Optional

from .engine import DEFAULT_PAGE_SIZE, DEFAULT_TOTAL_MEMORY, AllocationEngine, apply_operation, run_operations
from .events import make_listener
from .io import pretty_print_state, read_operations_csv
from .models import ACTIONS, SEGMENT_KINDS, Mode, Operation

# Procesos de ejemplo cargados al iniciar sin guion.
DEMO_PROCESSES = (("OS Kernel", 8), ("Browser", 12), ("Editor", 6))

HELP_TEXT = """Comandos:
  a NOMBRE TAMAÑO [TIPO]  asignar (usar comillas si el nombre tiene espacios)
  d PID                   liberar un proceso
  c                       compactar (segmentación)
  f                       simular fallo de página (paginación)
  v                       simular violación de segmento (segmentación)
  m MODO                  cambiar a paging o segmentation (reinicia todo)
  s                       mostrar el estado
  h                       esta ayuda
  q                       salir

TIPO: {kinds} (por defecto: code)""".format(kinds=", ".join(SEGMENT_KINDS))

_ALIASES = {
    "a": "alloc",
    "d": "free",
    "c": "compact",
    "f": "fault",
    "v": "violation",
    "m": "mode",
}


def create_parser():
    """
    Crea el parser de argumentos de la línea de comandos.

    Returns:
        argparse.ArgumentParser: Parser configurado.
    """
    parser = argparse.ArgumentParser(
        description="Rastreador de asignación de memoria con paginación y segmentación",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Ejemplos:
  python -m memtracker
  python -m memtracker --mode segmentation --csv examples/operations.csv
  python -m memtracker --total-size 128 --page-size 8 --interactive
        """
    )

    parser.add_argument(
        "--total-size",
        type=int,
        default=DEFAULT_TOTAL_MEMORY,
        help=f"Unidades totales de memoria (por defecto: {DEFAULT_TOTAL_MEMORY})"
    )

    parser.add_argument(
        "--page-size",
        type=int,
        default=DEFAULT_PAGE_SIZE,
        help=f"Unidades por página (por defecto: {DEFAULT_PAGE_SIZE})"
    )

    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in Mode],
        default=Mode.PAGING.value,
        help="Modo inicial de gestión de memoria"
    )

    parser.add_argument(
        "--csv",
        help="Ruta a un CSV con operaciones (action,name,size,kind,pid,mode)"
    )

    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Abre una sesión interactiva"
    )

    parser.add_argument(
        "--no-header",
        action="store_true",
        help="No imprimir encabezados en la salida"
    )

    parser.add_argument(
        "--log-level",
        choices=["INFO", "DEBUG"],
        default="INFO",
        help="Nivel de log: INFO (básico) o DEBUG (detallado)"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Valida las invariantes del motor después de cada operación"
    )

    return parser


def render(engine: AllocationEngine, show_header: bool = True) -> str:
    """Devuelve el estado actual del motor como texto."""
    return pretty_print_state(
        engine.mode,
        engine.get_stats(),
        engine.get_layout(),
        engine.get_processes(),
        frame_table=engine.get_frame_table(),
        show_header=show_header,
    )


def parse_command(line: str) -> Optional[Operation]:
    """
    Convierte una línea interactiva en una operación.

    Args:
        line: Texto ingresado por el usuario.

    Returns:
        La operación, o None si la línea está vacía.

    Raises:
        ValueError: Si el comando o sus argumentos no son válidos.
    """
    words = shlex.split(line)
    if not words:
        return None

    action = _ALIASES.get(words[0].lower(), words[0].lower())
    args = words[1:]
    if action not in ACTIONS:
        raise ValueError(f"Comando desconocido: {words[0]}")

    if action == "alloc":
        if len(args) not in (2, 3):
            raise ValueError("Uso: a NOMBRE TAMAÑO [TIPO]")
        kind = args[2] if len(args) == 3 else "code"
        return Operation(action="alloc", name=args[0], size=int(args[1]), kind=kind)
    if action == "free":
        if len(args) != 1:
            raise ValueError("Uso: d PID")
        return Operation(action="free", pid=int(args[0]))
    if action == "mode":
        if len(args) != 1:
            raise ValueError("Uso: m MODO")
        return Operation(action="mode", mode=args[0])
    return Operation(action=action)


def run_interactive(engine: AllocationEngine, show_header: bool = True) -> None:
    """Bucle interactivo; el estado se reimprime cada vez que cambia la memoria."""
    engine.subscribe(make_listener(on_memory_changed=lambda: print(render(engine, show_header))))
    print("Modo interactivo activado. Escribe 'h' para ver los comandos.")

    while True:
        try:
            user_input = input(f"[{engine.mode.value}]> ")
        except EOFError:
            break

        comando = user_input.strip().lower()
        if comando in {"q", "quit", "exit"}:
            break
        if comando in {"h", "help", "?"}:
            print(HELP_TEXT)
            continue
        if comando == "s":
            print(render(engine, show_header))
            continue

        try:
            operation = parse_command(user_input)
        except ValueError as e:
            print(f"Error: {e}")
            continue

        if operation is not None and not apply_operation(engine, operation):
            print(f"La operación '{operation.action}' no se aplicó.")


def main(argv: Optional[List[str]] = None):
    """
    Punto de entrada principal de la aplicación CLI.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        engine = AllocationEngine(
            total_memory_size=args.total_size,
            page_size=args.page_size,
            debug_mode=args.debug,
            log_level=args.log_level,
        )
        if args.mode != engine.mode.value:
            engine.set_mode(args.mode)

        if args.csv:
            operations = read_operations_csv(args.csv)
            if not operations:
                print("No se cargaron operaciones desde el archivo CSV.")
                return 1
            results = run_operations(engine, operations)
            failed = results.count(False)
            if failed:
                print(f"{failed} de {len(results)} operaciones no se aplicaron.")
        elif args.interactive:
            run_interactive(engine, not args.no_header)
        else:
            for name, size in DEMO_PROCESSES:
                engine.allocate(name, size)

        print(render(engine, not args.no_header))
        return 0

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
