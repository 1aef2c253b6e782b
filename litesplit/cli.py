"""Command-line entry point: ``litesplit path/to/build.litematic``."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import SplitterConfig
from .errors import SchematicFormatError
from .grid import iter_chunk_plans, plan_grid
from .litematic import load_schematic
from .nbt import NBTError
from .schematic import Schematic
from .splitter import SchematicSplitter


LOG = logging.getLogger("litesplit")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        prog="litesplit",
        description="Split a Litematica schematic into chunk schematics with per-chunk material lists",
    )
    ap.add_argument("schematic", help="Path to the .litematic file")
    ap.add_argument("--chunk-size", type=int, default=None, help="Chunk edge length in blocks (1-256, default 16)")
    ap.add_argument(
        "--no-material-lists",
        dest="material_lists",
        action="store_false",
        default=None,
        help="Do not write <chunk>_materials.txt files",
    )
    ap.add_argument(
        "--no-overwrite",
        dest="overwrite",
        action="store_false",
        default=None,
        help="Leave existing chunk files untouched",
    )
    ap.add_argument(
        "--output",
        help="Directory that receives <name>_chunks/ (default: next to the schematic)",
    )
    ap.add_argument("--dry-run", action="store_true", help="Print the chunk grid without writing anything")
    ap.add_argument("--log-level", default=None, help="Logging level (default: INFO or LITESPLIT_LOG_LEVEL)")
    return ap.parse_args(argv)


def _print_plan(schematic: Schematic, chunk_size: int) -> None:
    for region in schematic.regions.values():
        if region.size is None or region.position is None or 0 in region.size:
            print(f"[skip] region '{region.name}': missing size or position")
            continue
        cx, cy, cz = plan_grid(*region.size, chunk_size)
        sx, sy, sz = region.abs_size
        print(f"region '{region.name}' size {sx}x{sy}x{sz} -> {cx}x{cy}x{cz} chunks ({cx * cy * cz} total)")
        for plan in iter_chunk_plans(region.name, region.size, chunk_size):
            ex, ey, ez = plan.extent
            print(f"  {plan.index} extent {ex}x{ey}x{ez} offset {plan.offset}")


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    try:
        config = SplitterConfig.from_env(
            chunk_size=args.chunk_size,
            generate_material_lists=args.material_lists,
            overwrite=args.overwrite,
            log_level=args.log_level,
        )
    except ValueError as exc:
        print(f"[error] invalid configuration: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    path = Path(args.schematic)
    if not path.exists():
        print(f"Missing schematic: {path}", file=sys.stderr)
        return 2
    try:
        schematic = load_schematic(path)
    except (NBTError, SchematicFormatError) as exc:
        print(f"[error] {path}: {exc}", file=sys.stderr)
        return 2

    if args.dry_run:
        _print_plan(schematic, config.chunk_size)
        return 0

    if not config.enabled:
        LOG.info("Splitting is disabled (LITESPLIT_ENABLED); nothing to do")
        return 0

    # The chunk folder is placed next to the source path, so point it at --output.
    source_path = Path(args.output) / path.name if args.output else path
    result = SchematicSplitter(config).split(schematic, source_path, path.name)
    if not result.ok:
        print(f"[error] failed to split {path.name} ({result.error})", file=sys.stderr)
        return 1
    print(f"[done] {result.chunk_count} chunk(s) in {result.output_dir}")
    return 0
