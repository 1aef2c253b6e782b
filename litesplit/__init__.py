"""Split Litematica schematics into fixed-size, independently placeable chunks."""

from .config import SplitterConfig
from .grid import ChunkPlan, plan_chunk_bounds, plan_grid, plan_offset
from .litematic import load_schematic, write_schematic
from .materials import MaterialEntry, MaterialResolver, aggregate_materials, render_report
from .splitter import SchematicSplitter, SplitResult, split_and_save_schematic

__all__ = [
    "ChunkPlan",
    "MaterialEntry",
    "MaterialResolver",
    "SchematicSplitter",
    "SplitResult",
    "SplitterConfig",
    "aggregate_materials",
    "load_schematic",
    "plan_chunk_bounds",
    "plan_grid",
    "plan_offset",
    "render_report",
    "split_and_save_schematic",
    "write_schematic",
]
