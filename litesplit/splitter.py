"""Split a schematic into fixed-size chunk schematics.

Every region of the source is cut into ``chunk_size`` cubes (smaller at
the far edges). Each chunk is saved as its own ``.litematic`` under
``{base}_chunks/`` with its region positioned relative to the shared origin,
so loading all chunks at one placement point rebuilds the original.
Failures of a single region, chunk or material list are logged and skipped;
only a run that saves nothing, or a fault outside those loops, fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from .config import SplitterConfig
from .errors import MissingRegionData, NoChunksProduced, PersistenceFault
from .extract import extract_chunk
from .grid import ChunkPlan, iter_chunk_plans, plan_grid
from .litematic import base_file_name, write_schematic, write_text_report
from .materials import MaterialResolver, Resolver, aggregate_materials, render_report
from .schematic import Schematic, SubRegion


LOG = logging.getLogger(__name__)

ChunkWriter = Callable[[Path, str, Schematic], bool]
ReportWriter = Callable[[Path, str, str], bool]
Notifier = Callable[[str, str], None]


@dataclass
class SplitResult:
    ok: bool
    chunk_count: int = 0
    output_dir: Optional[Path] = None
    error: Optional[str] = None
    skipped_regions: list[str] = field(default_factory=list)
    failed_chunks: list[str] = field(default_factory=list)
    failed_reports: list[str] = field(default_factory=list)


def chunk_file_name(base_name: str, region_name: str, index: tuple[int, int, int]) -> str:
    ix, iy, iz = index
    return f"{base_name}_{region_name}_x{ix}_y{iy}_z{iz}"


def _log_notify(kind: str, message: str) -> None:
    if kind == "error":
        LOG.error(message)
    else:
        LOG.info(message)


def _validate_region(region: SubRegion) -> None:
    if region.size is None or region.position is None:
        raise MissingRegionData(f"region '{region.name}' is missing size or position data")
    if 0 in region.size:
        raise MissingRegionData(f"region '{region.name}' has a zero-length size {region.size}")


class SchematicSplitter:
    def __init__(
        self,
        config: SplitterConfig,
        *,
        chunk_writer: Optional[ChunkWriter] = None,
        report_writer: Optional[ReportWriter] = None,
        resolver: Optional[Resolver] = None,
        notify: Optional[Notifier] = None,
        logger: Optional[logging.Logger] = None,
        timestamp: Optional[int] = None,
    ) -> None:
        self.config = config
        self.chunk_writer = chunk_writer or self._default_chunk_writer
        self.report_writer = report_writer or write_text_report
        self.resolver = resolver or MaterialResolver()
        self.notify = notify or _log_notify
        self.log = logger or LOG
        self.timestamp = timestamp

    def _default_chunk_writer(self, directory: Path, base_name: str, chunk: Schematic) -> bool:
        return write_schematic(directory, base_name, chunk, overwrite=self.config.overwrite)

    def split(self, schematic: Schematic, source_path: Path, file_name: Optional[str] = None) -> SplitResult:
        """Split ``schematic`` next to ``source_path``; never raises."""
        if not self.config.enabled:
            return SplitResult(ok=True)

        file_name = file_name or source_path.name
        try:
            base_name = base_file_name(file_name)
            chunks_dir = source_path.parent / f"{base_name}_chunks"
            edge = self.config.chunk_size
            self.log.info("Starting schematic split for '%s' into %dx%dx%d chunks", file_name, edge, edge, edge)

            result = SplitResult(ok=False, output_dir=chunks_dir)
            for region in schematic.regions.values():
                try:
                    _validate_region(region)
                except MissingRegionData as exc:
                    self.log.warning("Skipping region '%s' - %s", region.name, exc)
                    result.skipped_regions.append(region.name)
                    continue
                self._split_region(schematic, region, chunks_dir, base_name, result)

            if result.chunk_count == 0:
                raise NoChunksProduced("no chunks were created during split operation")

            result.ok = True
            self.log.info("Successfully split schematic into %d chunks in '%s'", result.chunk_count, chunks_dir)
            self.notify("success", f"Split schematic into {result.chunk_count} chunks in '{chunks_dir.name}'")
            return result
        except NoChunksProduced as exc:
            self.log.warning("%s", exc)
            self.notify("error", f"Failed to split schematic '{file_name}'")
            result.error = type(exc).__name__
            return result
        except Exception:
            self.log.exception("Error splitting schematic '%s'", file_name)
            self.notify("error", f"Failed to split schematic '{file_name}'")
            return SplitResult(ok=False, error="UnrecoverableFault")

    def _split_region(
        self,
        schematic: Schematic,
        region: SubRegion,
        chunks_dir: Path,
        base_name: str,
        result: SplitResult,
    ) -> None:
        assert region.size is not None
        sx, sy, sz = region.size
        edge = self.config.chunk_size
        cx, cy, cz = plan_grid(sx, sy, sz, edge)
        self.log.info(
            "Region '%s' size %dx%dx%d will create %dx%dx%d chunks (%d total)",
            region.name,
            abs(sx),
            abs(sy),
            abs(sz),
            cx,
            cy,
            cz,
            cx * cy * cz,
        )
        for plan in iter_chunk_plans(region.name, region.size, edge):
            chunk = extract_chunk(schematic, region, plan, timestamp=self.timestamp)
            if chunk is None:
                continue
            name = chunk_file_name(base_name, region.name, plan.index)
            if not self._persist_chunk(chunks_dir, name, chunk):
                result.failed_chunks.append(name)
                continue
            result.chunk_count += 1
            if self.config.generate_material_lists and not self._write_material_list(chunk, chunks_dir, name, plan):
                result.failed_reports.append(name)

    def _persist_chunk(self, chunks_dir: Path, name: str, chunk: Schematic) -> bool:
        try:
            if self.chunk_writer(chunks_dir, name, chunk):
                return True
        except PersistenceFault as exc:
            self.log.error("Failed to write chunk: %s (%s)", name, exc)
            return False
        except Exception:
            self.log.exception("Failed to write chunk: %s", name)
            return False
        self.log.error("Failed to write chunk: %s", name)
        return False

    def _write_material_list(self, chunk: Schematic, chunks_dir: Path, name: str, plan: ChunkPlan) -> bool:
        ix, iy, iz = plan.index
        try:
            entries = aggregate_materials(chunk, self.resolver)
            if not entries:
                return True
            content = render_report(entries, plan.index, chunk.metadata.name)
            filename = f"{name}_materials.txt"
            if not self.report_writer(chunks_dir, filename, content):
                self.log.error("Failed to write material list for chunk [%d,%d,%d]", ix, iy, iz)
                return False
        except PersistenceFault as exc:
            self.log.error("Failed to generate material list for chunk [%d,%d,%d]: %s", ix, iy, iz, exc)
            return False
        except Exception:
            self.log.exception("Unexpected error generating material list for chunk [%d,%d,%d]", ix, iy, iz)
            return False
        self.log.debug("Generated material list for chunk [%d,%d,%d]: %s_materials.txt", ix, iy, iz, name)
        return True


def split_and_save_schematic(
    schematic: Schematic,
    source_path: Path,
    file_name: Optional[str] = None,
    config: Optional[SplitterConfig] = None,
) -> SplitResult:
    return SchematicSplitter(config or SplitterConfig.from_env()).split(schematic, source_path, file_name)
