from __future__ import annotations

import copy
import logging
import time
from typing import Optional

from .errors import ChunkExtractionFault
from .grid import ChunkPlan
from .nbt import TAG_DOUBLE, NbtList
from .schematic import BlockStateContainer, EntityInfo, Schematic, SchematicMetadata, SubRegion


LOG = logging.getLogger(__name__)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _signed_size(region: SubRegion, plan: ChunkPlan) -> tuple[int, int, int]:
    assert region.size is not None
    out = []
    for size_axis, extent in zip(region.size, plan.extent):
        out.append(extent if size_axis >= 0 else -extent)
    return out[0], out[1], out[2]


def _copy_blocks(region: SubRegion, plan: ChunkPlan) -> tuple[BlockStateContainer, int]:
    source = region.blocks
    if source is None:
        raise ChunkExtractionFault(f"region '{region.name}' has no block container")
    size_x, size_y, size_z = plan.extent
    sx, sy, sz = plan.start
    chunk = BlockStateContainer((size_x, size_y, size_z))
    block_count = 0
    for y in range(size_y):
        for z in range(size_z):
            for x in range(size_x):
                state = source.get(sx + x, sy + y, sz + z)
                if state is not None:
                    chunk.set(x, y, z, state)
                    block_count += 1
    return chunk, block_count


def _copy_tile_entities(region: SubRegion, plan: ChunkPlan) -> dict[tuple[int, int, int], dict]:
    sx, sy, sz = plan.start
    out = {}
    for (x, y, z), nbt in region.tile_entities.items():
        if not plan.contains(x, y, z):
            continue
        local = (x - sx, y - sy, z - sz)
        data = copy.deepcopy(nbt)
        data["x"], data["y"], data["z"] = local
        out[local] = data
    return out


def _copy_entities(region: SubRegion, plan: ChunkPlan) -> list[EntityInfo]:
    sx, sy, sz = plan.start
    out = []
    for info in region.entities:
        ex, ey, ez = info.pos
        if not plan.contains(ex, ey, ez):
            continue
        local = (ex - sx, ey - sy, ez - sz)
        data = copy.deepcopy(info.nbt)
        data["Pos"] = NbtList(TAG_DOUBLE, [float(v) for v in local])
        out.append(EntityInfo(pos=local, nbt=data))
    return out


def _build_chunk(source: Schematic, region: SubRegion, plan: ChunkPlan, timestamp: int) -> Optional[Schematic]:
    blocks, block_count = _copy_blocks(region, plan)
    tile_entities = _copy_tile_entities(region, plan)
    entities = _copy_entities(region, plan)
    if block_count == 0 and not tile_entities and not entities:
        LOG.debug("Chunk %s of region '%s' is empty, skipping", plan.index, region.name)
        return None

    ix, iy, iz = plan.index
    source_name = source.metadata.name
    chunk_region = SubRegion(
        name=region.name,
        position=plan.offset,
        size=_signed_size(region, plan),
        blocks=blocks,
        tile_entities=tile_entities,
        entities=entities,
    )
    chunk = Schematic(
        metadata=SchematicMetadata(
            name=f"{source_name}_chunk",
            author=source.metadata.author,
            description=f"Chunk [{ix},{iy},{iz}] of {source_name}",
            time_created=timestamp,
            time_modified=timestamp,
        ),
        data_version=source.data_version,
        version=source.version,
        sub_version=source.sub_version,
    )
    chunk.add_region(chunk_region)
    chunk.update_totals()
    return chunk


def extract_chunk(
    source: Schematic,
    region: SubRegion,
    plan: ChunkPlan,
    *,
    timestamp: Optional[int] = None,
) -> Optional[Schematic]:
    """Cut the chunk described by ``plan`` out of ``region``.

    Returns a standalone single-region schematic, or ``None`` when the plan
    covers nothing (zero extent or no blocks, block entities or entities)
    or when the copy fails. Failures are logged, never raised.
    """
    if plan.is_empty:
        return None
    if timestamp is None:
        timestamp = source.metadata.time_modified or _now_ms()
    try:
        return _build_chunk(source, region, plan, timestamp)
    except Exception:
        ix, iy, iz = plan.index
        LOG.exception("Error creating chunk schematic at [%d,%d,%d] of region '%s'", ix, iy, iz, region.name)
        return None
