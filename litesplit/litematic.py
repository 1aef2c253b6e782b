"""Read and write Litematica ``.litematic`` files.

Block states are stored as a palette plus a bit-packed LongArray of palette
indices. Unlike vanilla chunk sections, Litematica does not pad the longs:
an entry may straddle two of them.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from .errors import PersistenceFault, SchematicFormatError
from .nbt import TAG_COMPOUND, TAG_DOUBLE, Long, LongArray, NbtList, dumps, read_nbt
from .schematic import (
    BlockStateContainer,
    EntityInfo,
    Schematic,
    SchematicMetadata,
    SubRegion,
    canonical_state,
    parse_block_state,
)


LOG = logging.getLogger(__name__)

FILE_EXTENSION = ".litematic"
AIR_STATE = "minecraft:air"
_U64 = (1 << 64) - 1


def bits_for_palette(palette_size: int) -> int:
    return max(2, (palette_size - 1).bit_length())


def pack_indices(values: list[int], bits: int) -> list[int]:
    """Pack palette indices into signed 64-bit longs, entries spanning longs."""
    total_bits = len(values) * bits
    longs = [0] * ((total_bits + 63) // 64)
    mask = (1 << bits) - 1
    for idx, v in enumerate(values):
        bit_index = idx * bits
        li = bit_index >> 6
        start = bit_index & 63
        v &= mask
        longs[li] |= (v << start) & _U64
        spill = start + bits - 64
        if spill > 0:
            longs[li + 1] |= v >> (bits - spill)
    return [v - (1 << 64) if v >= (1 << 63) else v for v in longs]


def unpack_indices(longs: list[int], bits: int, count: int) -> list[int]:
    data = [v & _U64 for v in longs]
    mask = (1 << bits) - 1
    out = []
    for idx in range(count):
        bit_index = idx * bits
        li = bit_index >> 6
        start = bit_index & 63
        if li >= len(data):
            raise SchematicFormatError("BlockStates array is shorter than the region volume")
        v = data[li] >> start
        spill = start + bits - 64
        if spill > 0:
            v |= (data[li + 1] & ((1 << spill) - 1)) << (bits - spill)
        out.append(v & mask)
    return out


def _vec(compound: Any) -> Optional[tuple[int, int, int]]:
    if not isinstance(compound, dict):
        return None
    try:
        return int(compound["x"]), int(compound["y"]), int(compound["z"])
    except (KeyError, TypeError, ValueError):
        return None


def _vec_nbt(v: tuple[int, int, int]) -> dict[str, int]:
    return {"x": int(v[0]), "y": int(v[1]), "z": int(v[2])}


def _items(value: Any) -> list[Any]:
    if isinstance(value, NbtList):
        return value.items
    if isinstance(value, list):
        return value
    return []


def _palette_state(entry: dict[str, Any]) -> str:
    name = str(entry.get("Name", AIR_STATE))
    props = entry.get("Properties")
    if not isinstance(props, dict):
        return name
    return canonical_state(name, {str(k): str(v) for k, v in props.items()})


def _read_blocks(name: str, raw: dict[str, Any], size: tuple[int, int, int]) -> BlockStateContainer:
    abs_size = (abs(size[0]), abs(size[1]), abs(size[2]))
    palette = [_palette_state(p) for p in _items(raw.get("BlockStatePalette")) if isinstance(p, dict)]
    if not palette:
        raise SchematicFormatError(f"region '{name}': missing BlockStatePalette")
    container = BlockStateContainer(abs_size)
    indices = unpack_indices(list(raw.get("BlockStates") or []), bits_for_palette(len(palette)), container.volume)
    sx, _sy, sz = abs_size
    for idx, pi in enumerate(indices):
        if pi == 0:
            continue
        if pi >= len(palette):
            raise SchematicFormatError(f"region '{name}': palette index {pi} out of range")
        x = idx % sx
        z = (idx // sx) % sz
        y = idx // (sx * sz)
        container.set(x, y, z, palette[pi])
    return container


def _read_region(name: str, raw: dict[str, Any]) -> SubRegion:
    position = _vec(raw.get("Position"))
    size = _vec(raw.get("Size"))
    region = SubRegion(name=name, position=position, size=size)
    if size is None or 0 in size:
        return region
    region.blocks = _read_blocks(name, raw, size)
    for te in _items(raw.get("TileEntities")):
        pos = _vec(te)
        if pos is None:
            LOG.warning("Region '%s': ignoring block entity without position", name)
            continue
        region.tile_entities[pos] = te
    for ent in _items(raw.get("Entities")):
        pos_list = _items(ent.get("Pos")) if isinstance(ent, dict) else []
        if len(pos_list) != 3:
            LOG.warning("Region '%s': ignoring entity without Pos", name)
            continue
        region.entities.append(EntityInfo(pos=(float(pos_list[0]), float(pos_list[1]), float(pos_list[2])), nbt=ent))
    region.pending_block_ticks = list(_items(raw.get("PendingBlockTicks")))
    region.pending_fluid_ticks = list(_items(raw.get("PendingFluidTicks")))
    return region


def schematic_from_nbt(root: dict[str, Any]) -> Schematic:
    meta_raw = root.get("Metadata")
    regions_raw = root.get("Regions")
    if not isinstance(meta_raw, dict) or not isinstance(regions_raw, dict):
        raise SchematicFormatError("not a litematic schematic (expected Metadata and Regions compounds)")
    metadata = SchematicMetadata(
        name=str(meta_raw.get("Name", "")),
        author=str(meta_raw.get("Author", "")),
        description=str(meta_raw.get("Description", "")),
        time_created=int(meta_raw.get("TimeCreated", 0)),
        time_modified=int(meta_raw.get("TimeModified", 0)),
        total_blocks=int(meta_raw.get("TotalBlocks", 0)),
        total_volume=int(meta_raw.get("TotalVolume", 0)),
        region_count=int(meta_raw.get("RegionCount", 0)),
        enclosing_size=_vec(meta_raw.get("EnclosingSize")) or (0, 0, 0),
        preview_image=meta_raw.get("PreviewImageData"),
    )
    schematic = Schematic(
        metadata=metadata,
        data_version=int(root.get("MinecraftDataVersion", 0)),
        version=int(root.get("Version", 0)),
        sub_version=int(root.get("SubVersion", 0)),
    )
    for name, raw in regions_raw.items():
        if not isinstance(raw, dict):
            raise SchematicFormatError(f"region '{name}' is not a compound")
        schematic.add_region(_read_region(name, raw))
    return schematic


def load_schematic(path: Path) -> Schematic:
    return schematic_from_nbt(read_nbt(path))


def _region_nbt(region: SubRegion) -> dict[str, Any]:
    if region.position is None or region.size is None or region.blocks is None:
        raise SchematicFormatError(f"region '{region.name}' is incomplete and cannot be written")
    palette = [AIR_STATE]
    lookup = {AIR_STATE: 0}
    indices = []
    for state in region.blocks.cells():
        if state is None:
            indices.append(0)
            continue
        pi = lookup.get(state)
        if pi is None:
            pi = len(palette)
            lookup[state] = pi
            palette.append(state)
        indices.append(pi)

    palette_nbt = []
    for state in palette:
        name, props = parse_block_state(state)
        entry: dict[str, Any] = {"Name": name}
        if props:
            entry["Properties"] = dict(sorted(props.items()))
        palette_nbt.append(entry)

    tile_entities = [region.tile_entities[pos] for pos in sorted(region.tile_entities)]
    entities = []
    for info in region.entities:
        data = dict(info.nbt)
        data["Pos"] = NbtList(TAG_DOUBLE, [float(v) for v in info.pos])
        entities.append(data)

    return {
        "Position": _vec_nbt(region.position),
        "Size": _vec_nbt(region.size),
        "BlockStatePalette": NbtList(TAG_COMPOUND, palette_nbt),
        "BlockStates": LongArray(pack_indices(indices, bits_for_palette(len(palette)))),
        "TileEntities": NbtList(TAG_COMPOUND, tile_entities),
        "Entities": NbtList(TAG_COMPOUND, entities),
        "PendingBlockTicks": NbtList(TAG_COMPOUND, list(region.pending_block_ticks)),
        "PendingFluidTicks": NbtList(TAG_COMPOUND, list(region.pending_fluid_ticks)),
    }


def schematic_to_nbt(schematic: Schematic) -> dict[str, Any]:
    meta = schematic.metadata
    meta_nbt: dict[str, Any] = {
        "Name": meta.name,
        "Author": meta.author,
        "Description": meta.description,
        "RegionCount": int(meta.region_count),
        "TotalVolume": int(meta.total_volume),
        "TotalBlocks": int(meta.total_blocks),
        "TimeCreated": Long(meta.time_created),
        "TimeModified": Long(meta.time_modified),
        "EnclosingSize": _vec_nbt(meta.enclosing_size),
    }
    if meta.preview_image:
        meta_nbt["PreviewImageData"] = meta.preview_image
    return {
        "MinecraftDataVersion": int(schematic.data_version),
        "Version": int(schematic.version),
        "SubVersion": int(schematic.sub_version),
        "Metadata": meta_nbt,
        "Regions": {name: _region_nbt(region) for name, region in schematic.regions.items()},
    }


def base_file_name(file_name: str) -> str:
    if file_name.endswith(FILE_EXTENSION):
        return file_name[: -len(FILE_EXTENSION)]
    return file_name


def write_schematic(directory: Path, base_name: str, schematic: Schematic, overwrite: bool = True) -> bool:
    """Write ``{directory}/{base_name}.litematic``.

    Returns False when the file exists and ``overwrite`` is off.
    """
    path = directory / f"{base_file_name(base_name)}{FILE_EXTENSION}"
    if path.exists() and not overwrite:
        LOG.warning("Refusing to overwrite existing schematic %s", path)
        return False
    data = dumps(schematic_to_nbt(schematic))
    try:
        directory.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as exc:
        raise PersistenceFault(f"failed to write {path}: {exc}") from exc
    return True


def write_text_report(directory: Path, filename: str, content: str) -> bool:
    path = directory / filename
    try:
        directory.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise PersistenceFault(f"failed to write {path}: {exc}") from exc
    return True
