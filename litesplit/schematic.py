"""In-memory model of a Litematica schematic.

A schematic holds named sub-regions. Each region has a signed size, a
position relative to the schematic origin and a dense block container
indexed from the region's minimum corner. Block entities and entities are
kept as side tables of plain NBT compounds in region-local coordinates.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional


Vec3 = tuple[int, int, int]

AIR_BLOCKS = {"minecraft:air", "minecraft:cave_air", "minecraft:void_air"}
STATE_RE = re.compile(r"^(?P<name>[a-z0-9_./-]+:[a-z0-9_./-]+)(?:\[(?P<props>.*)\])?$")


def parse_block_state(state: str) -> tuple[str, dict[str, str]]:
    m = STATE_RE.match(state.strip())
    if not m:
        raise ValueError(f"invalid block state syntax: {state}")
    name = m.group("name")
    props_raw = m.group("props")
    props: dict[str, str] = {}
    if props_raw:
        for segment in props_raw.split(","):
            segment = segment.strip()
            if not segment:
                continue
            if "=" not in segment:
                raise ValueError(f"invalid property segment '{segment}' in state '{state}'")
            k, v = segment.split("=", 1)
            props[k.strip()] = v.strip()
    return name, props


def canonical_state(name: str, props: dict[str, str]) -> str:
    if not props:
        return name
    return f"{name}[{','.join(f'{k}={props[k]}' for k in sorted(props))}]"


def is_air(state: Optional[str]) -> bool:
    if state is None:
        return True
    return state.split("[", 1)[0] in AIR_BLOCKS


class BlockStateContainer:
    """Dense x/y/z grid of optional block-state strings.

    Air is stored as ``None`` so "absent" and "air" are the same thing.
    """

    def __init__(self, size: Vec3):
        sx, sy, sz = size
        if sx <= 0 or sy <= 0 or sz <= 0:
            raise ValueError(f"container size must be positive, got {size}")
        self.size: Vec3 = (sx, sy, sz)
        self._cells: list[Optional[str]] = [None] * (sx * sy * sz)

    @property
    def volume(self) -> int:
        return len(self._cells)

    def index(self, x: int, y: int, z: int) -> int:
        sx, sy, sz = self.size
        if not (0 <= x < sx and 0 <= y < sy and 0 <= z < sz):
            raise IndexError(f"({x}, {y}, {z}) outside container of size {self.size}")
        return (y * sz + z) * sx + x

    def get(self, x: int, y: int, z: int) -> Optional[str]:
        return self._cells[self.index(x, y, z)]

    def set(self, x: int, y: int, z: int, state: Optional[str]) -> None:
        self._cells[self.index(x, y, z)] = None if is_air(state) else state

    def count_present(self) -> int:
        return sum(1 for s in self._cells if s is not None)

    def iter_present(self) -> Iterator[tuple[int, int, int, str]]:
        sx, _sy, sz = self.size
        for idx, state in enumerate(self._cells):
            if state is None:
                continue
            x = idx % sx
            z = (idx // sx) % sz
            y = idx // (sx * sz)
            yield x, y, z, state

    def cells(self) -> list[Optional[str]]:
        return list(self._cells)


@dataclass
class EntityInfo:
    pos: tuple[float, float, float]
    nbt: dict[str, Any]


@dataclass
class SubRegion:
    name: str
    position: Optional[Vec3]
    size: Optional[Vec3]
    blocks: Optional[BlockStateContainer] = None
    tile_entities: dict[Vec3, dict[str, Any]] = field(default_factory=dict)
    entities: list[EntityInfo] = field(default_factory=list)
    pending_block_ticks: list[dict[str, Any]] = field(default_factory=list)
    pending_fluid_ticks: list[dict[str, Any]] = field(default_factory=list)

    @property
    def abs_size(self) -> Vec3:
        if self.size is None:
            raise ValueError(f"region '{self.name}' has no size")
        return abs(self.size[0]), abs(self.size[1]), abs(self.size[2])


@dataclass
class SchematicMetadata:
    name: str = ""
    author: str = ""
    description: str = ""
    time_created: int = 0
    time_modified: int = 0
    total_blocks: int = 0
    total_volume: int = 0
    region_count: int = 0
    enclosing_size: Vec3 = (0, 0, 0)
    preview_image: Optional[list[int]] = None


@dataclass
class Schematic:
    metadata: SchematicMetadata = field(default_factory=SchematicMetadata)
    regions: dict[str, SubRegion] = field(default_factory=dict)
    data_version: int = 3955
    version: int = 6
    sub_version: int = 1

    def add_region(self, region: SubRegion) -> None:
        if region.name in self.regions:
            raise ValueError(f"duplicate region name: {region.name}")
        self.regions[region.name] = region

    def update_totals(self) -> None:
        """Recompute the metadata counters from the regions."""
        total_blocks = 0
        total_volume = 0
        for region in self.regions.values():
            if region.blocks is not None:
                total_blocks += region.blocks.count_present()
                total_volume += region.blocks.volume
        self.metadata.total_blocks = total_blocks
        self.metadata.total_volume = total_volume
        self.metadata.region_count = len(self.regions)
        self.metadata.enclosing_size = _enclosing_size(self.regions.values())


def _enclosing_size(regions) -> Vec3:
    mins: Optional[list[int]] = None
    maxs: Optional[list[int]] = None
    for region in regions:
        if region.position is None or region.size is None:
            continue
        lo = []
        hi = []
        for p, s in zip(region.position, region.size):
            # a negative size extends from the position toward -inf
            end = p + s - 1 if s > 0 else p + s + 1
            lo.append(min(p, end))
            hi.append(max(p, end))
        if mins is None or maxs is None:
            mins, maxs = lo, hi
        else:
            mins = [min(a, b) for a, b in zip(mins, lo)]
            maxs = [max(a, b) for a, b in zip(maxs, hi)]
    if mins is None or maxs is None:
        return 0, 0, 0
    return maxs[0] - mins[0] + 1, maxs[1] - mins[1] + 1, maxs[2] - mins[2] + 1
