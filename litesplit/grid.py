"""Chunk grid arithmetic.

Everything here is pure: no I/O, no logging. Chunk offsets are expressed
relative to the shared origin (0, 0, 0), not to the region's position, so
chunks from every region of a split line up when placed at one point.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from .errors import InvalidConfiguration
from .schematic import Vec3


def _check_edge(chunk_edge: int) -> None:
    if chunk_edge < 1:
        raise InvalidConfiguration(f"chunk edge must be >= 1, got {chunk_edge}")


def chunks_along(size_axis: int, chunk_edge: int) -> int:
    _check_edge(chunk_edge)
    extent = abs(size_axis)
    return max(1, -(-extent // chunk_edge))


def plan_grid(size_x: int, size_y: int, size_z: int, chunk_edge: int) -> Vec3:
    return (
        chunks_along(size_x, chunk_edge),
        chunks_along(size_y, chunk_edge),
        chunks_along(size_z, chunk_edge),
    )


def plan_chunk_bounds(size_axis: int, index: int, chunk_edge: int) -> tuple[int, int]:
    """Local ``(start, end)`` of chunk ``index`` on one axis, end exclusive."""
    _check_edge(chunk_edge)
    start = index * chunk_edge
    end = min(start + chunk_edge, abs(size_axis))
    return start, end


def plan_offset(index: int, chunk_edge: int, extent: int, size_axis: int) -> int:
    sign = 1 if size_axis >= 0 else -1
    offset = sign * index * chunk_edge
    if sign < 0:
        offset -= extent
    return offset


@dataclass(frozen=True)
class ChunkPlan:
    region_name: str
    index: Vec3
    start: Vec3
    end: Vec3
    offset: Vec3

    @property
    def extent(self) -> Vec3:
        return (
            self.end[0] - self.start[0],
            self.end[1] - self.start[1],
            self.end[2] - self.start[2],
        )

    @property
    def is_empty(self) -> bool:
        return any(e <= 0 for e in self.extent)

    def contains(self, x: float, y: float, z: float) -> bool:
        return (
            self.start[0] <= x < self.end[0]
            and self.start[1] <= y < self.end[1]
            and self.start[2] <= z < self.end[2]
        )


def plan_chunk(region_name: str, size: Vec3, index: Vec3, chunk_edge: int) -> ChunkPlan:
    starts = []
    ends = []
    offsets = []
    for size_axis, i in zip(size, index):
        start, end = plan_chunk_bounds(size_axis, i, chunk_edge)
        starts.append(start)
        ends.append(end)
        offsets.append(plan_offset(i, chunk_edge, end - start, size_axis))
    return ChunkPlan(
        region_name=region_name,
        index=(index[0], index[1], index[2]),
        start=(starts[0], starts[1], starts[2]),
        end=(ends[0], ends[1], ends[2]),
        offset=(offsets[0], offsets[1], offsets[2]),
    )


def iter_chunk_plans(region_name: str, size: Vec3, chunk_edge: int) -> Iterator[ChunkPlan]:
    """Yield plans in x-major, then y, then z order."""
    chunks_x, chunks_y, chunks_z = plan_grid(size[0], size[1], size[2], chunk_edge)
    for ix in range(chunks_x):
        for iy in range(chunks_y):
            for iz in range(chunks_z):
                yield plan_chunk(region_name, size, (ix, iy, iz), chunk_edge)
