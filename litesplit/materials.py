"""Material lists for chunk schematics.

A resolver turns one placed block state into the items needed to place it.
The aggregator sums those over a schematic and the renderer writes the
fixed-layout text report saved next to each chunk.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from .schematic import Schematic, is_air, parse_block_state


STACK_SIZE = 64
DOUBLE_CHEST_SLOTS = 54
REPORT_WIDTH = 60

MaterialContribution = tuple[str, str, int]
Resolver = Callable[[str], Sequence[MaterialContribution]]

_NOTHING = {
    "minecraft:air",
    "minecraft:cave_air",
    "minecraft:void_air",
    "minecraft:piston_head",
    "minecraft:moving_piston",
    "minecraft:fire",
    "minecraft:soul_fire",
    "minecraft:nether_portal",
    "minecraft:end_portal",
    "minecraft:end_gateway",
    "minecraft:bubble_column",
    "minecraft:frosted_ice",
}

_ITEM_FOR_BLOCK = {
    "minecraft:wall_torch": "minecraft:torch",
    "minecraft:soul_wall_torch": "minecraft:soul_torch",
    "minecraft:redstone_wall_torch": "minecraft:redstone_torch",
    "minecraft:copper_wall_torch": "minecraft:copper_torch",
    "minecraft:wheat": "minecraft:wheat_seeds",
    "minecraft:carrots": "minecraft:carrot",
    "minecraft:potatoes": "minecraft:potato",
    "minecraft:beetroots": "minecraft:beetroot_seeds",
    "minecraft:pumpkin_stem": "minecraft:pumpkin_seeds",
    "minecraft:attached_pumpkin_stem": "minecraft:pumpkin_seeds",
    "minecraft:melon_stem": "minecraft:melon_seeds",
    "minecraft:attached_melon_stem": "minecraft:melon_seeds",
    "minecraft:cocoa": "minecraft:cocoa_beans",
    "minecraft:sweet_berry_bush": "minecraft:sweet_berries",
    "minecraft:cave_vines": "minecraft:glow_berries",
    "minecraft:cave_vines_plant": "minecraft:glow_berries",
    "minecraft:kelp_plant": "minecraft:kelp",
    "minecraft:bamboo_sapling": "minecraft:bamboo",
    "minecraft:tripwire": "minecraft:string",
    "minecraft:redstone_wire": "minecraft:redstone",
    "minecraft:farmland": "minecraft:dirt",
    "minecraft:dirt_path": "minecraft:dirt",
    "minecraft:torchflower_crop": "minecraft:torchflower_seeds",
    "minecraft:pitcher_crop": "minecraft:pitcher_pod",
    "minecraft:twisting_vines_plant": "minecraft:twisting_vines",
    "minecraft:weeping_vines_plant": "minecraft:weeping_vines",
    "minecraft:big_dripleaf_stem": "minecraft:big_dripleaf",
    "minecraft:powder_snow": "minecraft:powder_snow_bucket",
}

# Potted plants whose block name differs from the item.
_POTTED_ITEMS = {
    "azalea_bush": "azalea",
    "flowering_azalea_bush": "flowering_azalea",
}

_FLUID_BUCKETS = {
    "minecraft:water": "minecraft:water_bucket",
    "minecraft:lava": "minecraft:lava_bucket",
}

# Block properties that encode how many items one block holds.
_COUNT_PROPERTIES = ("candles", "pickles", "eggs", "layers", "flower_amount", "segment_amount")

_DISPLAY_NAMES = {
    "minecraft:tnt": "TNT",
    "minecraft:redstone": "Redstone Dust",
}


def display_name(item_id: str) -> str:
    known = _DISPLAY_NAMES.get(item_id)
    if known is not None:
        return known
    path = item_id.split(":", 1)[-1]
    return " ".join(word.capitalize() for word in path.split("_") if word)


def _wall_variant_item(name: str) -> Optional[str]:
    ns, _, path = name.partition(":")
    if path.endswith("_wall_hanging_sign"):
        return f"{ns}:{path[: -len('_wall_hanging_sign')]}_hanging_sign"
    for suffix in ("_wall_sign", "_wall_banner", "_wall_head", "_wall_skull", "_wall_fan"):
        if path.endswith(suffix):
            return f"{ns}:{path[: -len(suffix)]}{suffix[len('_wall'):]}"
    return None


def _item(item_id: str, count: int = 1) -> MaterialContribution:
    return item_id, display_name(item_id), count


class MaterialResolver:
    """Default block-state to item mapping for vanilla blocks."""

    def __call__(self, block_state: str) -> list[MaterialContribution]:
        return self.resolve(block_state)

    def resolve(self, block_state: str) -> list[MaterialContribution]:
        if is_air(block_state):
            return []
        name, props = parse_block_state(block_state)
        if name in _NOTHING:
            return []
        if props.get("half") == "upper" or props.get("part") == "head":
            return []

        bucket = _FLUID_BUCKETS.get(name)
        if bucket is not None:
            if props.get("level", "0") != "0":
                return []
            return [_item(bucket)]

        ns, _, path = name.partition(":")
        if path.startswith("potted_"):
            plant = path[len("potted_") :]
            plant = _POTTED_ITEMS.get(plant, plant)
            return [_item(f"{ns}:flower_pot"), _item(f"{ns}:{plant}")]

        item_id = _ITEM_FOR_BLOCK.get(name) or _wall_variant_item(name) or name

        count = 1
        if props.get("type") == "double" and path.endswith("_slab"):
            count = 2
        for key in _COUNT_PROPERTIES:
            if key in props:
                try:
                    count = max(1, int(props[key]))
                except ValueError:
                    pass
                break
        return [_item(item_id, count)]


@dataclass(frozen=True)
class MaterialEntry:
    item_id: str
    display_name: str
    count: int

    @property
    def stacks(self) -> int:
        return self.count // STACK_SIZE

    @property
    def remainder(self) -> int:
        return self.count % STACK_SIZE

    @property
    def stacks_needed(self) -> int:
        return -(-self.count // STACK_SIZE)


def aggregate_materials(schematic: Schematic, resolver: Optional[Resolver] = None) -> list[MaterialEntry]:
    """Sum the items needed for every block of every region, sorted by name."""
    resolve = resolver or MaterialResolver()
    counts: dict[str, int] = {}
    names: dict[str, str] = {}
    for region in schematic.regions.values():
        if region.blocks is None:
            continue
        for _x, _y, _z, state in region.blocks.iter_present():
            for item_id, name, qty in resolve(state):
                if qty <= 0:
                    continue
                counts[item_id] = counts.get(item_id, 0) + int(qty)
                names.setdefault(item_id, name)
    entries = [MaterialEntry(item_id=i, display_name=names[i], count=c) for i, c in counts.items()]
    entries.sort(key=lambda e: (e.display_name, e.item_id))
    return entries


@dataclass(frozen=True)
class MaterialTotals:
    total_items: int
    total_stacks: int

    @property
    def chest_fraction(self) -> float:
        return self.total_stacks / float(DOUBLE_CHEST_SLOTS)


def material_totals(entries: Iterable[MaterialEntry]) -> MaterialTotals:
    total_items = 0
    total_stacks = 0
    for entry in entries:
        total_items += entry.count
        total_stacks += entry.stacks_needed
    return MaterialTotals(total_items=total_items, total_stacks=total_stacks)


def format_entry(entry: MaterialEntry) -> str:
    line = f"{entry.display_name:<40} : {entry.count:>6,} items"
    if entry.stacks > 0:
        line += f"  ({entry.stacks} stacks"
        if entry.remainder > 0:
            line += f" + {entry.remainder}"
        line += ")"
    return line


def render_report(entries: Sequence[MaterialEntry], chunk_index: tuple[int, int, int], schematic_name: str) -> str:
    ix, iy, iz = chunk_index
    totals = material_totals(entries)
    border = "=" * REPORT_WIDTH
    lines = [
        border,
        f"Material List for Chunk [{ix}, {iy}, {iz}]",
        f"Schematic: {schematic_name}",
        border,
        "",
        f"Total Items: {totals.total_items:,}",
        f"Total Stacks: {totals.total_stacks:,} ({totals.chest_fraction:.1f} full double chests)",
        "",
        "-" * REPORT_WIDTH,
        "",
    ]
    lines.extend(format_entry(e) for e in entries)
    lines.extend(["", border, "Generated by litesplit", border])
    return "\n".join(lines) + "\n"
