from __future__ import annotations

from pathlib import Path

import pytest
from builders import make_region, make_schematic

import litesplit.splitter as splitter_mod
from litesplit.config import SplitterConfig
from litesplit.errors import PersistenceFault
from litesplit.litematic import load_schematic, write_schematic
from litesplit.schematic import SubRegion
from litesplit.splitter import SchematicSplitter, chunk_file_name, split_and_save_schematic


def run_split(tmp_path: Path, schematic, **kwargs):
    config_kwargs = {k: kwargs.pop(k) for k in list(kwargs) if k in SplitterConfig.model_fields}
    config = SplitterConfig(**{"chunk_size": 4, **config_kwargs})
    notes: list[tuple[str, str]] = []
    splitter = SchematicSplitter(config, notify=lambda kind, msg: notes.append((kind, msg)), **kwargs)
    result = splitter.split(schematic, tmp_path / "tower.litematic")
    return result, notes


def reassemble(chunks_dir: Path) -> dict[tuple[int, int, int], str]:
    placed: dict[tuple[int, int, int], str] = {}
    for path in sorted(chunks_dir.glob("*.litematic")):
        chunk = load_schematic(path)
        for region in chunk.regions.values():
            px, py, pz = region.position
            for x, y, z, state in region.blocks.iter_present():
                key = (px + x, py + y, pz + z)
                assert key not in placed, f"overlap at {key} from {path.name}"
                placed[key] = state
    return placed


def test_chunks_reassemble_the_region(tmp_path: Path):
    region = make_region("main", (10, 6, 5), position=(3, -2, 7))
    result, notes = run_split(tmp_path, make_schematic(region))

    assert result.ok
    assert result.chunk_count == 3 * 2 * 2
    assert result.output_dir == tmp_path / "tower_chunks"
    assert notes == [("success", "Split schematic into 12 chunks in 'tower_chunks'")]

    expected = {(x, y, z): s for x, y, z, s in region.blocks.iter_present()}
    assert reassemble(result.output_dir) == expected


def test_chunk_files_are_named_by_index(tmp_path: Path):
    region = make_region("main", (8, 4, 4))
    result, _ = run_split(tmp_path, make_schematic(region))
    names = sorted(p.name for p in result.output_dir.glob("*.litematic"))
    assert names == ["tower_main_x0_y0_z0.litematic", "tower_main_x1_y0_z0.litematic"]
    assert chunk_file_name("tower", "main", (1, 0, 0)) == "tower_main_x1_y0_z0"


def test_material_lists_are_written(tmp_path: Path):
    region = make_region("main", (4, 4, 4), fill=lambda x, y, z: "minecraft:stone")
    result, _ = run_split(tmp_path, make_schematic(region))
    report = (result.output_dir / "tower_main_x0_y0_z0_materials.txt").read_text(encoding="utf-8")
    assert "Material List for Chunk [0, 0, 0]" in report
    assert "Schematic: tower_chunk" in report
    assert "Total Items: 64" in report
    assert "Total Stacks: 1 (0.0 full double chests)" in report


def test_material_lists_can_be_disabled(tmp_path: Path):
    region = make_region("main", (4, 4, 4))
    result, _ = run_split(tmp_path, make_schematic(region), generate_material_lists=False)
    assert result.ok
    assert list(result.output_dir.glob("*_materials.txt")) == []


def test_negative_region_chunks_keep_orientation(tmp_path: Path):
    region = make_region("neg", (-10, 4, 4))
    result, _ = run_split(tmp_path, make_schematic(region))
    assert result.chunk_count == 3
    chunk = load_schematic(result.output_dir / "tower_neg_x2_y0_z0.litematic")
    assert chunk.regions["neg"].position == (-10, 0, 0)
    assert chunk.regions["neg"].size == (-2, 4, 4)


def test_negative_axis_placement_is_pinned(tmp_path: Path):
    region = make_region("neg", (-10, 4, 4))
    result, _ = run_split(tmp_path, make_schematic(region))

    placed = {}
    for ix in range(3):
        sub = load_schematic(result.output_dir / f"tower_neg_x{ix}_y0_z0.litematic").regions["neg"]
        # a negative size spans position + size + 1 .. position
        placed[ix] = (sub.position[0], sub.size[0], sub.position[0] + sub.size[0] + 1)

    assert placed == {0: (-4, -4, -7), 1: (-8, -4, -11), 2: (-10, -2, -11)}
    # x1 and x2 share -11..-10: the offset formula does not rebuild a negative axis
    assert placed[1][2] == placed[2][2]


def test_zero_length_region_is_skipped(tmp_path: Path):
    good = make_region("good", (4, 4, 4))
    flat = SubRegion(name="flat", position=(0, 0, 0), size=(4, 0, 4))
    result, _ = run_split(tmp_path, make_schematic(flat, good))
    assert result.ok
    assert result.skipped_regions == ["flat"]
    assert result.chunk_count == 1


def test_extraction_fault_skips_only_that_chunk(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
):
    real_extract = splitter_mod.extract_chunk
    hollow = SubRegion(name="main", position=(0, 0, 0), size=(12, 4, 4))

    def extract_with_fault(source, region, plan, **kwargs):
        if plan.index == (1, 0, 0):
            # no block container makes the copy fail
            return real_extract(source, hollow, plan, **kwargs)
        return real_extract(source, region, plan, **kwargs)

    monkeypatch.setattr(splitter_mod, "extract_chunk", extract_with_fault)
    region = make_region("main", (12, 4, 4))
    with caplog.at_level("ERROR", logger="litesplit.extract"):
        result, _ = run_split(tmp_path, make_schematic(region))

    assert result.ok
    assert result.chunk_count == 2
    names = sorted(p.name for p in result.output_dir.glob("*.litematic"))
    assert names == ["tower_main_x0_y0_z0.litematic", "tower_main_x2_y0_z0.litematic"]
    assert "Error creating chunk schematic at [1,0,0]" in caplog.text


def test_block_entities_and_entities_are_saved(tmp_path: Path):
    region = make_region("main", (8, 4, 4))
    region.blocks.set(5, 0, 0, "minecraft:chest[facing=north,type=single,waterlogged=false]")
    region.tile_entities[(5, 0, 0)] = {"id": "minecraft:chest", "x": 5, "y": 0, "z": 0}
    result, _ = run_split(tmp_path, make_schematic(region))
    chunk = load_schematic(result.output_dir / "tower_main_x1_y0_z0.litematic")
    assert chunk.regions["main"].tile_entities[(1, 0, 0)]["x"] == 1


def test_empty_region_produces_no_chunks(tmp_path: Path):
    region = make_region("main", (8, 8, 8), fill=None)
    result, notes = run_split(tmp_path, make_schematic(region))
    assert not result.ok
    assert result.chunk_count == 0
    assert result.error == "NoChunksProduced"
    assert notes == [("error", "Failed to split schematic 'tower.litematic'")]


def test_region_without_position_is_skipped(tmp_path: Path):
    good = make_region("good", (4, 4, 4))
    broken = SubRegion(name="broken", position=None, size=(4, 4, 4))
    result, _ = run_split(tmp_path, make_schematic(broken, good))
    assert result.ok
    assert result.skipped_regions == ["broken"]
    assert result.chunk_count == 1


def test_failed_chunk_write_does_not_stop_the_run(tmp_path: Path):
    def flaky_writer(directory: Path, name: str, chunk) -> bool:
        if name.endswith("x1_y0_z0"):
            raise PersistenceFault("disk full")
        if name.endswith("x2_y0_z0"):
            return False
        return write_schematic(directory, name, chunk)

    region = make_region("main", (12, 4, 4))
    result, _ = run_split(tmp_path, make_schematic(region), chunk_writer=flaky_writer)
    assert result.ok
    assert result.chunk_count == 1
    assert result.failed_chunks == ["tower_main_x1_y0_z0", "tower_main_x2_y0_z0"]


def test_all_writes_failing_is_a_failure(tmp_path: Path):
    region = make_region("main", (8, 4, 4))
    result, _ = run_split(tmp_path, make_schematic(region), chunk_writer=lambda d, n, c: False)
    assert not result.ok
    assert result.error == "NoChunksProduced"


def test_failed_report_is_not_fatal(tmp_path: Path):
    def broken_report(directory: Path, filename: str, content: str) -> bool:
        raise PersistenceFault("read-only")

    region = make_region("main", (8, 4, 4))
    result, _ = run_split(tmp_path, make_schematic(region), report_writer=broken_report)
    assert result.ok
    assert result.chunk_count == 2
    assert len(result.failed_reports) == 2


def test_disabled_is_a_no_op(tmp_path: Path):
    region = make_region("main", (8, 4, 4))
    result, notes = run_split(tmp_path, make_schematic(region), enabled=False)
    assert result.ok
    assert result.chunk_count == 0
    assert notes == []
    assert not (tmp_path / "tower_chunks").exists()


def test_unexpected_fault_is_caught(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(splitter_mod, "iter_chunk_plans", explode)
    region = make_region("main", (8, 4, 4))
    result, notes = run_split(tmp_path, make_schematic(region))
    assert not result.ok
    assert result.error == "UnrecoverableFault"
    assert notes[-1][0] == "error"


def test_second_run_is_byte_identical(tmp_path: Path):
    region = make_region("main", (9, 5, 6))
    schematic = make_schematic(region)

    first, _ = run_split(tmp_path, schematic)
    snapshot = {p.name: p.read_bytes() for p in first.output_dir.iterdir()}
    second, _ = run_split(tmp_path, schematic)
    again = {p.name: p.read_bytes() for p in second.output_dir.iterdir()}
    assert snapshot and snapshot == again


def test_split_and_save_reads_config_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LITESPLIT_CHUNK_SIZE", "2")
    monkeypatch.setenv("LITESPLIT_MATERIAL_LISTS", "off")
    region = make_region("main", (4, 2, 2))
    result = split_and_save_schematic(make_schematic(region), tmp_path / "tower.litematic")
    assert result.chunk_count == 2
    assert list(result.output_dir.glob("*_materials.txt")) == []
