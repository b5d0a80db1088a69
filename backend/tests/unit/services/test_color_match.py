"""Unit tests for nearest-color matching."""

from datetime import datetime, timedelta

import pytest

from backend.app.services.color_match import (
    SnapshotEntry,
    SwatchSnapshot,
    color_distance,
    find_closest_swatches,
    hex_to_rgb,
)


def entry(swatch_id: int, hex_color: str) -> SnapshotEntry:
    return SnapshotEntry(
        id=swatch_id,
        color_name=f"Color {swatch_id}",
        hex_color=hex_color,
        manufacturer="Prusament",
        filament_type="PLA",
    )


class TestHexToRgb:
    def test_with_and_without_hash(self):
        assert hex_to_rgb("#FF8000") == (255, 128, 0)
        assert hex_to_rgb("ff8000") == (255, 128, 0)

    @pytest.mark.parametrize(
        "value", [None, "", "#FFF", "GGGGGG", "#1234567", "-10000", "+f0000", "ff 0 0", "f\t0000", "0x10ff"]
    )
    def test_malformed_maps_to_black(self, value):
        assert hex_to_rgb(value) == (0, 0, 0)


class TestColorDistance:
    def test_identical_colors(self):
        assert color_distance((10, 20, 30), (10, 20, 30)) == 0

    def test_euclidean(self):
        assert color_distance((0, 0, 0), (3, 4, 0)) == 5


class TestFindClosestSwatches:
    def test_nearest_first(self):
        entries = [entry(1, "#FF0000"), entry(2, "#00FF00"), entry(3, "#0000FF")]

        matches = find_closest_swatches(entries, "#FE0101", count=1)

        assert len(matches) == 1
        assert matches[0].entry.id == 1
        assert matches[0].distance == pytest.approx(3**0.5)

    def test_orders_by_distance(self):
        entries = [entry(1, "000000"), entry(2, "ffffff"), entry(3, "808080")]

        matches = find_closest_swatches(entries, "f0f0f0", count=3)

        assert [m.entry.id for m in matches] == [2, 3, 1]

    def test_ties_keep_snapshot_order(self):
        entries = [entry(5, "ff0000"), entry(2, "ff0000"), entry(9, "ff0000")]

        matches = find_closest_swatches(entries, "ff0000", count=3)

        assert [m.entry.id for m in matches] == [5, 2, 9]

    def test_count_limits_results(self):
        entries = [entry(i, "ff0000") for i in range(10)]
        assert len(find_closest_swatches(entries, "ff0000")) == 5

    def test_malformed_stored_hex_treated_as_black(self):
        entries = [entry(1, "not-a-color"), entry(2, "ffffff")]

        matches = find_closest_swatches(entries, "000000", count=1)

        assert matches[0].entry.id == 1
        assert matches[0].distance == 0

    def test_empty_inputs(self):
        assert find_closest_swatches([], "ff0000") == []
        assert find_closest_swatches([entry(1, "ff0000")], "") == []
        assert find_closest_swatches([entry(1, "ff0000")], "ff0000", count=0) == []


class TestSwatchSnapshot:
    """Tests for the snapshot refresh contract."""

    def test_new_snapshot_is_stale(self):
        assert SwatchSnapshot().is_stale() is True

    def test_fresh_until_ttl_expires(self):
        loaded = datetime(2024, 1, 1, 12, 0, 0)
        snapshot = SwatchSnapshot(ttl=timedelta(hours=1), loaded_at=loaded)

        assert snapshot.is_stale(now=loaded + timedelta(minutes=59)) is False
        assert snapshot.is_stale(now=loaded + timedelta(hours=1)) is True

    def test_invalidate_forces_reload(self):
        snapshot = SwatchSnapshot(ttl=timedelta(days=1), loaded_at=datetime(2024, 1, 1))
        snapshot.invalidate()
        assert snapshot.is_stale() is True

    @pytest.mark.asyncio
    async def test_reload_reads_store(self, db_session, swatch_factory):
        await swatch_factory(hex_color="00ff00", color_name="Green", manufacturer_name="Polymaker")
        await swatch_factory(hex_color="0000ff", color_name="Blue")

        snapshot = await SwatchSnapshot().reload(db_session)

        assert [e.color_name for e in snapshot.entries] == ["Green", "Blue"]
        assert snapshot.entries[0].manufacturer == "Polymaker"
        assert snapshot.entries[0].filament_type == "PLA"
        assert snapshot.is_stale() is False

    @pytest.mark.asyncio
    async def test_ensure_fresh_keeps_loaded_entries(self, db_session, swatch_factory):
        await swatch_factory(hex_color="00ff00")
        snapshot = SwatchSnapshot(ttl=timedelta(days=1))
        await snapshot.ensure_fresh(db_session)

        await swatch_factory(hex_color="0000ff")
        await snapshot.ensure_fresh(db_session)
        assert len(snapshot.entries) == 1

        snapshot.invalidate()
        await snapshot.ensure_fresh(db_session)
        assert len(snapshot.entries) == 2
