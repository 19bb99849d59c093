"""Tests for the region coverer."""

import pytest
from cellcover.cellid import CellId
from cellcover.coverer import (
    CovererConfig,
    CovererStats,
    RegionCoverer,
    get_covering,
)
from cellcover.oracle import find_uncovered
from cellcover.rect import LatLngRect


@pytest.fixture
def small_rect():
    """A 0.5 degree rectangle inside face 0."""
    return LatLngRect.from_degrees(10.0, 20.0, 10.5, 20.5)


class TestCovererConfig:
    """Tests for CovererConfig."""

    def test_default_config(self):
        """Test default configuration values."""
        config = CovererConfig()
        assert config.max_cells == 8
        assert config.min_level == 0
        assert config.max_level == 30
        assert config.level_mod == 1

    def test_fixed_level(self):
        """Test the single-level configuration."""
        config = CovererConfig.fixed_level(13, max_cells=1000)
        assert config.min_level == 13
        assert config.max_level == 13
        assert config.max_cells == 1000

    def test_effective_max_level(self):
        """Test max_level is rounded down onto the level_mod grid."""
        assert CovererConfig(min_level=2, max_level=11, level_mod=3).effective_max_level == 11
        assert CovererConfig(min_level=2, max_level=10, level_mod=3).effective_max_level == 8

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_cells": 0},
            {"min_level": -1},
            {"max_level": 31},
            {"min_level": 10, "max_level": 5},
            {"level_mod": 0},
            {"level_mod": 4},
        ],
    )
    def test_invalid_config(self, kwargs):
        """Test invalid configurations raise errors."""
        with pytest.raises(ValueError):
            CovererConfig(**kwargs)


class TestRegionCoverer:
    """Tests for RegionCoverer."""

    def test_empty_region(self):
        """Test an empty rectangle has an empty covering."""
        coverer = RegionCoverer()
        assert len(coverer.get_covering(LatLngRect.empty())) == 0
        assert coverer.stats.candidates_created == 0

    def test_full_sphere(self):
        """Test the whole sphere is covered by the six faces."""
        covering = RegionCoverer().get_covering(LatLngRect.full())
        assert covering.cell_ids == [CellId.from_face(f) for f in range(6)]

    def test_full_sphere_fixed_level(self):
        """Test the whole sphere at level 0 is the six faces."""
        coverer = RegionCoverer(CovererConfig.fixed_level(0))
        assert len(coverer.get_cell_ids(LatLngRect.full())) == 6

    def test_small_rect_level_13(self):
        """Test a rectangle inside one level 13 cell is covered by 1-4 cells."""
        cell = CellId.from_lat_lng(10.1234, 20.5678, 13)
        lat, lng = cell.to_lat_lng()
        rect = LatLngRect.from_degrees(lat - 0.002, lng - 0.002, lat + 0.002, lng + 0.002)

        cells = RegionCoverer(CovererConfig.fixed_level(13)).get_cell_ids(rect)
        assert 1 <= len(cells) <= 4
        assert cell in cells
        assert all(c.level == 13 for c in cells)

    def test_small_rect_level_0(self, small_rect):
        """Test a small rectangle at level 0 is covered by its face alone."""
        cells = RegionCoverer(CovererConfig.fixed_level(0)).get_cell_ids(small_rect)
        assert cells == [CellId.from_face(0)]

    def test_fixed_level_cells(self, small_rect):
        """Test a fixed-level covering only holds cells of that level."""
        cells = RegionCoverer(CovererConfig.fixed_level(9)).get_cell_ids(small_rect)
        assert cells
        assert all(c.level == 9 for c in cells)
        assert find_uncovered(small_rect, cells) == []

    @pytest.mark.parametrize("max_cells", [1, 4, 8, 20])
    def test_covering_is_complete(self, small_rect, max_cells):
        """Test coverings contain every sampled point of the rectangle."""
        covering = RegionCoverer(CovererConfig(max_cells=max_cells)).get_covering(small_rect)
        assert find_uncovered(small_rect, covering, sample_count=100) == []

    def test_single_cell_budget(self, small_rect):
        """Test a budget of one yields a single enclosing cell."""
        covering = RegionCoverer(CovererConfig(max_cells=1)).get_covering(small_rect)
        assert len(covering) == 1

    def test_budget_fallback(self):
        """Test a tight budget falls back to coarser cells."""
        rect = LatLngRect.from_degrees(0.0, 0.0, 10.0, 10.0)
        coverer = RegionCoverer(CovererConfig(max_cells=4))
        covering = coverer.get_covering(rect)
        assert 1 <= len(covering) <= 4
        assert coverer.stats.budget_fallbacks > 0
        assert find_uncovered(rect, covering, sample_count=200) == []

    def test_larger_budget_is_tighter(self):
        """Test more cells cover less area."""
        rect = LatLngRect.from_degrees(0.0, 0.0, 10.0, 10.0)
        coarse = RegionCoverer(CovererConfig(max_cells=4)).get_covering(rect)
        fine = RegionCoverer(CovererConfig(max_cells=50)).get_covering(rect)
        assert fine.leaf_cells_covered() <= coarse.leaf_cells_covered()

    def test_min_level(self, small_rect):
        """Test min_level is honored by get_cell_ids."""
        cells = RegionCoverer(CovererConfig(max_cells=8, min_level=6)).get_cell_ids(small_rect)
        assert cells
        assert all(c.level >= 6 for c in cells)

    def test_level_mod(self, small_rect):
        """Test level_mod restricts the levels used."""
        config = CovererConfig(max_cells=20, min_level=2, max_level=10, level_mod=2)
        cells = RegionCoverer(config).get_cell_ids(small_rect)
        assert cells
        assert all((c.level - 2) % 2 == 0 and 2 <= c.level <= 10 for c in cells)
        assert find_uncovered(small_rect, cells) == []

    def test_level_mod_stops_below_max_level(self, small_rect):
        """Test the search stops at the last level_mod step under max_level."""
        config = CovererConfig(max_cells=1000, min_level=2, max_level=10, level_mod=3)
        cells = RegionCoverer(config).get_cell_ids(small_rect)
        assert {c.level for c in cells} == {8}
        assert find_uncovered(small_rect, cells) == []

    def test_antimeridian(self):
        """Test a rectangle crossing the antimeridian is covered on both sides."""
        rect = LatLngRect.from_degrees(-1.0, 179.0, 1.0, -179.0)
        cells = RegionCoverer(CovererConfig.fixed_level(6)).get_cell_ids(rect)
        assert find_uncovered(rect, cells, sample_count=100) == []
        assert all(c.face == 3 for c in cells)

    def test_stats_reset(self, small_rect):
        """Test statistics are reset for every covering."""
        coverer = RegionCoverer(CovererConfig(max_cells=8))
        coverer.get_covering(small_rect)
        first = coverer.stats
        coverer.get_covering(small_rect)
        assert coverer.stats == first
        assert first.candidates_created > 0
        assert first.cells_accepted >= 1

    def test_deterministic(self, small_rect):
        """Test repeated coverings are identical."""
        a = RegionCoverer(CovererConfig(max_cells=12)).get_covering(small_rect)
        b = RegionCoverer(CovererConfig(max_cells=12)).get_covering(small_rect)
        assert a == b


class TestGetCovering:
    """Tests for get_covering convenience function."""

    def test_returns_stats(self, small_rect):
        """Test the covering is returned together with statistics."""
        covering, stats = get_covering(small_rect, max_cells=8)
        assert isinstance(stats, CovererStats)
        assert 1 <= len(covering) <= 8
        assert stats.candidates_created >= stats.candidates_expanded

    def test_normalized(self, small_rect):
        """Test the returned covering is normalized."""
        covering, _ = get_covering(small_rect, max_cells=30)
        assert covering.is_normalized()
