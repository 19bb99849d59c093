"""Tests for 64-bit cell identifiers."""

import random

import pytest
from cellcover.cellid import CellId, average_edge_degrees
from cellcover.projection import MAX_LEVEL


def _random_points(n, seed=42):
    rng = random.Random(seed)
    return [(rng.uniform(-89.0, 89.0), rng.uniform(-179.9, 179.9)) for _ in range(n)]


class TestFaces:
    """Tests for face cells."""

    @pytest.mark.parametrize("face", range(6))
    def test_face_ids(self, face):
        """Test face cells have the expected bit layout."""
        cell = CellId.from_face(face)
        assert cell.id == (face << 61) | (1 << 60)
        assert cell.face == face
        assert cell.level == 0
        assert cell.is_face()
        assert cell.is_valid()
        assert CellId.from_face_level_position(face, 0, 0) == cell

    def test_invalid_ids(self):
        """Test ids without a valid face or marker bit."""
        assert not CellId.none().is_valid()
        assert not CellId((7 << 61) | (1 << 60)).is_valid()
        assert not CellId(1 << 59).is_valid()

    def test_out_of_range(self):
        """Test ids outside the unsigned 64-bit range are rejected."""
        with pytest.raises(ValueError):
            CellId(-1)
        with pytest.raises(ValueError):
            CellId(1 << 64)


class TestConstruction:
    """Tests for building cells from points and positions."""

    def test_origin_leaf(self):
        """Test the leaf cell at (0, 0) sits at the center of face 0."""
        cell = CellId.from_lat_lng(0.0, 0.0)
        assert cell.id == 0x1000000000000001
        assert cell.is_leaf()
        assert cell.level == MAX_LEVEL

    def test_level(self):
        """Test from_lat_lng returns a cell at the requested level."""
        for level in (0, 1, 7, 13, 30):
            assert CellId.from_lat_lng(48.85, 2.35, level).level == level

    def test_position_round_trip(self):
        """Test face, level and position rebuild the same cell."""
        for lat, lng in _random_points(20):
            for level in (1, 5, 13, 22):
                cell = CellId.from_lat_lng(lat, lng, level)
                assert CellId.from_face_level_position(cell.face, level, cell.position) == cell
                assert CellId.from_face_pos_level(cell.face, cell.pos, level) == cell

    def test_invalid_position(self):
        """Test positions outside the level's range are rejected."""
        with pytest.raises(ValueError):
            CellId.from_face_level_position(0, 1, 4)
        with pytest.raises(ValueError):
            CellId.from_face_level_position(6, 0, 0)
        with pytest.raises(ValueError):
            CellId.from_lat_lng(0.0, 0.0, 31)

    def test_center_maps_back(self):
        """Test a cell's center lies inside the cell."""
        for lat, lng in _random_points(20, seed=3):
            cell = CellId.from_lat_lng(lat, lng, 10)
            clat, clng = cell.to_lat_lng()
            assert CellId.from_lat_lng(clat, clng, 10) == cell

    def test_leaf_center_close_to_point(self):
        """Test a leaf center is within a leaf width of the point."""
        for lat, lng in _random_points(10, seed=5):
            clat, clng = CellId.from_lat_lng(lat, lng).to_lat_lng()
            assert clat == pytest.approx(lat, abs=1e-6)
            assert clng == pytest.approx(lng, abs=1e-6)


class TestHierarchy:
    """Tests for parents, children and ranges."""

    def test_children_of_face(self):
        """Test the four children of a face in curve order."""
        face = CellId.from_face(2)
        children = face.children()
        assert len(children) == 4
        for k, child in enumerate(children):
            assert child.level == 1
            assert child.parent() == face
            assert child.position == k
            assert child.child_position(1) == k
            assert face.contains(child)
            assert not child.contains(face)
        assert children == sorted(children)

    def test_parent_levels(self):
        """Test walking up from a leaf reaches every level."""
        leaf = CellId.from_lat_lng(-33.87, 151.21)
        for level in range(MAX_LEVEL, -1, -1):
            parent = leaf.parent(level)
            assert parent.level == level
            assert parent.contains(leaf)
        assert leaf.parent(0) == CellId.from_face(leaf.face)

    def test_parent_errors(self):
        """Test asking for a parent that does not exist."""
        with pytest.raises(ValueError):
            CellId.from_face(0).parent()
        cell = CellId.from_lat_lng(10.0, 10.0, 5)
        with pytest.raises(ValueError):
            cell.parent(6)

    def test_leaf_has_no_children(self):
        """Test a leaf cannot be subdivided."""
        with pytest.raises(ValueError):
            CellId.from_lat_lng(10.0, 10.0).children()

    def test_ranges(self):
        """Test range_min/range_max bound exactly the descendants."""
        cell = CellId.from_lat_lng(51.5, -0.12, 12)
        assert cell.range_min().is_leaf()
        assert cell.range_max().is_leaf()
        assert cell.range_min() <= cell <= cell.range_max()
        leaf = CellId.from_lat_lng(*cell.to_lat_lng())
        assert cell.range_min() <= leaf <= cell.range_max()
        assert cell.next().range_min().id == cell.range_max().id + 2

    def test_descendants(self):
        """Test iterating descendants two levels down."""
        cell = CellId.from_lat_lng(40.0, -74.0, 8)
        descendants = list(cell.iter_descendants(10))
        assert len(descendants) == 16
        assert all(d.level == 10 and d.parent(8) == cell for d in descendants)
        assert descendants == sorted(descendants)
        assert list(cell.iter_descendants(8)) == [cell]

    def test_intersects(self):
        """Test nested cells intersect and siblings do not."""
        parent = CellId.from_lat_lng(40.0, -74.0, 8)
        a, b, _, _ = parent.children()
        assert parent.intersects(a)
        assert a.intersects(parent)
        assert not a.intersects(b)

    def test_next_prev(self):
        """Test stepping along the curve."""
        cell = CellId.from_lat_lng(40.0, -74.0, 8)
        assert cell.next().prev() == cell
        assert cell.next().level == 8
        assert CellId.begin(0) == CellId.from_face(0)
        assert CellId.end(0) == CellId.from_face(5).next()


class TestTokens:
    """Tests for hex tokens."""

    def test_face_tokens(self):
        """Test face tokens strip trailing zeros."""
        assert CellId.from_face(0).to_token() == "1"
        assert CellId.from_face(5).to_token() == "b"
        assert CellId.from_token("b") == CellId.from_face(5)

    def test_none_token(self):
        """Test the invalid id encodes as X."""
        assert CellId.none().to_token() == "X"
        assert CellId.from_token("X") == CellId.none()

    def test_round_trip(self):
        """Test tokens parse back to the same cell."""
        for lat, lng in _random_points(20, seed=9):
            for level in (0, 4, 13, 30):
                cell = CellId.from_lat_lng(lat, lng, level)
                assert CellId.from_token(cell.to_token()) == cell

    @pytest.mark.parametrize("token", ["", "xyz", "0x12", "1_0", "1" * 17])
    def test_malformed(self, token):
        """Test malformed tokens are rejected."""
        with pytest.raises(ValueError):
            CellId.from_token(token)


class TestNeighbors:
    """Tests for edge and vertex neighbors."""

    def test_edge_neighbors_interior(self):
        """Test the four edge neighbors of a cell in the middle of a face."""
        cell = CellId.from_lat_lng(10.0, 20.0, 10)
        neighbors = cell.edge_neighbors()
        assert len(set(neighbors)) == 4
        assert cell not in neighbors
        for neighbor in neighbors:
            assert neighbor.level == 10
            assert cell in neighbor.edge_neighbors()

    def test_edge_neighbors_across_faces(self):
        """Test neighbors are symmetric across a face boundary."""
        # Just west of the face 0 / face 1 boundary at 45 degrees longitude.
        cell = CellId.from_lat_lng(5.0, 44.99, 6)
        neighbors = cell.edge_neighbors()
        assert {n.face for n in neighbors} == {0, 1}
        for neighbor in neighbors:
            assert cell in neighbor.edge_neighbors()

    def test_face_edge_neighbors(self):
        """Test a face borders the four faces other than itself and its opposite."""
        neighbors = CellId.from_face(0).edge_neighbors()
        assert {n.face for n in neighbors} == {1, 2, 4, 5}
        assert all(n.is_face() for n in neighbors)

    def test_all_neighbors_interior(self):
        """Test an interior cell has eight distinct same-level neighbors."""
        cell = CellId.from_lat_lng(10.0, 20.0, 10)
        neighbors = set(cell.all_neighbors(10))
        assert len(neighbors) == 8
        assert cell not in neighbors
        assert set(cell.edge_neighbors()) <= neighbors

    def test_all_neighbors_finer(self):
        """Test neighbors at a finer level ring the cell."""
        cell = CellId.from_lat_lng(10.0, 20.0, 10)
        neighbors = set(cell.all_neighbors(11))
        # Two per edge plus four corners.
        assert len(neighbors) == 12
        assert all(n.level == 11 and not cell.contains(n) for n in neighbors)

    def test_all_neighbors_of_face(self):
        """Test the vertex neighbors of a face land on adjacent faces."""
        neighbors = CellId.from_face(0).all_neighbors(0)
        assert {n.face for n in neighbors} == {1, 2, 4, 5}

    def test_all_neighbors_level_check(self):
        """Test coarser neighbor levels are rejected."""
        with pytest.raises(ValueError):
            CellId.from_lat_lng(10.0, 20.0, 10).all_neighbors(9)


class TestCellSizes:
    """Tests for approximate cell sizes."""

    def test_sizes_halve(self):
        """Test each level halves the average edge length."""
        for level in range(MAX_LEVEL):
            assert average_edge_degrees(level + 1) == pytest.approx(
                average_edge_degrees(level) / 2
            )

    def test_level_13(self):
        """Test level 13 cells are roughly a kilometre across."""
        assert 0.005 < average_edge_degrees(13) < 0.02


class TestS2Compatibility:
    """Cross-checks against the s2sphere implementation."""

    def test_ids_match(self):
        """Test cell ids agree with s2sphere."""
        s2sphere = pytest.importorskip("s2sphere")
        for lat, lng in _random_points(50, seed=11):
            expected = s2sphere.CellId.from_lat_lng(s2sphere.LatLng.from_degrees(lat, lng))
            for level in (0, 5, 13, 20):
                assert CellId.from_lat_lng(lat, lng, level).id == expected.parent(level).id()

    def test_tokens_match(self):
        """Test tokens agree with s2sphere."""
        s2sphere = pytest.importorskip("s2sphere")
        for lat, lng in _random_points(20, seed=12):
            cell = CellId.from_lat_lng(lat, lng, 13)
            assert cell.to_token() == s2sphere.CellId(cell.id).to_token()
