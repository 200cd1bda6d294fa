#!/usr/bin/env python3
"""
Planning-Unit Geometry Tests

Tests:
1. Raster boundary / adjacency matrices (resolution, missing cells, finite_only)
2. Polygon boundary / adjacency matrices (shared edges, corner touches)
3. Lines and points (adjacency only)
4. Unsupported inputs
5. Connectivity matrices

Run with: python -m pytest conservation_milp/_tests/test_boundary.py -v
"""

import geopandas as gpd
import numpy as np
import pytest
from shapely.geometry import GeometryCollection, LineString, Point, box

from conservation_milp.exceptions import InvalidSpecificationError
from conservation_milp.geometry import (
    PLANNING_UNIT_TYPES,
    LinePlanningUnits,
    PointPlanningUnits,
    PolygonPlanningUnits,
    RasterPlanningUnits,
    adjacency_matrix,
    as_planning_units,
    boundary_matrix,
    connectivity_matrix,
)


@pytest.fixture
def squares():
    """Two unit squares sharing an edge, plus an isolated square."""
    return [box(0, 0, 1, 1), box(1, 0, 2, 1), box(5, 5, 6, 6)]


# ============================================================================
# RASTER
# ============================================================================


class TestRasterBoundary:
    """Raster cells numbered row-major."""

    def test_resolution_sets_shared_lengths(self):
        bm = boundary_matrix(np.ones((2, 2)), resolution=(2.0, 1.0)).toarray()
        expected = np.array(
            [
                [3.0, 1.0, 2.0, 0.0],
                [1.0, 3.0, 0.0, 2.0],
                [2.0, 0.0, 3.0, 1.0],
                [0.0, 2.0, 1.0, 3.0],
            ]
        )
        np.testing.assert_allclose(bm, expected)

    def test_single_cell(self):
        bm = boundary_matrix(np.ones((1, 1))).toarray()
        np.testing.assert_allclose(bm, [[4.0]])

    def test_missing_cells_have_no_boundary(self):
        values = np.array([[1.0, np.nan], [3.0, 4.0]])
        bm = boundary_matrix(values).toarray()
        assert bm.shape == (4, 4)
        np.testing.assert_allclose(np.diag(bm), [3.0, 0.0, 2.0, 3.0])
        assert bm[0, 1] == 0.0
        assert bm[1, 3] == 0.0
        assert bm[0, 2] == 1.0

    def test_finite_only_drops_missing_cells(self):
        values = np.array([[1.0, np.nan], [3.0, 4.0]])
        bm = boundary_matrix(values, finite_only=True).toarray()
        expected = np.array([[3.0, 1.0, 0.0], [1.0, 2.0, 1.0], [0.0, 1.0, 3.0]])
        np.testing.assert_allclose(bm, expected)

    def test_cell_included_if_finite_in_any_layer(self):
        layers = np.array([[[np.nan, 1.0]], [[1.0, np.nan]]])
        pu = RasterPlanningUnits(layers, finite_only=True)
        assert pu.number_of_units == 2
        np.testing.assert_allclose(pu.boundary_matrix().toarray(), [[3.0, 1.0], [1.0, 3.0]])

    def test_adjacency_is_rook(self):
        adj = adjacency_matrix(np.ones((2, 2))).toarray()
        np.testing.assert_array_equal(
            adj,
            [[0, 1, 1, 0], [1, 0, 0, 1], [1, 0, 0, 1], [0, 1, 1, 0]],
        )

    def test_invalid_resolution(self):
        with pytest.raises(InvalidSpecificationError, match="resolution"):
            RasterPlanningUnits(np.ones((2, 2)), resolution=(0.0, 1.0))


# ============================================================================
# POLYGONS
# ============================================================================


class TestPolygonBoundary:
    """Shapely polygons."""

    def test_shared_and_exposed_edges(self, squares):
        bm = boundary_matrix(squares).toarray()
        expected = np.array([[3.0, 1.0, 0.0], [1.0, 3.0, 0.0], [0.0, 0.0, 4.0]])
        np.testing.assert_allclose(bm, expected)

    def test_matrix_is_symmetric(self, squares):
        bm = boundary_matrix(squares)
        assert abs(bm - bm.T).nnz == 0

    def test_corner_touch_is_adjacent_without_boundary(self):
        polys = [box(0, 0, 1, 1), box(1, 1, 2, 2)]
        np.testing.assert_array_equal(adjacency_matrix(polys).toarray(), [[0, 1], [1, 0]])
        np.testing.assert_allclose(
            boundary_matrix(polys).toarray(), [[4.0, 0.0], [0.0, 4.0]]
        )

    def test_geodataframe_input(self, squares):
        gdf = gpd.GeoDataFrame({"id": [1, 2, 3]}, geometry=squares)
        pu = as_planning_units(gdf)
        assert isinstance(pu, PolygonPlanningUnits)
        np.testing.assert_allclose(
            pu.boundary_matrix().toarray(), boundary_matrix(squares).toarray()
        )


# ============================================================================
# LINES, POINTS AND UNSUPPORTED DATA
# ============================================================================


class TestOtherGeometries:
    """Geometry types without boundaries, and non-spatial input."""

    def test_registry(self):
        assert set(PLANNING_UNIT_TYPES) == {"raster", "polygon", "line", "point"}

    def test_lines_have_adjacency_only(self):
        lines = [LineString([(0, 0), (1, 0)]), LineString([(1, 0), (2, 0)])]
        pu = as_planning_units(lines)
        assert isinstance(pu, LinePlanningUnits)
        np.testing.assert_array_equal(pu.adjacency_matrix().toarray(), [[0, 1], [1, 0]])
        with pytest.raises(InvalidSpecificationError, match="lines have no boundaries"):
            pu.boundary_matrix()

    def test_points_have_no_boundaries(self):
        pu = as_planning_units([Point(0, 0), Point(1, 1)])
        assert isinstance(pu, PointPlanningUnits)
        assert pu.adjacency_matrix().nnz == 0
        with pytest.raises(InvalidSpecificationError, match="points have no boundaries"):
            boundary_matrix([Point(0, 0), Point(1, 1)])

    def test_geometry_collection_rejected(self):
        data = [GeometryCollection([Point(0, 0), box(0, 0, 1, 1)]), box(2, 2, 3, 3)]
        with pytest.raises(InvalidSpecificationError, match="geometry collection"):
            boundary_matrix(data)

    @pytest.mark.parametrize("data", [[1, 2, 3], np.arange(3.0), "planning units"])
    def test_non_spatial_input(self, data):
        with pytest.raises(InvalidSpecificationError, match="not stored in a spatial format"):
            boundary_matrix(data)


# ============================================================================
# CONNECTIVITY
# ============================================================================


class TestConnectivity:
    """Boundary lengths weighted by the mean of per-unit values."""

    def test_raster_pair(self):
        cm = connectivity_matrix(np.ones((1, 2)), [1.0, 3.0]).toarray()
        np.testing.assert_allclose(cm, [[0.0, 2.0], [2.0, 0.0]])

    def test_polygons(self, squares):
        cm = connectivity_matrix(squares, [2.0, 4.0, 10.0]).toarray()
        assert cm[0, 1] == pytest.approx(3.0)
        assert np.all(np.diag(cm) == 0.0)
        assert cm[0, 2] == 0.0

    def test_value_count_must_match(self, squares):
        with pytest.raises(InvalidSpecificationError, match="one entry per planning unit"):
            connectivity_matrix(squares, [1.0, 2.0])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
