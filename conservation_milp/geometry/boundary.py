#!/usr/bin/env python3
"""
Planning-Unit Geometry Adapters

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Derive the planning-unit x planning-unit matrices used by
constraints and penalties from spatial data:

- boundary_matrix: shared edge length between adjacent units, exposed edge
  length on the diagonal (boundary penalties)
- adjacency_matrix: 1 for units that touch (neighbor / contiguity
  constraints)
- connectivity_matrix: shared edge length x mean of a per-unit value
  (connectivity penalties)

Each spatial representation is an adapter class registered under a kind tag
in PLANNING_UNIT_TYPES ("raster", "polygon", "line", "point").
as_planning_units() picks the adapter from the input type.

Raster Conventions:
-------------------
- Cells are numbered row-major; matrices have one row per cell unless
  finite_only=True, in which case only cells with a finite value (in any
  layer) are kept, matching problem_from_raster()
- Cells above/below each other share an edge of length xres, cells
  left/right of each other share an edge of length yres
- Exposed edge (diagonal) = 2 * (xres + yres) - shared edges

Polygon Conventions:
--------------------
- Candidate pairs come from a shapely STRtree bulk query (predicate
  "intersects")
- Shared length = length of the intersection of both boundaries
- Exposed edge (diagonal) = perimeter - shared edges
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence, Tuple, Type

import geopandas as gpd
import numpy as np
import shapely
from scipy import sparse
from shapely.geometry.base import BaseGeometry

from conservation_milp.exceptions import InvalidSpecificationError

_logger = logging.getLogger("ConservationMILP.Geometry")

# Relative tolerance for exposed edges that come out slightly negative
# because of floating point noise in boundary intersections
PERIMETER_TOLERANCE = 1e-9


# ===========================================================================
# 🧱 BASE ADAPTER
# ===========================================================================


class PlanningUnits(ABC):
    """Spatial planning units that can produce pairwise matrices."""

    kind: str = ""

    @property
    @abstractmethod
    def number_of_units(self) -> int:
        """Rows/columns of the matrices produced by this adapter."""

    @abstractmethod
    def boundary_matrix(self) -> sparse.csr_matrix:
        """Symmetric shared-boundary matrix, exposed edges on the diagonal."""

    @abstractmethod
    def adjacency_matrix(self) -> sparse.csr_matrix:
        """Symmetric 0/1 matrix of touching units (empty diagonal)."""

    def connectivity_matrix(self, values: Any) -> sparse.csr_matrix:
        """
        Connectivity between adjacent units weighted by a per-unit value.

        c_ij = boundary_ij * (values_i + values_j) / 2 for i != j.
        """
        v = np.asarray(values, dtype=np.float64).ravel()
        if v.size != self.number_of_units:
            raise InvalidSpecificationError(
                f"values must have one entry per planning unit "
                f"({self.number_of_units}), got {v.size}"
            )
        if not np.all(np.isfinite(v)):
            raise InvalidSpecificationError("values must contain only finite values")
        bm = self.boundary_matrix().tocoo()
        off = bm.row != bm.col
        i, j = bm.row[off], bm.col[off]
        data = bm.data[off] * (v[i] + v[j]) / 2.0
        m = sparse.coo_matrix((data, (i, j)), shape=bm.shape).tocsr()
        m.eliminate_zeros()
        return m


def _symmetric(
    i: np.ndarray, j: np.ndarray, x: np.ndarray, n: int, diagonal: Optional[np.ndarray] = None
) -> sparse.csr_matrix:
    """Symmetric csr matrix from upper-triangle entries and an optional diagonal."""
    upper = sparse.coo_matrix((x, (i, j)), shape=(n, n))
    m = (upper + upper.T).tocsr()
    if diagonal is not None:
        m = (m + sparse.diags(diagonal, format="csr")).tocsr()
    m.eliminate_zeros()
    m.sort_indices()
    return m


# ===========================================================================
# 🟦 RASTER ADAPTER
# ===========================================================================


class RasterPlanningUnits(PlanningUnits):
    """
    Raster cells as planning units.

    Args:
        values: (rows, cols) raster or (layers, rows, cols) stack. Cells that
            are not finite in any layer are outside the study area.
        resolution: (xres, yres) cell size. Default (1, 1).
        finite_only: Only keep cells with finite values in the matrices.
    """

    kind = "raster"

    def __init__(
        self,
        values: Any,
        resolution: Tuple[float, float] = (1.0, 1.0),
        finite_only: bool = False,
    ) -> None:
        v = np.asarray(values, dtype=np.float64)
        if v.ndim == 2:
            v = v[None, :, :]
        if v.ndim != 3 or v.shape[1] < 1 or v.shape[2] < 1:
            raise InvalidSpecificationError(
                "raster data must have shape (rows, cols) or (layers, rows, cols)"
            )
        xres, yres = (float(r) for r in resolution)
        if xres <= 0 or yres <= 0:
            raise InvalidSpecificationError(f"resolution must be positive, got {resolution}")
        self.shape = v.shape[1:]
        self.resolution = (xres, yres)
        self.finite_only = finite_only
        self.include = np.isfinite(v).any(axis=0).ravel()

    @property
    def number_of_cells(self) -> int:
        return int(self.shape[0] * self.shape[1])

    @property
    def number_of_units(self) -> int:
        return int(self.include.sum()) if self.finite_only else self.number_of_cells

    def _neighbour_pairs(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """(i, j, shared length) for rook neighbours with i < j, both included."""
        xres, yres = self.resolution
        idx = np.arange(self.number_of_cells).reshape(self.shape)
        i = np.concatenate([idx[:-1, :].ravel(), idx[:, :-1].ravel()])
        j = np.concatenate([idx[1:, :].ravel(), idx[:, 1:].ravel()])
        shared = np.concatenate([
            np.full(idx[:-1, :].size, xres),
            np.full(idx[:, :-1].size, yres),
        ])
        keep = self.include[i] & self.include[j]
        return i[keep], j[keep], shared[keep]

    def _subset(self, m: sparse.csr_matrix) -> sparse.csr_matrix:
        if not self.finite_only:
            return m
        keep = np.flatnonzero(self.include)
        return m[keep][:, keep].tocsr()

    def boundary_matrix(self) -> sparse.csr_matrix:
        n = self.number_of_cells
        i, j, shared = self._neighbour_pairs()
        shared_total = (
            np.bincount(i, weights=shared, minlength=n)
            + np.bincount(j, weights=shared, minlength=n)
        )
        xres, yres = self.resolution
        diagonal = np.where(self.include, 2.0 * (xres + yres) - shared_total, 0.0)
        return self._subset(_symmetric(i, j, shared, n, diagonal))

    def adjacency_matrix(self) -> sparse.csr_matrix:
        i, j, _ = self._neighbour_pairs()
        return self._subset(_symmetric(i, j, np.ones(i.size), self.number_of_cells))


# ===========================================================================
# 🔷 VECTOR ADAPTERS
# ===========================================================================


def _as_geometry_array(x: Any) -> np.ndarray:
    if isinstance(x, (gpd.GeoDataFrame, gpd.GeoSeries)):
        return np.asarray(x.geometry.values, dtype=object)
    geometries = list(x)
    out = np.empty(len(geometries), dtype=object)
    out[:] = geometries
    return out


class _VectorPlanningUnits(PlanningUnits):
    """Planning units stored as shapely geometries."""

    def __init__(self, data: Any) -> None:
        self.geometries = _as_geometry_array(data)
        if self.geometries.size and any(g is None for g in self.geometries):
            raise InvalidSpecificationError("planning unit geometries must not be missing")

    @property
    def number_of_units(self) -> int:
        return int(self.geometries.size)

    def _intersecting_pairs(self) -> Tuple[np.ndarray, np.ndarray]:
        """Index pairs (i < j) of intersecting geometries."""
        tree = shapely.STRtree(self.geometries)
        left, right = tree.query(self.geometries, predicate="intersects")
        keep = left < right
        left, right = left[keep], right[keep]
        order = np.lexsort((right, left))
        return left[order].astype(np.int64), right[order].astype(np.int64)

    def adjacency_matrix(self) -> sparse.csr_matrix:
        i, j = self._intersecting_pairs()
        return _symmetric(i, j, np.ones(i.size), self.number_of_units)


class PolygonPlanningUnits(_VectorPlanningUnits):
    """Polygons (or multipolygons) as planning units."""

    kind = "polygon"

    def boundary_matrix(self) -> sparse.csr_matrix:
        n = self.number_of_units
        i, j = self._intersecting_pairs()
        boundaries = shapely.boundary(self.geometries)
        shared = shapely.length(shapely.intersection(boundaries[i], boundaries[j]))
        keep = shared > 0
        i, j, shared = i[keep], j[keep], shared[keep]

        perimeter = shapely.length(self.geometries)
        shared_total = (
            np.bincount(i, weights=shared, minlength=n)
            + np.bincount(j, weights=shared, minlength=n)
        )
        exposed = perimeter - shared_total
        negative = exposed < -PERIMETER_TOLERANCE * np.maximum(perimeter, 1.0)
        if negative.any():
            _logger.warning(
                f"⚠️ {int(negative.sum())} planning unit(s) share more boundary than "
                "their perimeter (overlapping polygons?), exposed edges set to 0"
            )
        return _symmetric(i, j, shared, n, np.maximum(exposed, 0.0))


class LinePlanningUnits(_VectorPlanningUnits):
    """Lines as planning units (adjacency only)."""

    kind = "line"

    def boundary_matrix(self) -> sparse.csr_matrix:
        raise InvalidSpecificationError(
            "data represented by lines have no boundaries, "
            "use adjacency_matrix() based constraints instead"
        )


class PointPlanningUnits(_VectorPlanningUnits):
    """Points as planning units (adjacency only)."""

    kind = "point"

    def boundary_matrix(self) -> sparse.csr_matrix:
        raise InvalidSpecificationError(
            "data represented by points have no boundaries, "
            "use adjacency_matrix() based constraints instead"
        )


# ===========================================================================
# 🗂️ REGISTRY AND DISPATCH
# ===========================================================================

PLANNING_UNIT_TYPES: Dict[str, Type[PlanningUnits]] = {
    cls.kind: cls
    for cls in (
        RasterPlanningUnits,
        PolygonPlanningUnits,
        LinePlanningUnits,
        PointPlanningUnits,
    )
}


def _vector_kind(geometries: Sequence[BaseGeometry]) -> str:
    types = {g.geom_type for g in geometries if g is not None}
    if "GeometryCollection" in types:
        raise InvalidSpecificationError("geometry collection data are not supported")
    if types & {"Point", "MultiPoint"}:
        return "point"
    if types & {"LineString", "MultiLineString", "LinearRing"}:
        return "line"
    return "polygon"


def as_planning_units(x: Any, **kwargs: Any) -> PlanningUnits:
    """
    Wrap spatial data in the matching PlanningUnits adapter.

    Args:
        x: PlanningUnits (returned as is), numpy raster (2D or 3D array),
            GeoDataFrame / GeoSeries, or a sequence of shapely geometries.
        **kwargs: Passed to RasterPlanningUnits (resolution, finite_only).

    Raises:
        InvalidSpecificationError: for geometry collections or non-spatial
            input.
    """
    if isinstance(x, PlanningUnits):
        return x
    if isinstance(x, np.ndarray) and x.ndim in (2, 3) and x.dtype != object:
        return PLANNING_UNIT_TYPES["raster"](x, **kwargs)
    if isinstance(x, (gpd.GeoDataFrame, gpd.GeoSeries)) or (
        isinstance(x, (list, tuple, np.ndarray))
        and len(x) > 0
        and all(isinstance(g, BaseGeometry) for g in x)
    ):
        geometries = _as_geometry_array(x)
        return PLANNING_UNIT_TYPES[_vector_kind(geometries)](geometries)
    raise InvalidSpecificationError("data are not stored in a spatial format")


def boundary_matrix(x: Any, **kwargs: Any) -> sparse.csr_matrix:
    """Shared boundary lengths (exposed edge on the diagonal)."""
    return as_planning_units(x, **kwargs).boundary_matrix()


def adjacency_matrix(x: Any, **kwargs: Any) -> sparse.csr_matrix:
    """0/1 matrix of touching planning units."""
    return as_planning_units(x, **kwargs).adjacency_matrix()


def connectivity_matrix(x: Any, values: Any, **kwargs: Any) -> sparse.csr_matrix:
    """Shared boundary lengths weighted by the mean of values at both ends."""
    return as_planning_units(x, **kwargs).connectivity_matrix(values)
