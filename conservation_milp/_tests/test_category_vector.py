#!/usr/bin/env python3
"""
Category Vector Tests

Run with: python -m pytest conservation_milp/_tests/test_category_vector.py -v
"""

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import Point

from conservation_milp.category import category_vector
from conservation_milp.exceptions import InvalidSpecificationError


def test_matrix_input():
    x = np.array([[1, 0, 0], [0, 1, 0], [0, 0, 0], [np.nan] * 3])
    result = category_vector(x)
    assert str(result.dtype) == "Int64"
    assert result[:3].tolist() == [1, 2, 0]
    assert pd.isna(result[3])


def test_partial_missing_row_is_missing():
    result = category_vector(np.array([[np.nan, 1.0], [0.0, 1.0]]))
    assert pd.isna(result[0])
    assert result[1] == 2


def test_several_ones_take_first_column():
    result = category_vector(np.array([[1.0, 1.0, 0.0], [0.0, 1.0, 1.0]]))
    assert result.tolist() == [1, 2]


def test_dataframe_input():
    df = pd.DataFrame({"a": [0, 1, 0], "b": [1, 0, 0]})
    assert category_vector(df).tolist() == [2, 1, 0]


def test_geodataframe_drops_geometry():
    gdf = gpd.GeoDataFrame(
        {"a": [1, 0], "b": [0, 1]}, geometry=[Point(0, 0), Point(1, 1)]
    )
    assert category_vector(gdf).tolist() == [1, 2]


@pytest.mark.parametrize(
    "x, match",
    [
        (np.array([[2, 0]]), "only 0 and 1"),
        (np.array([[-1, 0]]), "only 0 and 1"),
        (np.array([[0.5, 0]]), "integer values"),
        (np.array([1, 0, 1]), "2D table"),
        (np.zeros((0, 2)), "2D table"),
    ],
)
def test_invalid_input(x, match):
    with pytest.raises(InvalidSpecificationError, match=match):
        category_vector(x)


def test_non_numeric_columns():
    df = pd.DataFrame({"a": [1, 0], "name": ["x", "y"]})
    with pytest.raises(InvalidSpecificationError, match="numeric"):
        category_vector(df)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
