"""
Category vector conversion.

Converts a table of binary zone columns (one row per planning unit) into a
single vector holding, for each row, the 1-based index of the column equal to
1. Rows without a 1 get 0; rows with missing values stay missing.
"""

from typing import Any

import geopandas as gpd
import numpy as np
import pandas as pd

from conservation_milp.exceptions import InvalidSpecificationError


def category_vector(x: Any) -> pd.arrays.IntegerArray:
    """
    Convert binary columns to a category vector.

    Similar to taking the arg-max of each row, except that rows with no value
    equal to 1 are assigned 0.

    Args:
        x: 2D numpy array, DataFrame or GeoDataFrame (the geometry column is
            dropped). Values must be 0, 1 or missing. Rows with several
            1 values get the first matching column.

    Returns:
        Nullable integer array ("Int64") with one entry per row.

    Example:
        >>> x = np.array([[1, 0, 0], [0, 1, 0], [0, 0, 0], [np.nan] * 3])
        >>> list(category_vector(x))
        [1, 2, 0, <NA>]
    """
    if isinstance(x, pd.DataFrame):
        if isinstance(x, gpd.GeoDataFrame):
            x = pd.DataFrame(x.drop(columns=x.geometry.name))
        non_numeric = [
            c for c in x.columns if not pd.api.types.is_numeric_dtype(x[c])
        ]
        if non_numeric:
            raise InvalidSpecificationError(
                f"all columns must be numeric, found: {non_numeric}"
            )
        x = x.to_numpy(dtype=np.float64)

    m = np.asarray(x, dtype=np.float64)
    if m.ndim != 2 or m.shape[0] < 1 or m.shape[1] < 1:
        raise InvalidSpecificationError("x must be a 2D table with at least one row and column")

    observed = m[~np.isnan(m)]
    if observed.size:
        if np.any(np.round(observed) != observed):
            raise InvalidSpecificationError("x must contain integer values")
        if observed.min() < 0 or observed.max() > 1:
            raise InvalidSpecificationError("x must contain only 0 and 1 values")

    missing = np.isnan(m).any(axis=1)
    ones = np.nan_to_num(m, nan=0.0) == 1

    out = np.where(ones.any(axis=1), ones.argmax(axis=1) + 1, 0)
    return pd.array(np.where(missing, None, out).tolist(), dtype="Int64")
