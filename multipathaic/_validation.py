"""
Input validation shared by the search, stability and plausible stages.

Nothing is cleaned or imputed here: malformed input is rejected with
:class:`~multipathaic.exceptions.InvalidInput` so the caller sees the
problem instead of a silently different data set.
"""

import numpy as np
import pandas as pd

from .exceptions import InvalidInput

FAMILIES = ('gaussian', 'binomial')


def check_family(family):
    if family not in FAMILIES:
        raise InvalidInput(
            f"family must be one of {FAMILIES}, got {family!r}"
        )
    return family


def check_X(X):
    """
    Convert predictors to a float DataFrame with unique column names.

    Parameters
    ----------
    X : DataFrame, 2-D ndarray or nested list
        Arrays without names get columns ``X0 .. X{p-1}``.

    Returns
    -------
    pd.DataFrame
        A fresh copy with a default RangeIndex.
    """
    # --- Convert types ---------------------------------------------------
    if isinstance(X, pd.DataFrame):
        X = X.copy()
    else:
        try:
            arr = np.asarray(X)
        except ValueError as exc:
            raise InvalidInput(f"X is not rectangular: {exc}") from exc
        if arr.ndim != 2:
            raise InvalidInput(
                f"X must be 2-dimensional, got {arr.ndim} dimension(s)"
            )
        X = pd.DataFrame(arr, columns=[f"X{i}" for i in range(arr.shape[1])])

    X = X.reset_index(drop=True)
    X.columns = [str(c) for c in X.columns]

    if X.shape[1] == 0:
        raise InvalidInput("X has no predictor columns.")

    dupes = X.columns[X.columns.duplicated()].tolist()
    if dupes:
        raise InvalidInput(f"Predictor names must be unique; repeated: {dupes}")

    # --- Numeric only ----------------------------------------------------
    non_numeric = X.select_dtypes(exclude=[np.number, bool]).columns.tolist()
    if non_numeric:
        raise InvalidInput(f"Non-numeric predictor column(s): {non_numeric}")
    X = X.astype(np.float64)

    # NaN or inf cells; ragged input was already rejected above
    bad = ~np.isfinite(X.values)
    if bad.any():
        cols = X.columns[bad.any(axis=0)].tolist()
        raise InvalidInput(
            f"X contains missing or infinite values in column(s): {cols}"
        )

    return X


def check_y(y, n, family):
    """Validate the response against ``n`` rows and the model family."""
    if isinstance(y, (pd.Series, pd.DataFrame)):
        y = y.to_numpy()
    try:
        y = np.asarray(y, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"y must be numeric: {exc}") from exc
    if y.ndim == 2 and 1 in y.shape:
        y = y.ravel()
    if y.ndim != 1:
        raise InvalidInput("y must be a 1-dimensional response vector")

    if len(y) != n:
        raise InvalidInput(
            f"Length of y ({len(y)}) must equal number of rows in X ({n})"
        )
    if not np.all(np.isfinite(y)):
        raise InvalidInput("y contains missing or infinite values")
    if family == 'binomial' and not np.all((y == 0) | (y == 1)):
        raise InvalidInput("y must be binary (0/1) for family='binomial'")

    return y.copy()


def check_data(X, y, family):
    """Validate a predictor/response pair; returns ``(X_df, y_array)``."""
    check_family(family)
    X = check_X(X)
    y = check_y(y, len(X), family)
    if len(X) == 0:
        raise InvalidInput("X has no observations.")
    return X, y
