"""
Tests for the regression fitting behind the AIC oracle.
"""

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm

from multipathaic import FitFailure, InvalidInput, ModelFitter


def _gaussian_data(n=120, seed=42):
    rng = np.random.RandomState(seed)
    X = pd.DataFrame(rng.randn(n, 3), columns=['a', 'b', 'c'])
    y = 1.5 * X['a'] - X['b'] + rng.randn(n)
    return X, y.values


def test_gaussian_aic_matches_loglik_with_variance_term():
    """OLS AIC counts the residual variance as a parameter (lm scale)."""
    X, y = _gaussian_data()
    ours = ModelFitter('gaussian').aic(X[['a', 'b']].values, y)
    ols = sm.OLS(y, sm.add_constant(X[['a', 'b']].values)).fit()
    # statsmodels counts only the coefficients
    assert ours == pytest.approx(ols.aic + 2, rel=1e-9)


def test_intercept_only_gaussian():
    X, y = _gaussian_data()
    n = len(y)
    rss = np.sum((y - y.mean()) ** 2)
    expected = n * (np.log(2 * np.pi * rss / n) + 1) + 4
    assert ModelFitter('gaussian').aic(np.empty((n, 0)), y) == pytest.approx(
        expected)


def test_binomial_aic_matches_logit():
    rng = np.random.RandomState(7)
    n = 300
    x = rng.randn(n, 2)
    p = 1 / (1 + np.exp(-(0.5 + 1.2 * x[:, 0])))
    y = (rng.rand(n) < p).astype(float)

    ours = ModelFitter('binomial').aic(x, y)
    logit = sm.Logit(y, sm.add_constant(x)).fit(disp=0)
    assert ours == pytest.approx(logit.aic, rel=1e-6)


def test_zero_residual_is_a_fit_failure():
    y = np.full(20, 3.0)
    with pytest.raises(FitFailure):
        ModelFitter('gaussian').aic(np.empty((20, 0)), y)


def test_fit_returns_named_coefficients_and_predicts():
    X, y = _gaussian_data()
    fitted = ModelFitter('gaussian').fit(X, y, ['a', 'b'])
    assert list(fitted.coefficients.index) == ['(Intercept)', 'a', 'b']
    assert fitted.coefficients['a'] == pytest.approx(1.5, abs=0.3)
    pred = fitted.predict(X)
    assert pred.shape == (len(X),)
    assert np.all(np.isfinite(pred))


def test_predict_requires_model_columns():
    X, y = _gaussian_data()
    fitted = ModelFitter('gaussian').fit(X, y, ['a'])
    with pytest.raises(InvalidInput):
        fitted.predict(X.rename(columns={'a': 'A'}))


def test_unknown_family_rejected():
    with pytest.raises(InvalidInput):
        ModelFitter('poisson')
