"""
Regression fitting behind the AIC oracle.

Gaussian models are ordinary least squares fits (scikit-learn
``LinearRegression``); binomial models are logistic GLMs fitted by IRLS
(statsmodels).  Both report AIC on the lm/glm scale:

    gaussian : n * (log(2*pi*RSS/n) + 1) + 2 * (rank + 2)
    binomial : deviance + 2 * (rank + 1)          (0/1 response)

Every numerical problem surfaces as :class:`FitFailure` so the caller can
decide what a failed candidate is worth.
"""

import warnings

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy.special import expit
from sklearn.linear_model import LinearRegression
from statsmodels.tools.sm_exceptions import PerfectSeparationError

from ._validation import check_family, check_X
from .exceptions import FitFailure, InvalidInput

INTERCEPT = '(Intercept)'

_NUMERICAL_ERRORS = (
    np.linalg.LinAlgError,
    ValueError,
    FloatingPointError,
    ZeroDivisionError,
    PerfectSeparationError,
)


class FittedModel:
    """
    A regression refit on a chosen variable subset.

    Attributes
    ----------
    variables : tuple of str
    family : str
    coefficients : pd.Series
        Intercept first (labelled ``'(Intercept)'``), then one entry per
        variable.
    aic : float
    n_obs : int
    estimator : object
        The underlying ``LinearRegression`` or statsmodels GLM results
        (None for an intercept-only gaussian fit).
    """

    def __init__(self, variables, family, coefficients, aic, n_obs,
                 estimator=None):
        self.variables = tuple(variables)
        self.family = family
        self.coefficients = coefficients
        self.aic = aic
        self.n_obs = n_obs
        self.estimator = estimator

    @property
    def intercept(self):
        return float(self.coefficients[INTERCEPT])

    def linear_predictor(self, X):
        X = check_X(X)
        missing = [v for v in self.variables if v not in X.columns]
        if missing:
            raise InvalidInput(
                f"X is missing predictor(s) used by the model: {missing}"
            )
        eta = np.full(len(X), self.intercept)
        if self.variables:
            beta = self.coefficients[list(self.variables)].values
            eta = eta + X[list(self.variables)].values @ beta
        return eta

    def predict(self, X):
        """Mean response: fitted values (gaussian) or probabilities."""
        eta = self.linear_predictor(X)
        if self.family == 'binomial':
            return expit(eta)
        return eta

    def __repr__(self):
        terms = ', '.join(self.variables) if self.variables else 'intercept only'
        return (f"FittedModel(family={self.family!r}, variables=[{terms}], "
                f"aic={self.aic:.4f})")


class ModelFitter:
    """
    Fit a gaussian or binomial regression and report its AIC.

    Parameters
    ----------
    family : {'gaussian', 'binomial'}
    max_iter : int, default=100
        IRLS iteration cap for logistic fits.
    """

    def __init__(self, family='gaussian', max_iter=100):
        self.family = check_family(family)
        self.max_iter = max_iter

    # ---- public interface ------------------------------------------------

    def aic(self, X_sub, y):
        """
        AIC of the model ``y ~ 1 + X_sub``.

        Parameters
        ----------
        X_sub : np.ndarray of shape (n, k)
            May have zero columns (intercept-only model).
        y : np.ndarray of shape (n,)

        Raises
        ------
        FitFailure
        """
        return self._fit_arrays(X_sub, y)[2]

    def fit(self, X, y, variables):
        """
        Fit on the named columns of ``X`` and return a :class:`FittedModel`.
        """
        variables = tuple(variables)
        X = check_X(X)
        missing = [v for v in variables if v not in X.columns]
        if missing:
            raise InvalidInput(f"X has no column(s) named {missing}")
        y = np.asarray(y, dtype=np.float64).ravel()

        X_sub = X[list(variables)].values
        estimator, params, aic = self._fit_arrays(X_sub, y)
        coefficients = pd.Series(params, index=[INTERCEPT] + list(variables))
        return FittedModel(variables, self.family, coefficients, aic,
                           len(y), estimator)

    # ---- internals -------------------------------------------------------

    def _fit_arrays(self, X_sub, y):
        X_sub = np.asarray(X_sub, dtype=np.float64)
        if X_sub.ndim == 1:
            X_sub = X_sub.reshape(-1, 1)
        try:
            with warnings.catch_warnings():
                warnings.simplefilter('ignore')
                with np.errstate(all='ignore'):
                    if self.family == 'gaussian':
                        result = self._fit_gaussian(X_sub, y)
                    else:
                        result = self._fit_binomial(X_sub, y)
        except _NUMERICAL_ERRORS as exc:
            raise FitFailure(f"{self.family} fit failed: {exc}") from exc

        if not np.isfinite(result[2]):
            raise FitFailure(f"{self.family} fit produced AIC={result[2]}")
        return result

    @staticmethod
    def _fit_gaussian(X_sub, y):
        n = len(y)
        if X_sub.shape[1] == 0:
            estimator = None
            params = np.array([y.mean()])
            resid = y - y.mean()
            rank = 0
        else:
            estimator = LinearRegression().fit(X_sub, y)
            params = np.concatenate([[estimator.intercept_], estimator.coef_])
            resid = y - estimator.predict(X_sub)
            rank = int(estimator.rank_)

        rss = float(resid @ resid)
        if rss <= 0:
            raise FitFailure("residual sum of squares is zero (perfect fit)")
        # intercept + coefficients + residual variance
        aic = n * (np.log(2 * np.pi * rss / n) + 1) + 2 * (rank + 2)
        return estimator, params, aic

    def _fit_binomial(self, X_sub, y):
        design = np.column_stack([np.ones(len(y)), X_sub])
        model = sm.GLM(y, design, family=sm.families.Binomial())
        results = model.fit(maxiter=self.max_iter)
        if not results.converged:
            raise FitFailure(
                f"IRLS did not converge in {self.max_iter} iterations"
            )
        return results, np.asarray(results.params), float(results.aic)
