"""
multipathaic: Multi-path forward selection with AIC

Explores several competing forward-selection paths at once, measures how
stable each predictor's selection is under resampling, and distils both
into a short list of plausible models.
"""

from .exceptions import FitFailure, InvalidInput, MultipathError
from .fitting import FittedModel, ModelFitter
from .metrics import classification_metrics, confusion_metrics
from .paths import (Model, PathSearch, PathSearchResult, SearchConfig,
                    build_paths, model_to_string)
from .plausible import (PlausibleFilter, PlausibleModel, PlausibleModelSet,
                        plausible_models, variable_importance_ranking)
from .progress import ProgressEvent
from .selector import MultiPathAIC, fit_multipath
from .stability import StabilityEstimator, StabilityResult, stability

__version__ = "0.1.0"

__all__ = [
    "build_paths", "stability", "plausible_models",
    "variable_importance_ranking", "confusion_metrics",
    "classification_metrics", "fit_multipath",
    "MultiPathAIC", "PathSearch", "StabilityEstimator", "PlausibleFilter",
    "ModelFitter", "FittedModel", "Model", "SearchConfig",
    "PathSearchResult", "StabilityResult", "PlausibleModel",
    "PlausibleModelSet", "ProgressEvent", "model_to_string",
    "MultipathError", "InvalidInput", "FitFailure",
]
