"""
Example: multi-path selection on the diabetes data
===================================================
Gaussian family.  Ten baseline variables (age, sex, BMI, blood pressure and
six serum measurements) predicting disease progression one year later
(n=442).

The search keeps every near-tied path, stability tells us which
predictors survive resampling, and the plausible set is what is left
after both filters and near-duplicate removal.
"""

import numpy as np
from sklearn.datasets import load_diabetes
from sklearn.model_selection import train_test_split

# If running from the repo root (not pip-installed), uncomment:
# import sys; sys.path.insert(0, '..')

from multipathaic import build_paths, plausible_models, stability

# ------------------------------------------------------------------
# 1.  Load data
# ------------------------------------------------------------------
data = load_diabetes(as_frame=True)
X = data.data
y = data.target.astype(float)
print(f"Dataset: n={len(X)}, p={X.shape[1]}")
print(f"Features: {list(X.columns)}\n")

X_train, X_test, y_train, y_test = train_test_split(
    X, y, test_size=0.2, random_state=2025
)

# ------------------------------------------------------------------
# 2.  Multi-path search
# ------------------------------------------------------------------
paths = build_paths(X_train, y_train, family='gaussian',
                    K=X_train.shape[1], delta=2, L=50)
print(paths.summary())
print()

# ------------------------------------------------------------------
# 3.  Stability (parallel resamples)
# ------------------------------------------------------------------
stab = stability(X_train, y_train, family='gaussian', B=20,
                 resample_type='bootstrap', delta=2, L=50,
                 n_jobs=-1, random_state=2025)
print("Top 5 most stable predictors:")
print(stab.ranking().head(5).round(3).to_string())
print()

# ------------------------------------------------------------------
# 4.  Plausible models, refit on the training data
# ------------------------------------------------------------------
plaus = plausible_models(paths, stab, Delta=4, tau=0.5, refit=True,
                         X=X_train, y=y_train)
print(plaus.summary())
print()

# ------------------------------------------------------------------
# 5.  Test-set performance of the best plausible model
# ------------------------------------------------------------------
if len(plaus) > 0:
    best = plaus.best().fitted
    y_pred = best.predict(X_test)
    rmse = np.sqrt(np.mean((y_test - y_pred) ** 2))
    r2 = 1 - np.sum((y_test - y_pred) ** 2) / np.sum(
        (y_test - y_test.mean()) ** 2)
    print(f"Best model : {', '.join(best.variables)}")
    print(f"Test RMSE  : {rmse:.2f}")
    print(f"Test R²    : {r2:.4f}")
else:
    print("No plausible model at these settings.")
