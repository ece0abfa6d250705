# packages/xai_core/attribution/estimators.py

from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.base import is_classifier
from sklearn.feature_selection import mutual_info_classif, mutual_info_regression
from sklearn.inspection import permutation_importance

from packages.xai_core.attribution.providers import ShapAttribution


def scale_to_max(scores: Dict[str, float]) -> Dict[str, float]:
    """Puts one method's scores on a [0, 1] scale so methods can be blended."""
    top = max(scores.values(), default=0.0)
    if top <= 0:
        return {k: 0.0 for k in scores}
    return {k: v / top for k, v in scores.items()}


def permutation_scores(
    model, X: pd.DataFrame, y: pd.Series, n_repeats: int, random_state: int
) -> Dict[str, float]:
    """Mean score drop when a column is shuffled (negative drops count as 0)."""
    result = permutation_importance(
        model, X, y, n_repeats=n_repeats, random_state=random_state
    )
    means = np.clip(np.nan_to_num(result.importances_mean), 0.0, None)
    return {c: float(v) for c, v in zip(X.columns, means)}


def model_based_scores(model, columns: Sequence[str]) -> Optional[Dict[str, float]]:
    """Native importances for trees, |coef| for linear models, None otherwise."""
    if hasattr(model, "feature_importances_"):
        values = np.asarray(model.feature_importances_, dtype=float)
    elif hasattr(model, "coef_"):
        coef = np.abs(np.asarray(model.coef_, dtype=float))
        values = coef.mean(axis=0) if coef.ndim > 1 else coef
    else:
        return None
    return {c: float(v) for c, v in zip(columns, np.nan_to_num(values))}


def correlation_scores(X: pd.DataFrame, y: pd.Series) -> Dict[str, float]:
    """|Pearson r| with the target; constant columns score 0."""
    target = pd.Series(np.asarray(y, dtype=float), index=X.index)
    corr = X.astype(float).corrwith(target).abs().fillna(0.0)
    return {c: float(corr[c]) for c in X.columns}


def mutual_info_scores(
    model, X: pd.DataFrame, y: pd.Series, random_state: int
) -> Dict[str, float]:
    estimator = mutual_info_classif if is_classifier(model) else mutual_info_regression
    values = estimator(X.to_numpy(dtype=float), np.asarray(y), random_state=random_state)
    return {c: float(v) for c, v in zip(X.columns, values)}


def shapley_scores(
    model,
    X: pd.DataFrame,
    n_rows: int,
    n_samples: int,
    background_size: int,
    random_state: int,
) -> Dict[str, float]:
    """Mean |Shapley value| over the first `n_rows` rows."""
    explainer = ShapAttribution(
        model,
        X,
        n_samples=n_samples,
        background_size=background_size,
        random_state=random_state,
    )
    rows = X.to_numpy(dtype=float)[:n_rows]
    phis = explainer.shapley_values(rows)
    return {c: float(v) for c, v in zip(X.columns, np.abs(phis).mean(axis=0))}
