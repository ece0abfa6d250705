# packages/xai_core/analysis/statistics.py

from itertools import combinations
from typing import Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import fcluster, linkage
from scipy.spatial.distance import squareform
from scipy.stats import pearsonr

from packages.xai_core.attribution.providers import model_output


def feature_p_values(X: pd.DataFrame, y: pd.Series) -> Dict[str, float]:
    """
    Two-sided Pearson test of each feature against the target.
    Constant columns (or a constant target) get p = 1.0.
    """
    target = np.asarray(y, dtype=float)
    p_values = {}
    for c in X.columns:
        values = X[c].to_numpy(dtype=float)
        if len(values) < 3 or values.std() == 0 or target.std() == 0:
            p_values[c] = 1.0
            continue
        _, p = pearsonr(values, target)
        p_values[c] = float(p) if np.isfinite(p) else 1.0
    return p_values


def bootstrap_stability(
    X: pd.DataFrame,
    y: pd.Series,
    n_bootstrap: int,
    random_state: int,
    epsilon: float = 1e-8,
) -> Dict[str, float]:
    """
    Resamples rows with replacement, recomputes |corr(feature, target)| on each
    resample and scores 1 - CV of those estimates, clipped to [0, 1].
    """
    rng = np.random.default_rng(random_state)
    values = X.to_numpy(dtype=float)
    target = np.asarray(y, dtype=float)
    n = len(values)

    estimates = np.zeros((n_bootstrap, values.shape[1]))
    for b in range(n_bootstrap):
        idx = rng.integers(0, n, size=n)
        estimates[b] = _abs_corr(values[idx], target[idx])

    mean = estimates.mean(axis=0)
    std = estimates.std(axis=0)
    stability = np.clip(1.0 - std / (np.abs(mean) + epsilon), 0.0, 1.0)
    return {c: float(s) for c, s in zip(X.columns, stability)}


def _abs_corr(values: np.ndarray, target: np.ndarray) -> np.ndarray:
    centered = values - values.mean(axis=0)
    t = target - target.mean()
    denom = np.sqrt((centered**2).sum(axis=0) * (t**2).sum())
    with np.errstate(divide="ignore", invalid="ignore"):
        corr = np.abs(centered.T @ t) / denom
    return np.nan_to_num(corr, nan=0.0, posinf=0.0, neginf=0.0)


def _centered_partial_dependence(
    model, sample: np.ndarray, columns: Sequence[str], idx: List[int]
) -> np.ndarray:
    """
    PD at each sample row for the features in `idx`: row i fixes those features
    to its own values and averages the model over every sample row.
    """
    n, p = sample.shape
    grid = np.repeat(sample[None, :, :], n, axis=0)  # grid[i, l] = sample[l]
    grid[:, :, idx] = sample[:, None, idx]
    preds = model_output(model, grid.reshape(-1, p), columns).reshape(n, n)
    pd_values = preds.mean(axis=1)
    return pd_values - pd_values.mean()


def friedman_h_statistics(
    model,
    X: pd.DataFrame,
    feature_names: Sequence[str],
    sample_size: int,
    random_state: int,
) -> Dict[Tuple[str, str], float]:
    """
    Pairwise Friedman H statistic: the share of the joint partial dependence
    of (a, b) that the two one-way partial dependences cannot explain.
    0 means additive, values near 1 mean the effect is mostly interaction.
    """
    columns = list(X.columns)
    features = [f for f in feature_names if f in columns]
    if len(features) < 2 or len(X) < 2:
        return {}

    if len(X) > sample_size:
        X = X.sample(n=sample_size, random_state=random_state)
    sample = X.to_numpy(dtype=float)
    index = {c: i for i, c in enumerate(columns)}

    one_way = {
        f: _centered_partial_dependence(model, sample, columns, [index[f]]) for f in features
    }

    strengths = {}
    for a, b in combinations(features, 2):
        joint = _centered_partial_dependence(model, sample, columns, [index[a], index[b]])
        denom = float((joint**2).sum())
        if denom <= 0:
            strengths[(a, b)] = 0.0
            continue
        h2 = float(((joint - one_way[a] - one_way[b]) ** 2).sum()) / denom
        strengths[(a, b)] = float(np.sqrt(min(max(h2, 0.0), 1.0)))
    return strengths


def correlated_feature_groups(
    X: pd.DataFrame, feature_names: Sequence[str], threshold: float
) -> Dict[str, List[str]]:
    """
    Average-linkage clustering on 1 - |corr|; a cut at 1 - threshold keeps
    features whose typical |corr| reaches `threshold` together. Singletons are
    dropped, so groups are disjoint but need not cover every feature.
    """
    features = [f for f in feature_names if f in X.columns]
    if len(features) < 2:
        return {}

    corr = X[features].astype(float).corr().abs().fillna(0.0).to_numpy()
    distance = 1.0 - corr
    distance = np.clip((distance + distance.T) / 2.0, 0.0, 1.0)
    np.fill_diagonal(distance, 0.0)

    tree = linkage(squareform(distance, checks=False), method="average")
    labels = fcluster(tree, t=1.0 - threshold, criterion="distance")

    members: Dict[int, List[str]] = {}
    for feature, label in zip(features, labels):
        members.setdefault(int(label), []).append(feature)

    groups = {}
    for cluster in members.values():  # First-seen order of the input features
        if len(cluster) > 1:
            groups[f"group_{len(groups)}"] = cluster
    return groups
