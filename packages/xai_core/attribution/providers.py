# packages/xai_core/attribution/providers.py
"""
Model-backed collaborators for the explainer.

The engine only needs something that turns an instance into a prediction and
something that turns an instance into per-feature contributions. These
adapters provide both for any scikit-learn style estimator, using `shap` and
`lime` for the attributions, so the engine can run end-to-end without an
external attribution service.
"""

from typing import Any, Dict, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd
import shap
from lime.lime_tabular import LimeTabularExplainer
from sklearn.linear_model import Ridge

from packages.contracts.vocabulary.signals import AttributionMethod


def model_output(model, rows: np.ndarray, columns: Sequence[str]) -> np.ndarray:
    """
    One scalar per row: positive-class probability for classifiers,
    the raw prediction otherwise.
    """
    frame = pd.DataFrame(np.atleast_2d(rows), columns=list(columns))
    if hasattr(model, "predict_proba"):
        return np.asarray(model.predict_proba(frame), dtype=float)[:, -1]
    return np.asarray(model.predict(frame), dtype=float).reshape(-1)


def instance_vector(instance: Mapping[str, Any], columns: Sequence[str]) -> np.ndarray:
    return np.array([float(instance[c]) for c in columns], dtype=float)


def _numeric_background(background: pd.DataFrame, size: int, random_state: int) -> np.ndarray:
    if len(background) > size:
        background = background.sample(n=size, random_state=random_state)
    background = background.astype(np.float64).replace([np.inf, -np.inf], np.nan).fillna(0)
    return background.to_numpy()


class ModelPredictionService:
    """
    Prediction service over a fitted estimator.

    Confidence is the top class probability for classifiers; for bagged
    ensembles it is the agreement of the members, 1 / (1 + CV); any other
    regressor reports full confidence.
    """

    def __init__(self, model, columns: Sequence[str]):
        self.model = model
        self.columns = list(columns)

    def predict_with_confidence(self, instance: Mapping[str, Any]) -> Tuple[float, float]:
        x = instance_vector(instance, self.columns)[None, :]
        frame = pd.DataFrame(x, columns=self.columns)

        if hasattr(self.model, "predict_proba"):
            proba = np.asarray(self.model.predict_proba(frame), dtype=float)[0]
            return float(proba[-1]), float(proba.max())

        prediction = float(np.asarray(self.model.predict(frame)).reshape(-1)[0])
        members = getattr(self.model, "estimators_", None)
        if isinstance(members, list) and members:
            # Forest / bagging members were fitted on bare arrays
            votes = np.array([float(m.predict(x)[0]) for m in members])
            cv = votes.std() / (abs(votes.mean()) + 1e-8)
            return prediction, float(1.0 / (1.0 + cv))
        return prediction, 1.0


class ShapAttribution:
    """
    Shapley values from `shap`'s permutation explainer over a seeded
    background sample. `n_samples` is the evaluation budget per explained row
    (raised to the explainer's minimum of 2 * n_features + 1).
    """

    method = AttributionMethod.SHAP

    def __init__(
        self,
        model,
        background: pd.DataFrame,
        n_samples: int = 1000,
        background_size: int = 50,
        random_state: int = 42,
    ):
        self.model = model
        self.columns = list(background.columns)
        self.background = _numeric_background(background, background_size, random_state)
        self.max_evals = max(n_samples, 2 * len(self.columns) + 1)
        self.random_state = random_state

    def __call__(self, instance: Mapping[str, Any], feature_names: Sequence[str]) -> Dict[str, float]:
        phi = self.shapley_values(instance_vector(instance, self.columns))[0]
        index = {c: i for i, c in enumerate(self.columns)}
        return {f: float(phi[index[f]]) for f in feature_names if f in index}

    def shapley_values(self, rows: np.ndarray) -> np.ndarray:
        """(n_rows, n_features) Shapley values; a 1-D row is treated as one row."""
        # Rebuilt per call so repeated calls replay the same seed
        explainer = shap.Explainer(
            self._predict,
            self.background,
            algorithm="permutation",
            feature_names=self.columns,
            seed=self.random_state,
        )
        explanation = explainer(np.atleast_2d(rows).astype(float), max_evals=self.max_evals, silent=True)
        return np.asarray(explanation.values, dtype=float).reshape(-1, len(self.columns))

    def _predict(self, rows: np.ndarray) -> np.ndarray:
        return model_output(self.model, rows, self.columns)


class LimeAttribution:
    """
    LIME tabular explanations in regression mode, sampled around the instance.
    The contribution of a feature is its local slope times the instance's
    offset from the background mean.
    """

    method = AttributionMethod.LIME

    def __init__(
        self,
        model,
        background: pd.DataFrame,
        n_samples: int = 500,
        kernel_width: float = 0.75,
        alpha: float = 1.0,
        random_state: int = 42,
    ):
        self.model = model
        self.columns = list(background.columns)
        self.training_data = background.to_numpy(dtype=float)
        self.mean = self.training_data.mean(axis=0)
        scale = self.training_data.std(axis=0)
        self.scale = np.where(scale > 0, scale, 1.0)
        self.n_samples = n_samples
        self.kernel_width = kernel_width * np.sqrt(len(self.columns))
        self.alpha = alpha
        self.random_state = random_state

    def __call__(self, instance: Mapping[str, Any], feature_names: Sequence[str]) -> Dict[str, float]:
        x = instance_vector(instance, self.columns)

        # A fresh explainer per call keeps the sampling seed reproducible
        explainer = LimeTabularExplainer(
            self.training_data,
            feature_names=self.columns,
            mode="regression",
            discretize_continuous=False,
            sample_around_instance=True,
            kernel_width=self.kernel_width,
            random_state=self.random_state,
        )
        exp = explainer.explain_instance(
            x,
            self._predict,
            num_features=len(self.columns),
            num_samples=self.n_samples,
            model_regressor=Ridge(alpha=self.alpha, random_state=self.random_state),
        )

        # Regression weights are on standardized features
        slopes = np.zeros(len(self.columns))
        for i, weight in exp.as_map()[1]:
            slopes[i] = weight / self.scale[i]
        contributions = slopes * (x - self.mean)

        index = {c: i for i, c in enumerate(self.columns)}
        return {f: float(contributions[index[f]]) for f in feature_names if f in index}

    def _predict(self, rows: np.ndarray) -> np.ndarray:
        return model_output(self.model, rows, self.columns)
