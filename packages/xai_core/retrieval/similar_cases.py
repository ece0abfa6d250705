# packages/xai_core/retrieval/similar_cases.py

from typing import Any, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd
import polars as pl

from packages.contracts.schemas import FeatureDifference, SimilarCase
from packages.lumen_lib.config import RetrievalConfig
from packages.lumen_lib.logging import component_logger
from packages.xai_core.protocols import PredictionService, SimilarityFunction

HistoricalData = Union[pd.DataFrame, pl.DataFrame, Sequence[Mapping[str, Any]]]


def inverse_distance_similarity(instance: np.ndarray, candidates: np.ndarray) -> np.ndarray:
    """1 / (1 + euclidean distance). 1.0 for an identical row, -> 0 far away."""
    distances = np.sqrt(((candidates - instance) ** 2).sum(axis=1))
    return 1.0 / (1.0 + distances)


def gaussian_kernel_similarity(instance: np.ndarray, candidates: np.ndarray) -> np.ndarray:
    """RBF kernel with bandwidth sqrt(n_features) on standardized vectors."""
    sq_distances = ((candidates - instance) ** 2).sum(axis=1)
    return np.exp(-sq_distances / (2.0 * max(instance.shape[0], 1)))


def to_frame(data: Optional[HistoricalData]) -> pd.DataFrame:
    """Normalizes any supported historical dataset into a pandas DataFrame."""
    if data is None:
        return pd.DataFrame()
    if isinstance(data, pd.DataFrame):
        return data.reset_index(drop=True)
    if isinstance(data, pl.DataFrame):
        return data.to_pandas()
    return pd.DataFrame(list(data))


class SimilarCaseRetriever:
    """
    Finds the historical records closest to the explained instance.
    Features are z-scored with the dataset's own spread before the
    similarity function sees them, so no single scale dominates.
    """

    def __init__(
        self,
        config: RetrievalConfig,
        similarity: SimilarityFunction = inverse_distance_similarity,
        prediction_service: Optional[PredictionService] = None,
        logger=None,
    ):
        self.config = config
        self.similarity = similarity
        self.prediction_service = prediction_service
        self.logger = component_logger("similar-cases", logger)

    def find(
        self,
        instance: Mapping[str, Any],
        prediction: float,
        training_data: Optional[HistoricalData],
        feature_names: Optional[Sequence[str]] = None,
    ) -> List[SimilarCase]:
        df = to_frame(training_data)
        if df.empty:
            return []

        columns = self._comparable_columns(df, instance, feature_names)
        if not columns:
            self.logger.warning("No numeric features shared with the historical data.")
            return []

        matrix = df[columns].to_numpy(dtype=float)
        vector = np.array([float(instance[c]) for c in columns])

        center = np.nanmean(matrix, axis=0)
        scale = np.nanstd(matrix, axis=0)
        scale = np.where((scale > 0) & np.isfinite(scale), scale, 1.0)

        z_matrix = np.nan_to_num((matrix - center) / scale, nan=0.0)
        z_vector = (vector - center) / scale
        z_vector = np.nan_to_num(z_vector, nan=0.0)

        similarities = np.clip(self.similarity(z_vector, z_matrix), 0.0, 1.0)

        # Stable sort: dataset order breaks ties
        order = np.argsort(-similarities, kind="stable")

        cases = []
        for idx in order:
            sim = float(similarities[idx])
            if sim < self.config.min_similarity:
                break
            record = df.iloc[int(idx)]
            outcome = self._outcome(record, columns, prediction)
            cases.append(
                SimilarCase(
                    case_id=f"case_{int(idx)}",
                    features=record.to_dict(),
                    prediction=outcome,
                    similarity=sim,
                    key_differences=self._key_differences(
                        columns, vector, matrix[idx], z_vector - z_matrix[idx]
                    ),
                    outcome_difference=abs(outcome - prediction),
                )
            )
            if len(cases) >= self.config.max_similar_cases:
                break

        self.logger.debug(f"Retrieved {len(cases)} similar cases from {len(df)} records.")
        return cases

    # --- Internals ---

    def _comparable_columns(
        self,
        df: pd.DataFrame,
        instance: Mapping[str, Any],
        feature_names: Optional[Sequence[str]],
    ) -> List[str]:
        candidates = feature_names if feature_names is not None else list(instance.keys())
        columns = []
        for c in candidates:
            if c == self.config.outcome_column or c not in df.columns:
                continue
            if not pd.api.types.is_numeric_dtype(df[c]):
                continue
            try:
                value = float(instance[c])
            except (KeyError, TypeError, ValueError):
                continue
            if np.isfinite(value):
                columns.append(c)
        return columns

    def _outcome(self, record: pd.Series, columns: List[str], prediction: float) -> float:
        # Realised outcome first, then a model re-score, then the current prediction
        outcome_col = self.config.outcome_column
        if outcome_col in record.index:
            value = pd.to_numeric(record[outcome_col], errors="coerce")
            if pd.notna(value) and np.isfinite(value):
                return float(value)
        if self.prediction_service is not None:
            value, _ = self.prediction_service.predict_with_confidence(record[columns].to_dict())
            return float(value)
        return float(prediction)

    def _key_differences(
        self,
        columns: List[str],
        instance_values: np.ndarray,
        case_values: np.ndarray,
        z_gaps: np.ndarray,
    ) -> List[FeatureDifference]:
        gaps = np.abs(z_gaps)
        order = np.argsort(-gaps, kind="stable")
        diffs = []
        for i in order[: self.config.max_key_differences]:
            if gaps[i] == 0 or not np.isfinite(case_values[i]):
                continue
            diffs.append(
                FeatureDifference(
                    feature_name=columns[i],
                    instance_value=float(instance_values[i]),
                    case_value=float(case_values[i]),
                )
            )
        return diffs
