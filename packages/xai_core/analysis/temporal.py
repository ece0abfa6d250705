# packages/xai_core/analysis/temporal.py

from typing import Dict, Optional, Sequence, Union

import numpy as np
import pandas as pd
import polars as pl
from scipy.stats import linregress

from packages.contracts.schemas import TemporalImportance
from packages.contracts.vocabulary.general import Trend
from packages.lumen_lib.config import ImportanceConfig

TemporalData = Union[pl.DataFrame, pd.DataFrame]


class TemporalImportanceAnalyzer:
    """
    Tracks how a feature's importance moves through time, measured as the
    rolling |corr(feature, target)| over `temporal_window` observations.
    """

    def __init__(self, config: ImportanceConfig, logger):
        self.config = config
        self.logger = logger

    def run(
        self, temporal_data: Optional[TemporalData], feature_names: Sequence[str]
    ) -> Dict[str, TemporalImportance]:
        df = self._prepare(temporal_data)
        if df is None:
            return {}

        present = [f for f in feature_names if f in df.columns]
        results = {}
        for feature_name in present[: self.config.max_temporal_features]:
            result = self._analyze_feature(df, feature_name)
            if result is not None:
                results[feature_name] = result
        return results

    def _prepare(self, temporal_data: Optional[TemporalData]) -> Optional[pl.DataFrame]:
        if temporal_data is None:
            return None
        df = pl.from_pandas(temporal_data) if isinstance(temporal_data, pd.DataFrame) else temporal_data
        if df.is_empty():
            return None

        time_col, target_col = self.config.time_column, self.config.target_column
        missing = [c for c in (time_col, target_col) if c not in df.columns]
        if missing:
            self.logger.warning(f"Temporal data lacks required columns {missing}; skipping.")
            return None

        if df.schema[time_col] == pl.Date:
            df = df.with_columns(pl.col(time_col).cast(pl.Datetime))
        elif df.schema[time_col] == pl.Utf8:
            df = df.with_columns(pl.col(time_col).str.to_datetime())
        return df.sort(time_col)

    def _analyze_feature(self, df: pl.DataFrame, feature_name: str) -> Optional[TemporalImportance]:
        time_col, target_col = self.config.time_column, self.config.target_column

        series = (
            df.select(
                pl.col(time_col),
                pl.rolling_corr(
                    pl.col(feature_name).cast(pl.Float64),
                    pl.col(target_col).cast(pl.Float64),
                    window_size=self.config.temporal_window,
                )
                .abs()
                .alias("importance"),
            )
            .drop_nulls()
            .filter(pl.col("importance").is_finite())
        )

        if series.height < 2:
            self.logger.debug(
                f"Not enough history for '{feature_name}' (window={self.config.temporal_window})."
            )
            return None

        times = series[time_col].to_list()
        values = series["importance"].to_numpy()

        return TemporalImportance(
            feature_name=feature_name,
            importance_series=list(zip(times, values.tolist())),
            trend=self._trend(values),
            volatility=float(values.std()),
            regime_changes=self._median_crossings(times, values),
            seasonal_pattern=self._is_seasonal(values),
        )

    def _trend(self, values: np.ndarray) -> Trend:
        slope = linregress(np.arange(len(values)), values).slope
        if slope > self.config.trend_tolerance:
            return Trend.INCREASING
        if slope < -self.config.trend_tolerance:
            return Trend.DECREASING
        return Trend.STABLE

    @staticmethod
    def _median_crossings(times: list, values: np.ndarray) -> list:
        above = values > np.median(values)
        return [times[i] for i in range(1, len(values)) if above[i] != above[i - 1]]

    def _is_seasonal(self, values: np.ndarray) -> bool:
        # Any autocorrelation peak beyond lag 1 above the threshold
        centered = values - values.mean()
        denom = float((centered**2).sum())
        if denom == 0 or len(values) < 4:
            return False
        acf = [
            float((centered[lag:] * centered[:-lag]).sum()) / denom
            for lag in range(2, len(values) // 2 + 1)
        ]
        return max(acf, default=0.0) >= self.config.seasonality_threshold
