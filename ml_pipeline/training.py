"""
Gain Model Training.

Single ordinary-least-squares fit of gain on distance, departure delay and
carrier. Carrier is categorical; RFormula one-hot encodes it inside Spark.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd
import structlog
from pyspark.ml import Pipeline, PipelineModel
from pyspark.ml.feature import RFormula
from pyspark.ml.regression import LinearRegression
from pyspark.sql import DataFrame

from ml_pipeline.config import MLConfig
from spark.errors import TrainingError

logger = structlog.get_logger(__name__)


@dataclass
class TrainingResult:
    """Fit statistics of a training run."""

    r2: float
    rmse: float
    mae: float
    training_samples: int
    intercept: float
    coefficients: Dict[str, float] = field(default_factory=dict)
    training_duration_seconds: float = 0.0


def feature_names(df: DataFrame, features_col: str = "features") -> List[str]:
    """Recover expanded feature names from ML attribute metadata, ordered by index."""
    metadata = df.schema[features_col].metadata.get("ml_attr", {})
    attrs = metadata.get("attrs", {})
    indexed = []
    for group in attrs.values():
        for attr in group:
            indexed.append((attr["idx"], attr["name"]))
    if not indexed:
        size = metadata.get("num_attrs", 0)
        return [f"x{i}" for i in range(size)]
    return [name for _, name in sorted(indexed)]


class GainModel:
    """Wrapper around a Spark ML pipeline (RFormula + LinearRegression)."""

    def __init__(self, config: MLConfig):
        self._config = config
        self._model: Optional[PipelineModel] = None
        self._feature_names: List[str] = []
        self._result: Optional[TrainingResult] = None

    @property
    def is_trained(self) -> bool:
        return self._model is not None

    def _build_pipeline(self) -> Pipeline:
        # skip: rows whose carrier was not seen in training are dropped at transform
        formula = RFormula(
            formula=self._config.formula,
            featuresCol="features",
            labelCol="label",
            handleInvalid="skip",
        )
        regression = LinearRegression(
            featuresCol="features",
            labelCol="label",
            predictionCol="prediction",
            solver="normal",
            regParam=0.0,
            elasticNetParam=0.0,
            fitIntercept=True,
        )
        return Pipeline(stages=[formula, regression])

    def fit(self, train_df: DataFrame) -> TrainingResult:
        """Fit on the training subset. Blocks until Spark finishes the solve."""
        start_time = time.time()
        label = self._config.label_column
        if label not in train_df.columns:
            logger.error("label_missing", label=label, available=train_df.columns)
            raise TrainingError(f"Label column {label} missing from training data", stage="train")

        try:
            self._model = self._build_pipeline().fit(train_df)
            lr_model = self._model.stages[-1]
            summary = lr_model.summary
            self._feature_names = feature_names(summary.predictions)
            coefficients = dict(zip(self._feature_names, lr_model.coefficients.toArray().tolist()))
            result = TrainingResult(
                r2=float(summary.r2),
                rmse=float(summary.rootMeanSquaredError),
                mae=float(summary.meanAbsoluteError),
                training_samples=int(summary.numInstances),
                intercept=float(lr_model.intercept),
                coefficients=coefficients,
            )
        except Exception as e:
            self._model = None
            logger.error("model_fit_failed", error=str(e))
            raise TrainingError(f"Linear regression fit failed: {e}", stage="train") from e

        result.training_duration_seconds = time.time() - start_time
        self._result = result
        logger.info(
            "model_fitted",
            r2=f"{result.r2:.4f}",
            rmse=f"{result.rmse:.2f}",
            samples=result.training_samples,
        )
        return result

    def predict(self, df: DataFrame) -> DataFrame:
        """Add a 'prediction' column. Lazy."""
        if not self.is_trained:
            raise TrainingError("predict called on an untrained model", stage="score")
        return self._model.transform(df).drop("features", "label")

    def coefficient_table(self) -> pd.DataFrame:
        """Coefficients with standard errors, t and p values (intercept last, as Spark reports)."""
        if not self.is_trained:
            raise TrainingError("coefficient_table called on an untrained model", stage="summary")
        lr_model = self._model.stages[-1]
        summary = lr_model.summary
        names = self._feature_names + ["(Intercept)"]
        estimates = lr_model.coefficients.toArray().tolist() + [lr_model.intercept]
        return pd.DataFrame(
            {
                "term": names,
                "estimate": estimates,
                "std_error": summary.coefficientStandardErrors,
                "t_value": summary.tValues,
                "p_value": summary.pValues,
            }
        )

    def summary_text(self) -> str:
        """Plain-text model summary for the dashboard bundle."""
        if self._result is None:
            raise TrainingError("summary_text called on an untrained model", stage="summary")
        table = self.coefficient_table()
        lines = [
            "Linear regression (ordinary least squares)",
            f"Formula: {self._config.formula}",
            "",
            "Coefficients:",
            table.to_string(index=False, float_format=lambda v: f"{v:.6g}"),
            "",
            f"R-squared: {self._result.r2:.4f}",
            f"Root mean squared error: {self._result.rmse:.4f}",
            f"Mean absolute error: {self._result.mae:.4f}",
            f"Observations: {self._result.training_samples}",
        ]
        return "\n".join(lines)
