"""
Model Evaluation.

Scores held-out data and reduces it to small aggregates before anything
leaves the cluster: decile summary, per-carrier summary, fit metrics.
"""

from functools import reduce
from typing import Dict, Optional

import pandas as pd
import structlog
from pyspark.ml.evaluation import RegressionEvaluator
from pyspark.sql import DataFrame
from pyspark.sql.functions import avg, col, count, lit, ntile
from pyspark.sql.window import Window

from ml_pipeline.training import GainModel

logger = structlog.get_logger(__name__)

DECILE_COLUMNS = ["data", "decile", "gain", "flights"]
CARRIER_COLUMNS = ["description", "gain", "prediction", "flights"]


def score_partitions(model: GainModel, partitions: Dict[str, DataFrame]) -> DataFrame:
    """Predict every subset and stack them with a 'data' tag column."""
    scored = [
        model.predict(df).withColumn("data", lit(name)) for name, df in partitions.items()
    ]
    return reduce(lambda left, right: left.unionByName(right), scored)


def assign_deciles(scored: DataFrame, n_deciles: int = 10, by: Optional[str] = "data") -> DataFrame:
    """Decile 1 holds the highest predictions; groups differ in size by at most one row."""
    window = Window.orderBy(col("prediction").desc())
    if by:
        window = Window.partitionBy(by).orderBy(col("prediction").desc())
    return scored.withColumn("decile", ntile(n_deciles).over(window))


def decile_summary(scored: DataFrame, n_deciles: int = 10) -> pd.DataFrame:
    """Mean actual gain per (data, decile). Materializes at most 2 * n_deciles rows."""
    summary = (
        assign_deciles(scored, n_deciles)
        .groupBy("data", "decile")
        .agg(avg("gain").alias("gain"), count("*").alias("flights"))
        .orderBy("data", "decile")
        .toPandas()
    )
    if summary.empty:
        logger.warning("decile_summary_empty")
        return pd.DataFrame(columns=DECILE_COLUMNS)
    return summary[DECILE_COLUMNS]


def carrier_summary(scored: DataFrame, min_flights: int = 10000) -> pd.DataFrame:
    """Actual vs predicted mean gain per carrier, dropping small carriers before collecting."""
    summary = (
        scored.groupBy("description")
        .agg(
            avg("gain").alias("gain"),
            avg("prediction").alias("prediction"),
            count("*").alias("flights"),
        )
        .filter(col("flights") >= min_flights)
        .orderBy(col("gain").desc())
        .toPandas()
    )
    logger.info("carrier_summary_collected", carriers=len(summary), min_flights=min_flights)
    if summary.empty:
        return pd.DataFrame(columns=CARRIER_COLUMNS)
    return summary[CARRIER_COLUMNS]


def validation_metrics(scored: DataFrame, label_col: str = "gain") -> Dict[str, Dict[str, float]]:
    """RMSE, MAE and R2 per subset present in the scored data. Empty input gives {}."""
    metrics: Dict[str, Dict[str, float]] = {}
    names = [row["data"] for row in scored.select("data").distinct().collect()]
    for name in sorted(names):
        subset = scored.filter(col("data") == name)
        results = {}
        for metric in ("rmse", "mae", "r2"):
            evaluator = RegressionEvaluator(
                labelCol=label_col, predictionCol="prediction", metricName=metric
            )
            results[metric] = float(evaluator.evaluate(subset))
        metrics[name] = results
        logger.info("validation_metrics", data=name, **results)
    return metrics
