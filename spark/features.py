"""
Feature Pipeline: raw flights -> modeling dataset (lazy).
Filter -> (carrier corrections) -> left join airlines -> derive gain -> project.
Nothing here triggers a Spark action; materialization happens downstream.
"""

import logging
from typing import Sequence

from pyspark.sql import Column, DataFrame
from pyspark.sql.functions import coalesce, col, lit, trim, when

from spark.config import CarrierCorrection, FilterBounds, PipelineConfig

logger = logging.getLogger(__name__)

MODEL_COLUMNS = [
    "year",
    "month",
    "arrdelay",
    "depdelay",
    "distance",
    "uniquecarrier",
    "description",
    "gain",
]

SCORING_COLUMNS = MODEL_COLUMNS + ["origin", "dest"]


def delay_filter(bounds: FilterBounds) -> Column:
    """Non-null delays and distance, delays strictly inside the bounds."""
    return (
        col("depdelay").isNotNull()
        & col("arrdelay").isNotNull()
        & col("distance").isNotNull()
        & (col("depdelay") > bounds.depdelay_min)
        & (col("depdelay") < bounds.depdelay_max)
        & (col("arrdelay") > bounds.arrdelay_min)
        & (col("arrdelay") < bounds.arrdelay_max)
    )


def filter_flights(df: DataFrame, bounds: FilterBounds, year_min: int, year_max: int) -> DataFrame:
    """Apply delay bounds and an inclusive year window."""
    return df.filter(delay_filter(bounds)).filter(col("year").between(year_min, year_max))


def _correction_predicate(rule: CarrierCorrection) -> Column:
    carrier = coalesce(trim(col("uniquecarrier")), lit(""))
    codes = [code.strip() for code in rule.match_codes]
    return (col("crsarrtime") == rule.crsarrtime) & carrier.isin(codes)


def apply_carrier_corrections(df: DataFrame, rules: Sequence[CarrierCorrection]) -> DataFrame:
    """
    Rewrite ambiguous carrier codes by exact crsarrtime match.
    Rules are evaluated in order and the first match wins.
    """
    if not rules:
        return df

    expr = None
    for rule in rules:
        predicate = _correction_predicate(rule)
        expr = when(predicate, lit(rule.replacement)) if expr is None else expr.when(
            predicate, lit(rule.replacement)
        )
    return df.withColumn("uniquecarrier", expr.otherwise(col("uniquecarrier")))


def join_airlines(df: DataFrame, airlines: DataFrame) -> DataFrame:
    """Left join; carriers without a reference row keep a null description."""
    reference = airlines.select(
        col("code").alias("_airline_code"), col("description").alias("description")
    )
    return df.join(reference, df["uniquecarrier"] == reference["_airline_code"], how="left").drop(
        "_airline_code"
    )


def add_gain(df: DataFrame) -> DataFrame:
    """gain = depdelay - arrdelay (positive means time made up in flight)."""
    return df.withColumn("gain", col("depdelay") - col("arrdelay"))


def build_model_data(flights: DataFrame, airlines: DataFrame, config: PipelineConfig) -> DataFrame:
    """Training window plan. Carrier corrections are not applied here."""
    logger.info(
        f"Building model data plan for {config.train_year_min}-{config.train_year_max}"
    )
    filtered = filter_flights(
        flights, config.bounds, config.train_year_min, config.train_year_max
    )
    return add_gain(join_airlines(filtered, airlines)).select(*MODEL_COLUMNS)


def build_scoring_data(flights: DataFrame, airlines: DataFrame, config: PipelineConfig) -> DataFrame:
    """Scoring year plan, with carrier corrections applied before the join."""
    logger.info(
        f"Building scoring plan for {config.score_year} "
        f"({len(config.carrier_corrections)} carrier corrections)"
    )
    filtered = filter_flights(flights, config.bounds, config.score_year, config.score_year)
    corrected = apply_carrier_corrections(filtered, config.carrier_corrections)
    return add_gain(join_airlines(corrected, airlines)).select(*SCORING_COLUMNS)
