"""
Route Rollup: scored 2008 flights -> summary table.
Aggregates per (origin, dest, carrier) and overwrites the named output table.
"""

import logging

from pyspark.sql import DataFrame
from pyspark.sql.functions import avg, col, count
from pyspark.sql.functions import round as spark_round

from spark.errors import PipelineError
from spark.tables import save_table

logger = logging.getLogger(__name__)

ROLLUP_KEYS = ["origin", "dest", "uniquecarrier", "description"]


def route_rollup(scored: DataFrame) -> DataFrame:
    """Flight count and mean metrics per route and carrier. Lazy."""
    return scored.groupBy(*ROLLUP_KEYS).agg(
        count("*").alias("flights"),
        spark_round(avg("distance"), 2).alias("distance"),
        spark_round(avg("depdelay"), 2).alias("avg_dep_delay"),
        spark_round(avg("arrdelay"), 2).alias("avg_arr_delay"),
        spark_round(avg("gain"), 2).alias("avg_gain"),
        spark_round(avg("prediction"), 2).alias("pred_gain"),
    )


def publish_rollup(scored: DataFrame, table_name: str, cache: bool = True) -> DataFrame:
    """Persist the rollup under table_name, replacing any previous contents."""
    rollup = route_rollup(scored)
    try:
        save_table(rollup, table_name, cache=cache)
    except Exception as e:
        logger.error(f"Rollup write failed for {table_name}: {e}")
        raise PipelineError(
            f"Rollup write failed: {e}", stage="publish", table=table_name
        ) from e
    return rollup.sparkSession.table(table_name)


def collect_airports(airports: DataFrame):
    """Small airport projection for the dashboard map."""
    return airports.select(
        col("name"), col("faa"), col("lat").cast("double"), col("lon").cast("double")
    ).toPandas()
