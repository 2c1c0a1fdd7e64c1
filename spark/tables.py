"""
Named table access: load, cache, persist.
Methodical: Fails fast at first reference if a source table is missing or
does not carry the columns the pipeline reads.
"""

import logging
from typing import Dict, Iterable, List, Optional

from pyspark.sql import DataFrame, SparkSession

from spark.errors import SchemaMismatchError, TableNotFoundError

logger = logging.getLogger(__name__)

# Columns each source table must expose
FLIGHTS_COLUMNS = [
    "year",
    "month",
    "dayofmonth",
    "origin",
    "dest",
    "crsdeptime",
    "deptime",
    "crsarrtime",
    "arrtime",
    "depdelay",
    "arrdelay",
    "distance",
    "uniquecarrier",
]
AIRLINES_COLUMNS = ["code", "description"]
AIRPORTS_COLUMNS = ["faa", "name", "lat", "lon"]

REQUIRED_COLUMNS: Dict[str, List[str]] = {
    "flights": FLIGHTS_COLUMNS,
    "airlines": AIRLINES_COLUMNS,
    "airports": AIRPORTS_COLUMNS,
}


def load_table(
    spark: SparkSession,
    name: str,
    required: Optional[Iterable[str]] = None,
    stage: str = "load",
) -> DataFrame:
    """Return a lazy handle on a catalog table after checking it exists and has the required columns."""
    if not spark.catalog.tableExists(name):
        logger.critical(f"DEPENDENCY MISSING: table {name} not found in catalog")
        raise TableNotFoundError("Table not found", stage=stage, table=name)

    df = spark.table(name)
    if required is not None:
        columns = {c.lower() for c in df.columns}
        missing = {c for c in required if c.lower() not in columns}
        if missing:
            logger.critical(f"Schema mismatch on {name}: missing {sorted(missing)}")
            raise SchemaMismatchError(name, missing, stage=stage)
    return df


def cache_tables(spark: SparkSession, names: Iterable[str]) -> List[str]:
    """Pin source tables in cluster memory. Blocks until each cache is populated."""
    cached = []
    for name in names:
        if not spark.catalog.tableExists(name):
            raise TableNotFoundError("Cannot cache missing table", stage="cache", table=name)
        logger.info(f"Caching table {name}...")
        spark.catalog.cacheTable(name)
        # cacheTable is lazy; force population so later stages hit memory
        spark.table(name).count()
        cached.append(name)
    return cached


def save_table(df: DataFrame, name: str, cache: bool = False) -> None:
    """
    Persist a DataFrame as a named table.
    Overwrites any existing table of the same name wholesale; concurrent runs
    writing the same name race at the storage layer.
    """
    spark = df.sparkSession
    logger.info(f"Writing table {name} (overwrite)...")
    if spark.catalog.tableExists(name):
        spark.catalog.uncacheTable(name)
    df.write.mode("overwrite").saveAsTable(name)
    if cache:
        spark.catalog.cacheTable(name)
    logger.info(f"Successfully wrote table {name}.")
