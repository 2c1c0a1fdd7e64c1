import shutil
from typing import Any, Dict, List

import pytest


FLIGHTS_DDL = (
    "year INT, month INT, dayofmonth INT, origin STRING, dest STRING, "
    "crsdeptime INT, deptime INT, crsarrtime INT, arrtime INT, "
    "depdelay DOUBLE, arrdelay DOUBLE, distance DOUBLE, uniquecarrier STRING"
)


def make_flight(**overrides) -> Dict[str, Any]:
    """A flight leg that passes every filter unless overridden."""
    row = {
        "year": 2005,
        "month": 6,
        "dayofmonth": 15,
        "origin": "JFK",
        "dest": "LAX",
        "crsdeptime": 900,
        "deptime": 920,
        "crsarrtime": 1200,
        "arrtime": 1205,
        "depdelay": 20.0,
        "arrdelay": 5.0,
        "distance": 500.0,
        "uniquecarrier": "AA",
    }
    row.update(overrides)
    return row


@pytest.fixture(scope="session")
def spark(tmp_path_factory):
    """Local single-core Spark session; skipped when no JVM is available."""
    if shutil.which("java") is None:
        pytest.skip("Java runtime not available for local Spark")
    pyspark_sql = pytest.importorskip("pyspark.sql")

    warehouse = tmp_path_factory.mktemp("warehouse")
    session = (
        pyspark_sql.SparkSession.builder.master("local[1]")
        .appName("flight-gain-tests")
        .config("spark.sql.shuffle.partitions", "1")
        .config("spark.default.parallelism", "1")
        .config("spark.ui.enabled", "false")
        .config("spark.sql.warehouse.dir", str(warehouse))
        .config("spark.sql.session.timeZone", "UTC")
        .getOrCreate()
    )
    yield session
    session.stop()


@pytest.fixture
def flights_rows() -> List[Dict[str, Any]]:
    return [
        make_flight(),
        make_flight(depdelay=10.0),                      # below departure bound
        make_flight(depdelay=240.0),                     # upper bound is open
        make_flight(depdelay=15.0),                      # lower bound is open
        make_flight(arrdelay=-60.0),                     # lower bound is open
        make_flight(arrdelay=360.0),                     # upper bound is open
        make_flight(arrdelay=None),
        make_flight(distance=None),
        make_flight(year=2002),
        make_flight(year=2003, uniquecarrier="UA"),      # year range is inclusive
        make_flight(year=2007, uniquecarrier="ZZ"),      # no airline reference
        make_flight(year=2008, crsarrtime=351, uniquecarrier=""),
        make_flight(year=2008, crsarrtime=351, uniquecarrier="UA"),
        make_flight(year=2008, crsarrtime=1200, uniquecarrier=""),
    ]


@pytest.fixture
def flights_df(spark, flights_rows):
    return spark.createDataFrame(flights_rows, schema=FLIGHTS_DDL)


@pytest.fixture
def airlines_df(spark):
    return spark.createDataFrame(
        [
            ("AA", "American Airlines Inc."),
            ("UA", "United Air Lines Inc."),
            ("DH", "Independence Air"),
            ("US", "US Airways Inc."),
        ],
        schema="code STRING, description STRING",
    )


@pytest.fixture
def airports_df(spark):
    return spark.createDataFrame(
        [
            ("JFK", "John F Kennedy Intl", 40.6398, -73.7789),
            ("LAX", "Los Angeles Intl", 33.9425, -118.4081),
        ],
        schema="faa STRING, name STRING, lat DOUBLE, lon DOUBLE",
    )


@pytest.fixture
def env_config(monkeypatch):
    monkeypatch.setenv("SPARK_MASTER", "local[2]")
    monkeypatch.setenv("SPARK_CONF", '{"spark.executor.memory": "2g", "spark.sql.shuffle.partitions": 8}')
    monkeypatch.setenv("SUMMARY_TABLE", "summary_test")
    monkeypatch.setenv("TRAIN_YEAR_MIN", "2004")
    monkeypatch.setenv("TRAIN_YEAR_MAX", "2006")


@pytest.fixture
def build_flights(spark):
    """Factory: one dict of make_flight() overrides per row -> flights DataFrame."""

    def _build(*overrides):
        rows = [make_flight(**o) for o in overrides]
        return spark.createDataFrame(rows, schema=FLIGHTS_DDL)

    return _build


CARRIERS = {
    "AA": ("American Airlines Inc.", 4.0),
    "UA": ("United Air Lines Inc.", -2.0),
    "DH": ("Independence Air", 1.0),
}


def synthetic_flights(n: int = 300, seed: int = 7, years=(2003, 2008)) -> List[Dict[str, Any]]:
    """Flights whose gain is linear in distance, depdelay and carrier plus small noise."""
    import numpy as np

    rng = np.random.default_rng(seed)
    codes = list(CARRIERS)
    rows = []
    for i in range(n):
        code = codes[i % len(codes)]
        distance = float(rng.uniform(100, 2500))
        depdelay = float(rng.uniform(20, 200))
        gain = 2.0 + 0.004 * distance + 0.05 * depdelay + CARRIERS[code][1] + float(rng.normal(0, 0.5))
        rows.append(
            make_flight(
                year=int(years[0] + i % (years[1] - years[0] + 1)),
                origin=["JFK", "ORD", "ATL"][i % 3],
                dest=["LAX", "SFO"][i % 2],
                depdelay=round(depdelay, 3),
                arrdelay=round(depdelay - gain, 3),
                distance=round(distance, 1),
                uniquecarrier=code,
            )
        )
    return rows


@pytest.fixture
def model_frame(spark):
    """Modeling records (post feature pipeline) for the training window."""
    from spark.config import PipelineConfig
    from spark.features import build_model_data

    flights = spark.createDataFrame(synthetic_flights(), schema=FLIGHTS_DDL)
    airlines = spark.createDataFrame(
        [(code, desc) for code, (desc, _) in CARRIERS.items()],
        schema="code STRING, description STRING",
    )
    return build_model_data(flights, airlines, PipelineConfig())


@pytest.fixture
def make_ml_config():
    """Factory for MLConfig with test defaults (tracking disabled)."""
    from ml_pipeline.config import MLConfig

    def _make(**overrides):
        params = dict(
            formula="gain ~ distance + depdelay + uniquecarrier",
            label_column="gain",
            split_weights=(0.8, 0.2),
            random_seed=1099,
            min_carrier_flights=10000,
            n_deciles=10,
            mlflow_tracking_uri="",
            mlflow_experiment_name="test_exp",
        )
        params.update(overrides)
        return MLConfig(**params)

    return _make


@pytest.fixture
def flight_tables(spark, airports_df):
    """Register flights/airlines/airports as temp views; yields their names."""
    names = {"flights": "e2e_flights", "airlines": "e2e_airlines", "airports": "e2e_airports"}
    spark.createDataFrame(synthetic_flights(n=360), schema=FLIGHTS_DDL).createOrReplaceTempView(
        names["flights"]
    )
    spark.createDataFrame(
        [(code, desc) for code, (desc, _) in CARRIERS.items()],
        schema="code STRING, description STRING",
    ).createOrReplaceTempView(names["airlines"])
    airports_df.createOrReplaceTempView(names["airports"])
    yield names
    for name in names.values():
        spark.catalog.uncacheTable(name)
        spark.catalog.dropTempView(name)
