"""
Spark configuration loader.
Context: Flights batch run (train on 2003-2007, score 2008)
All configuration from environment variables - no hardcoded cluster values.
Spark options are passed through to the session builder unmodified.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from spark.errors import SessionError


@dataclass(frozen=True)
class FilterBounds:
    """Open-interval delay bounds in minutes."""

    depdelay_min: float = 15
    depdelay_max: float = 240
    arrdelay_min: float = -60
    arrdelay_max: float = 360


@dataclass(frozen=True)
class CarrierCorrection:
    """Exact-match override: rows with crsarrtime == value and an ambiguous carrier code."""

    crsarrtime: int
    replacement: str
    match_codes: Tuple[str, ...] = ("",)


# Ordered; first matching rule wins. Only the 2008 scoring pass uses these.
# Further rules are supplied through CARRIER_CORRECTIONS.
DEFAULT_CARRIER_CORRECTIONS: Tuple[CarrierCorrection, ...] = (
    CarrierCorrection(crsarrtime=351, replacement="DH"),
)


@dataclass
class PipelineConfig:
    """Configuration for the flights batch run."""

    # Session
    app_name: str = "FlightGain-Pipeline"
    master: str = "local[*]"
    spark_conf: Dict[str, str] = field(default_factory=dict)

    # Source / sink tables
    flights_table: str = "flights"
    airlines_table: str = "airlines"
    airports_table: str = "airports"
    summary_table: str = "summary_2008"
    # Empty means the flights and airlines tables above
    cache_tables: List[str] = field(default_factory=list)

    # Year windows
    train_year_min: int = 2003
    train_year_max: int = 2007
    score_year: int = 2008

    bounds: FilterBounds = field(default_factory=FilterBounds)
    carrier_corrections: Tuple[CarrierCorrection, ...] = DEFAULT_CARRIER_CORRECTIONS

    # Local artifacts
    output_dir: str = "output"
    bundle_name: str = "flights_pbi.pkl"

    # Computed in __post_init__
    bundle_path: str = ""

    def __post_init__(self):
        if self.train_year_min > self.train_year_max:
            raise ValueError(
                f"Invalid year range: {self.train_year_min} > {self.train_year_max}"
            )
        if not self.cache_tables:
            self.cache_tables = [self.flights_table, self.airlines_table]
        self.bundle_path = os.path.join(self.output_dir, self.bundle_name)


def _parse_corrections(raw: str) -> Tuple[CarrierCorrection, ...]:
    """JSON list of {"crsarrtime": int, "replacement": str, "match_codes": [str]}."""
    rules = []
    for item in json.loads(raw):
        rules.append(
            CarrierCorrection(
                crsarrtime=int(item["crsarrtime"]),
                replacement=str(item["replacement"]),
                match_codes=tuple(item.get("match_codes", [""])),
            )
        )
    return tuple(rules)


def load_config() -> PipelineConfig:
    """Load configuration from environment variables."""

    def get_optional(key: str, default: str = "") -> str:
        return os.environ.get(key, default)

    def get_int(key: str, default: int) -> int:
        value = os.environ.get(key)
        if value is None or value == "":
            return default
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Environment variable {key} must be an integer, got {value!r}")

    def get_float(key: str, default: float) -> float:
        value = os.environ.get(key)
        if value is None or value == "":
            return default
        try:
            return float(value)
        except ValueError:
            raise ValueError(f"Environment variable {key} must be a number, got {value!r}")

    def get_json(key: str):
        value = os.environ.get(key)
        if not value:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Environment variable {key} is not valid JSON: {e}")

    spark_conf = get_json("SPARK_CONF") or {}
    if not isinstance(spark_conf, dict):
        raise ValueError("Environment variable SPARK_CONF must be a JSON object")

    cache_env = get_optional("CACHE_TABLES")
    cache_tables = [t.strip() for t in cache_env.split(",") if t.strip()]

    corrections_env = os.environ.get("CARRIER_CORRECTIONS")
    try:
        corrections = (
            _parse_corrections(corrections_env) if corrections_env else DEFAULT_CARRIER_CORRECTIONS
        )
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        raise ValueError(f"Environment variable CARRIER_CORRECTIONS is malformed: {e}")

    return PipelineConfig(
        app_name=get_optional("SPARK_APP_NAME", "FlightGain-Pipeline"),
        master=get_optional("SPARK_MASTER", "local[*]"),
        spark_conf={str(k): str(v) for k, v in spark_conf.items()},
        flights_table=get_optional("FLIGHTS_TABLE", "flights"),
        airlines_table=get_optional("AIRLINES_TABLE", "airlines"),
        airports_table=get_optional("AIRPORTS_TABLE", "airports"),
        summary_table=get_optional("SUMMARY_TABLE", "summary_2008"),
        cache_tables=cache_tables,
        train_year_min=get_int("TRAIN_YEAR_MIN", 2003),
        train_year_max=get_int("TRAIN_YEAR_MAX", 2007),
        score_year=get_int("SCORE_YEAR", 2008),
        bounds=FilterBounds(
            depdelay_min=get_float("DEPDELAY_MIN", 15),
            depdelay_max=get_float("DEPDELAY_MAX", 240),
            arrdelay_min=get_float("ARRDELAY_MIN", -60),
            arrdelay_max=get_float("ARRDELAY_MAX", 360),
        ),
        carrier_corrections=corrections,
        output_dir=get_optional("OUTPUT_DIR", "output"),
        bundle_name=get_optional("BUNDLE_NAME", "flights_pbi.pkl"),
    )


def create_spark_session(config: Optional[PipelineConfig] = None):
    """Initializes the Spark Session; options in spark_conf go through untouched."""
    from pyspark.sql import SparkSession

    config = config or load_config()

    builder = SparkSession.builder.appName(config.app_name).master(config.master)
    for key, value in config.spark_conf.items():
        builder = builder.config(key, value)

    try:
        return builder.getOrCreate()
    except Exception as e:
        raise SessionError(
            f"Could not start Spark session on {config.master}: {e}", stage="connect"
        ) from e
