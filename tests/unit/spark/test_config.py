"""
Unit tests for pipeline configuration.
Validates: env parsing, pass-through Spark options, correction rules.
"""

import os
from unittest.mock import patch

import pytest

from spark.config import (
    DEFAULT_CARRIER_CORRECTIONS,
    CarrierCorrection,
    FilterBounds,
    PipelineConfig,
    load_config,
)
from spark.errors import PipelineError, SchemaMismatchError, SessionError


class TestLoadConfig:

    def test_defaults_without_env(self):
        with patch.dict(os.environ, {}, clear=True):
            config = load_config()
        assert config.master == "local[*]"
        assert config.spark_conf == {}
        assert config.flights_table == "flights"
        assert config.summary_table == "summary_2008"
        assert (config.train_year_min, config.train_year_max) == (2003, 2007)
        assert config.score_year == 2008
        assert config.bounds == FilterBounds(15, 240, -60, 360)
        assert config.carrier_corrections == DEFAULT_CARRIER_CORRECTIONS
        assert config.cache_tables == ["flights", "airlines"]
        assert config.bundle_path == os.path.join("output", "flights_pbi.pkl")

    def test_env_overrides(self, env_config):
        config = load_config()
        assert config.master == "local[2]"
        # Values are stringified and otherwise passed through untouched
        assert config.spark_conf == {
            "spark.executor.memory": "2g",
            "spark.sql.shuffle.partitions": "8",
        }
        assert config.summary_table == "summary_test"
        assert (config.train_year_min, config.train_year_max) == (2004, 2006)

    def test_spark_conf_must_be_object(self, monkeypatch):
        monkeypatch.setenv("SPARK_CONF", '["not", "a", "map"]')
        with pytest.raises(ValueError, match="SPARK_CONF"):
            load_config()

    def test_spark_conf_invalid_json(self, monkeypatch):
        monkeypatch.setenv("SPARK_CONF", "{broken")
        with pytest.raises(ValueError, match="not valid JSON"):
            load_config()

    def test_non_integer_year(self, monkeypatch):
        monkeypatch.setenv("SCORE_YEAR", "twenty")
        with pytest.raises(ValueError, match="SCORE_YEAR"):
            load_config()

    def test_cache_follows_renamed_tables(self, monkeypatch):
        monkeypatch.delenv("CACHE_TABLES", raising=False)
        monkeypatch.setenv("FLIGHTS_TABLE", "flights_v2")
        monkeypatch.setenv("AIRLINES_TABLE", "carriers_ref")
        config = load_config()
        assert config.cache_tables == ["flights_v2", "carriers_ref"]

    def test_cache_tables_from_env(self, monkeypatch):
        monkeypatch.setenv("CACHE_TABLES", "flights_v2, airports ,")
        assert load_config().cache_tables == ["flights_v2", "airports"]

    def test_cache_default_on_direct_construction(self):
        config = PipelineConfig(flights_table="f", airlines_table="a")
        assert config.cache_tables == ["f", "a"]

    def test_inverted_year_range_rejected(self):
        with pytest.raises(ValueError, match="Invalid year range"):
            PipelineConfig(train_year_min=2008, train_year_max=2003)

    def test_corrections_from_env(self, monkeypatch):
        monkeypatch.setenv(
            "CARRIER_CORRECTIONS",
            '[{"crsarrtime": 351, "replacement": "DH"},'
            ' {"crsarrtime": 900, "replacement": "XE", "match_codes": ["CO"]}]',
        )
        config = load_config()
        assert config.carrier_corrections == (
            CarrierCorrection(351, "DH", ("",)),
            CarrierCorrection(900, "XE", ("CO",)),
        )

    def test_corrections_malformed(self, monkeypatch):
        monkeypatch.setenv("CARRIER_CORRECTIONS", '[{"replacement": "DH"}]')
        with pytest.raises(ValueError, match="CARRIER_CORRECTIONS"):
            load_config()


class TestDefaultCorrections:

    def test_only_blank_351_to_dh(self):
        assert DEFAULT_CARRIER_CORRECTIONS == (CarrierCorrection(351, "DH", ("",)),)


class TestErrors:

    def test_context_in_message(self):
        err = PipelineError("Table not found", stage="features", table="flights")
        assert str(err) == "Table not found [stage=features, table=flights]"
        assert err.stage == "features"
        assert err.table == "flights"

    def test_no_context(self):
        assert str(PipelineError("boom")) == "boom"

    def test_schema_mismatch_lists_columns(self):
        err = SchemaMismatchError("airlines", {"description", "code"}, stage="load")
        assert err.missing == ["code", "description"]
        assert "code, description" in str(err)
        assert isinstance(err, PipelineError)

    def test_session_error_is_pipeline_error(self):
        assert issubclass(SessionError, PipelineError)
