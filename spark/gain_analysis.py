"""
Gain Analysis: flights -> model -> evaluation -> summary_2008 (Batch)
Trains on the configured year window, validates on a held-out split, scores
the scoring year and publishes the route rollup plus the dashboard bundle.
Methodical: Every failure is terminal and names the stage/table it hit.
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Dict, Optional

import pandas as pd
from pyspark.sql import SparkSession

from ml_pipeline.config import MLConfig
from ml_pipeline.evaluation import (
    carrier_summary,
    decile_summary,
    score_partitions,
    validation_metrics,
)
from ml_pipeline.partition import ensure_non_empty, split_dataset
from ml_pipeline.tracking import RunTracker
from ml_pipeline.training import GainModel
from reporting.export import export_bundle
from reporting.rollup import collect_airports, publish_rollup
from spark.config import PipelineConfig, create_spark_session, load_config
from spark.errors import PipelineError
from spark.features import build_model_data, build_scoring_data
from spark.tables import REQUIRED_COLUMNS, cache_tables, load_table

logger = logging.getLogger(__name__)


@dataclass
class GainAnalysisResult:
    """Local artifacts of one run."""

    deciles: pd.DataFrame
    carriers: pd.DataFrame
    routes: pd.DataFrame
    metrics: Dict[str, Dict[str, float]]
    model_summary: str
    bundle_path: str
    plots: Dict[str, str] = field(default_factory=dict)
    run_id: Optional[str] = None


def run_gain_analysis(
    spark: SparkSession,
    config: PipelineConfig,
    ml_config: MLConfig,
    use_cache: bool = True,
    make_plots: bool = True,
) -> GainAnalysisResult:
    """Single linear batch run. Blocks at each materialization point."""
    # All sources are checked before anything is cached or written
    table_names = {
        "flights": config.flights_table,
        "airlines": config.airlines_table,
        "airports": config.airports_table,
    }
    sources = {
        kind: load_table(spark, name, REQUIRED_COLUMNS[kind], stage="load")
        for kind, name in table_names.items()
    }
    if use_cache and config.cache_tables:
        cache_tables(spark, config.cache_tables)

    flights, airlines = sources["flights"], sources["airlines"]

    # 1. Modeling dataset and split
    model_data = build_model_data(flights, airlines, config)
    partitions = split_dataset(model_data, ml_config.split_weights, ml_config.random_seed)
    ensure_non_empty(partitions)

    # 2. Fit
    model = GainModel(ml_config)
    training = model.fit(partitions["train"])
    model_summary = model.summary_text()

    # 3. Evaluate (only aggregates are collected)
    scored = score_partitions(model, partitions)
    deciles = decile_summary(scored, ml_config.n_deciles)
    carriers = carrier_summary(scored, ml_config.min_carrier_flights)
    metrics = validation_metrics(scored, ml_config.label_column)

    os.makedirs(config.output_dir, exist_ok=True)
    plots: Dict[str, str] = {}
    if make_plots:
        from reporting.plots import plot_carrier_gain, plot_deciles

        decile_png = plot_deciles(deciles, os.path.join(config.output_dir, "deciles.png"))
        carrier_png = plot_carrier_gain(carriers, os.path.join(config.output_dir, "carriers.png"))
        plots = {k: v for k, v in (("deciles", decile_png), ("carriers", carrier_png)) if v}

    # 4. Score the reporting year and publish
    scoring_data = build_scoring_data(flights, airlines, config)
    scored_year = model.predict(scoring_data)
    rollup = publish_rollup(scored_year, config.summary_table, cache=use_cache)
    routes = rollup.toPandas()

    airports_pdf = collect_airports(sources["airports"])
    bundle_path = export_bundle(config.bundle_path, routes, airports_pdf, model_summary)

    # 5. Optional run tracking
    tracker = RunTracker(ml_config)
    flat_metrics = {
        f"{subset}_{name}": value
        for subset, values in metrics.items()
        for name, value in values.items()
    }
    flat_metrics["train_r2"] = training.r2
    run_id = tracker.log_run(
        params={
            "formula": ml_config.formula,
            "seed": ml_config.random_seed,
            "train_ratio": ml_config.split_weights[0],
            "train_years": f"{config.train_year_min}-{config.train_year_max}",
            "score_year": config.score_year,
        },
        metrics=flat_metrics,
        summary_text=model_summary,
    )

    logger.info(
        f"SUCCESS: {len(routes)} routes published to {config.summary_table}, bundle at {bundle_path}"
    )
    return GainAnalysisResult(
        deciles=deciles,
        carriers=carriers,
        routes=routes,
        metrics=metrics,
        model_summary=model_summary,
        bundle_path=bundle_path,
        plots=plots,
        run_id=run_id,
    )


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    parser = argparse.ArgumentParser(description="Flight gain model and route rollup")
    parser.add_argument("--output-dir", type=str, help="Overrides OUTPUT_DIR")
    parser.add_argument("--summary-table", type=str, help="Overrides SUMMARY_TABLE")
    parser.add_argument("--no-cache", action="store_true", help="Skip caching source tables")
    parser.add_argument("--no-plots", action="store_true", help="Skip chart rendering")
    args = parser.parse_args()

    try:
        config = load_config()
        ml_config = MLConfig.from_env()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    if args.output_dir:
        config.output_dir = args.output_dir
        config.bundle_path = os.path.join(args.output_dir, config.bundle_name)
    if args.summary_table:
        config.summary_table = args.summary_table

    try:
        spark = create_spark_session(config)
    except PipelineError as e:
        logger.critical(f"Connection failed: {e}")
        sys.exit(1)

    try:
        run_gain_analysis(
            spark, config, ml_config, use_cache=not args.no_cache, make_plots=not args.no_plots
        )
    except PipelineError as e:
        logger.error(f"Gain analysis failed (stage={e.stage}, table={e.table}): {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Gain analysis failed: {type(e).__name__}: {e}")
        sys.exit(1)
    finally:
        spark.stop()


if __name__ == "__main__":
    main()
