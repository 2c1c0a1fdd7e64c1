"""
Seeded train/valid partitioning.
Same seed and same input give the same membership across runs.
"""

from typing import Dict, Sequence

import structlog
from pyspark.sql import DataFrame

from ml_pipeline.config import validate_split_weights
from spark.errors import PartitionError

logger = structlog.get_logger(__name__)

PARTITION_NAMES = ("train", "valid")


def split_dataset(
    df: DataFrame, weights: Sequence[float] = (0.8, 0.2), seed: int = 1099
) -> Dict[str, DataFrame]:
    """Split into disjoint train/valid subsets."""
    try:
        weights = validate_split_weights(tuple(weights))
    except ValueError as e:
        raise PartitionError(str(e), stage="partition") from e

    train, valid = df.randomSplit(list(weights), seed=seed)
    logger.info("dataset_split", weights=list(weights), seed=seed)
    return dict(zip(PARTITION_NAMES, (train, valid)))


def ensure_non_empty(partitions: Dict[str, DataFrame]) -> None:
    """Reject empty subsets before fitting. Triggers a small Spark action per subset."""
    for name, df in partitions.items():
        if df.limit(1).count() == 0:
            logger.error("empty_partition", partition=name)
            raise PartitionError(f"Partition '{name}' is empty after filtering", stage="partition")
