"""
ML Pipeline module.

Gain model training and evaluation on Spark ML:
- Seeded train/valid split for reproducible runs
- Ordinary least squares via LinearRegression (normal solver)
- Decile and per-carrier summaries collected as small pandas frames
- MLflow for optional run tracking
"""

from ml_pipeline.config import MLConfig
from ml_pipeline.partition import ensure_non_empty, split_dataset
from ml_pipeline.tracking import RunTracker
from ml_pipeline.training import GainModel, TrainingResult

__all__ = [
    "MLConfig",
    "GainModel",
    "TrainingResult",
    "RunTracker",
    "split_dataset",
    "ensure_non_empty",
]
