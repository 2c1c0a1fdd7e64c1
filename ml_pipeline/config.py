"""
ML Pipeline configuration.
Split ratios, seed, model formula and evaluation thresholds.
"""

import os
from dataclasses import dataclass
from typing import Tuple

SPLIT_TOLERANCE = 1e-9


def _get_int(key: str, default: int) -> int:
    value = os.environ.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {key} must be an integer, got {value!r}")


def validate_split_weights(weights: Tuple[float, ...]) -> Tuple[float, ...]:
    """Exactly two positive ratios summing to 1."""
    weights = tuple(float(w) for w in weights)
    if len(weights) != 2:
        raise ValueError(f"Expected two split ratios (train, valid), got {len(weights)}")
    if any(w <= 0 for w in weights):
        raise ValueError(f"Split ratios must be positive, got {weights}")
    if abs(sum(weights) - 1.0) > SPLIT_TOLERANCE:
        raise ValueError(f"Split ratios must sum to 1, got {weights} (sum={sum(weights)})")
    return weights


@dataclass(frozen=True)
class MLConfig:
    """Configuration for training and evaluation."""

    formula: str
    label_column: str

    split_weights: Tuple[float, float]
    random_seed: int

    min_carrier_flights: int
    n_deciles: int

    mlflow_tracking_uri: str
    mlflow_experiment_name: str

    def __post_init__(self):
        validate_split_weights(self.split_weights)
        if self.n_deciles < 1:
            raise ValueError(f"n_deciles must be positive, got {self.n_deciles}")

    @property
    def tracking_enabled(self) -> bool:
        return bool(self.mlflow_tracking_uri)

    @classmethod
    def from_env(cls) -> "MLConfig":
        """Load configuration from environment variables."""
        weights_env = os.environ.get("SPLIT_WEIGHTS", "0.8,0.2")
        try:
            weights = tuple(float(w) for w in weights_env.split(","))
        except ValueError as e:
            raise ValueError(f"SPLIT_WEIGHTS must be comma-separated numbers, got {weights_env!r}") from e

        return cls(
            formula=os.environ.get("MODEL_FORMULA", "gain ~ distance + depdelay + uniquecarrier"),
            label_column=os.environ.get("LABEL_COLUMN", "gain"),
            split_weights=validate_split_weights(weights),
            random_seed=_get_int("RANDOM_SEED", 1099),
            min_carrier_flights=_get_int("MIN_CARRIER_FLIGHTS", 10000),
            n_deciles=_get_int("N_DECILES", 10),
            mlflow_tracking_uri=os.environ.get("MLFLOW_TRACKING_URI", ""),
            mlflow_experiment_name=os.environ.get("MLFLOW_EXPERIMENT_NAME", "flight-gain"),
        )
