"""
Dashboard bundle export.
One local pickle holding the route rollup, airport projection and model
summary text. The dashboard reads it with load_bundle().
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict

import pandas as pd

logger = logging.getLogger(__name__)

BUNDLE_KEYS = ("routes", "airports", "model_summary", "created_at")


def export_bundle(
    path: str, routes: pd.DataFrame, airports: pd.DataFrame, model_summary: str
) -> str:
    """Serialize the three dashboard inputs into a single file. Returns the path."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    bundle = {
        "routes": routes,
        "airports": airports,
        "model_summary": model_summary,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    pd.to_pickle(bundle, path)
    logger.info(f"Bundle written to {path}: {len(routes)} routes, {len(airports)} airports")
    return path


def load_bundle(path: str) -> Dict[str, Any]:
    bundle = pd.read_pickle(path)
    missing = [k for k in BUNDLE_KEYS if k not in bundle]
    if missing:
        raise ValueError(f"Bundle at {path} is missing keys: {missing}")
    return bundle
