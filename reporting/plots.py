"""
Evaluation charts.

Creates plots for:
- Mean actual gain by predicted-gain decile (train vs valid)
- Actual vs predicted mean gain per carrier
"""

import logging
from typing import Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
import seaborn as sns  # noqa: E402

logger = logging.getLogger(__name__)

sns.set_theme(style="darkgrid")
plt.rcParams["figure.figsize"] = (12, 8)
plt.rcParams["font.size"] = 10


def plot_deciles(
    deciles: pd.DataFrame,
    save_path: str,
    title: str = "Mean Gain by Predicted Decile",
) -> Optional[str]:
    """
    Line per subset of mean actual gain against decile.

    Args:
        deciles: Output of evaluation.decile_summary
        save_path: PNG destination
        title: Plot title
    """
    if deciles.empty:
        logger.warning("Empty decile summary, skipping plot")
        return None

    fig, ax = plt.subplots(figsize=(10, 6))
    sns.lineplot(data=deciles, x="decile", y="gain", hue="data", marker="o", ax=ax)
    ax.set_xlabel("Decile (1 = highest predicted gain)")
    ax.set_ylabel("Mean actual gain (minutes)")
    ax.set_xticks(sorted(deciles["decile"].unique()))
    ax.set_title(title)

    fig.tight_layout()
    fig.savefig(save_path, dpi=150)
    plt.close(fig)
    logger.info(f"Saved plot to {save_path}")
    return save_path


def plot_carrier_gain(
    carriers: pd.DataFrame,
    save_path: str,
    title: str = "Actual vs Predicted Gain by Carrier",
) -> Optional[str]:
    """Horizontal bars of actual and predicted mean gain per carrier."""
    if carriers.empty:
        logger.warning("Empty carrier summary, skipping plot")
        return None

    long_df = carriers.melt(
        id_vars=["description"],
        value_vars=["gain", "prediction"],
        var_name="measure",
        value_name="minutes",
    )
    long_df["measure"] = long_df["measure"].map({"gain": "actual", "prediction": "predicted"})

    fig, ax = plt.subplots(figsize=(12, max(4, 0.5 * len(carriers))))
    sns.barplot(data=long_df, y="description", x="minutes", hue="measure", ax=ax)
    ax.set_xlabel("Mean gain (minutes)")
    ax.set_ylabel("")
    ax.set_title(title)

    fig.tight_layout()
    fig.savefig(save_path, dpi=150)
    plt.close(fig)
    logger.info(f"Saved plot to {save_path}")
    return save_path
