from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

LOGGER = logging.getLogger("flowbench.benchmark.charts")

sns.set_style("whitegrid")
plt.rcParams["figure.dpi"] = 100
plt.rcParams["savefig.dpi"] = 150
plt.rcParams["font.size"] = 10
plt.rcParams["axes.labelsize"] = 11
plt.rcParams["axes.titlesize"] = 13

REALTIME_COLOR = "#2E86AB"
MEDIAN_COLOR = "#C73E1D"


def render_realtime_chart(plans: pd.DataFrame, output_dir: Path) -> Path | None:
    """Render the real-time distribution of the collected execution plans."""
    chart_path = output_dir / "realtime_distribution.png"
    if plans.empty or "real_time" not in plans.columns:
        LOGGER.warning("No real-time data available for chart")
        return None

    real_time = plans["real_time"].astype(float)
    sorted_values = np.sort(real_time.to_numpy())
    median = sorted_values[len(sorted_values) // 2]

    fig, (ax_hist, ax_box) = plt.subplots(
        2, 1, figsize=(10, 6), sharex=True, gridspec_kw={"height_ratios": [3, 1]}
    )
    sns.histplot(real_time, ax=ax_hist, color=REALTIME_COLOR, kde=real_time.nunique() > 1)
    ax_hist.axvline(median, color=MEDIAN_COLOR, linestyle="--", linewidth=1.5)
    ax_hist.text(
        median,
        ax_hist.get_ylim()[1] * 0.95,
        f" median {median:.2f}s",
        color=MEDIAN_COLOR,
        va="top",
        fontweight="semibold",
    )
    ax_hist.set_title(
        f"Execution Plan Real Time ({len(real_time)} plans)", fontweight="bold", pad=12
    )
    ax_hist.set_ylabel("Plans", fontweight="semibold")

    sns.boxplot(x=real_time, ax=ax_box, color=REALTIME_COLOR, width=0.5)
    ax_box.set_xlabel("Real time (seconds)", fontweight="semibold")

    fig.tight_layout()
    output_dir.mkdir(parents=True, exist_ok=True)
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white", edgecolor="none")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)
    return chart_path
