"""Plotly HTML chart of a pair's price and volume series."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict
from pathlib import Path

import pandas as pd
import plotly.express as px

from swapdesk.domain.models import PriceBar, VolumeBar


def series_frame(prices: Sequence[PriceBar], volumes: Sequence[VolumeBar]) -> pd.DataFrame:
    """Join price and volume bars on their bucket time."""
    price_frame = pd.DataFrame([asdict(bar) for bar in prices], columns=["time", "open", "low", "high", "close", "value"])
    volume_frame = pd.DataFrame([asdict(bar) for bar in volumes], columns=["time", "value", "color"])
    volume_frame = volume_frame.rename(columns={"value": "volume"})
    frame = price_frame.merge(volume_frame, on="time", how="outer").sort_values("time")
    frame["ts"] = pd.to_datetime(frame["time"], unit="s", utc=True, errors="coerce")
    return frame.reset_index(drop=True)


def generate_series_report(
    prices: Sequence[PriceBar],
    volumes: Sequence[VolumeBar],
    output_html_path: str,
    title: str = "Pair",
) -> Path:
    """Render the close line and the volume bars into one HTML page."""
    output = Path(output_html_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    frame = series_frame(prices, volumes)
    if frame.empty:
        empty_df = pd.DataFrame({"ts": ["no-bars"], "count": [0]})
        figure = px.bar(empty_df, x="ts", y="count", title=f"{title} price series")
        figure.write_html(str(output), include_plotlyjs="cdn")
        return output

    line = px.line(
        frame,
        x="ts",
        y="close",
        title=f"{title} close",
        hover_data=["open", "low", "high"],
    )
    bars = px.bar(frame, x="ts", y="volume", title=f"{title} volume")
    html_parts = [
        f"<html><head><meta charset='utf-8'><title>{title} series</title></head><body>",
        line.to_html(full_html=False, include_plotlyjs="cdn"),
        bars.to_html(full_html=False, include_plotlyjs=False),
        "</body></html>",
    ]
    output.write_text("".join(html_parts), encoding="utf-8")
    return output
