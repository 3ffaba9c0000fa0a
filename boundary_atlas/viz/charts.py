"""Plotly summaries of the vote-share layer."""
from __future__ import annotations

from typing import Iterable

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from boundary_atlas.map.encoding import ColorEncoder
from boundary_atlas.map.states import Category, NormalizationRange, WinningRecord


def records_frame(
    records: Iterable[WinningRecord], encoder: ColorEncoder, norm_range: NormalizationRange
) -> pd.DataFrame:
    rows = []
    for record in records:
        row = {
            "unit": record.label,
            "leading": encoder.label_for(record.leading_category),
            "winning_share": record.winning_share,
            "opacity": encoder.opacity_for(record, norm_range),
            "color": encoder.color_for(record),
        }
        for category in Category:
            row[f"share_{category.value}"] = record.shares.get(category, 0.0)
        rows.append(row)
    columns = ["unit", "leading", "winning_share", "opacity", "color"] + [f"share_{c.value}" for c in Category]
    return pd.DataFrame(rows, columns=columns)


def winning_share_histogram(df: pd.DataFrame) -> go.Figure:
    fig = px.histogram(
        df,
        x="winning_share",
        color="leading",
        nbins=30,
        title="Winning share by unit",
        color_discrete_map=dict(zip(df["leading"], df["color"])),
    )
    fig.update_layout(margin=dict(l=20, r=20, t=50, b=20), xaxis_title="Winning share (%)", yaxis_title="Units")
    return fig


def leading_category_bar(df: pd.DataFrame) -> go.Figure:
    counts = df.groupby(["leading", "color"], as_index=False).size().rename(columns={"size": "units"})
    fig = px.bar(
        counts,
        x="leading",
        y="units",
        color="leading",
        text="units",
        color_discrete_map=dict(zip(counts["leading"], counts["color"])),
        title="Units led",
    )
    fig.update_traces(textposition="outside")
    fig.update_layout(margin=dict(l=40, r=40, t=40, b=40), showlegend=False)
    return fig


__all__ = ["records_frame", "winning_share_histogram", "leading_category_bar"]
