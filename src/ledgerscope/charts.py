"""
Chart functions for visualizing ledger books.

This module turns the outputs of the core pipeline into Plotly figures:
- Time series: stacked credit area per ledger
- Hierarchy layouts: packed bubbles, treemap, sunburst, tidy tree
- Ledger drill-down: grouped credit/debit bars per transaction

The layout engines already computed the geometry; these functions only draw
it. All chart functions return (figure, tidy_dataframe_used) for consistency.
"""

from __future__ import annotations

import math

import numpy as np
import pandas as pd

from .core.buckets import BucketedSeries
from .core.models import Ledger
from .layout.partition import SunburstView, color_key
from .layout.records import Arc, Circle, LayoutResult, Rect
from .layout.tree import TreeLayout
from .summary import detail_max, ledger_detail

# Plotly imports with graceful fallback
try:
    import plotly.express as px
    import plotly.graph_objects as go

    PLOTLY_AVAILABLE = True
except ImportError:
    PLOTLY_AVAILABLE = False

PALETTE = [
    "#1f77b4",
    "#ff7f0e",
    "#2ca02c",
    "#d62728",
    "#9467bd",
    "#8c564b",
    "#e377c2",
    "#7f7f7f",
    "#bcbd22",
    "#17becf",
]

CREDIT_DEBIT_COLORS = {"credit": "#1f77b4", "debit": "#ff7f0e"}


def _check_plotly() -> None:
    """Check if Plotly is available and raise helpful error if not."""
    if not PLOTLY_AVAILABLE:
        raise ImportError(
            "Plotly is required for chart functions. Install with:\n"
            "pip install plotly kaleido"
        )


def _color_map(keys) -> dict[str, str]:
    """Ordinal color scale: first key seen gets the first palette color."""
    ordered = list(dict.fromkeys(keys))
    return {key: PALETTE[i % len(PALETTE)] for i, key in enumerate(ordered)}


# =============================================================================
# Time series
# =============================================================================


def stacked_area_chart(series: BucketedSeries) -> tuple[go.Figure, pd.DataFrame]:
    """
    Plot credit per bucket as one stacked band per ledger.

    Every ledger appears in every bucket (zero-filled), so the bands never
    break. Stack order is the ledger order of the series.

    **Args:**
        series: Output of :meth:`TimeBucketAggregator.aggregate`

    **Returns:**
        Tuple of (plotly_figure, tidy_dataframe_used) where the frame has
        ``bucket, start, ledger, y0, y1, credit`` columns

    **Example:**
        ```python
        series = TimeBucketAggregator.from_book(book).aggregate("Monthly")
        fig, data = stacked_area_chart(series)
        fig.show()
        ```
    """
    _check_plotly()

    stacked = series.stack()
    stacked["credit"] = stacked["y1"] - stacked["y0"]

    fig = px.area(
        stacked,
        x="bucket",
        y="credit",
        color="ledger",
        category_orders={"ledger": list(series.ledgers), "bucket": series.keys()},
        color_discrete_map=_color_map(series.ledgers),
        title=f"{series.granularity.value} Credit by Ledger",
        labels={"credit": "Credit", "bucket": series.granularity.value, "ledger": "Ledger"},
    )
    fig.update_layout(
        hovermode="x unified",
        legend_title="Ledger",
        yaxis_range=[0, series.max_total() or 1],
    )

    return fig, stacked


# =============================================================================
# Hierarchy layouts
# =============================================================================


def _canvas_layout(fig: go.Figure, width: float, height: float, title: str) -> None:
    fig.update_layout(
        title=title,
        height=max(int(height) + 100, 300),
        showlegend=False,
        plot_bgcolor="white",
        xaxis={"visible": False, "range": [0, width]},
        yaxis={"visible": False, "range": [height, 0], "scaleanchor": "x"},
    )


def bubble_chart(
    layout: LayoutResult[Circle], width: float = 800, height: float = 600
) -> tuple[go.Figure, pd.DataFrame]:
    """
    Draw a circle-packing layout.

    Internal circles are outlined; leaves are filled and carry hover text.

    Args:
        layout: Output of :func:`pack_layout`
        width: Canvas width used for the layout
        height: Canvas height used for the layout

    Returns:
        Tuple of (plotly_figure, tidy_dataframe_used)
    """
    _check_plotly()

    frame = layout.to_frame()
    colors = _color_map(rec.name for rec in layout if rec.depth == 1)

    fig = go.Figure()
    for rec in layout:
        top = rec
        while top.depth > 1 and top.parent_id is not None:
            top = layout[top.parent_id]
        fill = colors.get(top.name, "#dddddd") if rec.is_leaf else "rgba(0,0,0,0)"
        fig.add_shape(
            type="circle",
            x0=rec.x - rec.r,
            y0=rec.y - rec.r,
            x1=rec.x + rec.r,
            y1=rec.y + rec.r,
            line={"color": "#999999", "width": 1},
            fillcolor=fill,
            opacity=0.8 if rec.is_leaf else 1.0,
        )

    leaves = frame[frame["is_leaf"]]
    fig.add_trace(
        go.Scatter(
            x=leaves["x"],
            y=leaves["y"],
            mode="markers",
            marker={"size": 2, "color": "rgba(0,0,0,0)"},
            text=leaves["name"],
            customdata=leaves["value"],
            hovertemplate="<b>%{text}</b><br>Size: %{customdata:.3f}<extra></extra>",
        )
    )
    _canvas_layout(fig, width, height, "Ledger Bubbles")

    return fig, frame


def treemap_chart(
    layout: LayoutResult[Rect], width: float = 800, height: float = 600
) -> tuple[go.Figure, pd.DataFrame]:
    """
    Draw a treemap layout; leaf cells are labelled with the ledger name.

    Args:
        layout: Output of :func:`treemap_layout`

    Returns:
        Tuple of (plotly_figure, tidy_dataframe_used)
    """
    _check_plotly()

    frame = layout.to_frame()
    leaves = frame[frame["is_leaf"]]
    colors = _color_map(leaves["name"])

    fig = go.Figure()
    for rec in layout.leaves():
        fig.add_shape(
            type="rect",
            x0=rec.x0,
            y0=rec.y0,
            x1=rec.x1,
            y1=rec.y1,
            line={"color": "white", "width": 1},
            fillcolor=colors[rec.name],
        )

    fig.add_trace(
        go.Scatter(
            x=(leaves["x0"] + leaves["x1"]) / 2,
            y=(leaves["y0"] + leaves["y1"]) / 2,
            mode="text",
            text=leaves["name"],
            customdata=leaves["value"],
            hovertemplate="<b>%{text}</b><br>Size: %{customdata:.3f}<extra></extra>",
            textfont={"size": 10, "color": "white"},
        )
    )
    _canvas_layout(fig, width, height, "Ledger Treemap")

    return fig, frame


def _arc_polygon(start: float, end: float, inner: float, outer: float, steps: int = 32):
    """Outline of an annular sector; angle 0 points up, angles run clockwise."""
    n = max(2, int(steps * (end - start) / (2 * math.pi)) + 2)
    angles = np.linspace(start, end, n)
    outer_x, outer_y = outer * np.sin(angles), outer * np.cos(angles)
    inner_x, inner_y = inner * np.sin(angles[::-1]), inner * np.cos(angles[::-1])
    xs = np.concatenate([outer_x, inner_x, outer_x[:1]])
    ys = np.concatenate([outer_y, inner_y, outer_y[:1]])
    return xs, ys


def sunburst_chart(
    layout: LayoutResult[Arc], view: SunburstView | None = None
) -> tuple[go.Figure, pd.DataFrame]:
    """
    Draw a partition layout as a sunburst under the given (possibly zoomed) view.

    Leaves take the color of their parent, other arcs their own. Arcs the
    view clamps away are not drawn.

    Args:
        layout: Output of :func:`partition_layout`
        view: Scales to draw with; defaults to the unzoomed view

    Returns:
        Tuple of (plotly_figure, tidy_dataframe_used) where the frame adds
        the drawn angles and radii to the layout records
    """
    _check_plotly()

    view = view or SunburstView(radius=300.0)
    keys = {rec.node_id: color_key(rec, layout) for rec in layout}
    colors = _color_map(keys.values())

    drawn = []
    fig = go.Figure()
    for rec in layout:
        if rec.parent_id is None or not view.is_visible(rec):
            continue
        geometry = view.arc(rec)
        xs, ys = _arc_polygon(
            geometry.start_angle, geometry.end_angle, geometry.inner_radius, geometry.outer_radius
        )
        fig.add_trace(
            go.Scatter(
                x=xs,
                y=ys,
                mode="lines",
                fill="toself",
                fillcolor=colors[keys[rec.node_id]],
                line={"color": "white", "width": 2},
                name=rec.name,
                text=rec.name,
                hoverinfo="text",
            )
        )
        drawn.append(
            {
                "node_id": rec.node_id,
                "start_angle": geometry.start_angle,
                "end_angle": geometry.end_angle,
                "inner_radius": geometry.inner_radius,
                "outer_radius": geometry.outer_radius,
            }
        )

    frame = layout.to_frame()
    if drawn:
        frame = frame.merge(pd.DataFrame(drawn), on="node_id", how="inner")
    else:
        frame = frame.iloc[0:0]

    limit = view.radius * 1.05
    fig.update_layout(
        title="Ledger Activity Sunburst",
        showlegend=False,
        plot_bgcolor="white",
        xaxis={"visible": False, "range": [-limit, limit]},
        yaxis={"visible": False, "range": [-limit, limit], "scaleanchor": "x"},
    )

    return fig, frame


def tree_chart(tree: TreeLayout) -> tuple[go.Figure, pd.DataFrame]:
    """
    Draw a tidy tree left to right.

    Collapsed nodes are filled, expanded nodes and leaves hollow. Labels
    sit left of internal nodes and right of leaves.

    Args:
        tree: Output of :meth:`TidyTreeLayout.layout`

    Returns:
        Tuple of (plotly_figure, tidy_dataframe_used)
    """
    _check_plotly()

    frame = tree.to_frame()

    fig = go.Figure()
    for link in tree.links:
        source, target = tree[link.source_id], tree[link.target_id]
        mid = (source.y + target.y) / 2
        fig.add_shape(
            type="path",
            path=f"M {source.y},{source.x} C {mid},{source.x} {mid},{target.x} {target.y},{target.x}",
            line={"color": "#cccccc", "width": 1.5},
        )

    fig.add_trace(
        go.Scatter(
            x=frame["y"],
            y=frame["x"],
            mode="markers+text",
            marker={
                "size": 10,
                "color": np.where(frame["collapsed"], "lightsteelblue", "#ffffff"),
                "line": {"color": "steelblue", "width": 2},
            },
            text=frame["name"],
            textposition=np.where(frame["is_leaf"], "middle right", "middle left"),
            hoverinfo="text",
        )
    )

    depth = int(frame["depth"].max() - frame["depth"].min()) if len(frame) else 0
    fig.update_layout(
        title="Ledger Tree",
        showlegend=False,
        plot_bgcolor="white",
        xaxis={"visible": False},
        yaxis={"visible": False, "autorange": "reversed"},
        height=max(400, 30 * len(tree.leaves())),
        width=max(600, 220 * (depth + 1)),
    )

    return fig, frame


# =============================================================================
# Ledger drill-down
# =============================================================================


def ledger_detail_chart(ledger: Ledger) -> tuple[go.Figure, pd.DataFrame]:
    """
    Plot credit and debit of every transaction of a ledger as grouped bars.

    Args:
        ledger: Ledger selected in the summary table

    Returns:
        Tuple of (plotly_figure, tidy_dataframe_used) in long form with
        ``label, kind, amount, narration`` columns
    """
    _check_plotly()

    detail = ledger_detail(ledger)
    detail["position"] = np.arange(len(detail))
    melted = detail.melt(
        id_vars=["position", "label", "narration"],
        value_vars=["credit", "debit"],
        var_name="kind",
        value_name="amount",
    )

    fig = px.bar(
        melted,
        x="position",
        y="amount",
        color="kind",
        barmode="group",
        hover_data={"narration": True, "position": False},
        color_discrete_map=CREDIT_DEBIT_COLORS,
        title=f"Transactions - {ledger.name}",
        labels={"amount": "Amount", "kind": "", "position": "Date"},
    )
    fig.update_xaxes(
        tickmode="array",
        tickvals=detail["position"],
        ticktext=detail["label"],
        tickangle=-45,
    )
    fig.update_yaxes(tickformat="$.2s", range=[0, detail_max(detail) or 1])

    return fig, melted


def save_chart(fig: go.Figure, filename: str, format: str = "html") -> None:
    """
    Save chart to file.

    Args:
        fig: Plotly figure
        filename: Output filename
        format: Output format ('html', 'png', 'pdf', 'svg')
    """
    _check_plotly()

    if format == "html":
        fig.write_html(filename)
    elif format in ("png", "pdf", "svg"):
        fig.write_image(filename, format=format)
    else:
        raise ValueError(f"Unsupported format: {format}")
