from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def raised_resolved_chart(records: List[Dict[str, Any]], title: str, metrics: Sequence[str] = ("raised", "resolved")) -> Optional[Dict[str, Any]]:
    """Grouped monthly bars, one bar per metric."""
    if not records:
        return None
    df = pd.DataFrame(records)
    long_df = df.melt(id_vars="month", value_vars=list(metrics), var_name="metric", value_name="value")
    hover = alt.selection_point(fields=["metric"], on="mouseover", empty="all")
    chart = (
        alt.Chart(long_df, title=title)
        .mark_bar()
        .encode(
            x=alt.X("month:O", title="Month", axis=alt.Axis(grid=False)),
            xOffset=alt.XOffset("metric:N"),
            y=alt.Y("value:Q", title="Count", axis=alt.Axis(format="d", gridDash=[4, 4], domain=False, ticks=False)),
            color=alt.Color("metric:N", title="Metric"),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.3)),
            tooltip=[
                alt.Tooltip("month:O", title="Month"),
                alt.Tooltip("metric:N", title="Metric"),
                alt.Tooltip("value:Q", title="Count", format="d"),
            ],
        )
        .add_params(hover)
    )
    return to_vega_spec(chart)


def count_chart(records: List[Dict[str, Any]], title: str) -> Optional[Dict[str, Any]]:
    if not records:
        return None
    chart = (
        alt.Chart(pd.DataFrame(records), title=title)
        .mark_bar()
        .encode(
            x=alt.X("month:O", title="Month", axis=alt.Axis(grid=False)),
            y=alt.Y("count:Q", title="Count", axis=alt.Axis(format="d", gridDash=[4, 4], domain=False, ticks=False)),
            tooltip=[alt.Tooltip("month:O", title="Month"), alt.Tooltip("count:Q", title="Count", format="d")],
        )
    )
    return to_vega_spec(chart)
