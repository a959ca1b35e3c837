# views.py
# Tab variants and the view models the dashboard renders for each of them.

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, MutableMapping, Optional, Tuple, Union

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from data_processing import (
    format_currency,
    group_by_plan,
    parse_iso_date,
    sort_by_date_desc,
    to_iso,
)
from settings import (
    ALL_COST_CENTERS,
    AMOUNT_COL,
    COST_CENTER_COL,
    COST_CENTERS,
    CREDITOR_COL,
    DATE_COL,
    DEFAULT_TAB,
    HIGHLIGHT_COL,
    PLAN_COL,
    TAB_LABELS,
)

HIGHLIGHT_COLOR = "#fff3cd"

# The chart selectbox writes to the widget key; the filter itself lives in a
# plain session key so it survives while the chart tab is not rendered.
CC_FILTER_KEY = "cc_filter"
CC_FILTER_WIDGET_KEY = "cc_filter_widget"
CC_FILTER_OPTIONS = (ALL_COST_CENTERS,) + tuple(COST_CENTERS)


# =========================
# Tabs
# =========================
@dataclass(frozen=True)
class PerCostCenterTab:
    code: str


@dataclass(frozen=True)
class TotalTab:
    pass


@dataclass(frozen=True)
class ChartTab:
    cost_center_filter: str = ALL_COST_CENTERS


@dataclass(frozen=True)
class ExcludedTab:
    pass


@dataclass(frozen=True)
class ExcludedChartTab:
    pass


Tab = Union[PerCostCenterTab, TotalTab, ChartTab, ExcludedTab, ExcludedChartTab]


def parse_tab(key: str, cc_filter: str = ALL_COST_CENTERS) -> Optional[Tab]:
    """Map a tab key to its variant; unknown keys give None."""
    if key in {f"cc{code}" for code in COST_CENTERS}:
        return PerCostCenterTab(key[2:])
    if key == "total":
        return TotalTab()
    if key == "chart":
        if cc_filter not in COST_CENTERS:
            cc_filter = ALL_COST_CENTERS
        return ChartTab(cc_filter)
    if key == "excluded":
        return ExcludedTab()
    if key == "excluded-chart":
        return ExcludedChartTab()
    return None


def tab_key(tab: Tab) -> str:
    if isinstance(tab, PerCostCenterTab):
        return f"cc{tab.code}"
    if isinstance(tab, TotalTab):
        return "total"
    if isinstance(tab, ChartTab):
        return "chart"
    if isinstance(tab, ExcludedTab):
        return "excluded"
    if isinstance(tab, ExcludedChartTab):
        return "excluded-chart"
    raise TypeError(f"Not a tab: {tab!r}")


def is_excluded_tab(tab: Optional[Tab]) -> bool:
    return isinstance(tab, (ExcludedTab, ExcludedChartTab))


# =========================
# View models
# =========================
@dataclass
class Column:
    header: str
    accessor: str
    formatter: Optional[Callable[[object], str]] = None


@dataclass
class TableView:
    rows: List[Dict[str, object]]
    columns: List[Column]


@dataclass
class ChartView:
    data: List[Dict[str, object]]
    title: str
    cost_center_filter: Optional[str] = None
    cost_center_options: Tuple[str, ...] = field(default_factory=tuple)


View = Union[TableView, ChartView]


def _plan_table(grouped: pd.DataFrame, period_label: str) -> TableView:
    rows = [
        {"plano": plan, "valor": float(total), "highlight": bool(highlight)}
        for plan, total, highlight in grouped[[PLAN_COL, AMOUNT_COL, HIGHLIGHT_COL]].itertuples(index=False)
    ]
    return TableView(
        rows=rows,
        columns=[
            Column("Plano Financeiro", "plano"),
            Column(f"Valor ({period_label})", "valor", format_currency),
        ],
    )


def _chart_data(grouped: pd.DataFrame) -> List[Dict[str, object]]:
    return [
        {"name": plan, "value": float(total)}
        for plan, total in grouped[[PLAN_COL, AMOUNT_COL]].itertuples(index=False)
    ]


def _excluded_table(excluded: Optional[pd.DataFrame]) -> TableView:
    ordered = sort_by_date_desc(excluded)
    rows = [
        {
            "data": rec[DATE_COL],
            "plano": rec[PLAN_COL],
            "credor": rec[CREDITOR_COL],
            "centroCusto": rec[COST_CENTER_COL],
            "valor": float(rec[AMOUNT_COL]),
        }
        for rec in ordered.to_dict("records")
    ]
    return TableView(
        rows=rows,
        columns=[
            Column("Data", "data"),
            Column("Plano Financeiro", "plano"),
            Column("Credor", "credor"),
            Column("Centro de Custo", "centroCusto"),
            Column("Valor", "valor", format_currency),
        ],
    )


def build_view(
    tab: Optional[Tab],
    operational: Optional[pd.DataFrame],
    excluded: Optional[pd.DataFrame],
    period_label: str,
) -> Optional[View]:
    """Produce the table or chart model for the active tab."""
    if isinstance(tab, PerCostCenterTab):
        return _plan_table(group_by_plan(operational, tab.code), period_label)

    if isinstance(tab, TotalTab):
        return _plan_table(group_by_plan(operational), period_label)

    if isinstance(tab, ChartTab):
        cc = tab.cost_center_filter
        cc_label = "Soma de Todos" if cc == ALL_COST_CENTERS else f"CC {cc}"
        return ChartView(
            data=_chart_data(group_by_plan(operational, cc)),
            title=f"Despesas por Plano Financeiro ({cc_label}) - {period_label}",
            cost_center_filter=cc,
            cost_center_options=CC_FILTER_OPTIONS,
        )

    if isinstance(tab, ExcludedTab):
        return _excluded_table(excluded)

    if isinstance(tab, ExcludedChartTab):
        return ChartView(
            data=_chart_data(group_by_plan(excluded)),
            title=f"Despesas por Plano Financeiro Excluído - {period_label}",
        )

    return None


# =========================
# Rendering helpers
# =========================
def table_to_frame(view: TableView, formatted: bool = True) -> pd.DataFrame:
    """Rows as a DataFrame headed by the column labels."""
    data = {}
    for col in view.columns:
        values = [row.get(col.accessor) for row in view.rows]
        if formatted and col.formatter is not None:
            values = [col.formatter(v) for v in values]
        data[col.header] = values
    return pd.DataFrame(data, columns=[c.header for c in view.columns])


def highlight_rows(view: TableView, frame: pd.DataFrame):
    """Styler painting the rows flagged as highlight."""
    flags = [bool(row.get("highlight")) for row in view.rows]

    def _paint(row):
        style = f"background-color: {HIGHLIGHT_COLOR}; font-weight: bold" if flags[row.name] else ""
        return [style] * len(row)

    return frame.style.apply(_paint, axis=1)


def build_chart_figure(view: ChartView) -> Optional[go.Figure]:
    """Horizontal bar chart, largest plan on top."""
    if not view.data:
        return None

    chart_df = pd.DataFrame(view.data, columns=["name", "value"])
    fig = px.bar(
        chart_df,
        x="value",
        y="name",
        orientation="h",
        title=view.title,
        text=chart_df["value"].map(format_currency),
    )
    fig.update_layout(
        xaxis_title="Valor",
        yaxis_title=None,
        yaxis=dict(autorange="reversed"),
        showlegend=False,
        height=max(400, 28 * len(chart_df) + 120),
    )
    fig.update_traces(textposition="outside", cliponaxis=False)
    return fig


def view_to_csv(view: View) -> bytes:
    """Raw values of the view for download."""
    if isinstance(view, TableView):
        frame = table_to_frame(view, formatted=False)
    else:
        frame = pd.DataFrame(view.data, columns=["name", "value"]).rename(
            columns={"name": "Plano Financeiro", "value": "Valor"}
        )
    return frame.to_csv(index=False, sep=";", decimal=",").encode("utf-8-sig")


# =========================
# Shareable state
# =========================
def build_share_query(
    start_date,
    end_date,
    include_prolabore: bool,
    active_tab: str,
    cc_filter: str = ALL_COST_CENTERS,
) -> Dict[str, str]:
    """Query params that reproduce the current filters."""
    params = {
        "start": to_iso(parse_iso_date(start_date)),
        "end": to_iso(parse_iso_date(end_date)),
        "prolabore": "1" if include_prolabore else "0",
        "tab": active_tab if active_tab in TAB_LABELS else DEFAULT_TAB,
    }
    if params["tab"] == "chart" and cc_filter in COST_CENTERS:
        params["cc"] = cc_filter
    return {k: v for k, v in params.items() if v}


def read_share_state(params: Mapping[str, str]) -> dict:
    """Filters encoded in query params; invalid entries fall back to defaults."""
    tab = params.get("tab") or DEFAULT_TAB
    cc = params.get("cc") or ALL_COST_CENTERS
    return dict(
        start=parse_iso_date(params.get("start")),
        end=parse_iso_date(params.get("end")),
        include_prolabore=str(params.get("prolabore", "1")).strip().lower() not in ("0", "false", "no"),
        tab=tab if tab in TAB_LABELS else DEFAULT_TAB,
        cc_filter=cc if cc in COST_CENTERS else ALL_COST_CENTERS,
    )


def sync_cost_center_filter(state: MutableMapping) -> str:
    """Copy the chart selectbox value into the persistent filter key."""
    value = state.get(CC_FILTER_WIDGET_KEY)
    if value not in CC_FILTER_OPTIONS:
        value = ALL_COST_CENTERS
    state[CC_FILTER_KEY] = value
    return value


def cost_center_filter_index(value) -> int:
    return CC_FILTER_OPTIONS.index(value) if value in CC_FILTER_OPTIONS else 0
