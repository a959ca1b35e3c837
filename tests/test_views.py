"""
Tests for views.py: tab variants, the view dispatch and the rendering helpers.
"""
import plotly.graph_objects as go
import pytest

from conftest import make_records
from data_processing import prepare_operational_data
from settings import PROLABORE_LABEL, WHOLE_PERIOD_LABEL
from views import (
    CC_FILTER_KEY,
    CC_FILTER_WIDGET_KEY,
    ChartTab,
    ChartView,
    ExcludedChartTab,
    ExcludedTab,
    PerCostCenterTab,
    TableView,
    TotalTab,
    build_chart_figure,
    build_share_query,
    build_view,
    cost_center_filter_index,
    highlight_rows,
    is_excluded_tab,
    parse_tab,
    read_share_state,
    sync_cost_center_filter,
    tab_key,
    table_to_frame,
    view_to_csv,
)

PERIOD = "01/01/2024 a 31/01/2024"


# ── parse_tab / tab_key ───────────────────────────────────────────────────────

def test_parse_tab_variants():
    assert parse_tab("cc1000") == PerCostCenterTab("1000")
    assert parse_tab("cc2002") == PerCostCenterTab("2002")
    assert parse_tab("total") == TotalTab()
    assert parse_tab("chart") == ChartTab("all")
    assert parse_tab("chart", "2000") == ChartTab("2000")
    assert parse_tab("excluded") == ExcludedTab()
    assert parse_tab("excluded-chart") == ExcludedChartTab()


@pytest.mark.parametrize("key", ["", "cc9999", "summary", None])
def test_parse_tab_unknown_is_none(key):
    assert parse_tab(key) is None


def test_parse_tab_invalid_cost_center_filter_falls_back_to_all():
    assert parse_tab("chart", "9999") == ChartTab("all")


@pytest.mark.parametrize("key", ["cc1000", "cc2000", "cc2002", "total", "chart", "excluded", "excluded-chart"])
def test_tab_key_round_trip(key):
    assert tab_key(parse_tab(key)) == key


def test_tab_key_rejects_other_objects():
    with pytest.raises(TypeError):
        tab_key("total")


def test_is_excluded_tab():
    assert is_excluded_tab(ExcludedTab())
    assert is_excluded_tab(ExcludedChartTab())
    assert not is_excluded_tab(TotalTab())
    assert not is_excluded_tab(None)


# ── build_view ────────────────────────────────────────────────────────────────

def test_per_cost_center_table(operational):
    view = build_view(PerCostCenterTab("1000"), operational, None, PERIOD)
    assert isinstance(view, TableView)
    assert [c.header for c in view.columns] == ["Plano Financeiro", f"Valor ({PERIOD})"]
    assert [r["plano"] for r in view.rows] == ["Aluguel", "Energia"]
    assert [r["valor"] for r in view.rows] == [7000.0, 800.0]


def test_total_table_sums_all_cost_centers(operational):
    view = build_view(TotalTab(), operational, None, PERIOD)
    totals = {r["plano"]: r["valor"] for r in view.rows}
    assert totals == {"Aluguel": 7000.0, "Combustível": 1250.0, "Software": 990.0, "Energia": 800.0}
    assert [r["plano"] for r in view.rows][0] == "Aluguel"


def test_table_highlights_prolabore_row(operational, excluded):
    data = prepare_operational_data(operational, excluded, "2024-01-01", "2024-01-31")
    view = build_view(PerCostCenterTab("1000"), data, excluded, PERIOD)
    flagged = [r["plano"] for r in view.rows if r["highlight"]]
    assert flagged == [PROLABORE_LABEL]


def test_chart_view_all_cost_centers(operational):
    view = build_view(ChartTab("all"), operational, None, WHOLE_PERIOD_LABEL)
    assert isinstance(view, ChartView)
    assert view.title == f"Despesas por Plano Financeiro (Soma de Todos) - {WHOLE_PERIOD_LABEL}"
    assert view.data[0] == {"name": "Aluguel", "value": 7000.0}
    assert view.cost_center_filter == "all"
    assert view.cost_center_options == ("all", "1000", "2000", "2002")


def test_chart_view_single_cost_center(operational):
    view = build_view(ChartTab("2000"), operational, None, PERIOD)
    assert view.title == f"Despesas por Plano Financeiro (CC 2000) - {PERIOD}"
    assert view.data == [{"name": "Combustível", "value": 1250.0}]


def test_excluded_table_sorted_newest_first(excluded):
    view = build_view(ExcludedTab(), None, excluded, PERIOD)
    assert [c.header for c in view.columns] == ["Data", "Plano Financeiro", "Credor", "Centro de Custo", "Valor"]
    assert [r["data"] for r in view.rows] == ["05/02/2024", "20/01/2024", "06/01/2024", "05/01/2024", "05/01/2024"]
    assert view.rows[0]["credor"] == "Diretor A"
    assert view.rows[0]["centroCusto"] == "1000"


def test_excluded_chart(excluded):
    view = build_view(ExcludedChartTab(), None, excluded, PERIOD)
    assert view.title == f"Despesas por Plano Financeiro Excluído - {PERIOD}"
    assert view.cost_center_filter is None
    assert view.data[0] == {"name": "Transferência", "value": 15000.0}
    assert sum(d["value"] for d in view.data) == pytest.approx(excluded["Amount"].sum())


def test_unknown_tab_renders_nothing(operational, excluded):
    assert build_view(None, operational, excluded, PERIOD) is None


def test_views_with_missing_data_are_empty():
    assert build_view(TotalTab(), None, None, PERIOD).rows == []
    assert build_view(ExcludedTab(), None, None, PERIOD).rows == []
    assert build_view(ChartTab(), None, None, PERIOD).data == []


# ── rendering helpers ─────────────────────────────────────────────────────────

def test_table_to_frame_formats_currency(operational):
    view = build_view(PerCostCenterTab("2002"), operational, None, PERIOD)
    frame = table_to_frame(view)
    assert list(frame.columns) == ["Plano Financeiro", f"Valor ({PERIOD})"]
    assert frame.iloc[0][f"Valor ({PERIOD})"] == "R$ 990,00"

    raw = table_to_frame(view, formatted=False)
    assert raw.iloc[0][f"Valor ({PERIOD})"] == 990.0


def test_highlight_rows_wraps_frame(operational):
    view = build_view(TotalTab(), operational, None, PERIOD)
    frame = table_to_frame(view)
    styler = highlight_rows(view, frame)
    assert styler.data is frame


def test_build_chart_figure():
    view = ChartView(data=[{"name": "Aluguel", "value": 100.0}, {"name": "Energia", "value": 50.0}], title="T")
    fig = build_chart_figure(view)
    assert isinstance(fig, go.Figure)
    assert fig.layout.title.text == "T"
    assert list(fig.data[0].y) == ["Aluguel", "Energia"]


def test_build_chart_figure_empty():
    assert build_chart_figure(ChartView(data=[], title="T")) is None


def test_view_to_csv_table():
    df = make_records([("1000", "01/01/2024", "Rent", 150), ("1000", "01/01/2024", "Fuel", 30)])
    content = view_to_csv(build_view(TotalTab(), df, None, PERIOD)).decode("utf-8-sig")
    lines = content.strip().splitlines()
    assert lines[0] == f"Plano Financeiro;Valor ({PERIOD})"
    assert lines[1] == "Rent;150,0"


def test_view_to_csv_chart():
    content = view_to_csv(ChartView(data=[{"name": "Fuel", "value": 30.5}], title="T")).decode("utf-8-sig")
    assert content.strip().splitlines() == ["Plano Financeiro;Valor", "Fuel;30,5"]


# ── share state ───────────────────────────────────────────────────────────────

def test_share_query_round_trip():
    query = build_share_query("2024-01-01", "2024-01-31", False, "chart", "2000")
    assert query == {"start": "2024-01-01", "end": "2024-01-31", "prolabore": "0", "tab": "chart", "cc": "2000"}

    state = read_share_state(query)
    assert state["start"].isoformat() == "2024-01-01"
    assert state["end"].isoformat() == "2024-01-31"
    assert state["include_prolabore"] is False
    assert state["tab"] == "chart"
    assert state["cc_filter"] == "2000"


def test_share_query_omits_empty_dates_and_unused_filter():
    query = build_share_query("", "", True, "total", "2000")
    assert query == {"prolabore": "1", "tab": "total"}


def test_read_share_state_defaults():
    state = read_share_state({"tab": "bogus", "cc": "9999", "start": "31/01/2024"})
    assert state["tab"] == "cc1000"
    assert state["cc_filter"] == "all"
    assert state["start"] is None
    assert state["end"] is None
    assert state["include_prolabore"] is True


# ── cost-center filter persistence ────────────────────────────────────────────

def test_sync_cost_center_filter_copies_widget_value():
    state = {CC_FILTER_WIDGET_KEY: "2000", CC_FILTER_KEY: "all"}
    assert sync_cost_center_filter(state) == "2000"
    assert state[CC_FILTER_KEY] == "2000"


def test_cost_center_filter_survives_widget_removal():
    state = {CC_FILTER_WIDGET_KEY: "2002"}
    sync_cost_center_filter(state)
    # leaving the chart tab drops the widget's own key
    del state[CC_FILTER_WIDGET_KEY]
    assert state[CC_FILTER_KEY] == "2002"
    assert cost_center_filter_index(state[CC_FILTER_KEY]) == 3


@pytest.mark.parametrize("value", [None, "9999"])
def test_sync_cost_center_filter_invalid_falls_back_to_all(value):
    state = {CC_FILTER_WIDGET_KEY: value} if value else {}
    assert sync_cost_center_filter(state) == "all"
    assert state[CC_FILTER_KEY] == "all"


def test_cost_center_filter_index():
    assert cost_center_filter_index("all") == 0
    assert cost_center_filter_index("2000") == 2
    assert cost_center_filter_index("9999") == 0
