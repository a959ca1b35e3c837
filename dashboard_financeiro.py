# dashboard_financeiro.py
# Streamlit dashboard for operational expenses per cost center.
# Reads two sheets (operational and excluded) with columns:
# Centro de Custo | Data | Plano Financeiro | Valor | Credor (excluded only)

import streamlit as st

from data_processing import (
    calculate_summary,
    count_unparseable_dates,
    filter_by_date_range,
    format_currency,
    format_period_label,
    parse_iso_date,
    prepare_operational_data,
    to_iso,
)
from financial_data import default_date_range, load_both, load_dataset
from log_config import get_logger
from settings import (
    ALL_COST_CENTERS,
    PROLABORE_COST_CENTER,
    TAB_LABELS,
    get_source,
)
from views import (
    CC_FILTER_KEY,
    CC_FILTER_OPTIONS,
    CC_FILTER_WIDGET_KEY,
    ChartTab,
    ChartView,
    TableView,
    build_chart_figure,
    build_share_query,
    build_view,
    cost_center_filter_index,
    highlight_rows,
    is_excluded_tab,
    parse_tab,
    read_share_state,
    sync_cost_center_filter,
    table_to_frame,
    view_to_csv,
)

st.set_page_config(page_title="Dashboard Financeiro", layout="wide")

logger = get_logger("app")


@st.cache_data(show_spinner=False)
def _load_cached(source, name, filename=None):
    return load_dataset(source, name, filename)


# =========================
# UI — Sources
# =========================
sources = {}
for name, label in (("operational", "Planilha operacional"), ("excluded", "Planilha de excluídos")):
    configured = get_source(name)
    if configured:
        sources[name] = (configured, None)
        continue
    uploaded = st.sidebar.file_uploader(f"{label} (.csv ou .xlsx)", type=["csv", "xlsx"], key=f"upload_{name}")
    sources[name] = (uploaded.getvalue(), uploaded.name) if uploaded else (None, None)

with st.spinner("Carregando dados..."):
    results = load_both(sources, loader=_load_cached)

failed = [r for r in results.values() if r.is_failed]
if failed:
    st.title("Dashboard Financeiro")
    for result in failed:
        st.error(f"Não foi possível carregar '{result.name}': {result.error}")
    st.stop()

if not all(r.is_loaded for r in results.values()):
    st.title("Dashboard Financeiro")
    st.info("Envie as planilhas operacional e de excluídos na barra lateral para começar.")
    st.stop()

operational_data = results["operational"].data
excluded_data = results["excluded"].data

# =========================
# Filter state (query params seed the first run)
# =========================
if "filters_ready" not in st.session_state:
    shared = read_share_state(st.query_params)
    default_start, default_end = default_date_range(operational_data, excluded_data)
    st.session_state.start_date = shared["start"] or parse_iso_date(default_start)
    st.session_state.end_date = shared["end"] or parse_iso_date(default_end)
    st.session_state.include_prolabore = shared["include_prolabore"]
    st.session_state.active_tab = shared["tab"]
    st.session_state[CC_FILTER_KEY] = shared["cc_filter"]
    st.session_state.filters_ready = True

st.title("Dashboard Financeiro")
st.caption("Análise de Despesas por Centro de Custo")

st.sidebar.header("Filtros")
st.sidebar.date_input("Data inicial", key="start_date", format="DD/MM/YYYY")
st.sidebar.date_input("Data final", key="end_date", format="DD/MM/YYYY")
st.sidebar.toggle(
    "Incluir pró-labore",
    key="include_prolabore",
    help=f"Soma os pró-labores do CC {PROLABORE_COST_CENTER} da planilha de excluídos como uma linha única.",
)

start_date = to_iso(st.session_state.start_date)
end_date = to_iso(st.session_state.end_date)
include_prolabore = bool(st.session_state.include_prolabore)

# =========================
# Apply Filters
# =========================
filtered_operational = prepare_operational_data(
    operational_data,
    excluded_data,
    start_date,
    end_date,
    include_prolabore=include_prolabore,
)
filtered_excluded = filter_by_date_range(excluded_data, start_date, end_date)
period_text = format_period_label(start_date, end_date)

# =========================
# Tabs
# =========================
st.radio(
    "Visão",
    options=list(TAB_LABELS),
    format_func=TAB_LABELS.get,
    horizontal=True,
    key="active_tab",
    label_visibility="collapsed",
)
cc_filter = st.session_state.get(CC_FILTER_KEY, ALL_COST_CENTERS)
active_tab = parse_tab(st.session_state.active_tab, cc_filter)

# =========================
# Summary
# =========================
excluded_view = is_excluded_tab(active_tab)
summary = calculate_summary(filtered_excluded if excluded_view else filtered_operational)

st.subheader("Resumo Excluídos" if excluded_view else "Resumo Operacional")
col1, col2, col3, col4 = st.columns(4)
col1.metric(f"Total ({period_text})", format_currency(summary["total"]))
col2.metric("Lançamentos", f"{summary['count']:,}".replace(",", "."))
col3.metric("Média por lançamento", format_currency(summary["average"]))
col4.metric("Maior plano financeiro", summary["largest_plan"] or "—")
if summary["by_cost_center"]:
    st.caption(
        " • ".join(f"CC {cc}: {format_currency(value)}" for cc, value in summary["by_cost_center"].items())
    )

# =========================
# Active view
# =========================
if isinstance(active_tab, ChartTab):
    st.selectbox(
        "Centro de Custo",
        options=CC_FILTER_OPTIONS,
        format_func=lambda cc: "Soma de Todos" if cc == ALL_COST_CENTERS else f"CC {cc}",
        index=cost_center_filter_index(cc_filter),
        key=CC_FILTER_WIDGET_KEY,
        on_change=sync_cost_center_filter,
        args=(st.session_state,),
    )
    cc_filter = st.session_state[CC_FILTER_KEY]
    active_tab = parse_tab(st.session_state.active_tab, cc_filter)

view = build_view(active_tab, filtered_operational, filtered_excluded, period_text)

if isinstance(view, TableView):
    if view.rows:
        frame = table_to_frame(view)
        st.dataframe(highlight_rows(view, frame), use_container_width=True, hide_index=True)
    else:
        st.info("Nenhum lançamento no período.")
elif isinstance(view, ChartView):
    fig = build_chart_figure(view)
    if fig is not None:
        st.plotly_chart(fig, use_container_width=True, theme="streamlit")
    else:
        st.info("Nenhum lançamento no período.")

if view is not None:
    st.download_button(
        "Baixar dados (CSV)",
        data=view_to_csv(view),
        file_name=f"dashboard_{st.session_state.active_tab}.csv",
        mime="text/csv",
    )

share_query = build_share_query(
    start_date,
    end_date,
    include_prolabore,
    st.session_state.active_tab,
    cc_filter,
)
if dict(st.query_params) != share_query:
    st.query_params.from_dict(share_query)

# =========================
# Audit
# =========================
with st.expander("Auditoria do cálculo"):
    left, right = st.columns(2)
    with left:
        st.write("**Contagem de linhas**")
        st.write({
            "Operacional (total)": len(operational_data),
            "Operacional (filtrado)": len(filtered_operational),
            "Excluídos (total)": len(excluded_data),
            "Excluídos (filtrado)": len(filtered_excluded),
        })
    with right:
        st.write("**Datas não reconhecidas**")
        st.write({
            "Operacional": count_unparseable_dates(operational_data),
            "Excluídos": count_unparseable_dates(excluded_data),
        })
        st.write("**Pró-labore incluído:**", "sim" if include_prolabore else "não")

logger.debug(
    "Rendered tab=%s period=%s prolabore=%s rows=%d",
    st.session_state.active_tab,
    period_text,
    include_prolabore,
    len(filtered_operational),
)
