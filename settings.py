# settings.py
# Constants and data-source resolution for the financial dashboard.
# Sources are looked up in st.secrets, then the environment, then data/.

import os
from pathlib import Path
from typing import Mapping, Optional

# =========================
# Columns & Aliases
# =========================
COST_CENTER_COL = "CostCenter"
DATE_COL = "Date"
PLAN_COL = "FinancialPlan"
AMOUNT_COL = "Amount"
CREDITOR_COL = "Creditor"
HIGHLIGHT_COL = "Highlight"

REQUIRED_COLS = [COST_CENTER_COL, DATE_COL, PLAN_COL, AMOUNT_COL]
RECORD_COLS = REQUIRED_COLS + [CREDITOR_COL]

COLUMN_ALIASES = {
    COST_CENTER_COL: {"costcenter", "centrocusto", "centro de custo", "centro_custo", "cc"},
    DATE_COL: {"date", "data", "data pagamento", "data de pagamento"},
    PLAN_COL: {"financialplan", "planofinanceiro", "plano financeiro", "plano_financeiro", "plano"},
    AMOUNT_COL: {"amount", "valor", "valor pago"},
    CREDITOR_COL: {"creditor", "credor", "fornecedor"},
}

DATE_DISPLAY_FMT = "%d/%m/%Y"
ISO_DATE_FMT = "%Y-%m-%d"

# =========================
# Business rules
# =========================
COST_CENTERS = ("1000", "2000", "2002")
PROLABORE_COST_CENTER = "1000"
PROLABORE_LABEL = "Soma Pró-Labore (Diretoria)"
HIGHLIGHT_MARKER = "soma pró-labore"
WHOLE_PERIOD_LABEL = "Todo o Período"
ALL_COST_CENTERS = "all"

TAB_LABELS = {
    "cc1000": "CC 1000",
    "cc2000": "CC 2000",
    "cc2002": "CC 2002",
    "total": "Total",
    "chart": "Gráfico",
    "excluded": "Excluídos",
    "excluded-chart": "Gráfico Excluídos",
}
DEFAULT_TAB = "cc1000"

# =========================
# Sources
# =========================
DATA_DIR = Path(__file__).resolve().parent / "data"

SOURCE_KEYS = {
    "operational": "OPERATIONAL_DATA_SOURCE",
    "excluded": "EXCLUDED_DATA_SOURCE",
}
DEFAULT_SOURCES = {
    "operational": DATA_DIR / "operacional.csv",
    "excluded": DATA_DIR / "excluidos.csv",
}


def _secret(key: str, secrets: Optional[Mapping] = None) -> Optional[str]:
    if secrets is None:
        import streamlit as st

        secrets = st.secrets
    try:
        value = secrets.get(key)
    except FileNotFoundError:
        # No secrets.toml present
        return None
    return str(value) if value else None


def get_source(name: str, secrets: Optional[Mapping] = None) -> Optional[str]:
    """
    Resolve where a dataset lives: secrets, environment, then the bundled
    default file. Returns None when nothing is configured or present.
    """
    if name not in SOURCE_KEYS:
        raise KeyError(f"Unknown dataset: {name!r}")

    key = SOURCE_KEYS[name]
    value = _secret(key, secrets) or os.environ.get(key)
    if value:
        return value

    default = DEFAULT_SOURCES[name]
    return str(default) if default.exists() else None


def get_log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()


def get_log_dir() -> Optional[Path]:
    value = os.environ.get("LOG_DIR")
    return Path(value) if value else None
