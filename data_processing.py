# data_processing.py
# Filtering and aggregation over financial record frames.
# Frames carry the columns CostCenter | Date | FinancialPlan | Amount | Creditor,
# with Date kept as day/month/year text.

import datetime as dt
import re
import unicodedata
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from log_config import get_logger
from settings import (
    ALL_COST_CENTERS,
    AMOUNT_COL,
    COST_CENTER_COL,
    CREDITOR_COL,
    DATE_COL,
    DATE_DISPLAY_FMT,
    HIGHLIGHT_COL,
    HIGHLIGHT_MARKER,
    ISO_DATE_FMT,
    PLAN_COL,
    PROLABORE_COST_CENTER,
    PROLABORE_LABEL,
    RECORD_COLS,
    WHOLE_PERIOD_LABEL,
)

logger = get_logger("processing")

AGGREGATE_COLS = [PLAN_COL, AMOUNT_COL, HIGHLIGHT_COL]


# =========================
# Helpers
# =========================
def empty_records() -> pd.DataFrame:
    return pd.DataFrame(
        {
            COST_CENTER_COL: pd.Series(dtype=object),
            DATE_COL: pd.Series(dtype=object),
            PLAN_COL: pd.Series(dtype=object),
            AMOUNT_COL: pd.Series(dtype=float),
            CREDITOR_COL: pd.Series(dtype=object),
        },
        columns=RECORD_COLS,
    )


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def parse_br_dates(series: pd.Series) -> pd.Series:
    """
    Parse a column of day/month/year dates:
      - dd/mm/yyyy, dd-mm-yyyy, dd.mm.yyyy (trailing time is ignored)
      - date/datetime objects are kept as they are
    Returns midnight timestamps; unparseable -> NaT.
    """
    out = pd.Series(pd.NaT, index=series.index, dtype="datetime64[ns]")
    if series.empty:
        return out

    date_like_mask = series.map(lambda x: isinstance(x, (dt.datetime, dt.date)) and not pd.isna(x)).astype(bool)
    if date_like_mask.any():
        out.loc[date_like_mask] = pd.to_datetime(series.loc[date_like_mask], errors="coerce").to_numpy()

    str_mask = ~date_like_mask & series.notna()
    if str_mask.any():
        s_norm = (
            series.loc[str_mask].astype(str).str.strip()
            .str.replace(r"\s+.*$", "", regex=True)
            .str.replace(r"[./]", "-", regex=True)
        )
        out.loc[str_mask] = pd.to_datetime(s_norm, format="%d-%m-%Y", errors="coerce").to_numpy()

    return out.dt.normalize()


def parse_br_date(value) -> Optional[dt.date]:
    parsed = parse_br_dates(pd.Series([value], dtype=object)).iloc[0]
    if pd.isna(parsed):
        return None
    return parsed.date()


def parse_iso_date(value) -> Optional[dt.date]:
    """Parse a YYYY-MM-DD boundary; empty or malformed -> None."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if not value:
        return None
    try:
        return dt.datetime.strptime(str(value).strip(), ISO_DATE_FMT).date()
    except ValueError:
        return None


def to_iso(value: Optional[dt.date]) -> str:
    return value.strftime(ISO_DATE_FMT) if value else ""


def format_currency(value) -> str:
    """Brazilian real, e.g. R$ 1.234,56 / -R$ 10,00."""
    try:
        val = float(value)
    except (TypeError, ValueError):
        return "—"
    if not np.isfinite(val):
        return "—"
    s = f"{abs(val):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    sign = "-" if val < 0 and round(abs(val), 2) > 0 else ""
    return f"{sign}R$ {s}"


def format_period_label(start_date, end_date) -> str:
    start = parse_iso_date(start_date)
    end = parse_iso_date(end_date)
    if start is None or end is None:
        return WHOLE_PERIOD_LABEL
    return f"{start.strftime(DATE_DISPLAY_FMT)} a {end.strftime(DATE_DISPLAY_FMT)}"


# =========================
# Filtering
# =========================
def filter_by_date_range(df: Optional[pd.DataFrame], start_date="", end_date="") -> pd.DataFrame:
    """
    Keep records whose Date falls inside [start_date, end_date] (inclusive).
    With no usable boundary the frame is returned as-is, unparseable rows
    included; otherwise unparseable dates never match.
    """
    if df is None:
        return empty_records()

    start = parse_iso_date(start_date)
    end = parse_iso_date(end_date)
    if start is None and end is None:
        return df

    dates = parse_br_dates(df[DATE_COL])
    mask = dates.notna()
    if start is not None:
        mask &= dates >= pd.Timestamp(start)
    if end is not None:
        mask &= dates <= pd.Timestamp(end)
    return df.loc[mask].copy()


def sort_by_date_desc(df: Optional[pd.DataFrame]) -> pd.DataFrame:
    """Newest first; rows with unparseable dates go last in their original order."""
    if df is None or df.empty:
        return empty_records() if df is None else df
    dates = parse_br_dates(df[DATE_COL]).reset_index(drop=True)
    order = dates.sort_values(ascending=False, na_position="last", kind="mergesort").index
    return df.iloc[order.to_numpy()]


def count_unparseable_dates(df: Optional[pd.DataFrame]) -> int:
    if df is None or df.empty:
        return 0
    return int(parse_br_dates(df[DATE_COL]).isna().sum())


# =========================
# Pró-labore
# =========================
def is_prolabore_plan(label) -> bool:
    """Matches Pró-Labore / Pro-labore / pro labore / prolabore, any case."""
    if not isinstance(label, str):
        return False
    norm = strip_accents(label).lower()
    norm = re.sub(r"[-_\s]+", " ", norm)
    return "pro labore" in norm or "prolabore" in norm


def is_highlight_plan(label) -> bool:
    return isinstance(label, str) and HIGHLIGHT_MARKER in label.lower()


def get_prolabore_records(excluded: Optional[pd.DataFrame], cost_center: str) -> pd.DataFrame:
    if excluded is None or excluded.empty:
        return empty_records()
    cc_mask = excluded[COST_CENTER_COL].astype(str) == str(cost_center)
    plan_mask = excluded[PLAN_COL].map(is_prolabore_plan).astype(bool)
    return excluded.loc[cc_mask & plan_mask].copy()


def sum_prolabore_for_period(excluded: Optional[pd.DataFrame], cost_center: str) -> float:
    records = get_prolabore_records(excluded, cost_center)
    if records.empty:
        return 0.0
    return float(records[AMOUNT_COL].sum())


def build_prolabore_record(cost_center: str, amount: float, end_date="") -> pd.DataFrame:
    """One synthetic row carrying the pró-labore total of the period."""
    day = parse_iso_date(end_date) or dt.date.today()
    return pd.DataFrame(
        [
            {
                COST_CENTER_COL: str(cost_center),
                DATE_COL: day.strftime(DATE_DISPLAY_FMT),
                PLAN_COL: PROLABORE_LABEL,
                AMOUNT_COL: float(amount),
                CREDITOR_COL: "",
            }
        ],
        columns=RECORD_COLS,
    )


def prepare_operational_data(
    operational: Optional[pd.DataFrame],
    excluded: Optional[pd.DataFrame],
    start_date="",
    end_date="",
    include_prolabore: bool = True,
    cost_center: str = PROLABORE_COST_CENTER,
) -> pd.DataFrame:
    """
    Date-filtered operational records, plus one aggregated pró-labore row
    taken from the excluded records of the same period when enabled.
    """
    if operational is None or excluded is None:
        return empty_records()

    filtered = filter_by_date_range(operational, start_date, end_date)
    if not include_prolabore:
        return filtered

    filtered_excluded = filter_by_date_range(excluded, start_date, end_date)
    total = sum_prolabore_for_period(filtered_excluded, cost_center)
    if total <= 0:
        return filtered

    logger.debug("Injecting pró-labore total %.2f for CC %s", total, cost_center)
    synthetic = build_prolabore_record(cost_center, total, end_date)
    if filtered.empty:
        return synthetic
    return pd.concat([filtered, synthetic], ignore_index=True)


# =========================
# Aggregation
# =========================
def group_by_plan(df: Optional[pd.DataFrame], cost_center: Optional[str] = None) -> pd.DataFrame:
    """
    Sum Amount per FinancialPlan, largest total first (ties by label).
    cost_center restricts the input first; None or "all" keeps every row.
    """
    if df is None or df.empty:
        return pd.DataFrame(columns=AGGREGATE_COLS)

    data = df
    if cost_center not in (None, "", ALL_COST_CENTERS):
        data = data[data[COST_CENTER_COL].astype(str) == str(cost_center)]
    if data.empty:
        return pd.DataFrame(columns=AGGREGATE_COLS)

    grouped = (
        data.groupby(PLAN_COL, sort=False, dropna=False)[AMOUNT_COL]
        .sum()
        .reset_index()
        .sort_values([AMOUNT_COL, PLAN_COL], ascending=[False, True], kind="mergesort")
        .reset_index(drop=True)
    )
    grouped[HIGHLIGHT_COL] = grouped[PLAN_COL].map(is_highlight_plan).astype(bool)
    return grouped[AGGREGATE_COLS]


def calculate_summary(df: Optional[pd.DataFrame]) -> dict:
    """Totals for the summary panel."""
    if df is None or df.empty:
        return dict(total=0.0, count=0, average=0.0, by_cost_center={}, largest_plan=None)

    amounts = df[AMOUNT_COL].astype(float)
    total = float(amounts.sum())
    count = int(len(df))
    by_cost_center = {
        str(cc): float(value)
        for cc, value in df.groupby(COST_CENTER_COL, sort=True)[AMOUNT_COL].sum().items()
    }
    grouped = group_by_plan(df)
    largest_plan = str(grouped[PLAN_COL].iloc[0]) if not grouped.empty else None

    return dict(
        total=total,
        count=count,
        average=total / count,
        by_cost_center=by_cost_center,
        largest_plan=largest_plan,
    )


def date_bounds(df: Optional[pd.DataFrame]) -> Tuple[Optional[dt.date], Optional[dt.date]]:
    if df is None or df.empty:
        return None, None
    dates = parse_br_dates(df[DATE_COL]).dropna()
    if dates.empty:
        return None, None
    return dates.min().date(), dates.max().date()
