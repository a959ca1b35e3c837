# financial_data.py
# Loading of the operational and excluded expense datasets.
# Accepts CSV (comma or semicolon) or XLSX from a path, URL or uploaded bytes.

import datetime as dt
import io
import re
import zipfile
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Union

import numpy as np
import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from data_processing import date_bounds, strip_accents, to_iso
from log_config import get_logger
from settings import (
    AMOUNT_COL,
    COLUMN_ALIASES,
    COST_CENTER_COL,
    CREDITOR_COL,
    DATE_COL,
    DATE_DISPLAY_FMT,
    PLAN_COL,
    RECORD_COLS,
    REQUIRED_COLS,
)

logger = get_logger("data")

LOADING = "loading"
LOADED = "loaded"
FAILED = "failed"

Source = Union[str, bytes]

# "1.500" or "-1.234.567": dots group thousands, no cents
THOUSANDS_ONLY = re.compile(r"^-?\d{1,3}(\.\d{3})+$")


class DataLoadError(Exception):
    """A dataset could not be read or does not have the expected shape."""


@dataclass
class LoadResult:
    name: str
    status: str = LOADING
    data: Optional[pd.DataFrame] = None
    error: Optional[str] = None

    @property
    def is_loaded(self) -> bool:
        return self.status == LOADED

    @property
    def is_failed(self) -> bool:
        return self.status == FAILED


# =========================
# Value normalization
# =========================
def _header_key(col) -> str:
    key = strip_accents(str(col)).strip().lower()
    return re.sub(r"\s+", " ", key)


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    rename_map = {}
    for col in df.columns:
        key = _header_key(col)
        for canonical, aliases in COLUMN_ALIASES.items():
            if key == canonical.lower() or key in aliases:
                rename_map[col] = canonical
                break
    df = df.rename(columns=rename_map)
    missing = [c for c in REQUIRED_COLS if c not in df.columns]
    if missing:
        raise DataLoadError(f"Missing expected columns: {missing}. Found: {list(df.columns)}")
    return df


def parse_br_amount(value) -> float:
    """
    Parse monetary values written the Brazilian way:
      "R$ 1.234,56" -> 1234.56, "R$ 1.500" -> 1500.0, "-10,5" -> -10.5, "(10,00)" -> -10.0
    Plain numbers and dot-decimal text pass through. Unparseable -> NaN.
    """
    if value is None or isinstance(value, bool):
        return np.nan
    if isinstance(value, (int, float, np.number)):
        return float(value)

    s = str(value).strip().replace("R$", "").replace("\u00a0", "").replace(" ", "")
    if not s:
        return np.nan

    negative = s.startswith("(") and s.endswith(")")
    if negative:
        s = s[1:-1]
    if "," in s:
        s = s.replace(".", "").replace(",", ".")
    elif THOUSANDS_ONLY.match(s):
        s = s.replace(".", "")
    try:
        num = float(s)
    except ValueError:
        return np.nan
    return -num if negative else num


def normalize_cost_center(value) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    return re.sub(r"^(\d+)\.0+$", r"\1", text)


def _date_text(value) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if isinstance(value, (dt.datetime, dt.date)):
        return value.strftime(DATE_DISPLAY_FMT)
    return str(value).strip()


def _text(series: pd.Series) -> pd.Series:
    return series.map(lambda v: "" if v is None or (not isinstance(v, str) and pd.isna(v)) else str(v).strip())


def prepare_records(df: pd.DataFrame, name: str = "dataset") -> pd.DataFrame:
    """Normalize a raw sheet into the canonical record columns."""
    df = normalize_columns(df)
    out = pd.DataFrame(
        {
            COST_CENTER_COL: df[COST_CENTER_COL].map(normalize_cost_center),
            DATE_COL: df[DATE_COL].map(_date_text),
            PLAN_COL: _text(df[PLAN_COL]),
            AMOUNT_COL: df[AMOUNT_COL].map(parse_br_amount).astype(float),
            CREDITOR_COL: _text(df[CREDITOR_COL]) if CREDITOR_COL in df.columns else "",
        },
        columns=RECORD_COLS,
    )

    bad_amount = out[AMOUNT_COL].isna()
    if bad_amount.any():
        logger.warning("%s: dropping %d rows with unparseable amounts", name, int(bad_amount.sum()))
    return out.loc[~bad_amount].reset_index(drop=True)


# =========================
# Reading
# =========================
def read_source(source: Source, filename: Optional[str] = None) -> pd.DataFrame:
    """Read CSV or XLSX from a path, URL or raw bytes."""
    if isinstance(source, bytes):
        buffer = io.BytesIO(source)
        label = filename or "upload"
    else:
        buffer = source
        label = filename or str(source)

    try:
        if label.lower().endswith((".xlsx", ".xlsm")):
            return pd.read_excel(buffer, engine="openpyxl", dtype=object)
        return pd.read_csv(buffer, sep=None, engine="python", dtype=str, encoding="utf-8-sig")
    except (OSError, ValueError, zipfile.BadZipFile, InvalidFileException) as exc:
        raise DataLoadError(f"Could not read {label}: {exc}") from exc


def load_dataset(source: Source, name: str, filename: Optional[str] = None) -> pd.DataFrame:
    raw = read_source(source, filename)
    records = prepare_records(raw, name)
    logger.info("Loaded %s: %d records", name, len(records))
    return records


def load_both(
    sources: Dict[str, Tuple[Optional[Source], Optional[str]]],
    loader: Callable[..., pd.DataFrame] = load_dataset,
) -> Dict[str, LoadResult]:
    """
    Load each named dataset. A dataset without a source stays in the
    loading state; a read or shape error marks it failed.
    """
    results = {}
    for name, (source, filename) in sources.items():
        result = LoadResult(name)
        if source is None:
            results[name] = result
            continue
        try:
            result.data = loader(source, name, filename)
            result.status = LOADED
        except DataLoadError as exc:
            logger.error("Failed to load %s: %s", name, exc)
            result.status = FAILED
            result.error = str(exc)
        results[name] = result
    return results


def default_date_range(
    operational: Optional[pd.DataFrame], excluded: Optional[pd.DataFrame]
) -> Tuple[str, str]:
    """Earliest and latest parseable date over both datasets, as ISO strings."""
    lows, highs = [], []
    for frame in (operational, excluded):
        low, high = date_bounds(frame)
        if low is not None:
            lows.append(low)
            highs.append(high)
    if not lows:
        return "", ""
    return to_iso(min(lows)), to_iso(max(highs))
