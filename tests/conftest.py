"""
Shared fixtures for the dashboard tests.

Frames follow the canonical record layout
(CostCenter | Date | FinancialPlan | Amount | Creditor) with dates as
day/month/year text, the way financial_data.prepare_records leaves them.
"""
import sys
from pathlib import Path

import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from settings import RECORD_COLS


def make_records(rows):
    """Build a record frame from (cost_center, date, plan, amount[, creditor]) tuples."""
    data = []
    for row in rows:
        cc, date, plan, amount = row[:4]
        creditor = row[4] if len(row) > 4 else ""
        data.append(
            {
                "CostCenter": cc,
                "Date": date,
                "FinancialPlan": plan,
                "Amount": float(amount),
                "Creditor": creditor,
            }
        )
    return pd.DataFrame(data, columns=RECORD_COLS)


@pytest.fixture
def operational():
    return make_records(
        [
            ("1000", "05/01/2024", "Aluguel", 3500),
            ("1000", "10/01/2024", "Energia", 800),
            ("2000", "08/01/2024", "Combustível", 1200),
            ("2002", "12/01/2024", "Software", 990),
            ("1000", "05/02/2024", "Aluguel", 3500),
            ("2000", "data inválida", "Combustível", 50),
        ]
    )


@pytest.fixture
def excluded():
    return make_records(
        [
            ("1000", "05/01/2024", "Pró-Labore", 300, "Diretor A"),
            ("1000", "06/01/2024", "pro-labore", 200, "Diretor B"),
            ("2000", "05/01/2024", "Pró-Labore", 4000, "Gerente C"),
            ("1000", "20/01/2024", "Transferência", 15000, "Banco X"),
            ("1000", "05/02/2024", "Pró-Labore", 800, "Diretor A"),
        ]
    )
