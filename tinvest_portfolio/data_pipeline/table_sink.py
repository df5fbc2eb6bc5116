from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Protocol

import pandas as pd

from tinvest_portfolio.data_pipeline.classifier import Category
from tinvest_portfolio.data_pipeline.records import MONEY_COLUMNS, QUANTITY_COLUMNS


logger = logging.getLogger(__name__)

RAW_DESTINATION = "Positions"
AGGREGATED_DESTINATION = "Positions_Aggregated"
SUMMARY_DESTINATION = "Positions_SummaryByType"
CATEGORY_DESTINATIONS = {
    Category.SHARES: "Positions_Shares",
    Category.BONDS: "Positions_Bonds",
    Category.ETFS: "Positions_ETFs",
    Category.CURRENCIES: "Positions_Currencies",
    Category.FUTURES: "Positions_Futures",
    Category.OTHER: "Positions_Other",
    Category.MONEY: "Positions_Money",
}
ALL_DESTINATIONS = [
    RAW_DESTINATION,
    AGGREGATED_DESTINATION,
    SUMMARY_DESTINATION,
    *CATEGORY_DESTINATIONS.values(),
]

CURRENCY_SYMBOLS = {"RUB": "₽", "USD": "$", "EUR": "€", "CNY": "¥"}
QUANTITY_FORMAT = "%.8g"


def money_format(currency: str = "RUB") -> str:
    return f"%.2f {CURRENCY_SYMBOLS.get(currency.upper(), currency.upper())}"


def column_formats(columns: Iterable[str], currency: str = "RUB") -> dict[str, str]:
    """Display format per numeric column; summary totals count as money."""
    formats: dict[str, str] = {}
    for col in columns:
        if col in QUANTITY_COLUMNS:
            formats[col] = QUANTITY_FORMAT
        elif col in MONEY_COLUMNS:
            formats[col] = money_format(currency)
    return formats


class TableSink(Protocol):
    def write_table(self, destination: str, df: pd.DataFrame) -> None:
        ...


class CsvTableSink:
    """Write each destination to ``<out_dir>/<destination>.csv``, replacing prior content."""

    def __init__(self, out_dir: Path | str) -> None:
        self.out_dir = Path(out_dir)

    def path_for(self, destination: str) -> Path:
        return self.out_dir / f"{destination}.csv"

    def write_table(self, destination: str, df: pd.DataFrame) -> None:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(destination)
        df.to_csv(path, index=False, encoding="utf-8")
        logger.info("Wrote %s rows to %s", len(df), path)

    def read_table(self, destination: str) -> pd.DataFrame | None:
        path = self.path_for(destination)
        if not path.exists():
            return None
        return pd.read_csv(path, keep_default_na=True)

    def clear(self, destinations: Iterable[str] = ALL_DESTINATIONS) -> int:
        removed = 0
        for destination in destinations:
            path = self.path_for(destination)
            if path.exists():
                path.unlink()
                removed += 1
        logger.info("Removed %s stale outputs from %s", removed, self.out_dir)
        return removed
