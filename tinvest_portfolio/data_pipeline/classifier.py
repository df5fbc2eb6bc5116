from __future__ import annotations

from enum import Enum

from tinvest_portfolio.data_pipeline.records import is_blank


CASH_TYPE = "money"
FALLBACK_TYPE = "security"


class Category(str, Enum):
    SHARES = "Shares"
    BONDS = "Bonds"
    ETFS = "ETFs"
    CURRENCIES = "Currencies"
    FUTURES = "Futures"
    MONEY = "Money"
    OTHER = "Other"


# Display order of the per-category summary. Money is appended separately.
SUMMARY_ORDER = [
    Category.SHARES,
    Category.BONDS,
    Category.ETFS,
    Category.CURRENCIES,
    Category.FUTURES,
    Category.OTHER,
]
CATEGORY_ORDER = SUMMARY_ORDER + [Category.MONEY]

EXACT_TYPE_MAP = {
    "bond": Category.BONDS,
    "etf": Category.ETFS,
    "currency": Category.CURRENCIES,
    "future": Category.FUTURES,
    "futures": Category.FUTURES,
    CASH_TYPE: Category.MONEY,
}


def classify(instrument_type: object) -> Category:
    """Map a raw instrument-type label to its category; never raises."""
    if is_blank(instrument_type):
        return Category.OTHER
    label = str(instrument_type).lower()
    if "share" in label:
        return Category.SHARES
    return EXACT_TYPE_MAP.get(label, Category.OTHER)


def is_cash_type(instrument_type: object) -> bool:
    return classify(instrument_type) is Category.MONEY
