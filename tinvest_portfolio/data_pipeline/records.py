from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable

import pandas as pd


ALL_ACCOUNTS = "ALL"

POSITION_COLUMNS = [
    "account_id",
    "type",
    "figi",
    "ticker",
    "name",
    "lot",
    "quantity_lots",
    "quantity_pcs",
    "current_price_per_piece",
    "avg_price_per_piece",
    "price_per_lot",
    "position_value",
    "instrument_currency",
]
TEXT_COLUMNS = ["account_id", "type", "figi", "ticker", "name", "instrument_currency"]
QUANTITY_COLUMNS = ["quantity_lots", "quantity_pcs"]
MONEY_COLUMNS = [
    "current_price_per_piece",
    "avg_price_per_piece",
    "price_per_lot",
    "position_value",
]
GROUP_KEY_FIELDS = ("name", "ticker", "figi")


def _coerce_lot(value: object) -> int:
    try:
        lot = int(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 1
    return max(1, lot)


@dataclass
class PositionRecord:
    """One canonical row: a single instrument (or cash) held in one account.

    Monetary fields are in the reporting currency. ``None`` marks a blank
    value, which is different from a known zero.
    """

    account_id: str
    type: str
    figi: str = ""
    ticker: str = ""
    name: str = ""
    lot: int = 1
    quantity_lots: float | None = None
    quantity_pcs: float | None = None
    current_price_per_piece: float | None = None
    avg_price_per_piece: float | None = None
    price_per_lot: float | None = None
    position_value: float = 0.0
    instrument_currency: str = ""

    def __post_init__(self) -> None:
        self.lot = _coerce_lot(self.lot)

    def to_row(self) -> dict:
        return asdict(self)


def empty_positions_frame() -> pd.DataFrame:
    return pd.DataFrame(columns=POSITION_COLUMNS)


def records_to_frame(records: Iterable[PositionRecord]) -> pd.DataFrame:
    rows = [r.to_row() for r in records]
    if not rows:
        return empty_positions_frame()

    df = pd.DataFrame(rows, columns=POSITION_COLUMNS)
    for col in QUANTITY_COLUMNS + MONEY_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce").astype(float)
    for col in TEXT_COLUMNS:
        df[col] = df[col].fillna("").astype(str)
    return df


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


class CommonValue:
    """Reduce a stream of values to the single value they all share.

    Holds the first value seen until a different one arrives, after which the
    result is blank for good. Blanks take part in the comparison, so a group
    mixing a ticker with a missing ticker resolves to blank.
    """

    _UNSET = object()
    _CONFLICT = object()

    def __init__(self) -> None:
        self._state: object = self._UNSET

    def add(self, value: object) -> None:
        value = None if is_blank(value) else value
        if self._state is self._UNSET:
            self._state = value
        elif self._state is not self._CONFLICT and self._state != value:
            self._state = self._CONFLICT

    @property
    def result(self) -> object | None:
        if self._state is self._UNSET or self._state is self._CONFLICT:
            return None
        return self._state


def common_value(values: Iterable) -> object | None:
    reducer = CommonValue()
    for value in values:
        reducer.add(value)
    return reducer.result
