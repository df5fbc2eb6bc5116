from __future__ import annotations

from tinvest_portfolio.data_pipeline.classifier import CASH_TYPE, FALLBACK_TYPE
from tinvest_portfolio.data_pipeline.instruments import InstrumentInfo
from tinvest_portfolio.data_pipeline.records import PositionRecord


def _safe_get(d: dict, path: list[str]):
    current = d
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current


def quotation_to_float(value: dict | None) -> float:
    """Convert a ``{units, nano}`` Quotation/MoneyValue to a float; absent is 0."""
    if not isinstance(value, dict):
        return 0.0
    return float(value.get("units") or 0) + float(value.get("nano") or 0) / 1e9


def normalize_position(account_id: str, raw: dict, info: InstrumentInfo | None) -> PositionRecord:
    """Build a canonical record from a GetPortfolio position and its metadata.

    Missing metadata falls back to lot 1 and blank ticker, name and currency.
    """
    lot = max(1, info.lot if info else 1)
    qty_pcs = quotation_to_float(raw.get("quantity"))
    current_price = quotation_to_float(raw.get("currentPrice") or raw.get("current_price"))
    avg_price = quotation_to_float(raw.get("averagePositionPrice") or raw.get("average_position_price"))

    return PositionRecord(
        account_id=account_id,
        type=(info.instrument_type if info else "") or raw.get("instrumentType") or FALLBACK_TYPE,
        figi=raw.get("figi") or "",
        ticker=info.ticker if info else "",
        name=info.name if info else "",
        lot=lot,
        quantity_lots=qty_pcs / lot,
        quantity_pcs=qty_pcs,
        current_price_per_piece=current_price,
        avg_price_per_piece=avg_price or None,
        price_per_lot=current_price * lot,
        position_value=current_price * qty_pcs,
        instrument_currency=info.currency if info else "",
    )


def _money_items(positions_resp: dict) -> list:
    items = positions_resp.get("money") or _safe_get(positions_resp, ["securities", "money"])
    return items if isinstance(items, list) else []


def build_cash_record(account_id: str, positions_resp: dict, currency: str = "RUB") -> PositionRecord | None:
    """Cash balance row in the reporting currency, or None when there is none."""
    currency = currency.upper()
    item = next(
        (
            m
            for m in _money_items(positions_resp)
            if isinstance(m, dict) and str(m.get("currency") or m.get("currencyIsoCode") or "").upper() == currency
        ),
        None,
    )
    amount = quotation_to_float(item) if item else 0.0
    if amount <= 0:
        return None

    return PositionRecord(
        account_id=account_id,
        type=CASH_TYPE,
        ticker=currency,
        name=f"Cash ({currency})",
        position_value=amount,
        instrument_currency=currency,
    )
