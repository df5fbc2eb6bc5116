from __future__ import annotations

import pandas as pd

from tinvest_portfolio.data_pipeline.classifier import FALLBACK_TYPE
from tinvest_portfolio.data_pipeline.records import (
    ALL_ACCOUNTS,
    GROUP_KEY_FIELDS,
    POSITION_COLUMNS,
    common_value,
    is_blank,
)


def _numeric(df: pd.DataFrame, col: str) -> pd.Series:
    return pd.to_numeric(df[col], errors="coerce").fillna(0.0).astype(float)


def _weighted_inputs(df: pd.DataFrame) -> pd.DataFrame:
    qty_pcs = _numeric(df, "quantity_pcs")
    current = _numeric(df, "current_price_per_piece")
    average = _numeric(df, "avg_price_per_piece")

    # Rows with an unknown price or no quantity carry no weight.
    current_mask = (current > 0) & (qty_pcs > 0)
    average_mask = (average > 0) & (qty_pcs > 0)

    return df.assign(
        _qty_lots=_numeric(df, "quantity_lots"),
        _qty_pcs=qty_pcs,
        _value=_numeric(df, "position_value"),
        _cur_weighted=(current * qty_pcs).where(current_mask, 0.0),
        _cur_qty=qty_pcs.where(current_mask, 0.0),
        _avg_weighted=(average * qty_pcs).where(average_mask, 0.0),
        _avg_qty=qty_pcs.where(average_mask, 0.0),
    )


def _resolved(value: object, default: object = "") -> object:
    return default if is_blank(value) else value


def aggregate_by_key(df: pd.DataFrame, key_field: str = "name") -> pd.DataFrame:
    """Merge positions sharing ``key_field`` into one row per key across accounts.

    Quantities and position values are summed. Current and average prices are
    quantity-weighted over rows that have both a positive price and a positive
    quantity. Type, ticker, lot and currency keep their value only when every
    merged row agrees. Rows are ordered by position value, largest first.
    """
    if key_field not in GROUP_KEY_FIELDS:
        raise ValueError(f"Unsupported aggregation key: {key_field!r}")
    if df.empty:
        return df

    work = df.copy()
    work["_key"] = work[key_field].fillna("").astype(str).str.strip()
    work = work[work["_key"] != ""]
    if work.empty:
        return pd.DataFrame(columns=POSITION_COLUMNS)

    grouped = (
        _weighted_inputs(work)
        .groupby("_key", sort=False)
        .agg(
            type=("type", common_value),
            ticker=("ticker", common_value),
            lot=("lot", common_value),
            instrument_currency=("instrument_currency", common_value),
            quantity_lots=("_qty_lots", "sum"),
            quantity_pcs=("_qty_pcs", "sum"),
            position_value=("_value", "sum"),
            cur_weighted=("_cur_weighted", "sum"),
            cur_qty=("_cur_qty", "sum"),
            avg_weighted=("_avg_weighted", "sum"),
            avg_qty=("_avg_qty", "sum"),
        )
    )

    rows: list[dict] = []
    for key, ag in grouped.iterrows():
        current_price = ag["cur_weighted"] / ag["cur_qty"] if ag["cur_qty"] > 0 else 0.0
        avg_price = ag["avg_weighted"] / ag["avg_qty"] if ag["avg_qty"] > 0 else None
        lot = None if is_blank(ag["lot"]) else int(ag["lot"])
        price_per_lot = current_price * lot if lot and current_price else None

        rows.append(
            {
                "account_id": ALL_ACCOUNTS,
                "type": _resolved(ag["type"], FALLBACK_TYPE),
                "figi": "",
                "ticker": _resolved(ag["ticker"]),
                "name": key,
                "lot": lot,
                "quantity_lots": float(ag["quantity_lots"]),
                "quantity_pcs": float(ag["quantity_pcs"]),
                "current_price_per_piece": float(current_price),
                "avg_price_per_piece": avg_price,
                "price_per_lot": price_per_lot,
                "position_value": float(ag["position_value"]),
                "instrument_currency": _resolved(ag["instrument_currency"]),
            }
        )

    out = pd.DataFrame(rows, columns=POSITION_COLUMNS)
    out["lot"] = pd.array([row["lot"] for row in rows], dtype="Int64")
    for col in ["avg_price_per_piece", "price_per_lot"]:
        out[col] = pd.to_numeric(out[col], errors="coerce").astype(float)

    return out.sort_values("position_value", ascending=False, kind="stable").reset_index(drop=True)
