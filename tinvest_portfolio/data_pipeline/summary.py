from __future__ import annotations

import pandas as pd

from tinvest_portfolio.data_pipeline.classifier import SUMMARY_ORDER, Category, classify, is_cash_type


SUMMARY_COLUMNS = ["category", "position_value"]
EMPTY_CATEGORY = "EMPTY"


def build_summary_by_category(df: pd.DataFrame, value_field: str = "position_value") -> pd.DataFrame:
    """Total ``value_field`` per instrument category, in display order.

    Cash rows are left out; their total comes from the separately aggregated
    cash table via :func:`append_cash_total`.
    """
    if df.empty:
        return pd.DataFrame([[EMPTY_CATEGORY, 0.0]], columns=SUMMARY_COLUMNS)

    values = pd.to_numeric(df[value_field], errors="coerce").fillna(0.0)
    categories = df["type"].map(lambda t: classify(t).value)
    sums = values.groupby(categories, sort=False).sum()

    rows = [[cat.value, float(sums[cat.value])] for cat in SUMMARY_ORDER if cat.value in sums.index]
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def append_cash_total(summary: pd.DataFrame, cash_df: pd.DataFrame) -> pd.DataFrame:
    cash_df = cash_df[cash_df["type"].map(is_cash_type)] if not cash_df.empty else cash_df
    if cash_df.empty:
        return summary
    cash_total = float(pd.to_numeric(cash_df["position_value"], errors="coerce").fillna(0.0).sum())
    if cash_total <= 0:
        return summary
    cash_row = pd.DataFrame([[Category.MONEY.value, cash_total]], columns=SUMMARY_COLUMNS)
    if summary.empty:
        return cash_row
    return pd.concat([summary, cash_row], ignore_index=True)
