from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

import pandas as pd

from tinvest_portfolio.data_pipeline.aggregate import aggregate_by_key
from tinvest_portfolio.data_pipeline.classifier import CATEGORY_ORDER, Category, classify
from tinvest_portfolio.data_pipeline.instruments import InstrumentResolver
from tinvest_portfolio.data_pipeline.invest_api import InvestApiClient
from tinvest_portfolio.data_pipeline.normalize import build_cash_record, normalize_position
from tinvest_portfolio.data_pipeline.records import (
    GROUP_KEY_FIELDS,
    POSITION_COLUMNS,
    PositionRecord,
    records_to_frame,
)
from tinvest_portfolio.data_pipeline.summary import (
    SUMMARY_COLUMNS,
    append_cash_total,
    build_summary_by_category,
)
from tinvest_portfolio.data_pipeline.table_sink import (
    AGGREGATED_DESTINATION,
    CATEGORY_DESTINATIONS,
    RAW_DESTINATION,
    SUMMARY_DESTINATION,
    TableSink,
)


logger = logging.getLogger(__name__)

DEFAULT_LOOKUP_PAUSE_SECONDS = 0.03
# Cash rows carry no figi; "Cash (<currency>)" names keep one row per currency.
CASH_KEY_FIELD = "name"


@dataclass
class PortfolioReport:
    positions: pd.DataFrame
    aggregated: pd.DataFrame
    by_category: dict[Category, pd.DataFrame] = field(default_factory=dict)
    summary: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=SUMMARY_COLUMNS))

    @property
    def total_value(self) -> float:
        return float(self.summary["position_value"].sum())


def collect_positions(
    client: InvestApiClient,
    resolver: InstrumentResolver,
    currency: str = "RUB",
    pause_seconds: float = DEFAULT_LOOKUP_PAUSE_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> pd.DataFrame:
    """Fetch every open account's positions plus its cash row into one canonical table."""
    accounts = client.get_open_accounts()
    logger.info("Found %s open accounts", len(accounts))

    records: list[PositionRecord] = []
    for account in accounts:
        account_id = account["id"]
        portfolio = client.get_portfolio(account_id, currency=currency)
        positions = portfolio.get("positions") or []
        logger.info("Account %s: %s positions", account_id, len(positions))

        for raw in positions:
            info = resolver.resolve(raw.get("figi") or "")
            records.append(normalize_position(account_id, raw, info))
            sleep(pause_seconds)

        cash = build_cash_record(account_id, client.get_positions(account_id), currency=currency)
        if cash is not None:
            records.append(cash)

    return records_to_frame(records)


def partition_by_category(df: pd.DataFrame) -> dict[Category, pd.DataFrame]:
    """Split rows into every category, cash included; empty categories keep the columns."""
    if df.empty:
        return {cat: pd.DataFrame(columns=df.columns) for cat in CATEGORY_ORDER}

    categories = df["type"].map(classify)
    return {cat: df[categories == cat].reset_index(drop=True) for cat in CATEGORY_ORDER}


def build_report(df: pd.DataFrame, key_field: str = "name") -> PortfolioReport:
    """Aggregate the canonical table into the portfolio, per-category and summary views."""
    if key_field not in GROUP_KEY_FIELDS:
        raise ValueError(f"Unsupported aggregation key: {key_field!r}")
    if df.empty:
        df = pd.DataFrame(columns=POSITION_COLUMNS)

    aggregated = aggregate_by_key(df, key_field)
    by_category = {
        cat: aggregate_by_key(part, CASH_KEY_FIELD if cat == Category.MONEY else key_field)
        for cat, part in partition_by_category(df).items()
    }
    summary = append_cash_total(build_summary_by_category(df), by_category[Category.MONEY])

    return PortfolioReport(positions=df, aggregated=aggregated, by_category=by_category, summary=summary)


def publish_report(report: PortfolioReport, sink: TableSink) -> None:
    sink.write_table(RAW_DESTINATION, report.positions)
    sink.write_table(AGGREGATED_DESTINATION, report.aggregated)
    for cat in CATEGORY_ORDER:
        sink.write_table(CATEGORY_DESTINATIONS[cat], report.by_category[cat])
    sink.write_table(SUMMARY_DESTINATION, report.summary)


def sync_positions(
    client: InvestApiClient,
    resolver: InstrumentResolver,
    sink: TableSink,
    key_field: str = "name",
    currency: str = "RUB",
    pause_seconds: float = DEFAULT_LOOKUP_PAUSE_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> PortfolioReport:
    positions = collect_positions(client, resolver, currency=currency, pause_seconds=pause_seconds, sleep=sleep)
    report = build_report(positions, key_field)
    publish_report(report, sink)
    logger.info("Synced %s positions, total value %.2f %s", len(positions), report.total_value, currency)
    return report
