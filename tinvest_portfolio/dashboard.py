from __future__ import annotations

import pandas as pd
import plotly.express as px
import streamlit as st

from tinvest_portfolio.data_pipeline.classifier import CATEGORY_ORDER
from tinvest_portfolio.data_pipeline.instruments import InstrumentResolver, build_cache
from tinvest_portfolio.data_pipeline.invest_api import InvestApiError
from tinvest_portfolio.data_pipeline.report import sync_positions
from tinvest_portfolio.data_pipeline.table_sink import (
    AGGREGATED_DESTINATION,
    ALL_DESTINATIONS,
    CATEGORY_DESTINATIONS,
    RAW_DESTINATION,
    SUMMARY_DESTINATION,
    CsvTableSink,
    column_formats,
)
from tinvest_portfolio.logging_config import configure_logging
from tinvest_portfolio.main import build_client
from tinvest_portfolio.settings import get_settings


def format_money(v: float | int | None, currency: str = "RUB") -> str:
    if v is None or pd.isna(v):
        return "N/A"
    return f"{v:,.2f} {currency}"


def format_pct(v: float | int | None) -> str:
    if v is None or pd.isna(v):
        return "N/A"
    return f"{v * 100:.2f}%"


class StreamlitTableSink:
    """Render each destination into its own placeholder, replacing what was there."""

    def __init__(self, containers: dict[str, object], currency: str = "RUB") -> None:
        self._containers = containers
        self._slots: dict[str, object] = {}
        self.currency = currency

    def write_table(self, destination: str, df: pd.DataFrame) -> None:
        slot = self._slots.get(destination)
        if slot is None:
            slot = self._containers[destination].empty()
            self._slots[destination] = slot
        slot.empty()

        if df.empty:
            slot.info(f"{destination}: no rows")
            return

        config = {
            col: st.column_config.NumberColumn(col, format=fmt)
            for col, fmt in column_formats(df.columns, self.currency).items()
        }
        slot.dataframe(df, column_config=config, hide_index=True, use_container_width=True)


def summary_weights(summary: pd.DataFrame) -> pd.DataFrame:
    view = summary.copy()
    total = view["position_value"].sum()
    view["weight"] = view["position_value"] / total if total else 0.0
    return view


def render_summary_chart(summary: pd.DataFrame, currency: str = "RUB") -> None:
    if summary.empty or float(summary["position_value"].sum()) <= 0:
        st.info("Portfolio is empty.")
        return

    view = summary_weights(summary)
    c1, c2 = st.columns([2, 1])
    with c1:
        fig = px.pie(
            view,
            names="category",
            values="position_value",
            hole=0.45,
            category_orders={"category": [c.value for c in CATEGORY_ORDER]},
        )
        fig.update_traces(textinfo="label+percent")
        st.plotly_chart(fig, use_container_width=True)
    with c2:
        st.metric("Total value", format_money(view["position_value"].sum(), currency))
        for row in view.itertuples(index=False):
            st.write(f"{row.category}: {format_money(row.position_value, currency)} ({format_pct(row.weight)})")


@st.cache_data(show_spinner=False)
def load_outputs(out_dir: str, cache_key: str = "") -> dict[str, pd.DataFrame]:
    _ = cache_key
    sink = CsvTableSink(out_dir)
    tables: dict[str, pd.DataFrame] = {}
    for destination in ALL_DESTINATIONS:
        df = sink.read_table(destination)
        if df is not None:
            tables[destination] = df
    return tables


def _outputs_cache_key(sink: CsvTableSink) -> str:
    parts: list[str] = []
    for destination in ALL_DESTINATIONS:
        path = sink.path_for(destination)
        if path.exists():
            parts.append(f"{destination}:{path.stat().st_mtime_ns}")
    return "|".join(parts)


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    currency = settings.reporting_currency

    st.set_page_config(page_title="T-Invest Positions", layout="wide")
    st.title("T-Invest Positions")
    st.caption(f"All accounts, grouped by `{settings.aggregate_by}`, values in {currency}.")

    csv_sink = CsvTableSink(settings.output_dir)
    if st.button("Sync now"):
        try:
            with build_client(settings) as client, st.spinner("Fetching positions..."):
                resolver = InstrumentResolver(client, build_cache(settings.cache_ttl_seconds, settings.cache_maxsize))
                sync_positions(
                    client,
                    resolver,
                    csv_sink,
                    key_field=settings.aggregate_by,
                    currency=currency,
                    pause_seconds=settings.lookup_pause_seconds,
                )
            load_outputs.clear()
        except InvestApiError as exc:
            st.error(f"Sync failed: {exc}")

    tables = load_outputs(str(settings.output_dir), cache_key=_outputs_cache_key(csv_sink))
    if not tables:
        st.info("No synced data yet. Press **Sync now**.")
        return

    summary = tables.get(SUMMARY_DESTINATION)
    if summary is not None:
        st.subheader("Summary by type")
        render_summary_chart(summary, currency)

    names = [RAW_DESTINATION, AGGREGATED_DESTINATION, *CATEGORY_DESTINATIONS.values()]
    names = [n for n in names if n in tables]
    if not names:
        return
    tabs = st.tabs(names)
    sink = StreamlitTableSink(dict(zip(names, tabs)), currency=currency)
    for name in names:
        sink.write_table(name, tables[name])


if __name__ == "__main__":
    main()
