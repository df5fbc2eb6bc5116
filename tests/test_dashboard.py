from __future__ import annotations

import unittest
from types import SimpleNamespace

import pandas as pd

from tinvest_portfolio import dashboard
from tinvest_portfolio.data_pipeline.records import POSITION_COLUMNS, PositionRecord, records_to_frame


class FakeSlot:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def empty(self) -> "FakeSlot":
        self.calls.append(("empty",))
        return self

    def info(self, message: str) -> None:
        self.calls.append(("info", message))

    def dataframe(self, df: pd.DataFrame, **kwargs) -> None:
        self.calls.append(("dataframe", len(df), kwargs))


class FakeContainer:
    def __init__(self) -> None:
        self.slot = FakeSlot()
        self.created = 0

    def empty(self) -> FakeSlot:
        self.created += 1
        return self.slot


class DashboardTests(unittest.TestCase):
    def setUp(self) -> None:
        self.original_st = dashboard.st
        self.messages: list[str] = []
        dashboard.st = SimpleNamespace(
            info=lambda message, *args, **kwargs: self.messages.append(message),
            column_config=SimpleNamespace(NumberColumn=lambda label, format=None: ("number", label, format)),
        )

    def tearDown(self) -> None:
        dashboard.st = self.original_st

    def test_table_sink_clears_before_each_write(self) -> None:
        container = FakeContainer()
        sink = dashboard.StreamlitTableSink({"Positions": container}, currency="RUB")
        df = records_to_frame([PositionRecord(account_id="a", type="share", name="A", position_value=1.0)])

        sink.write_table("Positions", df)
        sink.write_table("Positions", pd.DataFrame(columns=POSITION_COLUMNS))

        self.assertEqual(container.created, 1)
        kinds = [c[0] for c in container.slot.calls]
        self.assertEqual(kinds, ["empty", "dataframe", "empty", "info"])
        config = container.slot.calls[1][2]["column_config"]
        self.assertEqual(config["position_value"], ("number", "position_value", "%.2f ₽"))
        self.assertEqual(config["quantity_pcs"], ("number", "quantity_pcs", "%.8g"))

    def test_summary_chart_handles_empty_portfolio(self) -> None:
        summary = pd.DataFrame([["EMPTY", 0.0]], columns=["category", "position_value"])
        dashboard.render_summary_chart(summary)
        self.assertEqual(self.messages, ["Portfolio is empty."])

    def test_summary_weights(self) -> None:
        summary = pd.DataFrame([["Shares", 750.0], ["Money", 250.0]], columns=["category", "position_value"])
        view = dashboard.summary_weights(summary)
        self.assertListEqual(view["weight"].tolist(), [0.75, 0.25])

    def test_format_money(self) -> None:
        self.assertEqual(dashboard.format_money(1234.5, "RUB"), "1,234.50 RUB")
        self.assertEqual(dashboard.format_money(None), "N/A")


if __name__ == "__main__":
    unittest.main()
