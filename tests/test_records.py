from __future__ import annotations

import unittest

from tinvest_portfolio.data_pipeline.records import (
    POSITION_COLUMNS,
    CommonValue,
    PositionRecord,
    common_value,
    records_to_frame,
)


class RecordsTests(unittest.TestCase):
    def test_lot_never_below_one(self) -> None:
        for raw_lot in [0, None, -5, "", "abc"]:
            with self.subTest(lot=raw_lot):
                self.assertEqual(PositionRecord(account_id="a", type="share", lot=raw_lot).lot, 1)
        self.assertEqual(PositionRecord(account_id="a", type="share", lot="10").lot, 10)

    def test_records_to_frame_keeps_column_order(self) -> None:
        df = records_to_frame([PositionRecord(account_id="a", type="bond", name="OFZ", position_value=10.0)])
        self.assertListEqual(list(df.columns), POSITION_COLUMNS)
        self.assertEqual(df.iloc[0]["name"], "OFZ")
        self.assertAlmostEqual(df.iloc[0]["position_value"], 10.0)

    def test_records_to_frame_empty(self) -> None:
        df = records_to_frame([])
        self.assertTrue(df.empty)
        self.assertListEqual(list(df.columns), POSITION_COLUMNS)

    def test_common_value_homogeneous(self) -> None:
        self.assertEqual(common_value(["RUB", "RUB", "RUB"]), "RUB")
        self.assertEqual(common_value([1, 1.0]), 1)

    def test_common_value_conflict_is_permanent(self) -> None:
        reducer = CommonValue()
        for v in ["A", "B", "A"]:
            reducer.add(v)
        self.assertIsNone(reducer.result)

    def test_common_value_counts_blanks(self) -> None:
        self.assertIsNone(common_value(["ACM", ""]))
        self.assertIsNone(common_value([None, float("nan")]))
        self.assertIsNone(common_value([]))


if __name__ == "__main__":
    unittest.main()
