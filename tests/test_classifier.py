from __future__ import annotations

import unittest

from tinvest_portfolio.data_pipeline.classifier import (
    CASH_TYPE,
    Category,
    classify,
    is_cash_type,
)


class ClassifierTests(unittest.TestCase):
    def test_classify_known_labels(self) -> None:
        cases = {
            "share": Category.SHARES,
            "Common_Share": Category.SHARES,
            "bond": Category.BONDS,
            "ETF": Category.ETFS,
            "currency": Category.CURRENCIES,
            "future": Category.FUTURES,
            "Futures": Category.FUTURES,
            "money": Category.MONEY,
        }
        for label, expected in cases.items():
            with self.subTest(label=label):
                self.assertIs(classify(label), expected)

    def test_classify_is_total(self) -> None:
        for label in ["", None, float("nan"), "option", "bonds", "sp", 42]:
            with self.subTest(label=label):
                self.assertIs(classify(label), Category.OTHER)

    def test_share_substring_takes_priority(self) -> None:
        self.assertIs(classify("money_share"), Category.SHARES)

    def test_cash_tag_and_classifier_agree(self) -> None:
        self.assertTrue(is_cash_type(CASH_TYPE))
        self.assertTrue(is_cash_type("MONEY"))
        self.assertFalse(is_cash_type("currency"))


if __name__ == "__main__":
    unittest.main()
