from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

import pandas as pd

from tinvest_portfolio import main as cli
from tinvest_portfolio.settings import Settings


class MainTests(unittest.TestCase):
    def _settings(self, out_dir: str, token: str = "") -> Settings:
        return Settings(_env_file=None, token=token, output_dir=Path(out_dir))

    def test_missing_token_exits_with_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch.object(cli, "get_settings", return_value=self._settings(tmp)):
                self.assertEqual(cli.main([]), 1)

    def test_drop_outputs_removes_tables(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "Positions.csv"
            pd.DataFrame({"x": [1]}).to_csv(path, index=False)
            with mock.patch.object(cli, "get_settings", return_value=self._settings(tmp)):
                self.assertEqual(cli.main(["--drop-outputs"]), 0)
            self.assertFalse(path.exists())


if __name__ == "__main__":
    unittest.main()
