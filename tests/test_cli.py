"""Tests for the command-line runner."""

from __future__ import annotations

import pytest

from quantsim.cli import build_parser, main, resolve_csv_path
from quantsim.common.config import Settings
from quantsim.prediction.forest import MODEL_FILENAME


@pytest.fixture
def price_csv(tmp_path):
    path = tmp_path / "SPY.csv"
    rows = ["Date,Open,High,Low,Close,Volume"]
    for day in range(1, 29):
        close = 100 + (day % 7)
        rows.append(f"2024-02-{day:02d},{close},{close},{close},{close},1000")
    path.write_text("\n".join(rows) + "\n")
    return path


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.csv is None
        assert args.synthetic_days == 500
        assert not args.save_model

    def test_dates_parsed(self):
        args = build_parser().parse_args(["--start", "2024-01-02", "--end", "2024-03-01"])
        assert args.start.isoformat() == "2024-01-02"
        assert args.end.month == 3


class TestMain:
    def test_csv_crossover(self, price_csv, capfd):
        code = main(["--csv", str(price_csv), "--symbol", "SPY", "--strategy", "ma"])
        out = capfd.readouterr().out
        assert code == 0
        assert "Symbol: SPY" in out
        assert "Annualized return" in out

    def test_synthetic_model_strategy_saves(self, tmp_path, monkeypatch, capfd):
        monkeypatch.setenv("QUANTSIM_MODEL_DIR", str(tmp_path / "models"))
        monkeypatch.setenv("QUANTSIM_NUM_TREES", "5")
        monkeypatch.setenv("QUANTSIM_MAX_DEPTH", "4")
        code = main(["--strategy", "ml", "--synthetic-days", "80", "--seed", "3", "--save-model"])
        out = capfd.readouterr().out
        assert code == 0
        assert "Top feature importances" in out
        assert "Prediction MSE" in out
        assert (tmp_path / "models" / MODEL_FILENAME).exists()

    def test_unknown_strategy_exits_1(self, capfd):
        code = main(["--strategy", "nope", "--synthetic-days", "30"])
        assert code == 1
        assert "Unsupported strategy type" in capfd.readouterr().err

    def test_missing_csv_exits_1(self, tmp_path, capfd):
        code = main(["--csv", str(tmp_path / "missing.csv")])
        assert code == 1
        assert "not found" in capfd.readouterr().err

    def test_relative_csv_resolves_under_data_dir(self, price_csv, monkeypatch, capfd):
        """A bare filename that is not in the working directory is read from data_dir."""
        monkeypatch.setenv("QUANTSIM_DATA_DIR", str(price_csv.parent))
        code = main(["--csv", price_csv.name, "--symbol", "SPY", "--strategy", "ma"])
        assert code == 0
        assert "Symbol: SPY" in capfd.readouterr().out

    def test_invalid_settings_exit_1(self, monkeypatch, capfd):
        """Misordered windows in the environment fail cleanly instead of raising."""
        monkeypatch.setenv("QUANTSIM_SHORT_WINDOW", "30")
        monkeypatch.setenv("QUANTSIM_LONG_WINDOW", "10")
        code = main(["--synthetic-days", "30"])
        assert code == 1
        assert "short_window" in capfd.readouterr().err


class TestResolveCsvPath:
    def test_existing_path_kept(self, price_csv):
        settings = Settings(data_dir="/nowhere")
        assert resolve_csv_path(str(price_csv), settings) == price_csv

    def test_missing_relative_path_uses_data_dir(self, tmp_path):
        settings = Settings(data_dir=str(tmp_path))
        assert resolve_csv_path("QQQ.csv", settings) == tmp_path / "QQQ.csv"
