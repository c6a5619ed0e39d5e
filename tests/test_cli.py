"""
Command line tests.
Tests for the operator CLI and the job runner.
"""

import json
from datetime import timedelta
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

import pytest
import requests

from marketpush import cli, main as runner
from marketpush.database.connection import Database
from marketpush.database.models import MARKET_NEWS
from marketpush.database.repository import (
    PriceAlertRepository,
    SentNotificationRepository,
    utcnow,
)


class TestAlertCommands:
    """Test alert helpers."""

    def test_add_alert(self, db):
        alert = cli.add_alert(db, 1, "aapl", "150.00", "above")

        assert alert.id is not None
        assert alert.symbol == "AAPL"
        assert alert.target_price == Decimal("150.00")

    def test_add_duplicate_rejected(self, db):
        """An identical pending alert cannot be created twice."""
        cli.add_alert(db, 1, "AAPL", "150", "above")

        with pytest.raises(ValueError) as exc_info:
            cli.add_alert(db, 1, "AAPL", "150.00", "above")

        assert "already exists" in str(exc_info.value)

    def test_add_duplicate_with_whitespace(self, db):
        cli.add_alert(db, 1, "AAPL", "150", "above")

        with pytest.raises(ValueError):
            cli.add_alert(db, 1, " aapl ", "150", "above")

    @pytest.mark.parametrize("price", ["abc", "0", "-5", "NaN"])
    def test_invalid_price(self, db, price):
        with pytest.raises(ValueError):
            cli.add_alert(db, 1, "AAPL", price, "above")

    def test_invalid_direction(self, db):
        with pytest.raises(ValueError):
            cli.add_alert(db, 1, "AAPL", "150", "sideways")

    def test_toggle(self, db):
        alert = cli.add_alert(db, 1, "AAPL", "150", "above")

        assert cli.toggle_alert(db, alert.id).is_active is False
        assert cli.toggle_alert(db, alert.id).is_active is True
        assert cli.toggle_alert(db, 999) is None


class TestOperatorMain:
    """Test the operator CLI entry point end to end."""

    @pytest.fixture
    def db_path(self, tmp_path: Path) -> str:
        return str(tmp_path / "cli.db")

    def test_alerts_add_and_list(self, db_path, capsys):
        assert cli.main(
            ["--db", db_path, "alerts", "add", "--user", "7", "--symbol", "msft",
             "--price", "400", "--direction", "below"]
        ) == 0
        assert "Created alert with ID" in capsys.readouterr().out

        assert cli.main(["--db", db_path, "alerts", "list", "--user", "7"]) == 0
        out = capsys.readouterr().out
        assert "MSFT below $400" in out
        assert "(active)" in out

    def test_alerts_add_bad_price(self, db_path, capsys):
        code = cli.main(
            ["--db", db_path, "alerts", "add", "--user", "7", "--symbol", "msft",
             "--price", "cheap", "--direction", "below"]
        )

        assert code == 1
        assert "Invalid target price" in capsys.readouterr().err

    def test_delete_missing(self, db_path):
        assert cli.main(["--db", db_path, "alerts", "delete", "42"]) == 1

    def test_ledger_purge(self, db_path, capsys):
        db = Database(db_path)
        db.initialize()
        ledger = SentNotificationRepository(db)
        ledger.record(
            MARKET_NEWS, "old", title="t", sent_at=utcnow() - timedelta(days=10)
        )
        ledger.record(MARKET_NEWS, "new", title="t")
        db.close()

        assert cli.main(["--db", db_path, "ledger", "purge", "--days", "7"]) == 0
        assert "Purged 1 entries" in capsys.readouterr().out

        assert cli.main(["--db", db_path, "ledger", "list"]) == 0
        out = capsys.readouterr().out
        assert "new" in out
        assert "old" not in out

    def test_db_migrate(self, db_path, capsys):
        assert cli.main(["--db", db_path, "db", "migrate"]) == 0
        assert Path(db_path).exists()


class TestRunner:
    """Test the job runner entry point."""

    def write_config(self, tmp_path: Path) -> str:
        path = tmp_path / "config.yaml"
        path.write_text(
            f"database:\n  path: {tmp_path / 'run.db'}\n"
            "data_source:\n  api_key: test-key\n"
        )
        return str(path)

    def test_run_job_dry_run(self, tmp_path: Path, capsys):
        """Runs one pass and prints the JSON result."""
        config_path = self.write_config(tmp_path)

        code = runner.main(
            ["--config", config_path, "run", "price-alerts", "--dry-run"]
        )

        assert code == 0
        result = json.loads(capsys.readouterr().out)
        assert result["success"] is True
        assert result["job"] == "price-alerts"

    def test_failed_job_exit_code(self, tmp_path: Path, capsys):
        config_path = self.write_config(tmp_path)

        with patch("requests.get", side_effect=requests.Timeout()):
            code = runner.main(
                ["--config", config_path, "run", "market-movers", "--dry-run"]
            )

        assert code == 1
        assert json.loads(capsys.readouterr().out)["success"] is False

    def test_missing_config(self, tmp_path: Path):
        missing = str(tmp_path / "nope.yaml")
        assert runner.main(["--config", missing, "run", "daily-recap"]) == 1

    def test_dry_run_leaves_alert_pending(self, tmp_path: Path, capsys):
        """A dry run reports the trigger without consuming the alert."""
        config_path = self.write_config(tmp_path)
        db = Database(str(tmp_path / "run.db"))
        db.initialize()
        cli.add_alert(db, 1, "AAPL", "150", "above")
        db.close()

        quote = [{"symbol": "AAPL", "price": 151.2, "changesPercentage": 0.8}]
        with patch("requests.get") as mock_get:
            mock_get.return_value.json.return_value = quote
            mock_get.return_value.raise_for_status.return_value = None
            code = runner.main(
                ["--config", config_path, "run", "price-alerts", "--dry-run"]
            )

        assert code == 0
        assert json.loads(capsys.readouterr().out)["triggered"] == 1

        db = Database(str(tmp_path / "run.db"))
        assert len(PriceAlertRepository(db).list_pending()) == 1
        assert SentNotificationRepository(db).list_recent() == []
        db.close()
