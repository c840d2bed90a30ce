"""Tests for the command-line interface."""

import json

import pytest

from billing_sdk import cli


@pytest.fixture
def db_args(tmp_path):
    """Global options pointing at a throwaway database, without live rates."""
    return ["--database-url", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}", "--offline"]


@pytest.fixture
def export_file(tmp_path):
    path = tmp_path / "export.json"
    path.write_text(json.dumps({
        "providers": [{"id": "old-1", "name": "Hetzner", "url": "https://hetzner.com"}],
        "payments": [{
            "id": "pay-1", "serverId": "srv-1", "providerId": "old-1",
            "nextPayment": "2030-01-01", "amount": 12, "currency": "EUR", "period": "annual",
        }],
        "exportedAt": "2024-06-01T00:00:00Z",
    }), encoding="utf-8")
    return path


class TestCliParser:
    """Tests for argument parsing."""

    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_sort_choices(self):
        args = cli.create_parser().parse_args(["payments", "--sort", "amount", "--desc"])
        assert args.sort == "amount"
        assert args.desc is True


class TestCliCommands:
    """Tests for dataset commands against a local database."""

    def test_import_then_export(self, db_args, export_file, tmp_path, capsys):
        assert cli.main(db_args + ["import", str(export_file)]) == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary == {"success": True, "providers_created": 1, "payments_created": 1, "error_count": 0}

        output = tmp_path / "out.json"
        assert cli.main(db_args + ["export", "--output", str(output)]) == 0
        exported = json.loads(output.read_text(encoding="utf-8"))
        assert exported["providers"][0]["name"] == "Hetzner"
        assert exported["payments"][0]["providerId"] == exported["providers"][0]["id"]

    def test_summary(self, db_args, export_file, capsys):
        cli.main(db_args + ["import", str(export_file)])
        capsys.readouterr()

        assert cli.main(db_args + ["summary"]) == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["total_count"] == 1
        assert summary["rates_source"] == "fallback"

    def test_payments_listing(self, db_args, export_file, capsys):
        cli.main(db_args + ["import", str(export_file)])
        capsys.readouterr()

        assert cli.main(db_args + ["payments", "--sort", "amount"]) == 0
        out = capsys.readouterr().out
        assert "2030-01-01" in out
        assert "Hetzner" in out

    def test_import_with_errors(self, db_args, tmp_path):
        path = tmp_path / "partial.json"
        path.write_text(json.dumps({
            "providers": [],
            "payments": [{"id": "x", "serverId": "s", "providerId": "gone", "nextPayment": "2030-01-01", "amount": 1}],
        }), encoding="utf-8")
        assert cli.main(db_args + ["import", str(path)]) == 1

    def test_import_malformed(self, db_args, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")
        assert cli.main(db_args + ["import", str(path)]) == 2

    def test_unsupported_database(self):
        assert cli.main(["--database-url", "postgresql://u:p@db/billing", "--offline", "summary"]) == 2

    def test_import_missing_file(self, db_args, tmp_path):
        assert cli.main(db_args + ["import", str(tmp_path / "nope.json")]) == 2


class TestCliRates:
    """Tests for the rates command."""

    def test_live_rates(self, monkeypatch, rate_service, capsys):
        monkeypatch.setattr(cli, "RateService", lambda: rate_service)
        assert cli.main(["rates"]) == 0
        assert json.loads(capsys.readouterr().out)["source"] == "live"

    def test_fallback_rates(self, monkeypatch, offline_rate_service, capsys):
        monkeypatch.setattr(cli, "RateService", lambda: offline_rate_service)
        assert cli.main(["rates"]) == 1
        assert json.loads(capsys.readouterr().out)["source"] == "fallback"
