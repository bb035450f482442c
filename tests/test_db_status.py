"""
Tests for the scripts/db_status.py operator report.
"""

import importlib.util
import json
import os
import subprocess
import sys
from pathlib import Path

import psycopg
import pytest
import structlog

from mrrobot.config import reload_config
from mrrobot.storage import DualStoreMediator

ROOT = Path(__file__).parent.parent
SCRIPT = ROOT / "scripts" / "db_status.py"


@pytest.fixture(scope="module")
def db_status():
    spec = importlib.util.spec_from_file_location("db_status", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def configured_env(monkeypatch):
    monkeypatch.setenv("DB_HOST", "db.example.com")
    monkeypatch.setenv("DB_USER", "mrrobot")
    monkeypatch.setenv("DB_DATABASE", "MrRobot_ComputerService")
    reload_config()
    yield
    monkeypatch.delenv("DB_HOST")
    reload_config()


class TestReportStatus:

    def test_text_report(self, db_status, ready_mediator, store_a, capsys):
        store_a.probe_error = psycopg.OperationalError("Connection refused")

        connected = db_status.report_status(ready_mediator)

        out = capsys.readouterr().out
        assert connected == 1
        assert "store A (aws) - Connection refused" in out
        assert "store B (azure)" in out

    def test_json_report(self, db_status, ready_mediator, capsys):
        connected = db_status.report_status(ready_mediator, as_json=True)

        payload = json.loads(capsys.readouterr().out)
        assert connected == 2
        assert payload["store_a"]["connected"] is True
        assert payload["store_b"]["connected"] is True


class TestMain:

    def test_main_without_configuration(self, db_status, capsys):
        reload_config()

        assert db_status.main([]) == 1

        captured = capsys.readouterr()
        assert "No store configured" in captured.err
        assert "No store configured" not in captured.out

    def test_main_json_stdout_is_only_the_report(
        self, db_status, configured_env, pool_factory, monkeypatch, capsys
    ):
        structlog.reset_defaults()
        monkeypatch.setattr(
            db_status,
            "DualStoreMediator",
            lambda config: DualStoreMediator(config, pool_factory=pool_factory)
        )

        assert db_status.main(["--json"]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload["store_a"]["connected"] is True
        assert payload["store_b"]["connected"] is True

    def test_json_output_parses_in_fresh_process(self, tmp_path):
        env = {
            key: value for key, value in os.environ.items()
            if not key.startswith(("STORE_", "DB_")) and key not in ("NODE_ENV", "ENV")
        }
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(ROOT), env.get("PYTHONPATH")]))
        env["PYTHONIOENCODING"] = "utf-8"

        result = subprocess.run(
            [sys.executable, str(SCRIPT), "--json"],
            cwd=tmp_path,
            env=env,
            capture_output=True,
            text=True,
            timeout=60,
        )

        assert result.returncode == 1
        payload = json.loads(result.stdout)
        assert payload["store_a"]["connected"] is False
        assert payload["store_b"]["configured"] is False
        assert "No store configured" in result.stderr
        assert "mediator.init.failed" in result.stderr
