# tests/test_cli.py
from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from school_portal.cli import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def sqlite_url(tmp_path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'portal.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    return url


def test_check_requires_database_url(runner):
    result = runner.invoke(cli, ["check"])

    assert result.exit_code == 1
    assert "DATABASE_URL environment variable is not set" in result.output


def test_setup_requires_database_url(runner):
    result = runner.invoke(cli, ["setup"])

    assert result.exit_code == 1


def test_view_on_memory_backend(runner):
    result = runner.invoke(cli, ["view"])

    assert result.exit_code == 0, result.output
    assert "Backend: memory" in result.output
    assert "Schools" in result.output


def test_view_json_on_memory_backend(runner):
    result = runner.invoke(cli, ["view", "--json"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {
        "Schools": [],
        "Parents": [],
        "Students": [],
        "Notifications": [],
    }


def test_seed_on_memory_backend_warns_data_is_discarded(runner):
    result = runner.invoke(cli, ["seed"])

    assert result.exit_code == 0, result.output
    assert "School created: SC-" in result.output
    assert "Parent created: PO-" in result.output
    assert "Student created: STU-" in result.output
    assert "discarded" in result.output


def test_setup_then_check(runner, sqlite_url):
    setup = runner.invoke(cli, ["setup"])
    check = runner.invoke(cli, ["check"])

    assert setup.exit_code == 0, setup.output
    assert "schema is ready" in setup.output
    assert check.exit_code == 0, check.output
    assert "Connected to database successfully" in check.output
    for table in ("notifications", "parents", "schools", "students"):
        assert f"- {table}" in check.output
    assert "Missing tables" not in check.output


def test_check_on_empty_database_reports_missing_tables(runner, sqlite_url):
    result = runner.invoke(cli, ["check"])

    assert result.exit_code == 0, result.output
    assert "No tables found in the database." in result.output
    assert "Missing tables" in result.output


def test_seed_then_view_json(runner, sqlite_url):
    seed = runner.invoke(cli, ["seed"])
    view = runner.invoke(cli, ["view", "--json"])

    assert seed.exit_code == 0, seed.output
    assert "discarded" not in seed.output
    assert view.exit_code == 0, view.output

    data = json.loads(view.output)
    assert [s["school_name"] for s in data["Schools"]] == ["Al-Riyadh International School"]
    parent = data["Parents"][0]
    assert parent["email"] == "parent@example.com"
    assert parent["is_verified"] is True
    assert parent["verification_token"] is None
    assert data["Students"][0]["parent_id"] == parent["id"]
    assert data["Notifications"][0]["title"] == "Welcome"


def test_seed_twice_reuses_the_demo_parent(runner, sqlite_url):
    runner.invoke(cli, ["seed"])
    again = runner.invoke(cli, ["seed"])
    view = runner.invoke(cli, ["view", "--json"])

    assert again.exit_code == 0, again.output
    data = json.loads(view.output)
    assert len(data["Parents"]) == 1
    assert len(data["Schools"]) == 2
    assert [s["school_id"][-4:] for s in data["Schools"]] == ["0001", "0002"]
