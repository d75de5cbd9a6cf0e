"""Tests for ConditionForge CLI commands."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from conditionforge.cli.main import cli

CATALOG_FILE = Path(__file__).parent / "fixtures" / "catalog.yaml"


@pytest.fixture
def runner(monkeypatch):
    for name in ("CONDITIONFORGE_CATALOG_PATH", "CONDITIONFORGE_MAX_DEPTH", "CONDITIONFORGE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return CliRunner()


class TestConditionParse:
    def test_parse_succeeds(self, runner):
        result = runner.invoke(
            cli, ["condition", "parse", "score>1 && flag == true", "--catalog", str(CATALOG_FILE)]
        )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["ok"] is True
        assert data["canonical"] == "score > 1 && flag == true"
        assert data["jsonLogic"] == {
            "and": [{">": [{"var": "score"}, 1]}, {"==": [{"var": "flag"}, True]}]
        }
        assert data["variables"] == ["score", "flag"]

    def test_parse_reports_errors(self, runner):
        result = runner.invoke(cli, ["condition", "parse", "nope > 1", "--catalog", str(CATALOG_FILE)])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["ok"] is False
        assert data["errors"][0]["code"] == "unknown_variable"

    def test_parse_uses_configured_catalog(self, runner, monkeypatch):
        monkeypatch.setenv("CONDITIONFORGE_CATALOG_PATH", str(CATALOG_FILE))
        result = runner.invoke(cli, ["condition", "parse", "status == 'open'"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["canonical"] == 'status == "open"'

    def test_parse_uses_configured_max_depth(self, runner, monkeypatch):
        monkeypatch.setenv("CONDITIONFORGE_MAX_DEPTH", "1")
        result = runner.invoke(cli, ["condition", "parse", "(score > 1)", "--catalog", str(CATALOG_FILE)])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["errors"][0]["code"] == "syntax_error"

    def test_invalid_catalog_file(self, runner, tmp_path):
        bad = tmp_path / "catalog.yaml"
        bad.write_text("variables:\n  - type: number\n")
        result = runner.invoke(cli, ["condition", "parse", "score > 1", "--catalog", str(bad)])

        assert result.exit_code == 1
        assert "Invalid catalog file" in result.output

    def test_invalid_max_depth_setting(self, runner, monkeypatch):
        monkeypatch.setenv("CONDITIONFORGE_MAX_DEPTH", "lots")
        result = runner.invoke(cli, ["condition", "parse", "score > 1"])

        assert result.exit_code == 1
        assert "CONDITIONFORGE_MAX_DEPTH" in result.output


class TestConditionRender:
    def test_render(self, runner):
        payload = json.dumps({"or": [{"<": [{"var": "score"}, 2]}, {"!": {"var": "flag"}}]})
        result = runner.invoke(cli, ["condition", "render", payload, "--catalog", str(CATALOG_FILE)])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"ok": True, "expression": "score < 2 || !flag"}

    def test_render_unsupported_operator(self, runner):
        payload = json.dumps({"in": ["a", "abc"]})
        result = runner.invoke(cli, ["condition", "render", payload])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["errors"][0]["code"] == "invalid_json_logic"

    def test_render_rejects_invalid_json(self, runner):
        result = runner.invoke(cli, ["condition", "render", "{not json"])

        assert result.exit_code == 1
        assert "not valid JSON" in result.output


class TestConditionEvaluate:
    def test_evaluate_inline_payload(self, runner):
        result = runner.invoke(
            cli,
            [
                "condition",
                "evaluate",
                json.dumps({">=": [{"var": "score"}, 0.5]}),
                "--payload-json",
                json.dumps({"score": 0.7}),
            ],
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {
            "ok": True,
            "result": True,
            "resolvedVariables": {"score": 0.7},
        }

    def test_evaluate_payload_file(self, runner, tmp_path):
        payload_file = tmp_path / "payload.json"
        payload_file.write_text(json.dumps({"items": []}))
        expression = json.dumps({"all": [{"var": "items"}, {"==": [{"var": "item"}, 1]}]})

        result = runner.invoke(
            cli, ["condition", "evaluate", expression, "--payload", str(payload_file)]
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout)["result"] is True

    def test_evaluate_defaults_to_empty_payload(self, runner):
        result = runner.invoke(cli, ["condition", "evaluate", json.dumps({"var": "x"})])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"ok": True, "result": False, "resolvedVariables": {"x": None}}

    def test_evaluate_failure(self, runner):
        expression = json.dumps({"some": [{"var": "items"}, {"var": "item"}]})
        result = runner.invoke(
            cli, ["condition", "evaluate", expression, "--payload-json", '{"items": "x"}']
        )

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["ok"] is False
        assert "some" in data["error"]

    def test_payload_options_are_exclusive(self, runner, tmp_path):
        payload_file = tmp_path / "payload.json"
        payload_file.write_text("{}")
        result = runner.invoke(
            cli,
            ["condition", "evaluate", "true", "--payload", str(payload_file), "--payload-json", "{}"],
        )

        assert result.exit_code == 1
        assert "not both" in result.output


class TestCatalogList:
    def test_list(self, runner):
        result = runner.invoke(cli, ["catalog", "list", "--catalog", str(CATALOG_FILE)])

        assert result.exit_code == 0
        assert "score" in result.output
        assert "== != < <= > >=" in result.output
        assert "metadata.runContextSnapshot.facets.planKnobs.value.hookIntensity" in result.output
        assert "6 variable(s)." in result.output

    def test_list_empty(self, runner):
        result = runner.invoke(cli, ["catalog", "list"])

        assert result.exit_code == 0
        assert "No variables in catalog." in result.output

    def test_log_level_option(self, runner):
        result = runner.invoke(cli, ["--log-level", "debug", "catalog", "list"])
        assert result.exit_code == 0
