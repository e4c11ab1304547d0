"""Tests for the command line interface and runner.

Feature: content-ideas
"""

import json
import os
from unittest.mock import patch

import pytest

from src.agent.runner import (
    EXIT_CONFIG_ERROR,
    EXIT_PIPELINE_ERROR,
    EXIT_SUCCESS,
    load_requests,
)
from src.engines.models import FailureKind, LLMResult
from src.main import main, parse_args


SUCCESS_RESULT = LLMResult.ok(json.dumps({
    "status": "SUCCESS",
    "summary": "A page about bottles.",
    "channels": {
        "instagram": [{"idea": "Reel", "rationale": "Visual", "pros": ["reach"], "cons": []}],
    },
}))


@pytest.fixture
def env(tmp_path):
    """Isolated environment with an API key and a SQLite store in tmp_path."""
    values = {
        "OPENAI_API_KEY": "sk-test",
        "SESSION_STORE": "sqlite",
        "DATABASE_PATH": str(tmp_path / "sessions.db"),
    }
    with patch.dict(os.environ, values, clear=True):
        yield values


class TestParseArgs:
    """Tests for argument parsing."""

    def test_analyze_text_file(self):
        parsed = parse_args(["-v", "analyze", "--text-file", "page.txt", "--channels", "instagram, x"])

        assert parsed.command == "analyze"
        assert parsed.verbose
        assert parsed.text_file == "page.txt"
        assert parsed.channels == ["instagram", "x"]

    def test_analyze_requires_one_source(self):
        with pytest.raises(SystemExit):
            parse_args(["analyze"])
        with pytest.raises(SystemExit):
            parse_args(["analyze", "--text-file", "a", "--request-file", "b"])

    def test_session_command(self):
        parsed = parse_args(["--env-file", "custom.env", "session", "abc"])

        assert parsed.command == "session"
        assert parsed.session_id == "abc"
        assert parsed.env_file == "custom.env"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestLoadRequests:
    """Tests for reading requests from files."""

    def test_text_file(self, tmp_path):
        path = tmp_path / "launch.txt"
        path.write_text("Page text", encoding="utf-8")

        requests = load_requests(text_file=str(path), channels=["x"])

        assert len(requests) == 1
        assert requests[0].title == "launch"
        assert requests[0].full_text == "Page text"
        assert requests[0].channels == ["x"]

    def test_request_file_with_array(self, tmp_path):
        path = tmp_path / "requests.json"
        path.write_text(json.dumps([
            {"title": "One", "fullText": "first", "headings": ["H1"], "channels": ["linkedin"]},
            {"fullText": "second"},
        ]))

        requests = load_requests(request_file=str(path))

        assert [r.full_text for r in requests] == ["first", "second"]
        assert requests[0].headings == ["H1"]
        assert requests[0].channels == ["linkedin"]
        assert requests[1].channels is None

    def test_request_file_with_wrong_shape(self, tmp_path):
        path = tmp_path / "requests.json"
        path.write_text("[1, 2]")

        with pytest.raises(ValueError):
            load_requests(request_file=str(path))


class TestMain:
    """End-to-end CLI runs with the LLM client patched."""

    def test_analyze_success_then_lookup(self, env, tmp_path, capsys):
        page = tmp_path / "page.txt"
        page.write_text("A startup launches a new eco-friendly water bottle.")
        output = tmp_path / "response.json"

        with patch("src.agent.runner.OpenAIClient.analyze", return_value=SUCCESS_RESULT):
            code = main([
                "analyze", "--text-file", str(page), "--channels", "instagram",
                "--output", str(output), "--run-log-dir", str(tmp_path / "logs"),
            ])

        assert code == EXIT_SUCCESS
        response = json.loads(output.read_text(encoding="utf-8"))
        assert response["status"] == "SUCCESS"
        assert list(response["channels"]) == ["instagram"]
        assert list((tmp_path / "logs").glob("run_log_*.json"))

        capsys.readouterr()
        assert main(["session", response["sessionId"]]) == EXIT_SUCCESS
        assert main(["sessions"]) == EXIT_SUCCESS

    def test_analyze_failure_exit_code(self, env, tmp_path):
        page = tmp_path / "page.txt"
        page.write_text("text")
        failure = LLMResult.failure("OpenAI request failed with HTTP 500: boom", FailureKind.TRANSPORT)

        with patch("src.agent.runner.OpenAIClient.analyze", return_value=failure):
            code = main(["analyze", "--text-file", str(page)])

        assert code == EXIT_PIPELINE_ERROR

    def test_missing_api_key(self, tmp_path):
        page = tmp_path / "page.txt"
        page.write_text("text")

        with patch.dict(os.environ, {}, clear=True):
            code = main(["--env-file", "/nonexistent/.env", "analyze", "--text-file", str(page)])

        assert code == EXIT_CONFIG_ERROR

    def test_invalid_configuration(self, env, tmp_path):
        page = tmp_path / "page.txt"
        page.write_text("text")

        with patch.dict(os.environ, {"OPENAI_TEMPERATURE": "9"}):
            code = main(["analyze", "--text-file", str(page)])

        assert code == EXIT_CONFIG_ERROR

    def test_unreadable_request_file(self, env, tmp_path):
        code = main(["analyze", "--request-file", str(tmp_path / "missing.json")])

        assert code == EXIT_CONFIG_ERROR

    def test_unknown_session(self, env):
        assert main(["session", "missing"]) == EXIT_PIPELINE_ERROR
