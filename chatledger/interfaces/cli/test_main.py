"""Tests for the CLI commands."""

from typer.testing import CliRunner

from chatledger import __version__

from .main import _credential_keys, _parse_pairs, app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_providers_lists_builtins():
    result = runner.invoke(app, ["providers"])

    assert result.exit_code == 0
    assert "claude" in result.output
    assert "chatgpt" in result.output


def test_tools_unknown_provider_fails():
    result = runner.invoke(app, ["tools", "--provider", "poe"])

    assert result.exit_code == 1
    assert "UNKNOWN_PROVIDER" in result.output.upper()


def test_validate_blank_token_fails():
    result = runner.invoke(app, ["validate", "chatgpt", "-c", "session_token="])

    assert result.exit_code == 1


def test_parse_pairs_decodes_json_values():
    parsed = _parse_pairs(["max_conversations=5", "session_cookie=abc", "flag=true"])

    assert parsed == {"max_conversations": 5, "session_cookie": "abc", "flag": True}


def test_credential_values_stay_strings():
    raw = _credential_keys("claude")
    assert "session_cookie" in raw

    parsed = _parse_pairs(["session_cookie=12345", "max_conversations=10"], raw)

    assert parsed == {"session_cookie": "12345", "max_conversations": 10}


def test_validate_numeric_looking_cookie():
    result = runner.invoke(app, ["validate", "claude", "-c", "session_cookie=12345"])

    assert result.exit_code == 0
