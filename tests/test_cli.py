from __future__ import annotations

import logging

import pytest
from click.testing import CliRunner

from gemwrap import __version__
from gemwrap.cli import cli
from gemwrap.llm import TransportResponse

from .helpers import FakeTransport, StatusError

ENV = {"GEMINI_API_KEY": "cli-test-key", "GEMINI_MODEL": None, "GEMINI_DEBUG": None, "DEBUG": None}


@pytest.fixture(autouse=True)
def logging_setup(mocker):
    mocker.patch("gemwrap.cli.get_logger", side_effect=logging.getLogger)
    return mocker.patch("gemwrap.cli.configure_logging")


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def fake_transport(mocker):
    def _install(*outcomes) -> FakeTransport:
        transport = FakeTransport(list(outcomes) or None)
        mocker.patch("gemwrap.llm.gemini_client.GoogleGenAITransport", return_value=transport)
        return transport

    return _install


def test_version(runner) -> None:
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_tokens_needs_no_configuration(runner) -> None:
    result = runner.invoke(cli, ["tokens", "Hello", "안녕하세요"], env={"GEMINI_API_KEY": None})

    assert result.exit_code == 0, result.output
    assert "Token Estimates" in result.output
    assert "Hello" in result.output


def test_tokens_checks_against_configured_max_tokens(runner) -> None:
    text = "a" * 404  # 101 estimated tokens
    env = {"GEMINI_API_KEY": None, "GEMINI_MODEL": None, "GEMINI_MAX_TOKENS": "2100"}

    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["tokens", text], env=env)

    assert result.exit_code == 0, result.output
    assert "no" in result.output
    assert "yes" not in result.output


def test_tokens_falls_back_to_model_default_max_tokens(runner) -> None:
    text = "a" * 404
    env = {"GEMINI_API_KEY": None, "GEMINI_MODEL": None, "GEMINI_MAX_TOKENS": None}

    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["tokens", text], env=env)

    assert result.exit_code == 0, result.output
    assert "yes" in result.output


def test_tokens_rejects_malformed_max_tokens(runner) -> None:
    env = {"GEMINI_API_KEY": None, "GEMINI_MAX_TOKENS": "lots"}

    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["tokens", "Hello"], env=env)

    assert result.exit_code != 0
    assert "GEMINI_MAX_TOKENS" in result.output



def test_estimate_cost(runner) -> None:
    result = runner.invoke(cli, ["estimate-cost", "Hello", "--max-tokens", "100"])

    assert result.exit_code == 0, result.output
    assert "Input tokens: 2" in result.output
    assert "Estimated cost: $" in result.output


def test_estimate_cost_rejects_bad_cap(runner) -> None:
    result = runner.invoke(cli, ["estimate-cost", "Hello", "--max-tokens", "0"])

    assert result.exit_code != 0


def test_validate_config(runner) -> None:
    result = runner.invoke(cli, ["validate-config"], env=ENV)

    assert result.exit_code == 0, result.output
    assert "Configuration validated successfully" in result.output


def test_validate_config_without_key_fails(runner) -> None:
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["validate-config"], env={"GEMINI_API_KEY": None})

    assert result.exit_code != 0
    assert "GEMINI_API_KEY" in result.output


def test_info_hides_api_key(runner) -> None:
    result = runner.invoke(cli, ["info"], env=ENV)

    assert result.exit_code == 0, result.output
    assert "cli-test-key" not in result.output
    assert "api_key_length" in result.output


def test_generate(runner, fake_transport) -> None:
    transport = fake_transport(TransportResponse(text="A haiku about autumn"))

    result = runner.invoke(
        cli,
        ["generate", "Write a haiku", "--temperature", "0.3", "--stop", "END"],
        env=ENV,
    )

    assert result.exit_code == 0, result.output
    assert "A haiku about autumn" in result.output
    assert transport.calls[0]["temperature"] == 0.3
    assert transport.calls[0]["stop_sequences"] == ("END",)


def test_generate_reports_user_message(runner, fake_transport) -> None:
    fake_transport(StatusError("API key not valid. Please pass a valid API key.", 400))

    result = runner.invoke(cli, ["generate", "Hello"], env=ENV)

    assert result.exit_code != 0
    assert "The API key is invalid" in result.output
    assert "Please pass a valid API key" not in result.output


def test_generate_rejects_out_of_range_option(runner, fake_transport) -> None:
    transport = fake_transport()

    result = runner.invoke(cli, ["generate", "Hello", "--temperature", "3"], env=ENV)

    assert result.exit_code != 0
    assert transport.calls == []


def test_batch(runner, fake_transport, tmp_path) -> None:
    transport = fake_transport(TransportResponse(text="answer"))
    prompts = tmp_path / "prompts.txt"
    prompts.write_text("first\n\nsecond\nthird\n", encoding="utf-8")

    result = runner.invoke(cli, ["batch", str(prompts)], env=ENV)

    assert result.exit_code == 0, result.output
    assert len(transport.calls) == 3
    assert "Usage Summary" in result.output
    assert "100.0%" in result.output


def test_batch_with_empty_file_fails(runner, tmp_path) -> None:
    prompts = tmp_path / "prompts.txt"
    prompts.write_text("\n\n", encoding="utf-8")

    result = runner.invoke(cli, ["batch", str(prompts)], env=ENV)

    assert result.exit_code != 0
    assert "No prompts found" in result.output


@pytest.mark.parametrize(
    "outcome, exit_code",
    [
        (TransportResponse(text="Hi"), 0),
        (StatusError("unauthorized", 401), 1),
    ],
)
def test_health(runner, fake_transport, outcome, exit_code) -> None:
    fake_transport(outcome)

    result = runner.invoke(cli, ["health"], env=ENV)

    assert result.exit_code == exit_code, result.output


def test_debug_config_surfaces_usage_records(runner, fake_transport, logging_setup, caplog) -> None:
    fake_transport(TransportResponse(text="Hi there"))

    with caplog.at_level(logging.INFO, logger="gemwrap.usage"):
        result = runner.invoke(cli, ["generate", "Hello"], env={**ENV, "GEMINI_DEBUG": "true"})

    assert result.exit_code == 0, result.output
    logging_setup.assert_called_with(level="WARNING", log_file=None, debug=True, force=True)
    assert any(record.getMessage() == "Gemini API usage" for record in caplog.records)


def test_quiet_config_leaves_logging_alone(runner, fake_transport, logging_setup) -> None:
    fake_transport(TransportResponse(text="Hi there"))

    result = runner.invoke(cli, ["generate", "Hello"], env=ENV)

    assert result.exit_code == 0, result.output
    logging_setup.assert_called_once_with(level="WARNING", log_file=None, force=True)
