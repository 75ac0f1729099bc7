"""Tests for CLI interface"""

from __future__ import annotations

import logging
from unittest.mock import patch

import click
import pytest
import yaml
from click.testing import CliRunner

from restretry.cli import _die, cli, parse_params, setup_logging
from restretry.domain.config.retry import BackoffKind
from restretry.domain.models.attempt_outcome import AttemptOutcome
from restretry.infrastructure.config.config_manager import ConfigManager


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    for name in ConfigManager.ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestSetupLogging:
    """Tests for setup_logging function"""

    def test_setup_logging_info_level(self):
        setup_logging(verbose=False)
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug_level(self):
        setup_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG


class TestDie:
    """Tests for _die function"""

    def test_die_without_exception(self):
        with pytest.raises(click.ClickException, match="Test error"):
            _die("Test error", verbose=False)

    def test_die_with_exception_verbose(self):
        exc = ValueError("Test exception")
        with pytest.raises(click.ClickException, match="Test error"):
            _die("Test error", verbose=True, exc=exc)


class TestParseParams:
    def test_pairs(self):
        assert parse_params(("userId=1", "q=a=b")) == {"userId": "1", "q": "a=b"}

    def test_empty(self):
        assert parse_params(()) == {}

    def test_missing_separator(self):
        with pytest.raises(click.BadParameter):
            parse_params(("userId",))


class TestRequestCommand:
    """Tests for the request command"""

    def test_get_success(self):
        runner = CliRunner()
        outcome = AttemptOutcome.from_status(200, content='{"id": 1}', payload={"id": 1})
        with patch("restretry.cli.RetryClient.get", return_value=outcome) as mock_get:
            result = runner.invoke(
                cli, ["request", "get", "https://api.example.com", "posts/1", "-p", "userId=1"]
            )

        assert result.exit_code == 0, result.output
        assert "Status Code: 200" in result.output
        assert "Is Successful: True" in result.output
        assert '{"id": 1}' in result.output
        mock_get.assert_called_once_with({"userId": "1"})

    def test_post_sends_json_body(self):
        runner = CliRunner()
        with patch("restretry.cli.RetryClient.post", return_value=AttemptOutcome.from_status(201)) as mock_post:
            result = runner.invoke(
                cli, ["request", "POST", "https://api.example.com", "posts", "--data", '{"title": "foo"}']
            )

        assert result.exit_code == 0, result.output
        mock_post.assert_called_once_with({"title": "foo"})

    def test_failure_exits_with_one(self):
        runner = CliRunner()
        with patch("restretry.cli.RetryClient.get", return_value=AttemptOutcome.from_status(503)):
            result = runner.invoke(cli, ["request", "GET", "https://api.example.com", "status/503"])

        assert result.exit_code == 1
        assert "Status Code: 503" in result.output

    def test_cli_flags_override_config(self, tmp_path):
        config_path = tmp_path / "cfg.yml"
        config_path.write_text(yaml.dump({"retry": {"max_attempts": 2, "base_delay": 3}}), encoding="utf-8")
        seen = {}

        def fake_options(self):
            seen.update(max_attempts=self.max_attempts, base_delay=self.base_delay, backoff=self.backoff)
            return AttemptOutcome.from_status(204)

        runner = CliRunner()
        with patch("restretry.cli.RetryClient.options", fake_options):
            result = runner.invoke(
                cli,
                [
                    "--config",
                    str(config_path),
                    "request",
                    "OPTIONS",
                    "https://api.example.com",
                    "posts",
                    "--base-delay",
                    "0.5",
                    "--backoff",
                    "fibonacci",
                ],
            )

        assert result.exit_code == 0, result.output
        assert seen == {"max_attempts": 2, "base_delay": 0.5, "backoff": BackoffKind.FIBONACCI}

    def test_invalid_json_body(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["request", "POST", "https://api.example.com", "posts", "--data", "{nope"])
        assert result.exit_code != 0
        assert "Invalid JSON" in result.output

    def test_data_rejected_for_get(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["request", "GET", "https://api.example.com", "posts", "--data", "{}"])
        assert result.exit_code != 0
        assert "--data is not supported" in result.output

    def test_invalid_base_url(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["request", "GET", "not-a-url", "posts"])
        assert result.exit_code != 0
        assert "Invalid Base URL" in result.output


class TestDelaysCommand:
    def test_exponential_schedule(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["delays", "--backoff", "exponential", "--base-delay", "1", "--attempts", "3"])
        assert result.exit_code == 0, result.output
        assert "retry 1: 1.000s" in result.output
        assert "retry 3: 4.000s" in result.output
        assert "total: 7.000s" in result.output

    def test_seeded_random_is_reproducible(self):
        runner = CliRunner()
        args = ["delays", "--backoff", "random", "--seed", "5", "--attempts", "4"]
        assert runner.invoke(cli, args).output == runner.invoke(cli, args).output

    def test_no_retry(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["delays", "--backoff", "no_retry"])
        assert result.exit_code == 0
        assert "No retries" in result.output
