"""Tests for the command-line interface using click's CliRunner."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from fitfetch.acquisition.errors import ErrorKind, ExtractionExhaustedError
from fitfetch.acquisition.models import ExtractionAttempt, ExtractionFailure, ExtractionResult
from fitfetch.cli import cli
from fitfetch.portfolio import JsonFilePortfolioBackend, PortfolioStore
from tests.helpers.fakes import FIXED_NOW, HTML_BYTES, PNG_BYTES

URL = "https://cdn.example.com/look.png"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("fitfetch.cli.configure_logging"):
        yield


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "fitfetch.yaml"
    path.write_text(f"portfolio:\n  path: {tmp_path / 'portfolio.json'}\n", encoding="utf-8")
    return path


def _result() -> ExtractionResult:
    return ExtractionResult(
        image_bytes=PNG_BYTES,
        mime_type="image/png",
        source_url=URL,
        resolved_url=URL,
        strategy_used="direct_fetch",
        extracted_at=FIXED_NOW,
        detected_format="png",
    )


def _exhausted() -> ExtractionExhaustedError:
    attempt = ExtractionAttempt(
        strategy_name="direct_fetch",
        started_at=FIXED_NOW,
        succeeded=False,
        error_message="HTTP 403: Forbidden",
        error_kind=ErrorKind.HTTP_STATUS_ERROR,
    )
    return ExtractionExhaustedError(
        ExtractionFailure(
            source_url=URL,
            attempts=(attempt,),
            aggregate_message="All 1 extraction strategies failed. Last error: HTTP 403: Forbidden.",
            suggestions=("Save the image to your device and upload it directly",),
        )
    )


@pytest.mark.unit
class TestExtractCommand:
    def test_success_writes_output(self, runner, tmp_path):
        output = tmp_path / "look.png"
        with patch("fitfetch.cli.ImageExtractor.extract", new=AsyncMock(return_value=_result())) as extract:
            result = runner.invoke(cli, ["extract", URL, "--output", str(output), "--timeout-ms", "2500"])

        assert result.exit_code == 0, result.output
        assert "Image extracted" in result.output
        assert output.read_bytes() == PNG_BYTES
        options = extract.await_args.args[1]
        assert options.timeout_ms == 2500

    def test_flags_override_options(self, runner):
        with patch("fitfetch.cli.ImageExtractor.extract", new=AsyncMock(return_value=_result())) as extract:
            result = runner.invoke(cli, ["extract", URL, "--no-validate", "--retry-policy", "per_strategy"])

        assert result.exit_code == 0, result.output
        options = extract.await_args.args[1]
        assert options.validate_content is False
        assert options.retry_policy == "per_strategy"

    def test_exhaustion_prints_attempts_and_exits_nonzero(self, runner):
        with patch("fitfetch.cli.ImageExtractor.extract", new=AsyncMock(side_effect=_exhausted())):
            result = runner.invoke(cli, ["extract", URL])

        assert result.exit_code == 1
        assert "direct_fetch" in result.output
        assert "upload it directly" in result.output

    def test_invalid_url_exits_nonzero_without_fetching(self, runner):
        with patch("fitfetch.cli.ImageExtractor._attempt", new=AsyncMock()) as attempt:
            result = runner.invoke(cli, ["extract", "http://localhost/a.png"])

        assert result.exit_code == 1
        assert "BlockedHost" in result.output
        attempt.assert_not_awaited()


@pytest.mark.unit
class TestSniffCommand:
    def test_valid_file(self, runner, tmp_path):
        path = tmp_path / "look.png"
        path.write_bytes(PNG_BYTES)

        result = runner.invoke(cli, ["sniff", str(path)])

        assert result.exit_code == 0
        assert "Valid png image" in result.output

    def test_invalid_file(self, runner, tmp_path):
        path = tmp_path / "page.png"
        path.write_bytes(HTML_BYTES)

        result = runner.invoke(cli, ["sniff", str(path)])

        assert result.exit_code == 1
        assert "Invalid image file signature" in result.output


@pytest.mark.unit
class TestPortfolioCommands:
    def test_list_empty(self, runner, config_file):
        result = runner.invoke(cli, ["--config", str(config_file), "portfolio", "list"])

        assert result.exit_code == 0
        assert "Portfolio is empty" in result.output

    def test_list_and_prune(self, runner, config_file, tmp_path):
        backend = JsonFilePortfolioBackend(tmp_path / "portfolio.json")
        stale = PortfolioStore(backend, clock=lambda: FIXED_NOW - timedelta(days=30)).save({"original_url": URL})
        fresh = PortfolioStore(backend).save({"original_url": URL})

        listed = runner.invoke(cli, ["--config", str(config_file), "portfolio", "list"])
        assert listed.exit_code == 0
        assert fresh.id in listed.output
        assert stale.id not in listed.output

        pruned = runner.invoke(cli, ["--config", str(config_file), "portfolio", "prune"])
        assert pruned.exit_code == 0
        assert "Pruned 1 expired item(s); 1 remaining" in pruned.output

    def test_corrupt_portfolio_reports_error(self, runner, config_file, tmp_path):
        (tmp_path / "portfolio.json").write_text("not json", encoding="utf-8")

        result = runner.invoke(cli, ["--config", str(config_file), "portfolio", "list"])

        assert result.exit_code == 1
        assert "Corrupt JSON" in result.output
