"""
Tests for the CLI interface.
"""
import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from usage_dashboard.cli.main import app, EXIT_CODE_PASS, EXIT_CODE_FAIL
from usage_dashboard.storage.exchange_rates import ExchangeRate, ExchangeRateError

runner = CliRunner()


def _payload_day(day: str, cost: float) -> dict:
    return {
        "date": day,
        "inputTokens": 1000,
        "outputTokens": 2000,
        "cacheCreationTokens": 3000,
        "cacheReadTokens": 4000,
        "totalTokens": 10000,
        "totalCost": cost,
        "modelsUsed": ["claude-sonnet-4"],
    }


@pytest.fixture
def usage_file(tmp_path):
    """Write a small ccusage payload to disk."""
    path = tmp_path / "usage.json"
    payload = {"daily": [_payload_day("2024-01-01", 1.5), _payload_day("2024-01-02", 3.0)]}
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


@pytest.fixture
def mock_rate_client():
    """Mock the exchange-rate client so no request leaves the test."""
    with patch('usage_dashboard.cli.main.ExchangeRateClient') as mock:
        yield mock


class TestCLI:
    """Test CLI commands."""

    def test_summary_command_demo(self):
        """Test summary over demo data."""
        result = runner.invoke(app, ["--demo", "summary"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Usage Summary" in result.output
        assert "Key Metrics" in result.output
        assert "Projected Monthly:" in result.output
        assert "Primary: claude-sonnet-4-20250514" in result.output

    def test_summary_from_input_file(self, usage_file):
        """Test summary reads a saved ccusage file."""
        result = runner.invoke(app, ["--input", usage_file, "summary", "--period", "daily"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Avg Daily Cost: $2.25" in result.output
        assert "Peak Usage Day: 2024-01-02 $3.00" in result.output

    def test_manual_rate_skips_lookup(self, mock_rate_client):
        """Test a manual rate is used without fetching one."""
        result = runner.invoke(app, ["--demo", "--currency", "target", "--rate", "90", "summary"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "1 USD = ₹90.00" in result.output
        mock_rate_client.assert_not_called()

    def test_target_currency_fetches_rate(self, mock_rate_client, usage_file):
        """Test the target currency looks up the latest rate."""
        mock_rate_client.return_value.get_rate.return_value = ExchangeRate("2024-01-02", 84.0)

        result = runner.invoke(app, ["--input", usage_file, "--currency", "target", "summary"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "1 USD = ₹84.00" in result.output
        assert "Avg Daily Cost: ₹189" in result.output
        mock_rate_client.return_value.get_rate.assert_called_once_with("2024-01-02")

    def test_rate_failure_falls_back(self, mock_rate_client, usage_file):
        """Test a failed lookup falls back to the default rate."""
        mock_rate_client.return_value.get_rate.side_effect = ExchangeRateError("offline")

        result = runner.invoke(app, ["--input", usage_file, "--currency", "target", "summary"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "1 USD = ₹83.00" in result.output

    def test_missing_input_file_fails(self, tmp_path):
        """Test unreadable usage data exits with failure."""
        result = runner.invoke(app, ["--input", str(tmp_path / "missing.json"), "summary"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Failed to load usage data" in result.output

    def test_bad_config_fails(self, tmp_path):
        """Test an invalid config file exits with failure."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text("unknown_section: 1\n", encoding="utf-8")

        result = runner.invoke(app, ["--config", str(config_path), "--demo", "summary"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Error loading configuration" in result.output

    def test_plans_command(self):
        """Test plan comparison output."""
        result = runner.invoke(app, ["--demo", "plans"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Plan Comparison" in result.output
        assert "Current Status:" in result.output
        assert "Max $100" in result.output

    def test_plans_within_budget(self, usage_file):
        """Test a small spend is within the first tier."""
        result = runner.invoke(app, ["--input", usage_file, "plans"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Current Usage: $4.50" in result.output
        assert "Current Status: Within Budget" in result.output

    def test_activity_first_page(self):
        """Test the activity table shows the first page."""
        result = runner.invoke(app, ["--demo", "activity"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Daily Activity Details" in result.output
        assert "Showing 1-10 of 36 entries (page 1 of 4)" in result.output

    def test_activity_page_beyond_end_clamps(self):
        """Test an out-of-range page shows the last page."""
        result = runner.invoke(app, ["--demo", "activity", "--page", "99"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Showing 31-36 of 36 entries (page 4 of 4)" in result.output

    def test_activity_weekly(self):
        """Test weekly buckets in the activity table."""
        result = runner.invoke(app, ["--demo", "activity", "--period", "weekly", "--page-size", "50"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Weekly Activity Details" in result.output
        assert "Showing 1-7 of 7 entries (page 1 of 1)" in result.output

    def test_activity_filter_hides_everything(self):
        """Test a high minimum cost leaves no rows."""
        result = runner.invoke(app, ["--demo", "activity", "--min-cost", "100000"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "No data available" in result.output

    def test_activity_invalid_page_size_fails(self):
        """Test an unsupported page size exits with failure."""
        result = runner.invoke(app, ["--demo", "activity", "--page-size", "25"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Error:" in result.output

    def test_chart_command(self):
        """Test the cost trend chart."""
        result = runner.invoke(app, ["--demo", "chart", "--period", "monthly"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Monthly Cost Trend" in result.output
        assert "Jun 2025" in result.output

    def test_models_command(self):
        """Test the per-model breakdown."""
        result = runner.invoke(app, ["--demo", "models"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Model Cost Breakdown" in result.output
        assert "Total Model Cost:" in result.output

    def test_models_without_breakdowns(self, usage_file):
        """Test data without per-model breakdowns."""
        result = runner.invoke(app, ["--input", usage_file, "models"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "No per-model data available" in result.output

    def test_undecodable_input_fails(self, tmp_path):
        """Test a usage file that is not UTF-8 exits with failure."""
        path = tmp_path / "usage.json"
        path.write_bytes(b"\xff\xfe\x00\x00")

        result = runner.invoke(app, ["--input", str(path), "summary"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Failed to load usage data" in result.output

    def test_non_finite_cost_fails(self, tmp_path):
        """Test a NaN cost is reported as unusable data."""
        path = tmp_path / "usage.json"
        path.write_text(
            '{"daily": [{"date": "2024-01-01", "inputTokens": 1, "outputTokens": 1,'
            ' "cacheCreationTokens": 1, "cacheReadTokens": 1, "totalTokens": 4,'
            ' "totalCost": NaN}]}',
            encoding="utf-8",
        )

        result = runner.invoke(app, ["--input", str(path), "--currency", "target", "--rate", "83", "summary"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Failed to load usage data" in result.output

    def test_chart_target_currency_grouping(self, usage_file):
        """Test chart costs use the target currency digit grouping."""
        result = runner.invoke(app, ["--input", usage_file, "--currency", "target", "--rate", "100000", "chart"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "₹1,50,000" in result.output
        assert "₹3,00,000" in result.output
