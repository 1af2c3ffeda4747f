"""
Unit tests for configuration loading and validation.

Tests strict validation and error handling for dashboard configs.
"""

import os
import tempfile

import pytest
import yaml

from usage_dashboard.config.loader import (
    DEFAULT_EXCHANGE_RATE_URL,
    DEFAULT_RATE,
    CurrencyConfig,
    DashboardConfig,
    TableConfig,
    load_dashboard_config,
)
from usage_dashboard.core.currency import DigitGrouping
from usage_dashboard.core.metrics import DEFAULT_PLANS, Plan


class TestConfigLoading:
    """Test configuration loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f, allow_unicode=True)
        return config_path

    def test_no_path_returns_defaults(self):
        """Test that no config path gives the built-in defaults."""
        config = load_dashboard_config(None)

        assert config.currency.target.code == "INR"
        assert config.currency.target.symbol == "₹"
        assert config.currency.default_rate == DEFAULT_RATE
        assert config.plans == DEFAULT_PLANS
        assert config.sources.exchange_rate_url == DEFAULT_EXCHANGE_RATE_URL
        assert config.sources.ccusage_command is None
        assert config.table.page_size == 10

    def test_valid_config_loads_correctly(self):
        """Test that a valid configuration loads correctly."""
        config_data = {
            "currency": {
                "code": "eur",
                "symbol": "€",
                "grouping": "western",
                "default_rate": 0.92,
            },
            "plans": [
                {"name": "Pro", "price": 20},
                {"name": "Max", "price": 100},
            ],
            "sources": {
                "ccusage_command": "npx ccusage@latest",
                "usage_timeout": 60,
                "exchange_rate_url": "https://rates.example.com/latest/USD",
                "exchange_rate_timeout": 5,
            },
            "table": {"page_size": 50},
        }

        config = load_dashboard_config(self._write_config(config_data))

        assert config.currency.target.code == "EUR"
        assert config.currency.target.symbol == "€"
        assert config.currency.target.grouping == DigitGrouping.WESTERN
        assert config.currency.default_rate == 0.92
        assert config.plans == (Plan("Pro", 20.0), Plan("Max", 100.0))
        assert config.sources.ccusage_command == "npx ccusage@latest"
        assert config.sources.usage_timeout == 60.0
        assert config.sources.exchange_rate_timeout == 5.0
        assert config.table.page_size == 50

    def test_partial_config_keeps_other_defaults(self):
        """Test that omitted sections fall back to defaults."""
        config = load_dashboard_config(self._write_config({"currency": {"default_rate": 84.5}}))

        assert config.currency.default_rate == 84.5
        assert config.currency.target.code == "INR"
        assert config.plans == DEFAULT_PLANS

    def test_empty_file_returns_defaults(self):
        """Test that an empty YAML file yields defaults."""
        path = os.path.join(self.temp_dir, "empty.yaml")
        open(path, 'w').close()

        assert load_dashboard_config(path) == DashboardConfig()

    def test_missing_file_raises(self):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Dashboard config file not found"):
            load_dashboard_config(os.path.join(self.temp_dir, "missing.yaml"))

    def test_invalid_yaml_raises(self):
        """Test that malformed YAML raises YAMLError."""
        path = os.path.join(self.temp_dir, "bad.yaml")
        with open(path, 'w', encoding='utf-8') as f:
            f.write("currency: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_dashboard_config(path)

    def test_non_mapping_rejected(self):
        """Test that a top-level list is rejected."""
        with pytest.raises(ValueError, match="Configuration must be a mapping"):
            load_dashboard_config(self._write_config(["currency"]))

    def test_unknown_top_level_key_rejected(self):
        """Test that unknown top-level keys are rejected."""
        with pytest.raises(ValueError, match="Unknown configuration keys"):
            load_dashboard_config(self._write_config({"budget": {"daily": 10}}))

    def test_unknown_section_key_rejected(self):
        """Test that unknown keys inside a section are rejected."""
        with pytest.raises(ValueError, match="Unknown keys in currency"):
            load_dashboard_config(self._write_config({"currency": {"locale": "en_IN"}}))

    def test_invalid_grouping_rejected(self):
        """Test that an unsupported digit grouping is rejected."""
        with pytest.raises(ValueError, match="'currency.grouping' must be one of"):
            load_dashboard_config(self._write_config({"currency": {"grouping": "french"}}))

    @pytest.mark.parametrize("rate", [0, -1, "eighty"])
    def test_invalid_default_rate_rejected(self, rate):
        """Test that non-positive or non-numeric rates are rejected."""
        with pytest.raises(ValueError, match="'currency.default_rate' must be > 0"):
            load_dashboard_config(self._write_config({"currency": {"default_rate": rate}}))

    def test_wrong_plan_count_rejected(self):
        """Test that exactly two plans are required."""
        config_data = {"plans": [{"name": "Only", "price": 100}]}
        with pytest.raises(ValueError, match="exactly two plans"):
            load_dashboard_config(self._write_config(config_data))

    def test_descending_plans_rejected(self):
        """Test that plans must ascend in price."""
        config_data = {"plans": [{"name": "Big", "price": 200}, {"name": "Small", "price": 100}]}
        with pytest.raises(ValueError, match="ascending price order"):
            load_dashboard_config(self._write_config(config_data))

    def test_plan_without_price_rejected(self):
        """Test that each plan needs a price."""
        config_data = {"plans": [{"name": "A"}, {"name": "B", "price": 200}]}
        with pytest.raises(ValueError, match="Missing required 'price' in plans\\[0\\]"):
            load_dashboard_config(self._write_config(config_data))

    def test_plan_name_defaults_from_price(self):
        """Test that unnamed plans are labelled by price."""
        config = load_dashboard_config(self._write_config({"plans": [{"price": 100}, {"price": 200}]}))
        assert [p.name for p in config.plans] == ["Max $100", "Max $200"]

    def test_non_http_rate_url_rejected(self):
        """Test that the rate URL must be http(s)."""
        config_data = {"sources": {"exchange_rate_url": "ftp://rates.example.com"}}
        with pytest.raises(ValueError, match="must be an http\\(s\\) URL"):
            load_dashboard_config(self._write_config(config_data))

    def test_invalid_page_size_rejected(self):
        """Test that the table page size must be an offered size."""
        with pytest.raises(ValueError, match="page_size must be one of"):
            load_dashboard_config(self._write_config({"table": {"page_size": 25}}))

    def test_section_must_be_mapping(self):
        """Test that sections must be dictionaries."""
        with pytest.raises(ValueError, match="'table' must be a dictionary"):
            load_dashboard_config(self._write_config({"table": [10]}))


class TestConfigObjects:
    """Test direct construction validation."""

    def test_currency_config_rejects_bad_rate(self):
        """Test that CurrencyConfig validates its default rate."""
        with pytest.raises(ValueError, match="default_rate must be > 0"):
            CurrencyConfig(default_rate=0)

    def test_table_config_rejects_bad_size(self):
        """Test that TableConfig validates page size."""
        with pytest.raises(ValueError):
            TableConfig(page_size=7)

    def test_dashboard_config_rejects_unordered_plans(self):
        """Test that DashboardConfig validates plan order."""
        with pytest.raises(ValueError):
            DashboardConfig(plans=(Plan("B", 200), Plan("A", 100)))
