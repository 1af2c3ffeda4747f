"""
Configuration management and loading.

Handles dashboard settings: target currency, plan tiers, data sources
and table defaults.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from usage_dashboard.core.currency import DigitGrouping, TargetCurrency, is_valid_rate
from usage_dashboard.core.metrics import DEFAULT_PLANS, Plan
from usage_dashboard.core.pagination import DEFAULT_PAGE_SIZE, PAGE_SIZES

DEFAULT_RATE = 83.0
DEFAULT_EXCHANGE_RATE_URL = "https://api.exchangerate-api.com/v4/latest/USD"


@dataclass(frozen=True)
class CurrencyConfig:
    """Target currency and the rate used when no live rate is available."""
    target: TargetCurrency = field(default_factory=TargetCurrency)
    default_rate: float = DEFAULT_RATE

    def __post_init__(self):
        """Validate the default rate is a positive number."""
        if not is_valid_rate(self.default_rate):
            raise ValueError("default_rate must be > 0")


@dataclass(frozen=True)
class SourceConfig:
    """Where usage data and exchange rates come from."""
    ccusage_command: Optional[str] = None
    usage_timeout: float = 120.0
    exchange_rate_url: str = DEFAULT_EXCHANGE_RATE_URL
    exchange_rate_timeout: float = 10.0

    def __post_init__(self):
        """Validate timeouts are positive."""
        if self.usage_timeout <= 0:
            raise ValueError("usage_timeout must be > 0")
        if self.exchange_rate_timeout <= 0:
            raise ValueError("exchange_rate_timeout must be > 0")


@dataclass(frozen=True)
class TableConfig:
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self):
        """Validate the page size is one the table offers."""
        if self.page_size not in PAGE_SIZES:
            raise ValueError(f"page_size must be one of: {list(PAGE_SIZES)}")


@dataclass(frozen=True)
class DashboardConfig:
    """Complete dashboard configuration."""
    currency: CurrencyConfig = field(default_factory=CurrencyConfig)
    plans: Tuple[Plan, Plan] = DEFAULT_PLANS
    sources: SourceConfig = field(default_factory=SourceConfig)
    table: TableConfig = field(default_factory=TableConfig)

    def __post_init__(self):
        """Validate plans are two tiers in ascending price order."""
        if len(self.plans) != 2:
            raise ValueError("exactly two plans are required")
        if self.plans[0].price >= self.plans[1].price:
            raise ValueError("plans must be listed in ascending price order")


def load_dashboard_config(path: Optional[str] = None) -> DashboardConfig:
    """Load and validate dashboard configuration from a YAML file.

    Every section is optional and falls back to defaults, but unknown
    keys and invalid values are rejected rather than ignored.

    Args:
        path: Path to YAML configuration file, or None for defaults

    Returns:
        Validated DashboardConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    if path is None:
        return DashboardConfig()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Dashboard config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if raw_config is None:
        return DashboardConfig()
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")

    allowed_top_keys = {'currency', 'plans', 'sources', 'table'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    kwargs: Dict[str, Any] = {}
    if 'currency' in raw_config:
        kwargs['currency'] = _parse_currency(_section(raw_config, 'currency'))
    if 'plans' in raw_config:
        kwargs['plans'] = _parse_plans(raw_config['plans'])
    if 'sources' in raw_config:
        kwargs['sources'] = _parse_sources(_section(raw_config, 'sources'))
    if 'table' in raw_config:
        kwargs['table'] = _parse_table(_section(raw_config, 'table'))

    return DashboardConfig(**kwargs)


def _section(raw_config: Dict, name: str) -> Dict:
    data = raw_config[name]
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    return data


def _check_keys(data: Dict, allowed: set, path: str) -> None:
    unknown = set(data.keys()) - allowed
    if unknown:
        raise ValueError(f"Unknown keys in {path}: {unknown}")


def _positive_number(value: Any, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"'{path}' must be > 0")
    return float(value)


def _parse_currency(data: Dict) -> CurrencyConfig:
    """Parse the currency section.

    Args:
        data: Currency configuration data

    Returns:
        Validated CurrencyConfig

    Raises:
        ValueError: If configuration is invalid
    """
    _check_keys(data, {'code', 'symbol', 'grouping', 'default_rate'}, 'currency')
    defaults = TargetCurrency()

    code = data.get('code', defaults.code)
    symbol = data.get('symbol', defaults.symbol)
    if not isinstance(code, str) or not code.strip():
        raise ValueError("'currency.code' must be a non-empty string")
    if not isinstance(symbol, str) or not symbol:
        raise ValueError("'currency.symbol' must be a non-empty string")

    grouping_str = data.get('grouping', defaults.grouping.value)
    try:
        grouping = DigitGrouping(str(grouping_str).lower())
    except ValueError:
        valid = [g.value for g in DigitGrouping]
        raise ValueError(f"'currency.grouping' must be one of: {valid}")

    default_rate = DEFAULT_RATE
    if 'default_rate' in data:
        default_rate = _positive_number(data['default_rate'], 'currency.default_rate')

    return CurrencyConfig(
        target=TargetCurrency(code=code.strip().upper(), symbol=symbol, grouping=grouping),
        default_rate=default_rate,
    )


def _parse_plans(data: Any) -> Tuple[Plan, Plan]:
    if not isinstance(data, list) or len(data) != 2:
        raise ValueError("'plans' must be a list of exactly two plans")

    plans = []
    for i, item in enumerate(data):
        path = f"plans[{i}]"
        if not isinstance(item, dict):
            raise ValueError(f"'{path}' must be a dictionary")
        _check_keys(item, {'name', 'price'}, path)
        if 'price' not in item:
            raise ValueError(f"Missing required 'price' in {path}")
        price = _positive_number(item['price'], f"{path}.price")
        name = item.get('name') or f"Max ${price:g}"
        plans.append(Plan(name=str(name), price=price))

    if plans[0].price >= plans[1].price:
        raise ValueError("plans must be listed in ascending price order")
    return plans[0], plans[1]


def _parse_sources(data: Dict) -> SourceConfig:
    allowed = {'ccusage_command', 'usage_timeout', 'exchange_rate_url', 'exchange_rate_timeout'}
    _check_keys(data, allowed, 'sources')
    defaults = SourceConfig()

    command = data.get('ccusage_command')
    if command is not None and (not isinstance(command, str) or not command.strip()):
        raise ValueError("'sources.ccusage_command' must be a non-empty string")

    url = data.get('exchange_rate_url', defaults.exchange_rate_url)
    if not isinstance(url, str) or not url.startswith(('http://', 'https://')):
        raise ValueError("'sources.exchange_rate_url' must be an http(s) URL")

    return SourceConfig(
        ccusage_command=command.strip() if command else None,
        usage_timeout=_positive_number(
            data.get('usage_timeout', defaults.usage_timeout), 'sources.usage_timeout'
        ),
        exchange_rate_url=url,
        exchange_rate_timeout=_positive_number(
            data.get('exchange_rate_timeout', defaults.exchange_rate_timeout),
            'sources.exchange_rate_timeout',
        ),
    )


def _parse_table(data: Dict) -> TableConfig:
    _check_keys(data, {'page_size'}, 'table')
    page_size = data.get('page_size', DEFAULT_PAGE_SIZE)
    if isinstance(page_size, bool) or not isinstance(page_size, int):
        raise ValueError("'table.page_size' must be an integer")
    return TableConfig(page_size=page_size)
