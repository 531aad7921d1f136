# ABOUTME: Configuration management for the F-Bot model router
# ABOUTME: Loads and validates TOML config from ~/.fbot/config.toml

"""
F-Bot Router Configuration.

Handles loading, validation, and defaults for router settings.
Config file location: ~/.fbot/config.toml
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import toml

DEFAULT_CONFIG_PATH = Path.home() / ".fbot" / "config.toml"

DEFAULT_CONFIG = """
[routing]
default_model = "gpt-4o"
cost_budget = 100

[routing.fallback]
primary_failure = "claude-3-5-sonnet"
secondary_failure = "gpt-4o"
cost_limit_exceeded = "llama3.2"
safety_escalation = "claude-3-opus"

[thresholds]
hourly = 50
daily = 500
monthly = 10000

[alerts]
enabled = true
webhook = ""  # POST target for cost alerts (optional)

[meter]
monthly_reset = "calendar"  # "calendar" or "fixed" (every 30 days)

[ledger]
enabled = true
path = "~/.fbot/usage.db"

[server]
host = "127.0.0.1"
port = 4100

[complexity.indicators]
# Extra or overridden complexity phrases, e.g.
# "bilateral" = 0.2
"""


def _default_fallbacks() -> dict[str, str]:
    return {
        "primary_failure": "claude-3-5-sonnet",
        "secondary_failure": "gpt-4o",
        "cost_limit_exceeded": "llama3.2",
        "safety_escalation": "claude-3-opus",
    }


@dataclass
class RoutingConfig:
    """Model selection settings."""

    default_model: str = "gpt-4o"
    cost_budget: float = 100.0
    fallback: dict[str, str] = field(default_factory=_default_fallbacks)


@dataclass
class ThresholdConfig:
    """Cost alert thresholds per period (USD)."""

    hourly: float = 50.0
    daily: float = 500.0
    monthly: float = 10000.0

    def as_dict(self) -> dict[str, float]:
        return {"hourly": self.hourly, "daily": self.daily, "monthly": self.monthly}


@dataclass
class AlertConfig:
    """Cost alert delivery settings."""

    enabled: bool = True
    webhook: str = ""  # Optional - empty means log only


@dataclass
class MeterConfig:
    """Cost meter settings."""

    monthly_reset: str = "calendar"


@dataclass
class LedgerConfig:
    """Usage history settings."""

    enabled: bool = True
    path: str = "~/.fbot/usage.db"

    @property
    def db_path(self) -> Path:
        return Path(self.path).expanduser()


@dataclass
class ServerConfig:
    """HTTP server settings."""

    host: str = "127.0.0.1"
    port: int = 4100


@dataclass
class ComplexityConfig:
    """Complexity indicator overrides (phrase -> weight)."""

    indicators: dict[str, float] = field(default_factory=dict)


@dataclass
class Config:
    """Main configuration container."""

    routing: RoutingConfig = field(default_factory=RoutingConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)
    meter: MeterConfig = field(default_factory=MeterConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    complexity: ComplexityConfig = field(default_factory=ComplexityConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load configuration from TOML file."""
        config_path = path or DEFAULT_CONFIG_PATH

        if not config_path.exists():
            cls._create_default_config(config_path)

        data = toml.load(config_path)
        return cls._from_dict(data)

    @classmethod
    def _create_default_config(cls, path: Path) -> None:
        """Create default configuration file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(DEFAULT_CONFIG)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        routing = dict(data.get("routing", {}))
        fallback = {**_default_fallbacks(), **routing.pop("fallback", {})}

        return cls(
            routing=RoutingConfig(fallback=fallback, **routing),
            thresholds=ThresholdConfig(**data.get("thresholds", {})),
            alerts=AlertConfig(**data.get("alerts", {})),
            meter=MeterConfig(**data.get("meter", {})),
            ledger=LedgerConfig(**data.get("ledger", {})),
            server=ServerConfig(**data.get("server", {})),
            complexity=ComplexityConfig(**data.get("complexity", {})),
        )
