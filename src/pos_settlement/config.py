"""Unified configuration for POS settlement.

This module provides a single, simple configuration class used across
both domains (settlement and reporting).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from pos_settlement.exceptions import ConfigError

if TYPE_CHECKING:
    from pos_settlement.settlement.commission import CommissionPolicy


@dataclass(frozen=True)
class SettlementConfig:
    """Tunable constants for checkout and reporting.

    Attributes:
        checkout_epsilon: Largest unpaid remainder still accepted at checkout.
            Absorbs floating point rounding in surcharge arithmetic.
        top_products_limit: Number of products returned in top-product rankings.
        search_debounce_seconds: Delay applied to free-text report searches
            before the aggregation runs.
        commission_rates_json: Optional path to a JSON rates table. If None,
            the built-in rates (card 4% commission, 3% surcharge) are used.
        timezone: IANA zone in which report days and months are cut.
    """

    checkout_epsilon: float = 0.01
    top_products_limit: int = 10
    search_debounce_seconds: float = 0.3
    commission_rates_json: Path | None = None
    timezone: str = "America/Bogota"

    def __post_init__(self) -> None:
        if self.checkout_epsilon < 0:
            raise ConfigError(f"checkout_epsilon must be >= 0, got {self.checkout_epsilon}")
        if self.top_products_limit <= 0:
            raise ConfigError(
                f"top_products_limit must be positive, got {self.top_products_limit}"
            )
        if self.search_debounce_seconds < 0:
            raise ConfigError(
                f"search_debounce_seconds must be >= 0, got {self.search_debounce_seconds}"
            )

    @classmethod
    def from_json(cls, config_json: str | Path) -> SettlementConfig:
        """Create SettlementConfig from a JSON file.

        Unknown keys are rejected so that typos do not silently fall back
        to defaults.

        Args:
            config_json: Path to a JSON object with any of the attribute names.

        Returns:
            SettlementConfig instance.

        Raises:
            ConfigError: If the file cannot be read or holds unknown keys.

        Examples:
            >>> config = SettlementConfig.from_json("settings/pos.json")
            >>> config.checkout_epsilon
            0.01
        """
        if isinstance(config_json, str):
            config_json = Path(config_json)

        try:
            data = json.loads(config_json.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot load settlement config {config_json}: {e}") from e

        allowed = {"checkout_epsilon", "top_products_limit", "search_debounce_seconds",
                   "commission_rates_json", "timezone"}
        unknown = set(data) - allowed
        if unknown:
            raise ConfigError(f"Unknown settlement config keys: {sorted(unknown)}")

        rates_path = data.get("commission_rates_json")
        if rates_path is not None:
            # Relative rate tables resolve next to the config file
            rates_path = Path(rates_path)
            if not rates_path.is_absolute():
                rates_path = config_json.parent / rates_path
            data["commission_rates_json"] = rates_path

        return cls(**data)

    def policy(self) -> CommissionPolicy:
        """Build the commission policy this configuration points to."""
        from pos_settlement.settlement.commission import DEFAULT_POLICY, CommissionPolicy

        if self.commission_rates_json is None:
            return DEFAULT_POLICY
        return CommissionPolicy.from_json(self.commission_rates_json)
