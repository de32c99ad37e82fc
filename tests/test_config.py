"""Tests for SettlementConfig."""

import json
from pathlib import Path

import pytest

from pos_settlement.config import SettlementConfig
from pos_settlement.exceptions import ConfigError
from pos_settlement.settlement.commission import DEFAULT_POLICY
from pos_settlement.settlement.types import PaymentInstrument


def test_defaults() -> None:
    config = SettlementConfig()

    assert config.checkout_epsilon == 0.01
    assert config.top_products_limit == 10
    assert config.search_debounce_seconds == 0.3
    assert config.timezone == "America/Bogota"
    assert config.policy() is DEFAULT_POLICY


@pytest.mark.parametrize(
    "kwargs",
    [{"checkout_epsilon": -1}, {"top_products_limit": 0}, {"search_debounce_seconds": -0.1}],
)
def test_invalid_values(kwargs) -> None:
    with pytest.raises(ConfigError):
        SettlementConfig(**kwargs)


def test_from_json_resolves_relative_rates(tmp_path) -> None:
    (tmp_path / "rates.json").write_text(
        json.dumps({"tarjeta": {"commission_rate": 0.05}}), encoding="utf-8"
    )
    config_file = tmp_path / "pos.json"
    config_file.write_text(
        json.dumps({"top_products_limit": 5, "commission_rates_json": "rates.json"}),
        encoding="utf-8",
    )

    config = SettlementConfig.from_json(str(config_file))

    assert config.top_products_limit == 5
    assert config.commission_rates_json == tmp_path / "rates.json"
    assert config.policy().commission(PaymentInstrument.CARD, 100) == pytest.approx(5)


def test_from_json_rejects_unknown_keys(tmp_path) -> None:
    config_file = tmp_path / "pos.json"
    config_file.write_text(json.dumps({"epsilon": 0.1}), encoding="utf-8")

    with pytest.raises(ConfigError, match="Unknown settlement config keys"):
        SettlementConfig.from_json(config_file)


def test_from_json_missing_file() -> None:
    with pytest.raises(ConfigError, match="Cannot load settlement config"):
        SettlementConfig.from_json(Path("/nonexistent/pos.json"))
