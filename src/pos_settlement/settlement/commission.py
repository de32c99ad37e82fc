"""Per-instrument commission and surcharge rates.

A commission is a cost the seller absorbs for accepting an instrument; a
surcharge is an extra amount charged to the customer. Both are flat
percentages of the amount paid with the instrument, looked up from a
table keyed by PaymentInstrument.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping

from pos_settlement.exceptions import ConfigError, ValidationError
from pos_settlement.settlement.types import PaymentEntry, PaymentInstrument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstrumentRates:
    """Rates for one instrument, as fractions (0.04 = 4%)."""

    commission_rate: float = 0.0
    surcharge_rate: float = 0.0

    def __post_init__(self) -> None:
        if self.commission_rate < 0 or self.surcharge_rate < 0:
            raise ConfigError(
                f"Rates must be non-negative, got commission={self.commission_rate} "
                f"surcharge={self.surcharge_rate}"
            )


# Card: 4% absorbed by the seller, 3% passed on to the customer
DEFAULT_RATES: Dict[PaymentInstrument, InstrumentRates] = {
    PaymentInstrument.CASH: InstrumentRates(),
    PaymentInstrument.BANK_TRANSFER: InstrumentRates(),
    PaymentInstrument.CARD: InstrumentRates(commission_rate=0.04, surcharge_rate=0.03),
    PaymentInstrument.STORE_CREDIT: InstrumentRates(),
}


class CommissionPolicy:
    """Lookup table from payment instrument to commission/surcharge rates.

    Instruments missing from the table are treated as zero-cost.

    Example:
        >>> policy = CommissionPolicy()
        >>> policy.commission(PaymentInstrument.CARD, 100000)
        4000.0
        >>> policy.surcharge("tarjeta", 100000)
        3000.0
    """

    def __init__(self, rates: Mapping[PaymentInstrument, InstrumentRates] | None = None) -> None:
        self._rates: Dict[PaymentInstrument, InstrumentRates] = dict(
            DEFAULT_RATES if rates is None else rates
        )

    @classmethod
    def from_json(cls, rates_json: str | Path) -> CommissionPolicy:
        """Load a rates table from JSON.

        The file maps instrument values or names to rate objects::

            {"tarjeta": {"commission_rate": 0.04, "surcharge_rate": 0.03},
             "efectivo": {}}

        Instruments absent from the file fall back to zero-cost.

        Args:
            rates_json: Path to the JSON rates table.

        Returns:
            CommissionPolicy built from the file.

        Raises:
            ConfigError: If the file is unreadable, names an unknown
                instrument, or holds negative rates.
        """
        rates_json = Path(rates_json)
        try:
            data = json.loads(rates_json.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot load commission rates {rates_json}: {e}") from e

        rates: Dict[PaymentInstrument, InstrumentRates] = {}
        for key, rec in data.items():
            try:
                instrument = PaymentInstrument.parse(key)
            except ValidationError as e:
                raise ConfigError(str(e)) from e
            rates[instrument] = InstrumentRates(
                commission_rate=float(rec.get("commission_rate", 0.0)),
                surcharge_rate=float(rec.get("surcharge_rate", 0.0)),
            )

        logger.debug("Loaded commission rates for %d instrument(s) from %s", len(rates), rates_json)
        return cls(rates)

    def rates_for(self, instrument: PaymentInstrument | str) -> InstrumentRates:
        return self._rates.get(PaymentInstrument.parse(instrument), InstrumentRates())

    def commission(self, instrument: PaymentInstrument | str, amount: float) -> float:
        """Seller-absorbed cost of taking ``amount`` with ``instrument``."""
        return amount * self.rates_for(instrument).commission_rate

    def surcharge(self, instrument: PaymentInstrument | str, amount: float) -> float:
        """Customer-paid extra for paying ``amount`` with ``instrument``."""
        return amount * self.rates_for(instrument).surcharge_rate

    def new_entry(self, instrument: PaymentInstrument | str, amount: float) -> PaymentEntry:
        """Create a payment entry with its commission frozen at this moment."""
        instrument = PaymentInstrument.parse(instrument)
        return PaymentEntry(
            instrument=instrument,
            amount=amount,
            commission=self.commission(instrument, amount),
        )


DEFAULT_POLICY = CommissionPolicy()
