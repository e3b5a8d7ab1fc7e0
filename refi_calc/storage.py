"""Persistence of the offer list.

Offers are kept as a single JSON document under a fixed key in a key-value
store. The store is injected, so the CLI can use a JSON file, the web app a
database table (see ``refi_calc_web.comparison_store``) and tests an
in-memory dict.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Optional

from .data_models import BankOffer, default_other_costs

logger = logging.getLogger(__name__)

DEFAULT_STORE_KEY = "mortgage-banks"


class KeyValueStore:
    """Minimal string key-value interface used by ``OfferRepository``."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore(KeyValueStore):
    """Key-value pairs kept in one JSON object on disk."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except ValueError as exc:
            logger.warning("Treating unreadable store %s as empty: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Treating store %s as empty: not a JSON object", self._path)
            return {}
        return data

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value))


def offer_to_dict(offer: BankOffer) -> Dict[str, Any]:
    return {
        "name": offer.name,
        "principal": str(offer.principal),
        "term_years": str(offer.term_years),
        "rate1": str(offer.rate1),
        "rate2": str(offer.rate2),
        "rate3": str(offer.rate3),
        "rate_after": str(offer.rate_after),
        "monthly_override": None if offer.monthly_override is None else str(offer.monthly_override),
        "prepayment_percent": str(offer.prepayment_percent),
        "other_costs": {label: str(amount) for label, amount in offer.other_costs.items()},
    }


def offer_from_dict(data: Dict[str, Any]) -> BankOffer:
    """Rebuild an offer from stored data.

    Numbers may be stored as strings or JSON numbers. Missing optional fields
    fall back to their defaults; missing required fields raise ``KeyError``.
    """
    override = data.get("monthly_override")
    other_costs = data.get("other_costs")
    return BankOffer(
        name=str(data["name"]),
        principal=_decimal(data["principal"]),
        term_years=_decimal(data["term_years"]),
        rate1=_decimal(data["rate1"]),
        rate2=_decimal(data["rate2"]),
        rate3=_decimal(data["rate3"]),
        rate_after=_decimal(data["rate_after"]),
        monthly_override=None if override in (None, "") else _decimal(override),
        prepayment_percent=_decimal(data.get("prepayment_percent", "0")),
        other_costs=(
            {str(k): _decimal(v) for k, v in other_costs.items()}
            if other_costs is not None
            else default_other_costs()
        ),
    )


def default_offers() -> List[BankOffer]:
    """The two offers shown before the user has saved anything."""
    current_costs = default_other_costs()
    promo_costs = default_other_costs()
    promo_costs["Processing fee"] = Decimal("1000")
    return [
        BankOffer(
            name="Krungsri (current)",
            principal=Decimal("2623000"),
            term_years=Decimal("20"),
            rate1=Decimal("5.370"),
            rate2=Decimal("5.370"),
            rate3=Decimal("5.370"),
            rate_after=Decimal("5.370"),
            monthly_override=Decimal("15700"),
            other_costs=current_costs,
        ),
        BankOffer(
            name="GSB (Q3 promotion)",
            principal=Decimal("2623000"),
            term_years=Decimal("20"),
            rate1=Decimal("1.990"),
            rate2=Decimal("3.805"),
            rate3=Decimal("3.805"),
            rate_after=Decimal("6.370"),
            other_costs=promo_costs,
        ),
    ]


def new_offer(existing: List[BankOffer]) -> BankOffer:
    """Template for an added offer, reusing the first offer's amount and term."""
    first = existing[0] if existing else None
    return BankOffer(
        name=f"New option #{len(existing) + 1}",
        principal=first.principal if first else Decimal("2000000"),
        term_years=first.term_years if first else Decimal("20"),
        rate1=Decimal("3.500"),
        rate2=Decimal("3.800"),
        rate3=Decimal("4.000"),
        rate_after=Decimal("6.500"),
    )


class OfferRepository:
    """Loads and saves the offer list under a fixed key."""

    def __init__(self, store: KeyValueStore, key: str = DEFAULT_STORE_KEY) -> None:
        self._store = store
        self._key = key

    def load(self) -> List[BankOffer]:
        """Return the stored offers, or the defaults if none can be read."""
        try:
            raw = self._store.get(self._key)
            if raw is None:
                return default_offers()
            payload = json.loads(raw)
            return [offer_from_dict(item) for item in payload]
        except (ValueError, KeyError, TypeError, AttributeError, InvalidOperation) as exc:
            logger.warning("Ignoring unreadable offers under %r: %s", self._key, exc)
            return default_offers()

    def save(self, offers: List[BankOffer]) -> None:
        self._store.set(self._key, json.dumps([offer_to_dict(o) for o in offers], ensure_ascii=False))
