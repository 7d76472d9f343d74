"""Offer kinds and their kind-specific terms.

Each offer kind has exactly one terms type, so code that dispatches on the
kind can rely on the shape of the terms it receives.
"""

import re
from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum

from protean.exceptions import ValidationError

_TIME_OF_DAY = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class OfferKind(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    PREPAID = "prepaid"
    DAILY_OFFER = "daily_offer"
    FREE_SHIPPING = "free_shipping"
    BOGO = "bogo"


@dataclass(frozen=True)
class PercentageTerms:
    percentage: float

    def validate(self) -> None:
        if not 0 < self.percentage <= 100:
            raise ValidationError({"percentage": ["Discount percentage must be between 0 and 100"]})


@dataclass(frozen=True)
class FixedTerms:
    amount: float

    def validate(self) -> None:
        if self.amount <= 0:
            raise ValidationError({"amount": ["Discount amount must be greater than 0"]})


@dataclass(frozen=True)
class PrepaidTerms:
    percentage: float
    min_discount: float | None = None
    max_discount: float | None = None

    def validate(self) -> None:
        if not 0 < self.percentage <= 100:
            raise ValidationError({"percentage": ["Prepaid discount percentage must be between 0 and 100"]})
        if self.min_discount is not None and self.max_discount is not None and self.min_discount > self.max_discount:
            raise ValidationError({"max_discount": ["Prepaid maximum discount must not be below the minimum"]})


@dataclass(frozen=True)
class DailyOfferTerms:
    """A flat amount off, limited to a date range and a daily time window."""

    amount: float
    product_ids: tuple[str, ...] = field(default_factory=tuple)
    starts_on: date | None = None
    ends_on: date | None = None
    opens_at: str | None = None
    closes_at: str | None = None

    def validate(self) -> None:
        if self.amount <= 0:
            raise ValidationError({"amount": ["Offer amount must be greater than 0"]})
        for label, value in (("opens_at", self.opens_at), ("closes_at", self.closes_at)):
            if value is not None and not _TIME_OF_DAY.match(value):
                raise ValidationError({label: ["Time must be in HH:MM format"]})
        if self.starts_on and self.ends_on and self.ends_on < self.starts_on:
            raise ValidationError({"ends_on": ["Offer end date must not precede its start date"]})


@dataclass(frozen=True)
class FreeShippingTerms:
    def validate(self) -> None:
        return None


@dataclass(frozen=True)
class BogoTerms:
    def validate(self) -> None:
        return None


OfferTerms = PercentageTerms | FixedTerms | PrepaidTerms | DailyOfferTerms | FreeShippingTerms | BogoTerms

TERMS_BY_KIND: dict[OfferKind, type] = {
    OfferKind.PERCENTAGE: PercentageTerms,
    OfferKind.FIXED: FixedTerms,
    OfferKind.PREPAID: PrepaidTerms,
    OfferKind.DAILY_OFFER: DailyOfferTerms,
    OfferKind.FREE_SHIPPING: FreeShippingTerms,
    OfferKind.BOGO: BogoTerms,
}


def encode_terms(terms: OfferTerms) -> dict:
    payload = asdict(terms)
    if isinstance(terms, DailyOfferTerms):
        payload["product_ids"] = list(terms.product_ids)
        payload["starts_on"] = terms.starts_on.isoformat() if terms.starts_on else None
        payload["ends_on"] = terms.ends_on.isoformat() if terms.ends_on else None
    return payload


def decode_terms(kind: OfferKind, payload: dict | None) -> OfferTerms:
    """Build the typed terms for ``kind`` from a plain dict."""
    terms_cls = TERMS_BY_KIND[kind]
    payload = dict(payload or {})

    if terms_cls is DailyOfferTerms:
        payload["product_ids"] = tuple(str(p) for p in payload.get("product_ids") or ())
        for key in ("starts_on", "ends_on"):
            value = payload.get(key)
            if isinstance(value, str):
                payload[key] = date.fromisoformat(value)

    try:
        return terms_cls(**payload)
    except TypeError as exc:
        raise ValidationError({"terms": [f"Invalid terms for {kind.value} offer: {exc}"]}) from exc
