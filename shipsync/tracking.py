"""Tracking-number parsing and carrier inference.

Suppliers send one comma-separated string per shipment, one token per parcel.
The platform accepts a single carrier per fulfillment, so the per-parcel
carriers are collapsed into one by plurality vote.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Tuple

from .domain import TrackingParcel, TrackingShipment
from .errors import ValidationError

OTHER_CARRIER = "Other"


@dataclass(frozen=True)
class CarrierRule:
    pattern: Pattern[str]
    carrier: str
    url_template: str

    def matches(self, number: str) -> bool:
        return bool(self.pattern.match(number))

    def url_for(self, number: str) -> str:
        return self.url_template.format(number=number)


# Evaluated top to bottom; the first match wins. Patterns overlap (a
# 14-digit number starting with 7 is DPD, never DAO), so order matters.
CARRIER_RULES: Tuple[CarrierRule, ...] = (
    CarrierRule(re.compile(r"^\d{14,15}$"), "DPD", "https://tracking.dpd.de/parcelstatus?query={number}"),
    CarrierRule(re.compile(r"^[A-Z0-9]{8}$"), "GLS", "https://gls-group.eu/EU/en/parcel-tracking?match={number}"),
    CarrierRule(re.compile(r"^\d{18}$"), "PostNord", "https://www.postnord.dk/en/track-and-trace?id={number}"),
    CarrierRule(re.compile(r"^7\d{13}$"), "DAO", "https://www.dao.as/tracking?code={number}"),
    CarrierRule(re.compile(r"^1Z[A-Z0-9]+$"), "UPS", "https://www.ups.com/track?tracknum={number}"),
    CarrierRule(re.compile(r"^\d{10}$"), "DHL", "https://www.dhl.com/en/express/tracking.html?AWB={number}"),
)

URL_CARRIER_HINTS: Tuple[Tuple[str, str], ...] = (
    ("postnord", "PostNord"),
    ("gls-group", "GLS"),
    ("dao.as", "DAO"),
    ("ups.com", "UPS"),
    ("dhl.com", "DHL"),
    ("dpd", "DPD"),
    ("bring", "Bring"),
    ("fedex", "FedEx"),
)

_URL_NUMBER_PARAM = re.compile(r"\b(query|match)=[\w,]+")


def split_tracking_numbers(raw_numbers: str) -> List[str]:
    return [token.strip() for token in (raw_numbers or "").split(",") if token.strip()]


def detect_carrier(number: str) -> Optional[CarrierRule]:
    for rule in CARRIER_RULES:
        if rule.matches(number):
            return rule
    return None


def detect_carrier_from_url(tracking_url: Optional[str]) -> str:
    if not tracking_url:
        return OTHER_CARRIER
    lowered = tracking_url.lower()
    for needle, carrier in URL_CARRIER_HINTS:
        if needle in lowered:
            return carrier
    return OTHER_CARRIER


def fallback_url_for(number: str, fallback_url: Optional[str]) -> str:
    if not fallback_url:
        return ""
    return _URL_NUMBER_PARAM.sub(lambda match: f"{match.group(1)}={number}", fallback_url, count=1)


def resolve_carrier(carriers: List[str]) -> str:
    """Plurality vote; ties go to the carrier seen first."""
    counts: Dict[str, int] = {}
    for carrier in carriers:
        counts[carrier] = counts.get(carrier, 0) + 1
    winner = carriers[0]
    for carrier in counts:
        if counts[carrier] > counts[winner]:
            winner = carrier
    return winner


def normalize_tracking(
    raw_numbers: str,
    fallback_carrier: Optional[str] = None,
    fallback_url: Optional[str] = None,
) -> TrackingShipment:
    numbers = split_tracking_numbers(raw_numbers)
    if not numbers:
        raise ValidationError("No tracking numbers")

    default_carrier = fallback_carrier or detect_carrier_from_url(fallback_url)
    parcels: List[TrackingParcel] = []
    for number in numbers:
        rule = detect_carrier(number)
        if rule:
            parcels.append(TrackingParcel(number=number, carrier=rule.carrier, url=rule.url_for(number)))
        else:
            parcels.append(
                TrackingParcel(number=number, carrier=default_carrier, url=fallback_url_for(number, fallback_url))
            )

    return TrackingShipment(
        carrier=resolve_carrier([parcel.carrier for parcel in parcels]),
        numbers=[parcel.number for parcel in parcels],
        urls=[parcel.url for parcel in parcels],
        parcels=parcels,
    )
