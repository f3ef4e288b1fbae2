"""
Normalization of LiteAPI response shapes.

Vendor hotel records arrive with inconsistent field names (``id``, ``hotelId``,
``hotel_id`` ...). Each target field below has a fixed priority list of source
paths; the first non-empty value wins. Dotted paths walk nested objects and a
numeric segment indexes into a list (``images.0``).
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from smartstay.config.settings import PRICE_CHANGE_THRESHOLD_PERCENT
from smartstay.models.errors import UpstreamError
from smartstay.models.schemas import HotelSummary, PrebookResult, RateOffer

logger = logging.getLogger(__name__)

HOTEL_FIELD_SOURCES: Dict[str, List[str]] = {
    "id": ["id", "hotelId", "hotel_id"],
    "name": ["name", "hotel_name", "title"],
    "location": ["city", "location", "address.city", "address.full", "address"],
    "rating": ["rating", "stars", "score"],
    "price": ["price.amount", "price", "rate"],
    "stars": ["starRating", "stars"],
    "image": ["main_photo", "image", "images.0"],
    "facilities": ["hotelFacilities", "facilities"],
    "currency": ["currency"],
    "description": ["hotelDescription", "description"],
}

def _is_empty(value: Any) -> bool:
    if isinstance(value, (dict, list)):
        return not value
    return value is None or value == "" or value == 0


def _lookup(record: Any, path: str) -> Any:
    current = record
    for segment in path.split("."):
        if isinstance(current, dict):
            current = current.get(segment)
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            current = current[index] if index < len(current) else None
        else:
            return None
    return current


def pick(record: Dict[str, Any], paths: Iterable[str], kind: Optional[type] = None) -> Any:
    """First non-empty value among ``paths``, optionally restricted to ``kind``."""
    for path in paths:
        value = _lookup(record, path)
        if _is_empty(value):
            continue
        if kind is not None and not isinstance(value, kind):
            continue
        return value
    return None


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def normalize_hotel(raw: Dict[str, Any], index: int = 0) -> HotelSummary:
    sources = HOTEL_FIELD_SOURCES
    hotel_id = pick(raw, sources["id"], (str, int))
    return HotelSummary(
        id=str(hotel_id) if hotel_id is not None else str(index),
        name=pick(raw, sources["name"], str) or "Hotel",
        location=pick(raw, sources["location"], str) or "",
        rating=_to_float(pick(raw, sources["rating"], (int, float, str))),
        price=_to_float(pick(raw, sources["price"], (int, float, str))),
        stars=_to_float(pick(raw, sources["stars"], (int, float, str))),
        facilities=pick(raw, sources["facilities"], list) or [],
        currency=pick(raw, sources["currency"], str) or "USD",
        image=pick(raw, sources["image"], str),
        description=pick(raw, sources["description"], str) or "",
    )


def extract_items(payload: Any) -> List[Dict[str, Any]]:
    """LiteAPI returns ``{data: [...]}``, older shapes ``{hotels: [...]}`` or a bare list."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("data", "hotels"):
            if isinstance(payload.get(key), list):
                return payload[key]
    return []


def unwrap_data(payload: Any) -> Any:
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _first_dict(items: Any) -> Dict[str, Any]:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return {}


def unwrap_record(payload: Any, message: str) -> Dict[str, Any]:
    """The single object a 2xx reply carries. Any other shape is an upstream failure."""
    data = unwrap_data(payload)
    if not data:
        return {}
    if not isinstance(data, dict):
        logger.error("Unexpected LiteAPI reply shape (%s): %r", type(data).__name__, payload)
        raise UpstreamError(message, body=payload)
    return data


# ============================================
# Rates
# ============================================

def describe_cancellation(policies: Any) -> str:
    if isinstance(policies, str):
        return policies
    if not isinstance(policies, dict):
        return ""

    tag = (policies.get("refundableTag") or "").upper()
    infos = policies.get("cancelPolicyInfos")
    first_info = infos[0] if isinstance(infos, list) and infos else None
    if tag == "NRFN":
        return "Non-refundable"
    if isinstance(first_info, dict) and first_info.get("cancelTime"):
        return f"free cancellation until {first_info['cancelTime']}"
    if tag == "RFN":
        return "free cancellation"
    return ""


def _room_type_total(room_type: Dict[str, Any]) -> tuple:
    offer_rate = room_type.get("offerRetailRate") or {}
    if offer_rate.get("amount") is not None:
        return _to_float(offer_rate["amount"]), offer_rate.get("currency")

    total, currency = 0.0, None
    for rate in room_type.get("rates") or []:
        for amount in (rate.get("retailRate") or {}).get("total") or []:
            total += _to_float(amount.get("amount"))
            currency = currency or amount.get("currency")
    return total, currency


def flatten_rate_offers(payload: Any, default_currency: str = "USD") -> List[RateOffer]:
    """One RateOffer per vendor room type, hotels in response order."""
    offers = []
    for hotel in extract_items(payload):
        hotel_id = str(pick(hotel, HOTEL_FIELD_SOURCES["id"], (str, int)) or "")
        for room_type in hotel.get("roomTypes") or []:
            offer_id = room_type.get("offerId")
            if not offer_id:
                continue
            rates = room_type.get("rates") or [{}]
            first_rate = rates[0]
            total, currency = _room_type_total(room_type)
            offers.append(
                RateOffer(
                    offer_id=offer_id,
                    hotel_id=hotel_id,
                    room_type=first_rate.get("name") or "Room",
                    board_type=first_rate.get("boardName") or "Room Only",
                    total_price=total,
                    currency=currency or default_currency,
                    cancellation_policy=describe_cancellation(first_rate.get("cancellationPolicies")),
                )
            )
    return offers


def flag_offer_changes(fresh: List[RateOffer], previous: List[RateOffer]) -> List[RateOffer]:
    """Mark offers whose price or cancellation policy moved since the previous fetch.

    Offers without a previous counterpart keep both flags false.
    """
    previous_by_id = {offer.offer_id: offer for offer in previous}
    flagged = []
    for offer in fresh:
        before = previous_by_id.get(offer.offer_id)
        if before is None:
            flagged.append(offer)
            continue
        flagged.append(
            offer.model_copy(
                update={
                    "price_changed": (
                        before.total_price != offer.total_price or before.currency != offer.currency
                    ),
                    "cancellation_changed": before.cancellation_policy != offer.cancellation_policy,
                }
            )
        )
    return flagged


# ============================================
# Prebook
# ============================================

def build_prebook_warnings(
    price_difference_percent: Any,
    cancellation_changed: Any,
    board_changed: Any,
) -> List[str]:
    warnings = []
    difference = _to_float(price_difference_percent)
    if difference > PRICE_CHANGE_THRESHOLD_PERCENT:
        warnings.append(f"Price changed by {difference:g}% since the rate search")
    if cancellation_changed:
        warnings.append("Cancellation policy changed since the rate search")
    if board_changed:
        warnings.append("Board type changed since the rate search")
    return warnings


def normalize_prebook(payload: Any) -> PrebookResult:
    data = unwrap_record(payload, "Failed to prebook rate")
    first_room = _first_dict(data.get("roomTypes"))
    first_rate = _first_dict(first_room.get("rates"))

    price = data.get("price")
    if isinstance(price, dict):
        price = price.get("amount")

    warnings = build_prebook_warnings(
        data.get("priceDifferencePercent"),
        data.get("cancellationChanged"),
        data.get("boardChanged"),
    )
    if warnings:
        logger.info("Prebook %s returned warnings: %s", data.get("prebookId"), warnings)

    return PrebookResult(
        prebook_id=str(data.get("prebookId") or ""),
        offer_id=data.get("offerId"),
        hotel_id=data.get("hotelId"),
        total_price=_to_float(price) if price is not None else None,
        currency=data.get("currency"),
        cancellation_policy=describe_cancellation(first_rate.get("cancellationPolicies")),
        board_type=first_rate.get("boardName"),
        price_difference_percent=_to_float(data.get("priceDifferencePercent")),
        warnings=warnings,
    )
