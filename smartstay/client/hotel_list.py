"""
In-memory hotel list for one browser session.

Rates are fetched in sequential batches after each search. Every search bumps
``generation``; a batch result tagged with an older generation is dropped so a
slow response from a previous search never overwrites the current list.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from smartstay.models.schemas import HotelSummary, RateOffer

logger = logging.getLogger(__name__)

MAX_COMPARE = 3


class ListFilters(BaseModel):
    stars: Optional[int] = None
    amenities: List[str] = []
    min_price: Optional[float] = None
    max_price: Optional[float] = None


def _facility_text(facility: Any) -> str:
    if isinstance(facility, dict):
        return str(facility.get("name") or facility.get("facility") or "")
    return str(facility)


def matches_filters(hotel: HotelSummary, filters: ListFilters) -> bool:
    if filters.stars is not None and math.floor(hotel.stars) != filters.stars:
        return False
    if filters.amenities:
        names = [_facility_text(f).lower() for f in hotel.facilities]
        for wanted in filters.amenities:
            if not any(wanted.lower() in name for name in names):
                return False
    # Hotels without a known price are kept; price filters only apply once rates land
    if hotel.price:
        if filters.min_price is not None and hotel.price < filters.min_price:
            return False
        if filters.max_price is not None and hotel.price > filters.max_price:
            return False
    return True


def apply_smart_filter(params: Dict[str, Any], filters: ListFilters,
                       smart: Any) -> tuple:
    """Merge a smart-filter result into search params and list filters.

    A raw string (the model did not return JSON) leaves both untouched.
    """
    if not isinstance(smart, dict):
        return dict(params), filters

    params = dict(params)
    if smart.get("destination"):
        params["destination"] = smart["destination"]
        params.pop("country_code", None)
    if smart.get("neighborhood"):
        params["aiSearch"] = smart["neighborhood"]

    update: Dict[str, Any] = {}
    if isinstance(smart.get("stars"), (int, float)):
        update["stars"] = int(smart["stars"])
    if isinstance(smart.get("amenities"), list):
        update["amenities"] = [str(a) for a in smart["amenities"] if a]
    if isinstance(smart.get("minPrice"), (int, float)):
        update["min_price"] = float(smart["minPrice"])
    if isinstance(smart.get("maxPrice"), (int, float)):
        update["max_price"] = float(smart["maxPrice"])
    return params, filters.model_copy(update=update)


class HotelList:
    def __init__(self):
        self.generation = 0
        self.hotels: List[HotelSummary] = []
        self.total = 0
        self.filters = ListFilters()
        self.compare_ids: List[str] = []
        self.error = ""

    def start_search(self) -> int:
        """Invalidate in-flight batches; returns the token for the new search."""
        self.generation += 1
        self.hotels = []
        self.total = 0
        self.compare_ids = []
        self.error = ""
        return self.generation

    def load(self, generation: int, response: Dict[str, Any]) -> bool:
        if generation != self.generation:
            logger.info("Dropping stale search result (generation %s, current %s)",
                        generation, self.generation)
            return False
        self.hotels = [HotelSummary.model_validate(h) for h in response.get("hotels", [])]
        self.total = response.get("total", len(self.hotels))
        return True

    def fail(self, generation: int, message: str) -> bool:
        if generation != self.generation:
            return False
        self.error = message
        return True

    def apply_rate_batch(self, generation: int, offers: List[Any]) -> bool:
        """Set each hotel's price to its cheapest offer in the batch."""
        if generation != self.generation:
            logger.info("Dropping stale rate batch (generation %s, current %s)",
                        generation, self.generation)
            return False

        cheapest: Dict[str, RateOffer] = {}
        for raw in offers:
            offer = raw if isinstance(raw, RateOffer) else RateOffer.model_validate(raw)
            best = cheapest.get(offer.hotel_id)
            if best is None or offer.total_price < best.total_price:
                cheapest[offer.hotel_id] = offer

        self.hotels = [
            h.model_copy(update={"price": cheapest[h.id].total_price, "currency": cheapest[h.id].currency})
            if h.id in cheapest else h
            for h in self.hotels
        ]
        return True

    def hotel_ids(self) -> List[str]:
        return [h.id for h in self.hotels]

    def visible(self) -> List[HotelSummary]:
        return [h for h in self.hotels if matches_filters(h, self.filters)]

    def toggle_compare(self, hotel_id: str) -> bool:
        """Add or remove a hotel from the comparison; False when the cap is reached."""
        if hotel_id in self.compare_ids:
            self.compare_ids.remove(hotel_id)
            return True
        if len(self.compare_ids) >= MAX_COMPARE:
            return False
        self.compare_ids.append(hotel_id)
        return True

    def compared(self) -> List[HotelSummary]:
        by_id = {h.id: h for h in self.hotels}
        return [by_id[i] for i in self.compare_ids if i in by_id]
