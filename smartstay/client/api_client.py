"""
HTTP client for the SmartStay gateway, used by the Streamlit frontend.

Every method maps to one gateway route and raises ``ApiClientError`` with a
short user-facing message when the call fails. Nothing is retried; the UI
offers a manual retry instead.
"""

import logging
import os
from typing import Any, Dict, Iterator, List, Optional

import requests
from bs4 import BeautifulSoup
from dotenv import load_dotenv

from smartstay.config.settings import (
    DEFAULT_CURRENCY,
    DEFAULT_GUEST_NATIONALITY,
    RATE_BATCH_SIZE,
)
from smartstay.client.destinations import city_country_code
from smartstay.models.errors import ValidationError
from smartstay.utils.validators import validate_date_range

load_dotenv()

logger = logging.getLogger(__name__)

API_URL = os.getenv("SMARTSTAY_API_URL", "http://127.0.0.1:5000").rstrip("/")
DEFAULT_TIMEOUT = 30


class ApiClientError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.detail = detail


def chunked(items: List[str], size: int = RATE_BATCH_SIZE) -> Iterator[List[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def hotel_details_record(payload: Any) -> Dict[str, Any]:
    """Hotel details arrive in the vendor envelope, ``{"data": {...}}``."""
    if isinstance(payload, dict) and "data" in payload:
        payload = payload["data"]
    return payload if isinstance(payload, dict) else {}


def html_to_text(markup: Optional[str]) -> str:
    """Vendor descriptions are HTML. Only their text is shown."""
    if not markup:
        return ""
    soup = BeautifulSoup(markup, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text(" ", strip=True)


class SmartStayClient:
    def __init__(self, base_url: str = API_URL, session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _call(self, method: str, path: str, fallback: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.ConnectionError:
            logger.error("Cannot connect to gateway at %s", self.base_url)
            raise ApiClientError(f"Cannot connect to backend at {self.base_url}")
        except requests.exceptions.RequestException as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise ApiClientError(fallback, detail=str(e))

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {"error": response.text}
            logger.error("%s %s -> %s %s", method, path, response.status_code, body)
            message = body.get("error") if isinstance(body, dict) else None
            raise ApiClientError(message or fallback, status=response.status_code,
                                 detail=body.get("detail") if isinstance(body, dict) else body)
        return response.json()

    # ===== Health =====

    def health(self) -> Dict[str, Any]:
        return self._call("GET", "/api/health", "Backend unhealthy")

    # ===== Hotels =====

    def search_hotels(self, destination: Optional[str] = None, country_code: Optional[str] = None,
                      **filters) -> Dict[str, Any]:
        """Search hotels. The country code is derived from the city name when missing."""
        params = {k: v for k, v in filters.items() if v not in (None, "", [])}
        if destination:
            params["cityName"] = destination
            country_code = country_code or city_country_code(destination)
        if country_code:
            params["countryCode"] = country_code
        return self._call("GET", "/api/liteapi/hotels/search", "Failed to search hotels",
                          params=params)

    def get_hotel_details(self, hotel_id: str) -> Dict[str, Any]:
        return self._call("GET", f"/api/liteapi/hotels/{hotel_id}", "Failed to load hotel details")

    def get_hotel_reviews(self, hotel_id: str, limit: int = 20, get_sentiment: bool = True):
        params = {"hotelId": hotel_id, "limit": limit, "getSentiment": str(get_sentiment).lower()}
        return self._call("GET", "/api/liteapi/reviews", "Failed to load reviews", params=params)

    # ===== Rates and booking =====

    def search_rates(self, hotel_ids: List[str], checkin: str, checkout: str,
                     occupancies: Optional[List[Dict[str, Any]]] = None,
                     currency: str = DEFAULT_CURRENCY,
                     guest_nationality: str = DEFAULT_GUEST_NATIONALITY,
                     previous_offers: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
        try:
            validate_date_range(checkin, checkout)
        except ValidationError as e:
            raise ApiClientError(e.message, status=400)
        body = {
            "hotelIds": hotel_ids,
            "checkin": checkin,
            "checkout": checkout,
            "occupancies": occupancies or [{"adults": 2, "children": []}],
            "currency": currency,
            "guestNationality": guest_nationality,
            "previousOffers": previous_offers or [],
        }
        data = self._call("POST", "/api/liteapi/rates", "Failed to fetch room rates", json=body)
        return data.get("offers", [])

    def iter_rate_batches(self, hotel_ids: List[str], checkin: str, checkout: str,
                          batch_size: int = RATE_BATCH_SIZE, **options) -> Iterator[List[Dict[str, Any]]]:
        """Rates fetched one batch at a time; batches are never issued in parallel."""
        for batch in chunked(hotel_ids, batch_size):
            yield self.search_rates(batch, checkin, checkout, **options)

    def prebook(self, offer_id: str, use_payment_sdk: bool = True) -> Dict[str, Any]:
        return self._call("POST", "/api/liteapi/prebook", "Failed to reserve room",
                          json={"offerId": [offer_id], "usePaymentSdk": use_payment_sdk})

    def book(self, prebook_id: str, payment: Dict[str, Any], holder_name: str,
             email: str = "", phone: str = "", guests: Optional[List[Dict[str, Any]]] = None):
        body = {
            "prebookId": prebook_id,
            "payment": payment,
            "holderName": holder_name,
            "email": email,
            "phone": phone,
            "guests": guests or [],
        }
        return self._call("POST", "/api/liteapi/book", "Failed to complete booking", json=body)

    # ===== Bookings =====

    def list_bookings(self, client_reference: Optional[str] = None):
        params = {"clientReference": client_reference} if client_reference else {}
        return self._call("GET", "/api/liteapi/bookings", "Failed to load bookings", params=params)

    def get_booking(self, booking_id: str):
        return self._call("GET", f"/api/liteapi/bookings/{booking_id}", "Failed to load booking details")

    def cancel_booking(self, booking_id: str):
        return self._call("PUT", f"/api/liteapi/bookings/{booking_id}", "Failed to cancel booking")

    # ===== Reference data =====

    def reference_data(self, kind: str, **params):
        return self._call("GET", f"/api/liteapi/data/{kind}", f"Failed to load {kind}", params=params)

    def analytics(self, report: str):
        return self._call("GET", f"/api/liteapi/analytics/{report}", "Failed to load analytics data")

    # ===== AI =====

    def chat(self, messages: List[Dict[str, str]], persona: Optional[str] = None) -> str:
        body = {"messages": messages}
        if persona:
            body["persona"] = persona
        return self._call("POST", "/api/gemini/chat", "Chat failed", json=body)["reply"]

    def summarize_hotel(self, hotel: Dict[str, Any]) -> str:
        return self._call("POST", "/api/gemini/summarize-hotel", "AI summary unavailable.",
                          json={"hotel": hotel})["summary"]

    def compare_hotels(self, hotels: List[Dict[str, Any]]) -> str:
        return self._call("POST", "/api/gemini/compare", "Comparison failed. Try again.",
                          json={"hotels": hotels})["comparison"]

    def smart_filter(self, query: str):
        return self._call("POST", "/api/gemini/smart-filter", "Smart filter failed",
                          json={"query": query})["filter"]

    def travel_plan(self, destination: str, days: int = 3, preferences: str = "") -> str:
        body = {"destination": destination, "days": days, "preferences": preferences}
        return self._call("POST", "/api/gemini/travel-plan", "Travel plan failed", json=body)["plan"]
