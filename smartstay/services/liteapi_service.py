import hashlib
import hmac
import logging
import re
import time
from datetime import date, timedelta
from typing import Any, Dict, Optional

import httpx

from smartstay.config.settings import (
    LITEAPI_AUTH_SCHEMES,
    NON_REFUNDABLE_MARKER,
    Settings,
    get_settings,
)
from smartstay.models.errors import (
    ConfigurationError,
    GatewayTimeoutError,
    UpstreamError,
    ValidationError,
)
from smartstay.models.schemas import (
    BookRequest,
    BookingResult,
    CancellationResult,
    PrebookResult,
    RatesRequest,
    RatesResponse,
    SearchQuery,
    SearchResponse,
)
from smartstay.utils.normalizers import (
    extract_items,
    flag_offer_changes,
    flatten_rate_offers,
    normalize_hotel,
    normalize_prebook,
    unwrap_data,
    unwrap_record,
)
from smartstay.utils.validators import QueryValidator, parse_iso_date

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_METERS = 5000
ANALYTICS_WINDOW_DAYS = 7
AVAILABILITY_TIMEOUT_SECONDS = 1.5


def resolve_location(query: SearchQuery, default_country: str) -> Dict[str, Any]:
    """Exactly one location selector reaches the vendor.

    Priority: place id, then coordinates, then country/city. Without any
    selector the default country is used.
    """
    if (query.latitude is None) != (query.longitude is None):
        raise ValidationError("latitude and longitude must be provided together")

    if query.place_id:
        return {"placeId": query.place_id}

    if query.latitude is not None:
        return {
            "latitude": query.latitude,
            "longitude": query.longitude,
            "radius": query.radius or DEFAULT_RADIUS_METERS,
        }

    location = {"countryCode": (query.country_code or default_country).upper()}
    if query.city_name:
        location["cityName"] = query.city_name
    return location


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_code(body: Any) -> str:
    """Vendor error codes appear under several keys depending on the endpoint."""
    if not isinstance(body, dict):
        return str(body or "")

    candidates = [body.get("errorCode"), body.get("error_code")]
    error = body.get("error")
    if isinstance(error, dict):
        candidates.extend([error.get("code"), error.get("message")])
    elif error:
        candidates.append(error)
    data = body.get("data")
    if isinstance(data, dict):
        candidates.extend([data.get("errorCode"), data.get("error_code")])

    return " ".join(str(c) for c in candidates if c)


def is_non_refundable(code: str) -> bool:
    normalized = re.sub(r"[\s-]", "_", code or "").upper()
    return NON_REFUNDABLE_MARKER in normalized


class LiteAPIService:
    """Gateway to the LiteAPI hotel inventory API.

    A new instance is created per request from the current configuration;
    each call opens its own ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.transport = transport
        self._validate_config()

    def _validate_config(self):
        s = self.settings
        if not s.LITEAPI_BASE_URL or not re.match(r"^https?://", s.LITEAPI_BASE_URL, re.IGNORECASE):
            raise ConfigurationError(
                f"Invalid LiteAPI base URL: {s.LITEAPI_BASE_URL or '(empty)'}"
            )
        if s.LITEAPI_AUTH_SCHEME not in LITEAPI_AUTH_SCHEMES:
            raise ConfigurationError(
                f"Unknown LiteAPI auth scheme: {s.LITEAPI_AUTH_SCHEME}",
                detail={"supported": list(LITEAPI_AUTH_SCHEMES)},
            )
        if s.LITEAPI_AUTH_SCHEME != "none" and not s.LITEAPI_KEY:
            raise ConfigurationError("LiteAPI key not configured. Set LITEAPI_KEY in .env")
        if s.LITEAPI_AUTH_SCHEME == "hmac" and not s.LITEAPI_HMAC_SECRET:
            raise ConfigurationError(
                "LiteAPI secure auth requires LITEAPI_HMAC_SECRET in .env"
            )

    def _auth_headers(self) -> Dict[str, str]:
        s = self.settings
        scheme = s.LITEAPI_AUTH_SCHEME
        if scheme == "bearer":
            return {s.LITEAPI_AUTH_HEADER_NAME: f"Bearer {s.LITEAPI_KEY}"}
        if scheme == "apikey":
            return {s.LITEAPI_AUTH_HEADER_NAME: s.LITEAPI_KEY}
        if scheme == "hmac":
            timestamp = str(int(time.time()))
            signature = hmac.new(
                s.LITEAPI_HMAC_SECRET.encode(),
                f"{s.LITEAPI_KEY}{timestamp}".encode(),
                hashlib.sha256,
            ).hexdigest()
            return {
                s.LITEAPI_AUTH_HEADER_NAME: s.LITEAPI_KEY,
                "X-Timestamp": timestamp,
                "X-Signature": signature,
            }
        return {}

    def _build_client(self) -> httpx.AsyncClient:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **self._auth_headers(),
        }
        return httpx.AsyncClient(
            base_url=self.settings.LITEAPI_BASE_URL,
            timeout=self.settings.liteapi_timeout_seconds,
            headers=headers,
            transport=self.transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Single vendor call. Failures are logged and raised, never retried."""
        params = {k: v for k, v in (params or {}).items() if v is not None}
        message = f"Failed to {action}"

        async with self._build_client() as client:
            try:
                response = await client.request(method, path, params=params, json=json)
            except httpx.TimeoutException as e:
                logger.error("LiteAPI %s timed out: %s", action, e)
                raise GatewayTimeoutError(
                    message, body=f"Timed out after {self.settings.liteapi_timeout_seconds}s"
                )
            except httpx.HTTPError as e:
                logger.error("LiteAPI %s transport error: %s", action, e)
                raise UpstreamError(message, body=str(e))

        body = _response_body(response)
        if response.is_error:
            logger.error(
                "LiteAPI %s error: status=%s body=%s", action, response.status_code, body
            )
            raise UpstreamError(message, status=response.status_code, body=body)
        return body

    # ============================================
    # Hotels
    # ============================================

    async def search(self, query: SearchQuery) -> SearchResponse:
        """Search hotels by place, coordinates or country/city"""
        params = resolve_location(query, self.settings.LITEAPI_DEFAULT_COUNTRY)
        if query.ai_search:
            params["aiSearch"] = query.ai_search
        if query.facility_ids:
            params["facilityIds"] = ",".join(str(f) for f in query.facility_ids)
            params["strictFacilityFiltering"] = str(query.strict_facility_filtering).lower()
        params["offset"] = query.offset
        params["limit"] = query.limit

        logger.info("Hotel search: %s", params)
        payload = await self._request("GET", "/data/hotels", "search hotels", params=params)

        items = extract_items(payload)
        hotels = [normalize_hotel(item, index) for index, item in enumerate(items)]
        total = payload.get("total") if isinstance(payload, dict) else None
        limit = max(query.limit, 1)
        return SearchResponse(
            hotels=hotels,
            total=int(total) if isinstance(total, (int, float)) else len(hotels),
            page=query.offset // limit + 1,
            limit=query.limit,
        )

    async def get_details(self, hotel_id: str):
        """Get the details of a hotel"""
        hotel_id = QueryValidator.require(hotel_id, "hotelId")
        return await self._request(
            "GET", "/data/hotel", "get hotel details", params={"hotelId": hotel_id}
        )

    async def get_reviews(self, hotel_id: str, limit: int = 20, with_sentiment: bool = True):
        """Get hotel reviews; sentiment is computed by the vendor"""
        hotel_id = QueryValidator.require(hotel_id, "hotelId")
        params = {
            "hotelId": hotel_id,
            "limit": limit,
            "getSentiment": str(bool(with_sentiment)).lower(),
        }
        return await self._request("GET", "/data/reviews", "get hotel reviews", params=params)

    # ============================================
    # Rates and booking
    # ============================================

    async def search_rates(self, request: RatesRequest) -> RatesResponse:
        """Rates for a batch of hotels. Batch sizing is left to the caller."""
        if not request.hotel_ids:
            raise ValidationError("hotelIds is required")
        parse_iso_date(request.checkin, "checkin")
        parse_iso_date(request.checkout, "checkout")

        body = {
            "hotelIds": request.hotel_ids,
            "checkin": request.checkin,
            "checkout": request.checkout,
            "occupancies": [o.model_dump() for o in request.occupancies],
            "currency": request.currency,
            "guestNationality": request.guest_nationality,
        }
        logger.info(
            "Rate search for %d hotel(s) %s -> %s",
            len(request.hotel_ids), request.checkin, request.checkout,
        )
        payload = await self._request("POST", "/hotels/rates", "search rates", json=body)

        offers = flatten_rate_offers(payload, default_currency=request.currency)
        return RatesResponse(offers=flag_offer_changes(offers, request.previous_offers))

    @staticmethod
    def _availability_params(id_field: str, hotel_ids: Optional[str], checkin: Optional[str],
                             checkout: Optional[str], adults: Optional[int], **optional) -> Dict[str, Any]:
        if not (hotel_ids and checkin and checkout and adults):
            raise ValidationError(f"{id_field}, checkin, checkout and adults are required")
        parse_iso_date(checkin, "checkin")
        parse_iso_date(checkout, "checkout")
        params = {id_field: hotel_ids, "checkin": checkin, "checkout": checkout, "adults": adults}
        params.update(optional)
        params["currency"] = params.get("currency") or "USD"
        params["timeout"] = params.get("timeout") or AVAILABILITY_TIMEOUT_SECONDS
        return params

    async def minimum_rates(self, hotel_ids: Optional[str], checkin: Optional[str], checkout: Optional[str],
                            adults: Optional[int], guest_nationality: Optional[str] = None,
                            currency: Optional[str] = None, timeout: Optional[float] = None):
        """Cheapest rate per hotel; ``hotel_ids`` is a comma-separated list"""
        params = self._availability_params(
            "hotelIds", hotel_ids, checkin, checkout, adults,
            guestNationality=guest_nationality, currency=currency, timeout=timeout,
        )
        return await self._request(
            "GET", "/rates/minimumRateAvailability", "get minimum rates", params=params
        )

    async def rate_availability(self, hotel_id: Optional[str], checkin: Optional[str], checkout: Optional[str],
                                adults: Optional[int], children: Optional[str] = None,
                                guest_nationality: Optional[str] = None, currency: Optional[str] = None,
                                timeout: Optional[float] = None):
        params = self._availability_params(
            "hotelId", hotel_id, checkin, checkout, adults,
            children=children, guestNationality=guest_nationality, currency=currency, timeout=timeout,
        )
        return await self._request(
            "GET", "/rates/rateAvailability", "get rate availability", params=params
        )

    async def prebook(self, offer_id, use_payment_sdk: bool = True) -> PrebookResult:
        """Place a prebook hold on an offer"""
        if isinstance(offer_id, list):
            offer_id = offer_id[0] if offer_id else None
        offer_id = QueryValidator.require(offer_id, "offerId")

        payload = await self._request(
            "POST",
            "/rates/prebook",
            "prebook rate",
            json={"offerId": offer_id, "usePaymentSdk": use_payment_sdk},
        )
        result = normalize_prebook(payload)
        if not result.prebook_id:
            logger.error("LiteAPI prebook returned no prebookId: %s", payload)
            raise UpstreamError("Failed to prebook rate", body=payload)
        return result

    async def book(self, request: BookRequest) -> BookingResult:
        """Confirm a booking from a prebook hold and a tokenized payment"""
        prebook_id = QueryValidator.require(request.prebook_id, "prebookId")
        holder_name = QueryValidator.require(request.holder_name, "holderName")

        first_name, _, last_name = holder_name.partition(" ")
        holder = {
            "firstName": first_name,
            "lastName": last_name.strip(),
            "email": request.email,
            "phone": request.phone,
        }
        guests = [g.model_dump(by_alias=True) for g in request.guests] or [
            {
                "occupancyNumber": 1,
                "firstName": holder["firstName"],
                "lastName": holder["lastName"],
                "email": request.email,
            }
        ]
        payment = {"method": request.payment.method}
        if request.payment.token:
            payment["transactionId"] = request.payment.token

        payload = await self._request(
            "POST",
            "/rates/book",
            "book rate",
            json={"prebookId": prebook_id, "holder": holder, "guests": guests, "payment": payment},
        )

        data = unwrap_record(payload, "Failed to book rate")
        if not data.get("bookingId"):
            logger.error("LiteAPI book returned no bookingId: %s", payload)
            raise UpstreamError("Failed to book rate", body=payload)

        price = data.get("price")
        if isinstance(price, dict):
            price = price.get("amount")
        hotel = data.get("hotel") if isinstance(data.get("hotel"), dict) else {}
        logger.info("Booking confirmed: %s", data["bookingId"])
        return BookingResult(
            booking_id=str(data["bookingId"]),
            hotel_confirmation_code=data.get("hotelConfirmationCode"),
            status=data.get("status"),
            hotel_id=hotel.get("hotelId") or data.get("hotelId"),
            checkin=data.get("checkin"),
            checkout=data.get("checkout"),
            total_price=float(price) if price is not None else None,
            currency=data.get("currency"),
            holder=data.get("holder") or holder,
            guests=data.get("guests") or guests,
        )

    # ============================================
    # Bookings
    # ============================================

    async def list_bookings(self, client_reference: Optional[str] = None, guest_id: Optional[str] = None):
        params = {"clientReference": client_reference, "guestId": guest_id}
        return await self._request("GET", "/bookings", "list bookings", params=params)

    async def get_booking(self, booking_id: str):
        booking_id = QueryValidator.require(booking_id, "bookingId")
        return await self._request("GET", f"/bookings/{booking_id}", "get booking")

    async def cancel(self, booking_id: str) -> CancellationResult:
        """Cancel a booking and report the refund outcome"""
        booking_id = QueryValidator.require(booking_id, "bookingId")
        try:
            payload = await self._request(
                "PUT", f"/bookings/{booking_id}", "cancel booking", json={}
            )
        except UpstreamError as e:
            if is_non_refundable(_error_code(e.body)):
                logger.info("Booking %s is non-refundable", booking_id)
                return self._non_refundable(booking_id, e.body)
            raise

        if is_non_refundable(_error_code(payload)):
            logger.info("Booking %s is non-refundable", booking_id)
            return self._non_refundable(booking_id, payload)

        data = unwrap_record(payload, "Failed to cancel booking")
        return CancellationResult(
            booking_id=booking_id,
            status=data.get("status"),
            can_cancel=True,
            refund_amount=data.get("refund_amount"),
            cancellation_fee=data.get("cancellation_fee"),
            currency=data.get("currency"),
            is_non_refundable=False,
        )

    @staticmethod
    def _non_refundable(booking_id: str, body: Any) -> CancellationResult:
        data = unwrap_data(body) if isinstance(body, dict) else {}
        data = data if isinstance(data, dict) else {}
        return CancellationResult(
            booking_id=booking_id,
            status=data.get("status"),
            can_cancel=False,
            refund_amount=0,
            cancellation_fee=data.get("cancellation_fee"),
            currency=data.get("currency"),
            is_non_refundable=True,
        )

    # ============================================
    # Reference data
    # ============================================

    async def list_currencies(self):
        return await self._request("GET", "/data/currencies", "list currencies")

    async def list_countries(self):
        return await self._request("GET", "/data/countries", "list countries")

    async def list_cities(self, country_code: str):
        country_code = QueryValidator.require(country_code, "countryCode")
        return await self._request(
            "GET", "/data/cities", "list cities", params={"countryCode": country_code.upper()}
        )

    async def list_facilities(self):
        return await self._request("GET", "/data/facilities", "list facilities")

    async def list_iata_codes(self):
        return await self._request("GET", "/data/iataCodes", "list IATA codes")

    async def search_places(self, text_query: str):
        text_query = QueryValidator.sanitize_query(text_query, "textQuery")
        return await self._request(
            "GET", "/data/places", "search places", params={"textQuery": text_query}
        )

    # ============================================
    # Analytics (display only)
    # ============================================

    async def analytics(self, report: str, date_from: Optional[str] = None, date_to: Optional[str] = None):
        paths = {
            "weekly": "/analytics/weekly",
            "market": "/analytics/markets",
            "detailed": "/analytics/report",
        }
        if report not in paths:
            raise ValidationError(f"Unknown analytics report: {report}", detail=list(paths))

        today = date.today()
        body = {
            "from": date_from or (today - timedelta(days=ANALYTICS_WINDOW_DAYS)).isoformat(),
            "to": date_to or today.isoformat(),
        }
        parse_iso_date(body["from"], "from")
        parse_iso_date(body["to"], "to")
        return await self._request("POST", paths[report], f"load {report} analytics", json=body)


def get_liteapi_service() -> LiteAPIService:
    """FastAPI dependency: one service per request, built from current settings"""
    return LiteAPIService()
