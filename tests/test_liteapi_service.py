from __future__ import annotations

import json

import httpx
import pytest
from pydantic import ValidationError as SchemaValidationError

from smartstay.config.settings import Settings
from smartstay.models.errors import (
    ConfigurationError,
    GatewayTimeoutError,
    UpstreamError,
    ValidationError,
)
from smartstay.models.schemas import BookRequest, RateOffer, RatesRequest, SearchQuery
from smartstay.services.liteapi_service import LiteAPIService, is_non_refundable


def _ok(payload) -> httpx.Response:
    return httpx.Response(200, json=payload)


# ============================================
# Search
# ============================================

@pytest.mark.asyncio
async def test_search_without_location_uses_default_country(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({
        "data": [
            {
                "id": "lp19d9a",
                "name": "Sea View Residency",
                "city": "Mumbai",
                "rating": 8.4,
                "starRating": 4,
                "hotelFacilities": ["Outdoor pool", "Free WiFi"],
                "main_photo": "https://img.test/1.jpg",
                "currency": "INR",
            }
        ],
        "total": 1,
    }))
    service = LiteAPIService(settings=settings, transport=transport)

    result = await service.search(SearchQuery(ai_search="quiet hotel near the beach"))

    request = transport.requests[0]
    assert request.url.path == "/v3.0/data/hotels"
    assert request.url.params["countryCode"] == "US"
    assert request.url.params["aiSearch"] == "quiet hotel near the beach"
    assert request.headers["X-API-Key"] == "sand_test_key_1234"

    assert result.total == 1
    assert result.page == 1
    hotel = result.hotels[0]
    assert hotel.id == "lp19d9a"
    assert hotel.location == "Mumbai"
    assert hotel.stars == 4
    assert hotel.image == "https://img.test/1.jpg"
    assert hotel.facilities == ["Outdoor pool", "Free WiFi"]


@pytest.mark.asyncio
async def test_search_place_id_takes_priority(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({"data": []}))
    service = LiteAPIService(settings=settings, transport=transport)

    await service.search(SearchQuery(
        place_id="ChIJwe1EZjDG5zsRaYxkjY_tpF0",
        latitude=19.07,
        longitude=72.87,
        country_code="IN",
        city_name="Mumbai",
    ))

    params = transport.requests[0].url.params
    assert params["placeId"] == "ChIJwe1EZjDG5zsRaYxkjY_tpF0"
    assert "latitude" not in params
    assert "countryCode" not in params


@pytest.mark.asyncio
async def test_search_coordinates_get_default_radius(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({"data": []}))
    service = LiteAPIService(settings=settings, transport=transport)

    await service.search(SearchQuery(latitude=19.07, longitude=72.87, city_name="Mumbai"))

    params = transport.requests[0].url.params
    assert params["latitude"] == "19.07"
    assert params["radius"] == "5000"
    assert "cityName" not in params


@pytest.mark.asyncio
async def test_search_keeps_stay_details_for_the_rate_search(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({"data": []}))
    service = LiteAPIService(settings=settings, transport=transport)

    await service.search(SearchQuery(
        country_code="IN", city_name="Goa", checkin="2026-12-01", checkout="2026-12-03",
        adults=3, currency="INR",
    ))

    params = transport.requests[0].url.params
    assert params["cityName"] == "Goa"
    for name in ("checkin", "checkout", "adults", "rooms", "children", "currency"):
        assert name not in params


@pytest.mark.asyncio
async def test_search_latitude_without_longitude_is_rejected(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({"data": []}))
    service = LiteAPIService(settings=settings, transport=transport)

    with pytest.raises(ValidationError):
        await service.search(SearchQuery(latitude=19.07))
    assert transport.requests == []


@pytest.mark.asyncio
async def test_search_upstream_error_carries_vendor_status(settings, transport_factory) -> None:
    transport = transport_factory(
        lambda request: httpx.Response(401, json={"error": {"code": 401, "message": "Invalid API key"}})
    )
    service = LiteAPIService(settings=settings, transport=transport)

    with pytest.raises(UpstreamError) as excinfo:
        await service.search(SearchQuery(country_code="IN", city_name="Mumbai"))

    assert excinfo.value.status == 401
    assert excinfo.value.status_code == 401
    assert excinfo.value.body == {"error": {"code": 401, "message": "Invalid API key"}}
    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_timeout_is_reported_as_gateway_timeout(settings, transport_factory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    service = LiteAPIService(settings=settings, transport=transport_factory(handler))

    with pytest.raises(GatewayTimeoutError) as excinfo:
        await service.get_details("lp19d9a")
    assert excinfo.value.status_code == 504


@pytest.mark.asyncio
async def test_details_requires_hotel_id(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({}))
    service = LiteAPIService(settings=settings, transport=transport)

    with pytest.raises(ValidationError):
        await service.get_details("  ")
    assert transport.requests == []


@pytest.mark.asyncio
async def test_reviews_forward_sentiment_flag(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({"data": [], "sentimentAnalysis": {}}))
    service = LiteAPIService(settings=settings, transport=transport)

    await service.get_reviews("lp19d9a", limit=5, with_sentiment=False)

    params = transport.requests[0].url.params
    assert params["hotelId"] == "lp19d9a"
    assert params["limit"] == "5"
    assert params["getSentiment"] == "false"


# ============================================
# Rates
# ============================================

RATES_PAYLOAD = {
    "data": [
        {
            "hotelId": "lp19d9a",
            "roomTypes": [
                {
                    "offerId": "offer-deluxe",
                    "offerRetailRate": {"amount": 12500, "currency": "INR"},
                    "rates": [
                        {
                            "name": "Deluxe King",
                            "boardName": "Breakfast Included",
                            "cancellationPolicies": {
                                "refundableTag": "RFN",
                                "cancelPolicyInfos": [{"cancelTime": "2026-11-28 12:00:00"}],
                            },
                        }
                    ],
                },
                {
                    "offerId": "offer-standard",
                    "offerRetailRate": {"amount": 8000, "currency": "INR"},
                    "rates": [
                        {
                            "name": "Standard Twin",
                            "boardName": "Room Only",
                            "cancellationPolicies": {"refundableTag": "NRFN"},
                        }
                    ],
                },
            ],
        }
    ]
}


@pytest.mark.asyncio
async def test_rates_flatten_one_offer_per_room_type(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok(RATES_PAYLOAD))
    service = LiteAPIService(settings=settings, transport=transport)

    result = await service.search_rates(RatesRequest(
        hotel_ids=["lp19d9a"], checkin="2026-12-01", checkout="2026-12-03",
    ))

    body = json.loads(transport.requests[0].content)
    assert body["currency"] == "INR"
    assert body["guestNationality"] == "IN"
    assert body["occupancies"] == [{"adults": 2, "children": []}]

    deluxe, standard = result.offers
    assert deluxe.offer_id == "offer-deluxe"
    assert deluxe.room_type == "Deluxe King"
    assert deluxe.board_type == "Breakfast Included"
    assert deluxe.total_price == 12500
    assert deluxe.cancellation_policy == "free cancellation until 2026-11-28 12:00:00"
    assert standard.cancellation_policy == "Non-refundable"
    # No previous fetch: nothing can have changed
    assert not any(o.price_changed or o.cancellation_changed for o in result.offers)


@pytest.mark.asyncio
async def test_rates_flag_changes_against_previous_offers(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok(RATES_PAYLOAD))
    service = LiteAPIService(settings=settings, transport=transport)
    previous = [
        RateOffer(offer_id="offer-deluxe", hotel_id="lp19d9a", total_price=11000, currency="INR",
                  cancellation_policy="free cancellation until 2026-11-28 12:00:00"),
        RateOffer(offer_id="offer-standard", hotel_id="lp19d9a", total_price=8000, currency="INR",
                  cancellation_policy="free cancellation"),
    ]

    result = await service.search_rates(RatesRequest(
        hotel_ids=["lp19d9a"], checkin="2026-12-01", checkout="2026-12-03", previous_offers=previous,
    ))

    deluxe, standard = result.offers
    assert deluxe.price_changed and not deluxe.cancellation_changed
    assert standard.cancellation_changed and not standard.price_changed


@pytest.mark.asyncio
async def test_rates_reject_bad_dates_before_calling_vendor(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok(RATES_PAYLOAD))
    service = LiteAPIService(settings=settings, transport=transport)

    with pytest.raises(ValidationError):
        await service.search_rates(RatesRequest(hotel_ids=["lp19d9a"], checkin="01/12/2026", checkout="2026-12-03"))
    with pytest.raises(ValidationError):
        await service.search_rates(RatesRequest(hotel_ids=[], checkin="2026-12-01", checkout="2026-12-03"))
    assert transport.requests == []


# ============================================
# Prebook and book
# ============================================

@pytest.mark.asyncio
async def test_minimum_rates_defaults_currency_and_timeout(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({"data": [{"hotelId": "lp1", "price": 90}]}))
    service = LiteAPIService(settings=settings, transport=transport)

    result = await service.minimum_rates("lp1,lp2", "2026-12-01", "2026-12-03", 2)

    request = transport.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/v3.0/rates/minimumRateAvailability"
    assert request.url.params["hotelIds"] == "lp1,lp2"
    assert request.url.params["currency"] == "USD"
    assert request.url.params["timeout"] == "1.5"
    assert "guestNationality" not in request.url.params
    assert result == {"data": [{"hotelId": "lp1", "price": 90}]}


@pytest.mark.asyncio
async def test_rate_availability_requires_adults(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({}))
    service = LiteAPIService(settings=settings, transport=transport)

    with pytest.raises(ValidationError) as excinfo:
        await service.rate_availability("lp1", "2026-12-01", "2026-12-03", None)
    assert excinfo.value.message == "hotelId, checkin, checkout and adults are required"
    assert transport.requests == []


@pytest.mark.asyncio
async def test_prebook_reports_price_change_above_threshold(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({
        "data": {
            "prebookId": "pb-001",
            "offerId": "offer-deluxe",
            "price": 13500,
            "currency": "INR",
            "priceDifferencePercent": 8,
            "cancellationChanged": True,
            "boardChanged": False,
        }
    }))
    service = LiteAPIService(settings=settings, transport=transport)

    result = await service.prebook(["offer-deluxe"])

    assert json.loads(transport.requests[0].content) == {"offerId": "offer-deluxe", "usePaymentSdk": True}
    assert result.prebook_id == "pb-001"
    assert result.total_price == 13500
    assert result.warnings == [
        "Price changed by 8% since the rate search",
        "Cancellation policy changed since the rate search",
    ]


@pytest.mark.asyncio
async def test_prebook_small_price_drift_is_not_a_warning(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({"data": {"prebookId": "pb-002", "priceDifferencePercent": 5}}))
    service = LiteAPIService(settings=settings, transport=transport)

    result = await service.prebook("offer-deluxe")

    assert result.warnings == []


@pytest.mark.asyncio
async def test_prebook_without_prebook_id_is_an_upstream_error(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({"data": {"status": "pending"}}))
    service = LiteAPIService(settings=settings, transport=transport)

    with pytest.raises(UpstreamError):
        await service.prebook("offer-deluxe")


@pytest.mark.asyncio
async def test_book_sends_holder_and_token_only(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({
        "data": {
            "bookingId": "bk-777",
            "hotelConfirmationCode": "HCN-42",
            "status": "CONFIRMED",
            "price": {"amount": 12500},
            "currency": "INR",
        }
    }))
    service = LiteAPIService(settings=settings, transport=transport)

    result = await service.book(BookRequest.model_validate({
        "prebookId": "pb-001",
        "holderName": "Asha Rao",
        "email": "asha@example.com",
        "payment": {"method": "CREDIT_CARD", "token": "tok_abc", "holderName": "Asha Rao"},
    }))

    body = json.loads(transport.requests[0].content)
    assert transport.requests[0].url.path == "/v3.0/rates/book"
    assert body["holder"]["firstName"] == "Asha"
    assert body["holder"]["lastName"] == "Rao"
    assert body["guests"] == [
        {"occupancyNumber": 1, "firstName": "Asha", "lastName": "Rao", "email": "asha@example.com"}
    ]
    assert body["payment"] == {"method": "CREDIT_CARD", "transactionId": "tok_abc"}

    assert result.booking_id == "bk-777"
    assert result.hotel_confirmation_code == "HCN-42"
    assert result.total_price == 12500


def test_book_request_rejects_raw_card_fields() -> None:
    with pytest.raises(SchemaValidationError):
        BookRequest.model_validate({
            "prebookId": "pb-001",
            "holderName": "Asha Rao",
            "payment": {"method": "CREDIT_CARD", "cardNumber": "4111111111111111"},
        })


# ============================================
# Cancellation
# ============================================

@pytest.mark.asyncio
async def test_cancel_non_refundable_error_becomes_result(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: httpx.Response(
        400, json={"error": {"code": "NON_REFUNDABLE", "message": "Booking is non refundable"}}
    ))
    service = LiteAPIService(settings=settings, transport=transport)

    result = await service.cancel("bk-777")

    assert transport.requests[0].method == "PUT"
    assert result.can_cancel is False
    assert result.is_non_refundable is True
    assert result.refund_amount == 0


@pytest.mark.asyncio
async def test_cancel_refund_amount_is_preserved(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({
        "data": {"status": "CANCELLED", "refund_amount": 11200.5, "cancellation_fee": 1299.5, "currency": "INR"}
    }))
    service = LiteAPIService(settings=settings, transport=transport)

    result = await service.cancel("bk-777")

    assert result.can_cancel is True
    assert result.refund_amount == 11200.5
    assert result.cancellation_fee == 1299.5


@pytest.mark.asyncio
async def test_cancel_other_errors_propagate(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: httpx.Response(404, json={"error": {"message": "not found"}}))
    service = LiteAPIService(settings=settings, transport=transport)

    with pytest.raises(UpstreamError) as excinfo:
        await service.cancel("bk-missing")
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_book_list_reply_is_an_upstream_error(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({"data": ["bk-777"]}))
    service = LiteAPIService(settings=settings, transport=transport)

    with pytest.raises(UpstreamError) as excinfo:
        await service.book(BookRequest.model_validate({
            "prebookId": "pb-001",
            "holderName": "Asha Rao",
            "email": "asha@example.com",
            "payment": {"method": "CREDIT_CARD", "token": "tok_abc"},
        }))

    assert excinfo.value.status_code == 502
    assert excinfo.value.body == {"data": ["bk-777"]}


@pytest.mark.asyncio
async def test_cancel_text_reply_is_an_upstream_error(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: httpx.Response(200, text="OK"))
    service = LiteAPIService(settings=settings, transport=transport)

    with pytest.raises(UpstreamError) as excinfo:
        await service.cancel("bk-777")
    assert excinfo.value.message == "Failed to cancel booking"
    assert excinfo.value.body == "OK"


def test_non_refundable_marker_matching() -> None:
    assert is_non_refundable("NON_REFUNDABLE")
    assert is_non_refundable("non-refundable booking")
    assert not is_non_refundable("REFUNDABLE")


# ============================================
# Configuration and auth
# ============================================

def test_missing_key_is_a_configuration_error(settings) -> None:
    settings.LITEAPI_KEY = ""
    with pytest.raises(ConfigurationError):
        LiteAPIService(settings=settings)


@pytest.mark.parametrize("name", ["LITEAPI_TIMEOUT_MS", "GEMINI_TIMEOUT_S", "PORT"])
def test_malformed_numbers_are_configuration_errors(env, name) -> None:
    env.setenv(name, "12s")

    with pytest.raises(ConfigurationError) as excinfo:
        Settings()
    assert name in excinfo.value.message


def test_malformed_base_url_is_a_configuration_error(settings) -> None:
    settings.LITEAPI_BASE_URL = "api.liteapi.travel"
    with pytest.raises(ConfigurationError):
        LiteAPIService(settings=settings)


def test_hmac_mode_requires_secret(settings) -> None:
    settings.LITEAPI_AUTH_SCHEME = "hmac"
    with pytest.raises(ConfigurationError):
        LiteAPIService(settings=settings)


@pytest.mark.asyncio
async def test_hmac_mode_signs_requests(settings, transport_factory) -> None:
    settings.LITEAPI_AUTH_SCHEME = "hmac"
    settings.LITEAPI_HMAC_SECRET = "s3cret"
    transport = transport_factory(lambda request: _ok({"data": []}))
    service = LiteAPIService(settings=settings, transport=transport)

    await service.list_currencies()

    headers = transport.requests[0].headers
    assert headers["X-API-Key"] == "sand_test_key_1234"
    assert headers["X-Timestamp"].isdigit()
    assert len(headers["X-Signature"]) == 64


@pytest.mark.asyncio
async def test_bearer_mode_uses_authorization_header(settings, transport_factory) -> None:
    settings.LITEAPI_AUTH_SCHEME = "bearer"
    settings.LITEAPI_AUTH_HEADER_NAME = "Authorization"
    transport = transport_factory(lambda request: _ok({"data": []}))
    service = LiteAPIService(settings=settings, transport=transport)

    await service.list_countries()

    assert transport.requests[0].headers["Authorization"] == "Bearer sand_test_key_1234"


# ============================================
# Reference data and analytics
# ============================================

@pytest.mark.asyncio
async def test_places_search_sends_text_query(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({"data": []}))
    service = LiteAPIService(settings=settings, transport=transport)

    await service.search_places("  Bandra   West ")

    assert transport.requests[0].url.path == "/v3.0/data/places"
    assert transport.requests[0].url.params["textQuery"] == "Bandra West"


@pytest.mark.asyncio
async def test_market_analytics_maps_to_vendor_path(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({"data": []}))
    service = LiteAPIService(settings=settings, transport=transport)

    await service.analytics("market", date_from="2026-10-01", date_to="2026-10-08")

    request = transport.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/v3.0/analytics/markets"
    assert json.loads(request.content) == {"from": "2026-10-01", "to": "2026-10-08"}


@pytest.mark.asyncio
async def test_unknown_analytics_report_is_rejected(settings, transport_factory) -> None:
    transport = transport_factory(lambda request: _ok({}))
    service = LiteAPIService(settings=settings, transport=transport)

    with pytest.raises(ValidationError):
        await service.analytics("hourly")
    assert transport.requests == []
