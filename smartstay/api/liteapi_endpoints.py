from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from smartstay.config.settings import get_settings
from smartstay.models.schemas import (
    BookRequest,
    BookingResult,
    CancellationResult,
    PrebookRequest,
    PrebookResult,
    RatesRequest,
    RatesResponse,
    SearchQuery,
    SearchResponse,
)
from smartstay.services.liteapi_service import LiteAPIService, get_liteapi_service


router = APIRouter(prefix="/api/liteapi", tags=["liteapi"])


def search_query_params(
    place_id: Optional[str] = Query(None, alias="placeId"),
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    radius: Optional[int] = None,
    country_code: Optional[str] = Query(None, alias="countryCode"),
    city_name: Optional[str] = Query(None, alias="cityName"),
    checkin: Optional[str] = None,
    checkout: Optional[str] = None,
    rooms: int = 1,
    adults: int = 2,
    children: int = 0,
    currency: Optional[str] = None,
    facility_ids: List[int] = Query([], alias="facilityIds"),
    strict_facility_filtering: bool = Query(False, alias="strictFacilityFiltering"),
    ai_search: Optional[str] = Query(None, alias="aiSearch"),
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
) -> SearchQuery:
    return SearchQuery(
        place_id=place_id,
        latitude=latitude,
        longitude=longitude,
        radius=radius,
        country_code=country_code,
        city_name=city_name,
        checkin=checkin,
        checkout=checkout,
        rooms=rooms,
        adults=adults,
        children=children,
        currency=currency,
        facility_ids=facility_ids,
        strict_facility_filtering=strict_facility_filtering,
        ai_search=ai_search,
        offset=offset,
        limit=limit,
    )


# ============================================
# Health
# ============================================

@router.get("/health")
def liteapi_health():
    settings = get_settings()
    return {
        "ok": True,
        "baseURL": settings.LITEAPI_BASE_URL,
        "keyConfigured": bool(settings.LITEAPI_KEY),
        "keySuffix": settings.liteapi_key_suffix,
        "authHeaderName": settings.LITEAPI_AUTH_HEADER_NAME,
        "authScheme": settings.LITEAPI_AUTH_SCHEME,
    }


# ============================================
# Hotels
# ============================================

@router.get("/hotels/search", response_model=SearchResponse)
async def search_hotels(
    query: SearchQuery = Depends(search_query_params),
    service: LiteAPIService = Depends(get_liteapi_service),
):
    return await service.search(query)


@router.get("/hotels/{hotel_id}")
async def get_hotel_details(hotel_id: str, service: LiteAPIService = Depends(get_liteapi_service)):
    return await service.get_details(hotel_id)


@router.get("/reviews")
async def get_hotel_reviews(
    hotel_id: str = Query("", alias="hotelId"),
    limit: int = Query(20, ge=1),
    get_sentiment: bool = Query(True, alias="getSentiment"),
    service: LiteAPIService = Depends(get_liteapi_service),
):
    return await service.get_reviews(hotel_id, limit=limit, with_sentiment=get_sentiment)


# ============================================
# Rates and booking
# ============================================

@router.post("/rates", response_model=RatesResponse)
async def search_rates(req: RatesRequest, service: LiteAPIService = Depends(get_liteapi_service)):
    return await service.search_rates(req)


@router.get("/rates/minimum")
async def get_minimum_rates(
    hotel_ids: Optional[str] = Query(None, alias="hotelIds"),
    checkin: Optional[str] = None,
    checkout: Optional[str] = None,
    adults: Optional[int] = None,
    guest_nationality: Optional[str] = Query(None, alias="guestNationality"),
    currency: Optional[str] = None,
    timeout: Optional[float] = None,
    service: LiteAPIService = Depends(get_liteapi_service),
):
    return await service.minimum_rates(
        hotel_ids, checkin, checkout, adults,
        guest_nationality=guest_nationality, currency=currency, timeout=timeout,
    )


@router.get("/rates/availability")
async def get_rate_availability(
    hotel_id: Optional[str] = Query(None, alias="hotelId"),
    checkin: Optional[str] = None,
    checkout: Optional[str] = None,
    adults: Optional[int] = None,
    children: Optional[str] = None,
    guest_nationality: Optional[str] = Query(None, alias="guestNationality"),
    currency: Optional[str] = None,
    timeout: Optional[float] = None,
    service: LiteAPIService = Depends(get_liteapi_service),
):
    return await service.rate_availability(
        hotel_id, checkin, checkout, adults, children=children,
        guest_nationality=guest_nationality, currency=currency, timeout=timeout,
    )


@router.post("/prebook", response_model=PrebookResult)
async def prebook_rate(req: PrebookRequest, service: LiteAPIService = Depends(get_liteapi_service)):
    return await service.prebook(req.offer_id, use_payment_sdk=req.use_payment_sdk)


@router.post("/book", response_model=BookingResult)
async def book_rate(req: BookRequest, service: LiteAPIService = Depends(get_liteapi_service)):
    return await service.book(req)


# ============================================
# Bookings
# ============================================

@router.get("/bookings")
async def list_bookings(
    client_reference: Optional[str] = Query(None, alias="clientReference"),
    guest_id: Optional[str] = Query(None, alias="guestId"),
    service: LiteAPIService = Depends(get_liteapi_service),
):
    return await service.list_bookings(client_reference=client_reference, guest_id=guest_id)


@router.get("/bookings/{booking_id}")
async def get_booking(booking_id: str, service: LiteAPIService = Depends(get_liteapi_service)):
    return await service.get_booking(booking_id)


@router.put("/bookings/{booking_id}", response_model=CancellationResult)
async def cancel_booking(booking_id: str, service: LiteAPIService = Depends(get_liteapi_service)):
    return await service.cancel(booking_id)


# ============================================
# Reference data
# ============================================

@router.get("/data/currencies")
async def list_currencies(service: LiteAPIService = Depends(get_liteapi_service)):
    return await service.list_currencies()


@router.get("/data/countries")
async def list_countries(service: LiteAPIService = Depends(get_liteapi_service)):
    return await service.list_countries()


@router.get("/data/cities")
async def list_cities(
    country_code: str = Query("", alias="countryCode"),
    service: LiteAPIService = Depends(get_liteapi_service),
):
    return await service.list_cities(country_code)


@router.get("/data/facilities")
async def list_facilities(service: LiteAPIService = Depends(get_liteapi_service)):
    return await service.list_facilities()


@router.get("/data/iata")
async def list_iata_codes(service: LiteAPIService = Depends(get_liteapi_service)):
    return await service.list_iata_codes()


@router.get("/data/places")
async def search_places(
    text_query: str = Query("", alias="textQuery"),
    service: LiteAPIService = Depends(get_liteapi_service),
):
    return await service.search_places(text_query)


# ============================================
# Analytics
# ============================================

@router.get("/analytics/{report}")
async def get_analytics(
    report: str,
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    service: LiteAPIService = Depends(get_liteapi_service),
):
    return await service.analytics(report, date_from=date_from, date_to=date_to)
