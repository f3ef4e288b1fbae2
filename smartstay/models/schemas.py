from typing import Optional, Literal, Dict, Any, List, Union
from pydantic import BaseModel, ConfigDict, Field


# ============================================
# Inventory: search and hotels
# ============================================

class SearchQuery(BaseModel):
    """Hotel search parameters.

    The hotel list endpoint takes no stay details, so ``checkin`` through
    ``currency`` are accepted for the client and reused for its follow-up
    rate search. Only location, facilities, ``aiSearch`` and paging reach
    the vendor.
    """

    place_id: Optional[str] = Field(default=None, alias="placeId")
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius: Optional[int] = None
    country_code: Optional[str] = Field(default=None, alias="countryCode")
    city_name: Optional[str] = Field(default=None, alias="cityName")
    checkin: Optional[str] = None
    checkout: Optional[str] = None
    rooms: int = 1
    adults: int = 2
    children: int = 0
    currency: Optional[str] = None
    facility_ids: List[int] = Field(default_factory=list, alias="facilityIds")
    strict_facility_filtering: bool = Field(default=False, alias="strictFacilityFiltering")
    ai_search: Optional[str] = Field(default=None, alias="aiSearch")
    offset: int = 0
    limit: int = 50

    model_config = ConfigDict(populate_by_name=True)


class HotelSummary(BaseModel):
    id: str
    name: str
    location: str = ""
    rating: float = 0
    price: float = 0
    stars: float = 0
    facilities: List[Any] = []
    currency: str = "USD"
    image: Optional[str] = None
    description: str = ""


class SearchResponse(BaseModel):
    hotels: List[HotelSummary]
    total: int
    page: int
    limit: int


# ============================================
# Rates, prebook, book
# ============================================

class Occupancy(BaseModel):
    adults: int = 2
    children: List[int] = []


class RatesRequest(BaseModel):
    hotel_ids: List[str] = Field(alias="hotelIds")
    checkin: str
    checkout: str
    occupancies: List[Occupancy] = Field(default_factory=lambda: [Occupancy()])
    currency: str = "INR"
    guest_nationality: str = Field(default="IN", alias="guestNationality")
    previous_offers: List["RateOffer"] = Field(default_factory=list, alias="previousOffers")

    model_config = ConfigDict(populate_by_name=True)


class RateOffer(BaseModel):
    offer_id: str = Field(alias="offerId")
    hotel_id: str = Field(alias="hotelId")
    room_type: str = Field(default="Room", alias="roomType")
    board_type: str = Field(default="Room Only", alias="boardType")
    total_price: float = Field(default=0, alias="totalPrice")
    currency: str = "USD"
    cancellation_policy: str = Field(default="", alias="cancellationPolicy")
    price_changed: bool = Field(default=False, alias="priceChanged")
    cancellation_changed: bool = Field(default=False, alias="cancellationChanged")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class RatesResponse(BaseModel):
    offers: List[RateOffer]


class PrebookRequest(BaseModel):
    offer_id: Union[str, List[str]] = Field(alias="offerId")
    use_payment_sdk: bool = Field(default=True, alias="usePaymentSdk")

    model_config = ConfigDict(populate_by_name=True)


class PrebookResult(BaseModel):
    prebook_id: str = Field(alias="prebookId")
    offer_id: Optional[str] = Field(default=None, alias="offerId")
    hotel_id: Optional[str] = Field(default=None, alias="hotelId")
    total_price: Optional[float] = Field(default=None, alias="totalPrice")
    currency: Optional[str] = None
    cancellation_policy: str = Field(default="", alias="cancellationPolicy")
    board_type: Optional[str] = Field(default=None, alias="boardType")
    price_difference_percent: float = Field(default=0, alias="priceDifferencePercent")
    warnings: List[str] = []

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Guest(BaseModel):
    occupancy_number: int = Field(default=1, alias="occupancyNumber")
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    email: str = ""

    model_config = ConfigDict(populate_by_name=True)


class PaymentInfo(BaseModel):
    """Tokenized payment from an external PCI SDK. Raw card numbers are rejected."""

    method: str = "CREDIT_CARD"
    token: str = ""
    holder_name: str = Field(default="", alias="holderName")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class BookRequest(BaseModel):
    prebook_id: str = Field(alias="prebookId")
    payment: PaymentInfo
    holder_name: str = Field(alias="holderName")
    email: str = ""
    phone: str = ""
    guests: List[Guest] = []

    model_config = ConfigDict(populate_by_name=True)


class BookingResult(BaseModel):
    booking_id: str = Field(alias="bookingId")
    hotel_confirmation_code: Optional[str] = Field(default=None, alias="hotelConfirmationCode")
    status: Optional[str] = None
    hotel_id: Optional[str] = Field(default=None, alias="hotelId")
    checkin: Optional[str] = None
    checkout: Optional[str] = None
    total_price: Optional[float] = Field(default=None, alias="totalPrice")
    currency: Optional[str] = None
    holder: Dict[str, Any] = {}
    guests: List[Dict[str, Any]] = []

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class CancellationResult(BaseModel):
    booking_id: str = Field(alias="bookingId")
    status: Optional[str] = None
    can_cancel: bool = Field(alias="canCancel")
    refund_amount: Optional[float] = Field(default=None, alias="refundAmount")
    cancellation_fee: Optional[float] = Field(default=None, alias="cancellationFee")
    currency: Optional[str] = None
    is_non_refundable: bool = Field(default=False, alias="isNonRefundable")

    model_config = ConfigDict(populate_by_name=True)


# ============================================
# AI gateway
# ============================================

class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage]
    persona: Optional[str] = None


class ChatResponse(BaseModel):
    reply: str


class SummarizeRequest(BaseModel):
    hotel: Dict[str, Any]


class SummarizeResponse(BaseModel):
    summary: str


class CompareRequest(BaseModel):
    hotels: List[Dict[str, Any]]


class CompareResponse(BaseModel):
    comparison: str


class SmartFilterRequest(BaseModel):
    query: str


class SmartFilterResponse(BaseModel):
    filter: Union[Dict[str, Any], str]


class TravelPlanRequest(BaseModel):
    destination: str
    days: int = 3
    preferences: str = ""


class TravelPlanResponse(BaseModel):
    plan: str


RatesRequest.model_rebuild()
