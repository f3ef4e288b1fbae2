"""
Booking wizard: rates -> booking -> confirmation.

``BookingFlowState`` is immutable and ``transition`` is a pure function from
(state, event) to the next state. ``BookingFlowController`` is the single
owner of the current state; it issues the gateway calls and feeds their
outcome back through ``transition``. Nothing is persisted: closing the flow
drops the state and reopening starts again at ``rates``.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from smartstay.client.api_client import ApiClientError, SmartStayClient
from smartstay.config.settings import DEFAULT_CURRENCY, DEFAULT_GUEST_NATIONALITY
from smartstay.models.schemas import BookingResult, PrebookResult, RateOffer

logger = logging.getLogger(__name__)

NO_ROOMS_MESSAGE = "No rooms available for the selected dates."
RATES_FAILED_MESSAGE = "Failed to fetch room rates. Please try again."
PREBOOK_FAILED_MESSAGE = "Failed to reserve room. Please try again."
BOOKING_FAILED_MESSAGE = "Booking failed. Please check your information and try again."


class Step(str, Enum):
    RATES = "rates"
    BOOKING = "booking"
    CONFIRMATION = "confirmation"


STEP_NUMBERS = {Step.RATES: 1, Step.BOOKING: 2, Step.CONFIRMATION: 3}


class InvalidTransition(Exception):
    def __init__(self, step: Step, event: Any):
        name = event.__name__ if isinstance(event, type) else type(event).__name__
        super().__init__(f"{name} is not allowed in step '{step.value}'")
        self.step = step
        self.event = event


class StayDetails(BaseModel):
    checkin: str = ""
    checkout: str = ""
    adults: int = 2
    currency: str = DEFAULT_CURRENCY
    guest_nationality: str = DEFAULT_GUEST_NATIONALITY

    model_config = ConfigDict(frozen=True)

    @property
    def has_dates(self) -> bool:
        return bool(self.checkin and self.checkout)

    def occupancies(self) -> List[Dict[str, Any]]:
        return [{"adults": self.adults, "children": []}]


class GuestInfo(BaseModel):
    holder_name: str = ""
    email: str = ""
    phone: str = ""

    model_config = ConfigDict(frozen=True)


class PaymentDetails(BaseModel):
    """Payment token produced by an external PCI-compliant SDK."""

    method: str = "CREDIT_CARD"
    token: str = ""
    holder_name: str = ""

    model_config = ConfigDict(frozen=True)


class BookingFlowState(BaseModel):
    hotel_id: str
    hotel_name: str = ""
    step: Step = Step.RATES
    stay: StayDetails = StayDetails()
    rates: List[RateOffer] = []
    selected_offer: Optional[RateOffer] = None
    prebook: Optional[PrebookResult] = None
    booking: Optional[BookingResult] = None
    error: str = ""
    warning: str = ""

    model_config = ConfigDict(frozen=True)

    @property
    def step_number(self) -> int:
        return STEP_NUMBERS[self.step]


# ============================================
# Events
# ============================================

class FlowEvent(BaseModel):
    model_config = ConfigDict(frozen=True)


class StayChanged(FlowEvent):
    stay: StayDetails


class RatesLoaded(FlowEvent):
    offers: List[RateOffer]


class RatesFailed(FlowEvent):
    message: str = RATES_FAILED_MESSAGE


class OfferPrebooked(FlowEvent):
    offer: RateOffer
    prebook: PrebookResult


class PrebookFailed(FlowEvent):
    message: str = PREBOOK_FAILED_MESSAGE


class FormRejected(FlowEvent):
    message: str


class BookingConfirmed(FlowEvent):
    booking: BookingResult


class BookingFailed(FlowEvent):
    message: str = BOOKING_FAILED_MESSAGE


ALLOWED_EVENTS = {
    Step.RATES: (StayChanged, RatesLoaded, RatesFailed, OfferPrebooked, PrebookFailed),
    Step.BOOKING: (FormRejected, BookingConfirmed, BookingFailed),
    Step.CONFIRMATION: (),
}


def start_flow(hotel_id: str, hotel_name: str = "", stay: Optional[StayDetails] = None) -> BookingFlowState:
    return BookingFlowState(hotel_id=hotel_id, hotel_name=hotel_name, stay=stay or StayDetails())


def transition(state: BookingFlowState, event: Any) -> BookingFlowState:
    if not isinstance(event, ALLOWED_EVENTS[state.step]):
        raise InvalidTransition(state.step, event)

    if isinstance(event, StayChanged):
        return state.model_copy(update={"stay": event.stay})

    if isinstance(event, RatesLoaded):
        return state.model_copy(
            update={"rates": list(event.offers), "error": "" if event.offers else NO_ROOMS_MESSAGE}
        )

    if isinstance(event, OfferPrebooked):
        if not event.prebook.prebook_id:
            raise InvalidTransition(state.step, event)
        warnings = event.prebook.warnings
        return state.model_copy(
            update={
                "step": Step.BOOKING,
                "selected_offer": event.offer,
                "prebook": event.prebook,
                "error": "",
                "warning": f"Warning: {', '.join(warnings)}" if warnings else "",
            }
        )

    if isinstance(event, BookingConfirmed):
        # A booking is only reachable from a stored prebook hold
        if state.prebook is None:
            raise InvalidTransition(state.step, event)
        return state.model_copy(
            update={"step": Step.CONFIRMATION, "booking": event.booking, "error": ""}
        )

    # RatesFailed, PrebookFailed, FormRejected, BookingFailed: stay on the current step
    return state.model_copy(update={"error": event.message})


def missing_booking_fields(guest: GuestInfo, payment: PaymentDetails) -> List[str]:
    missing = []
    if not guest.holder_name.strip():
        missing.append("guest name")
    if not guest.email.strip():
        missing.append("email")
    if not payment.holder_name.strip():
        missing.append("card holder name")
    return missing


# ============================================
# Coordinator
# ============================================

class BookingFlowController:
    """Owns the wizard state for one modal lifetime."""

    def __init__(self, client: SmartStayClient):
        self.client = client
        self.state: Optional[BookingFlowState] = None

    @property
    def is_open(self) -> bool:
        return self.state is not None

    def _apply(self, event: Any) -> BookingFlowState:
        self.state = transition(self._require_open(), event)
        return self.state

    def _require_open(self) -> BookingFlowState:
        if self.state is None:
            raise RuntimeError("Booking flow is not open")
        return self.state

    def open(self, hotel_id: str, hotel_name: str = "", stay: Optional[StayDetails] = None) -> BookingFlowState:
        """Start at ``rates``; search immediately when dates are already known."""
        self.state = start_flow(hotel_id, hotel_name, stay)
        logger.info("Booking flow opened for hotel %s", hotel_id)
        if self.state.stay.has_dates:
            self.search_rates()
        return self.state

    def close(self):
        if self.state is not None:
            logger.info("Booking flow closed at step %s", self.state.step.value)
        self.state = None

    def update_stay(self, **changes) -> BookingFlowState:
        state = self._require_open()
        return self._apply(StayChanged(stay=state.stay.model_copy(update=changes)))

    def search_rates(self) -> BookingFlowState:
        state = self._require_open()
        if state.step is not Step.RATES:
            raise InvalidTransition(state.step, RatesLoaded)
        stay = state.stay
        try:
            offers = self.client.search_rates(
                [state.hotel_id],
                stay.checkin,
                stay.checkout,
                occupancies=stay.occupancies(),
                currency=stay.currency,
                guest_nationality=stay.guest_nationality,
                previous_offers=[o.model_dump(by_alias=True) for o in state.rates],
            )
        except ApiClientError as e:
            logger.error("Rates fetch failed: %s", e.message)
            return self._apply(RatesFailed())
        return self._apply(RatesLoaded(offers=[RateOffer.model_validate(o) for o in offers]))

    def select_offer(self, offer_id: str) -> BookingFlowState:
        state = self._require_open()
        offer = next((o for o in state.rates if o.offer_id == offer_id), None)
        if offer is None:
            return self._apply(PrebookFailed(message="Selected room is no longer available."))
        try:
            prebook = PrebookResult.model_validate(self.client.prebook(offer.offer_id))
        except ApiClientError as e:
            logger.error("Prebook failed: %s", e.message)
            return self._apply(PrebookFailed())
        return self._apply(OfferPrebooked(offer=offer, prebook=prebook))

    def submit_booking(self, guest: GuestInfo, payment: PaymentDetails) -> BookingFlowState:
        state = self._require_open()
        if state.step is not Step.BOOKING or state.prebook is None:
            raise InvalidTransition(state.step, BookingConfirmed)

        missing = missing_booking_fields(guest, payment)
        if missing:
            return self._apply(FormRejected(message=f"Please fill in: {', '.join(missing)}"))

        first_name, _, last_name = guest.holder_name.strip().partition(" ")
        guests = [{
            "occupancyNumber": 1,
            "firstName": first_name,
            "lastName": last_name.strip(),
            "email": guest.email,
        }]
        try:
            result = self.client.book(
                state.prebook.prebook_id,
                payment={"method": payment.method, "token": payment.token,
                         "holderName": payment.holder_name},
                holder_name=guest.holder_name.strip(),
                email=guest.email,
                phone=guest.phone,
                guests=guests,
            )
        except ApiClientError as e:
            logger.error("Booking failed: %s", e.message)
            return self._apply(BookingFailed())
        return self._apply(BookingConfirmed(booking=BookingResult.model_validate(result)))
