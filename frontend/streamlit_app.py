from datetime import date, timedelta
from html import escape

import streamlit as st

from smartstay.client.api_client import (
    ApiClientError,
    SmartStayClient,
    hotel_details_record,
    html_to_text,
)
from smartstay.client.booking_flow import (
    BookingFlowController,
    GuestInfo,
    PaymentDetails,
    StayDetails,
    Step,
)
from smartstay.client.chat import ChatSession, hotel_comparison, hotel_summary
from smartstay.client.hotel_list import HotelList, ListFilters, apply_smart_filter
from smartstay.utils.logging_config import setup_logging

logger = setup_logging("frontend")

# Page config
st.set_page_config(
    page_title="SmartStay",
    page_icon="🏨",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Custom CSS
st.markdown("""
<style>

html, body, [class*="css"] {
    font-family: -apple-system, BlinkMacSystemFont, "Inter", "Segoe UI",
                 Roboto, Helvetica, Arial, sans-serif;
}

.main-header {
    font-size: 3rem;
    font-weight: 700;
    letter-spacing: -0.02em;
    text-align: center;
    color: #42A5F5;
    margin-bottom: 2rem;
}

.hotel-card {
    background-color: #FFFFFF;
    padding: 1.1rem 1.3rem;
    border-radius: 14px;
    border: 1px solid rgba(0,0,0,0.08);
    box-shadow: 0 8px 24px rgba(0,0,0,0.25);
    color: #263238;
    margin-bottom: 0.6rem;
}

.chat-message {
    padding: 1rem 1.2rem;
    border-radius: 14px;
    margin-bottom: 1rem;
    line-height: 1.6;
}

.user-message {
    background: linear-gradient(135deg, #E3F2FD, #F1F8FF);
    border-left: 5px solid #1E88E5;
    color: #0D47A1;
}

.assistant-message {
    background: #FFFFFF;
    border-left: 5px solid #2E7D32;
    color: #1B1F23;
}

</style>
""", unsafe_allow_html=True)


# Initialize session state
if "client" not in st.session_state:
    st.session_state.client = SmartStayClient()
client = st.session_state.client

if "hotel_list" not in st.session_state:
    st.session_state.hotel_list = HotelList()
if "search_params" not in st.session_state:
    st.session_state.search_params = {}
if "flow" not in st.session_state:
    st.session_state.flow = BookingFlowController(client)
if "chat" not in st.session_state:
    st.session_state.chat = ChatSession(client)
if "selected_hotel" not in st.session_state:
    st.session_state.selected_hotel = None
if "comparison" not in st.session_state:
    st.session_state.comparison = None

hotel_list = st.session_state.hotel_list
flow = st.session_state.flow


def run_search(params):
    """New search: bump the generation, load hotels, then fetch rates batch by batch."""
    generation = hotel_list.start_search()
    st.session_state.search_params = params
    st.session_state.comparison = None
    try:
        hotel_list.load(generation, client.search_hotels(**params))
    except ApiClientError as e:
        logger.warning("Hotel search failed: status=%s %s", e.status, e.message)
        hotel_list.fail(generation, e.message)
        return

    checkin, checkout = params.get("checkin"), params.get("checkout")
    if not (checkin and checkout and hotel_list.hotels):
        return
    try:
        for offers in client.iter_rate_batches(hotel_list.hotel_ids(), checkin, checkout,
                                               occupancies=[{"adults": params.get("adults", 2), "children": []}]):
            hotel_list.apply_rate_batch(generation, offers)
    except ApiClientError as e:
        logger.warning("Rate batch failed: status=%s %s", e.status, e.message)
        # Hotels stay listed without prices
        st.warning(f"Could not load prices: {e.message}")


# Sidebar
with st.sidebar:
    st.title("SmartStay")
    st.markdown("---")

    page = st.radio("Navigate", ["🔍 Search", "📋 My Bookings", "💬 Assistant", "🗺️ Travel Plan"])

    st.markdown("---")

    st.subheader("✨ Smart Filter")
    smart_query = st.text_input("Describe what you want",
                                placeholder="budget-friendly 4-star hotels with pool")
    if st.button("Apply", use_container_width=True) and smart_query:
        with st.spinner("Translating filter..."):
            try:
                smart = client.smart_filter(smart_query)
            except ApiClientError as e:
                st.error(f"❌ {e.message}")
            else:
                if isinstance(smart, dict):
                    params, hotel_list.filters = apply_smart_filter(
                        st.session_state.search_params, hotel_list.filters, smart)
                    if params != st.session_state.search_params and params.get("destination"):
                        run_search(params)
                    st.success("✅ Filter applied")
                else:
                    st.info(smart)

    st.markdown("---")

    if st.button("💚 Health Check", use_container_width=True):
        try:
            health = client.health()
            st.success("✅ Backend is healthy!")
            st.caption(f"Gemini: {'✅' if health.get('geminiConfigured') else '❌'}  "
                       f"LiteAPI: {'✅' if health.get('liteapiConfigured') else '❌'}")
        except ApiClientError as e:
            st.error(f"❌ {e.message}")

    st.markdown("---")
    st.caption("Powered by LiteAPI & Gemini")


# Main content
st.markdown('<div class="main-header">🏨 SmartStay</div>', unsafe_allow_html=True)


def render_booking_flow():
    state = flow.state
    st.markdown("---")
    st.subheader(f"Book {state.hotel_name or state.hotel_id}  ·  Step {state.step_number} of 3")

    if state.error:
        st.error(state.error)
    if state.warning:
        st.warning(state.warning)

    if state.step is Step.RATES:
        col1, col2, col3 = st.columns(3)
        with col1:
            checkin = st.date_input("Check-in", value=date.today() + timedelta(days=7), key="flow_checkin")
        with col2:
            checkout = st.date_input("Check-out", value=date.today() + timedelta(days=9), key="flow_checkout")
        with col3:
            adults = st.number_input("Adults", min_value=1, max_value=8, value=state.stay.adults, key="flow_adults")
        if st.button("Search rooms", type="primary"):
            flow.update_stay(checkin=checkin.isoformat(), checkout=checkout.isoformat(), adults=int(adults))
            with st.spinner("Fetching room rates..."):
                flow.search_rates()
            st.rerun()

        for offer in state.rates:
            col_a, col_b = st.columns([4, 1])
            with col_a:
                flags = []
                if offer.price_changed:
                    flags.append("price changed")
                if offer.cancellation_changed:
                    flags.append("policy changed")
                st.markdown(f"**{offer.room_type}** · {offer.board_type}  \n"
                            f"{offer.currency} {offer.total_price:,.2f} · {offer.cancellation_policy or 'See policy'}"
                            + (f"  \n⚠️ {', '.join(flags)}" if flags else ""))
            with col_b:
                if st.button("Select", key=f"offer_{offer.offer_id}"):
                    with st.spinner("Reserving room..."):
                        flow.select_offer(offer.offer_id)
                    st.rerun()

    elif state.step is Step.BOOKING:
        offer = state.selected_offer
        st.info(f"{offer.room_type} · {state.prebook.currency or offer.currency} "
                f"{(state.prebook.total_price or offer.total_price):,.2f}")
        with st.form("guest_form"):
            holder_name = st.text_input("Guest name")
            email = st.text_input("Email")
            phone = st.text_input("Phone")
            st.caption("Payment is tokenized by the payment provider; card numbers never reach SmartStay.")
            card_holder = st.text_input("Card holder name")
            token = st.text_input("Payment token")
            submitted = st.form_submit_button("Confirm booking", type="primary")
        if submitted:
            with st.spinner("Booking..."):
                flow.submit_booking(
                    GuestInfo(holder_name=holder_name, email=email, phone=phone),
                    PaymentDetails(token=token, holder_name=card_holder),
                )
            st.rerun()

    else:
        booking = state.booking
        st.success(f"🎉 Booking confirmed! Booking ID: `{booking.booking_id}`")
        if booking.hotel_confirmation_code:
            st.write("**Hotel confirmation code:**", booking.hotel_confirmation_code)

    if st.button("Close"):
        flow.close()
        st.rerun()


def render_details(hotel):
    st.markdown("---")
    st.subheader(f"🏨 {hotel.name}")
    try:
        details = hotel_details_record(client.get_hotel_details(hotel.id))
    except ApiClientError as e:
        st.error(f"❌ {e.message}")
        if st.button("Retry", key="retry_details"):
            st.rerun()
        return

    col1, col2 = st.columns([2, 1])
    with col1:
        if hotel.image:
            st.image(hotel.image, use_container_width=True)
        st.write(html_to_text(details.get("hotelDescription")) or html_to_text(hotel.description))
        if details.get("address"):
            st.caption(f"📍 {details['address']}")
        facilities = details.get("hotelFacilities")
        if isinstance(facilities, list) and facilities:
            st.markdown("**Facilities:** " + ", ".join(
                str(f.get("name", "")) if isinstance(f, dict) else str(f) for f in facilities[:12]
            ))
    with col2:
        st.markdown("**🤖 AI Summary**")
        st.write(hotel_summary(client, hotel.model_dump()))

    with st.expander("⭐ Reviews"):
        try:
            reviews = client.get_hotel_reviews(hotel.id)
        except ApiClientError as e:
            st.error(f"❌ {e.message}")
        else:
            for review in (reviews.get("data") or [])[:10]:
                st.write(f"**{review.get('name', 'Guest')}** ({review.get('averageScore', '-')}): "
                         f"{review.get('headline', '')}")


# ===== Search =====
if page == "🔍 Search":
    with st.form("search_form"):
        col1, col2, col3, col4 = st.columns([3, 2, 2, 1])
        with col1:
            destination = st.text_input("Destination", placeholder="e.g., Mumbai")
        with col2:
            checkin = st.date_input("Check-in", value=date.today() + timedelta(days=7))
        with col3:
            checkout = st.date_input("Check-out", value=date.today() + timedelta(days=9))
        with col4:
            adults = st.number_input("Adults", min_value=1, max_value=8, value=2)
        ai_search = st.text_input("Describe your ideal stay (optional)",
                                  placeholder="quiet hotel near the beach")
        submitted = st.form_submit_button("🚀 Search", type="primary")

    if submitted and destination:
        params = {
            "destination": destination,
            "checkin": checkin.isoformat(),
            "checkout": checkout.isoformat(),
            "adults": int(adults),
            "aiSearch": ai_search or None,
        }
        with st.spinner("🔍 Searching hotels..."):
            run_search(params)

    if hotel_list.error:
        st.error(f"❌ {hotel_list.error}")
        if st.button("Retry"):
            with st.spinner("🔍 Searching hotels..."):
                run_search(st.session_state.search_params)
            st.rerun()

    if hotel_list.hotels:
        col_a, col_b = st.columns(2)
        with col_a:
            stars = st.selectbox("Stars", [None, 1, 2, 3, 4, 5],
                                 index=[None, 1, 2, 3, 4, 5].index(hotel_list.filters.stars)
                                 if hotel_list.filters.stars in (1, 2, 3, 4, 5) else 0)
        with col_b:
            amenities = st.text_input("Amenities (comma separated)",
                                      value=", ".join(hotel_list.filters.amenities))
        hotel_list.filters = ListFilters(
            stars=stars,
            amenities=[a.strip() for a in amenities.split(",") if a.strip()],
            min_price=hotel_list.filters.min_price,
            max_price=hotel_list.filters.max_price,
        )

        visible = hotel_list.visible()
        st.caption(f"{len(visible)} of {hotel_list.total} hotels")

        for hotel in visible:
            st.markdown(f"""
            <div class="hotel-card">
                <strong>{escape(hotel.name)}</strong> · {'⭐' * int(hotel.stars)}<br>
                {escape(hotel.location)}<br>
                {f"{hotel.currency} {hotel.price:,.2f}" if hotel.price else "Price on request"}
            </div>
            """, unsafe_allow_html=True)
            col1, col2, col3 = st.columns(3)
            with col1:
                if st.button("Details", key=f"details_{hotel.id}", use_container_width=True):
                    st.session_state.selected_hotel = hotel
            with col2:
                if st.button("Book", key=f"book_{hotel.id}", use_container_width=True):
                    params = st.session_state.search_params
                    with st.spinner("Fetching room rates..."):
                        flow.open(hotel.id, hotel.name, StayDetails(
                            checkin=params.get("checkin", ""),
                            checkout=params.get("checkout", ""),
                            adults=params.get("adults", 2),
                        ))
            with col3:
                label = "✅ Comparing" if hotel.id in hotel_list.compare_ids else "Compare"
                if st.button(label, key=f"compare_{hotel.id}", use_container_width=True):
                    if not hotel_list.toggle_compare(hotel.id):
                        st.warning("You can compare up to 3 hotels.")
                    st.rerun()

        if hotel_list.compare_ids:
            st.markdown("---")
            if st.button(f"🤖 Compare {len(hotel_list.compare_ids)} hotels", type="primary"):
                with st.spinner("Comparing..."):
                    st.session_state.comparison = hotel_comparison(
                        client, [h.model_dump() for h in hotel_list.compared()])
            if st.session_state.comparison:
                st.markdown(st.session_state.comparison)

    if flow.is_open:
        render_booking_flow()
    elif st.session_state.selected_hotel:
        render_details(st.session_state.selected_hotel)

# ===== Bookings =====
elif page == "📋 My Bookings":
    try:
        bookings = client.list_bookings().get("data") or []
    except ApiClientError as e:
        bookings = []
        st.error(f"❌ {e.message}")
        if st.button("Retry"):
            st.rerun()

    for booking in bookings:
        booking_id = booking.get("bookingId")
        with st.expander(f"{booking_id} · {booking.get('status', '')}"):
            st.json(booking)
            if st.button("Cancel booking", key=f"cancel_{booking_id}"):
                try:
                    result = client.cancel_booking(booking_id)
                except ApiClientError as e:
                    st.error(f"❌ {e.message}")
                else:
                    if result.get("isNonRefundable"):
                        st.warning("This booking is non-refundable and cannot be cancelled.")
                    else:
                        st.success(f"Cancelled. Refund: {result.get('currency') or ''} "
                                   f"{result.get('refundAmount') or 0}")

# ===== Assistant =====
elif page == "💬 Assistant":
    chat = st.session_state.chat
    for message in chat.messages:
        role_class = "user-message" if message["role"] == "user" else "assistant-message"
        role_icon = "👤" if message["role"] == "user" else "🤖"
        st.markdown(f"""
        <div class="chat-message {role_class}">
            <strong>{role_icon} {message["role"].capitalize()}:</strong><br>
            {escape(message["content"])}
        </div>
        """, unsafe_allow_html=True)

    query = st.text_input("💬 Ask about destinations, hotels or your trip:", key="chat_input")
    col1, col2 = st.columns([4, 1])
    with col1:
        send = st.button("🚀 Send", type="primary")
    with col2:
        if st.button("🗑️ Clear"):
            chat.clear()
            st.rerun()
    if send and query:
        with st.spinner("Thinking..."):
            chat.send(query)
        st.rerun()

# ===== Travel plan =====
else:
    destination = st.text_input("Destination", placeholder="e.g., Goa")
    days = st.slider("Days", min_value=1, max_value=14, value=3)
    preferences = st.text_input("Preferences", placeholder="beaches, seafood, nightlife")
    if st.button("🗺️ Plan my trip", type="primary") and destination:
        with st.spinner("Planning..."):
            try:
                st.markdown(client.travel_plan(destination, days=days, preferences=preferences))
            except ApiClientError as e:
                st.error(f"❌ {e.message}")
