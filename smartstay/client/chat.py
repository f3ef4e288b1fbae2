import logging
from typing import Dict, List, Optional

from smartstay.client.api_client import ApiClientError, SmartStayClient

logger = logging.getLogger(__name__)

CHAT_UNAVAILABLE = "Sorry, I couldn't reach the assistant right now. Please try again."
SUMMARY_UNAVAILABLE = "AI summary unavailable."
COMPARISON_UNAVAILABLE = "Comparison failed. Try again."


class ChatSession:
    """Page-lifetime chat history; each user turn adds exactly one assistant turn."""

    def __init__(self, client: SmartStayClient, persona: Optional[str] = None):
        self.client = client
        self.persona = persona
        self.messages: List[Dict[str, str]] = []

    def send(self, text: str) -> str:
        text = (text or "").strip()
        if not text:
            raise ValueError("Message is empty")

        self.messages.append({"role": "user", "content": text})
        try:
            reply = self.client.chat(self.messages, persona=self.persona) or CHAT_UNAVAILABLE
        except ApiClientError as e:
            logger.warning("Chat failed: %s", e.message)
            reply = CHAT_UNAVAILABLE
        self.messages.append({"role": "assistant", "content": reply})
        return reply

    def clear(self):
        self.messages = []


def hotel_summary(client: SmartStayClient, hotel: Dict) -> str:
    try:
        return client.summarize_hotel(hotel) or SUMMARY_UNAVAILABLE
    except ApiClientError as e:
        logger.warning("Summary failed: %s", e.message)
        return SUMMARY_UNAVAILABLE


def hotel_comparison(client: SmartStayClient, hotels: List[Dict]) -> str:
    try:
        return client.compare_hotels(hotels) or COMPARISON_UNAVAILABLE
    except ApiClientError as e:
        logger.warning("Comparison failed: %s", e.message)
        return COMPARISON_UNAVAILABLE
