import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import httpx

from smartstay.config.settings import (
    GEMINI_DEFAULT_PERSONA,
    GEMINI_FALLBACK_MODELS,
    Settings,
    get_settings,
)
from smartstay.models.errors import AIOperationError, ConfigurationError, ValidationError
from smartstay.models.schemas import ChatMessage
from smartstay.utils.validators import QueryValidator

logger = logging.getLogger(__name__)

MAX_COMPARE_HOTELS = 3

SUMMARY_PROMPT = (
    "Summarize this hotel for a traveler. Include highlights, vibe, ideal visitors.\n"
    "Hotel JSON:\n{hotel}"
)
COMPARE_PROMPT = (
    "Compare these hotels and recommend who each suits best (families, business, "
    "nightlife, etc). Keep it concise.\nHotels JSON:\n{hotels}"
)
SMART_FILTER_PROMPT = (
    "Translate this natural language hotel filter into a compact JSON. Fields: "
    "destination (string), minPrice (number), maxPrice (number), stars (number|optional), "
    "amenities (string[]), neighborhood (string|optional). Only output JSON with no "
    "commentary.\nQuery: {query}"
)
TRAVEL_PLAN_PROMPT = (
    "Create a day-wise travel plan for {destination} for {days} days. Include "
    "attractions, restaurants, and route suggestions. Preferences: {preferences}"
)


class ModelFailure(str, Enum):
    SKIP = "skip"
    ABORT = "abort"


def classify_model_failure(status: Optional[int], message: str) -> ModelFailure:
    """Decide whether a failed model call may fall through to the next candidate.

    Only "model missing" style failures are skippable; auth, quota and server
    errors abort so the real cause reaches the caller.
    """
    text = (message or "").lower()
    if status == 404 or "not supported" in text:
        return ModelFailure.SKIP
    return ModelFailure.ABORT


def candidate_models(preferred: str, fallbacks: List[str] = GEMINI_FALLBACK_MODELS) -> List[str]:
    seen = []
    for model in [preferred, *fallbacks]:
        if model and model not in seen:
            seen.append(model)
    return seen


def parse_filter(text: str) -> Union[Dict[str, Any], str]:
    """JSON object when the text parses as one, otherwise the raw text unchanged."""
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError):
        return text
    return parsed if isinstance(parsed, dict) else text


def _error_message(body: Any) -> str:
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message", ""))
    return str(body or "")


class GeminiService:
    """Gemini generateContent wrapper with ordered model fallback."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.transport = transport
        if not self.settings.GEMINI_API_KEY:
            raise ConfigurationError(
                "Gemini API key not configured. Set GEMINI_API_KEY or GOOGLE_API_KEY in .env"
            )
        self.models = candidate_models(self.settings.GEMINI_MODEL)

    async def generate(self, prompt: str, system: str = "") -> str:
        contents = []
        if system:
            contents.append({"role": "user", "parts": [{"text": system}]})
        contents.append({"role": "user", "parts": [{"text": prompt}]})
        payload = {"contents": contents}
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.settings.GEMINI_API_KEY}

        last_status, last_body = None, None
        async with httpx.AsyncClient(
            base_url=self.settings.GEMINI_BASE_URL,
            timeout=self.settings.GEMINI_TIMEOUT_S,
            headers=headers,
            transport=self.transport,
        ) as client:
            for model in self.models:
                logger.info("[Gemini] Calling model: %s", model)
                try:
                    response = await client.post(f"/models/{model}:generateContent", json=payload)
                except httpx.TimeoutException as e:
                    logger.error("[Gemini] Timed out on %s: %s", model, e)
                    raise AIOperationError("AI operation failed", status=504, body=str(e))
                except httpx.HTTPError as e:
                    logger.error("[Gemini] Transport error on %s: %s", model, e)
                    raise AIOperationError("AI operation failed", body=str(e))

                if not response.is_error:
                    if model != self.models[0]:
                        logger.warning("[Gemini] Fallback succeeded using %s", model)
                    return self._extract_text(response.json(), model)

                try:
                    last_body = response.json()
                except ValueError:
                    last_body = response.text
                last_status = response.status_code
                message = _error_message(last_body)
                logger.warning(
                    "[Gemini] Model failed: model=%s status=%s message=%s", model, last_status, message
                )
                if classify_model_failure(last_status, message) is ModelFailure.ABORT:
                    break

        raise AIOperationError("AI operation failed", status=last_status, body=last_body)

    @staticmethod
    def _extract_text(data: Dict[str, Any], model: str) -> str:
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = ""
        if not text:
            logger.warning("[Gemini] Empty response text from model %s", model)
        return text

    # ============================================
    # Operations
    # ============================================

    async def chat(self, messages: List[ChatMessage], persona: Optional[str] = None) -> str:
        if not messages:
            raise ValidationError("messages is required")
        prompt = "\n".join(f"{m.role.upper()}: {m.content}" for m in messages)
        return await self.generate(prompt, persona or GEMINI_DEFAULT_PERSONA)

    async def summarize_hotel(self, hotel: Dict[str, Any]) -> str:
        if not hotel:
            raise ValidationError("hotel is required")
        return await self.generate(SUMMARY_PROMPT.format(hotel=json.dumps(hotel)))

    async def compare_hotels(self, hotels: List[Dict[str, Any]]) -> str:
        if not hotels:
            raise ValidationError("hotels is required")
        if len(hotels) > MAX_COMPARE_HOTELS:
            raise ValidationError(f"At most {MAX_COMPARE_HOTELS} hotels can be compared")
        return await self.generate(COMPARE_PROMPT.format(hotels=json.dumps(hotels)))

    async def smart_filter(self, query: str) -> Union[Dict[str, Any], str]:
        query = QueryValidator.sanitize_query(query)
        reply = await self.generate(SMART_FILTER_PROMPT.format(query=query))
        return parse_filter(reply)

    async def travel_plan(self, destination: str, days: int = 3, preferences: str = "") -> str:
        destination = QueryValidator.sanitize_query(destination, "destination")
        if days < 1:
            raise ValidationError("days must be at least 1")
        return await self.generate(
            TRAVEL_PLAN_PROMPT.format(destination=destination, days=days, preferences=preferences)
        )


def get_gemini_service() -> GeminiService:
    return GeminiService()
