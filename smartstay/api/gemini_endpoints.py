from fastapi import APIRouter, Depends

from smartstay.config.settings import get_settings
from smartstay.models.schemas import (
    ChatRequest,
    ChatResponse,
    CompareRequest,
    CompareResponse,
    SmartFilterRequest,
    SmartFilterResponse,
    SummarizeRequest,
    SummarizeResponse,
    TravelPlanRequest,
    TravelPlanResponse,
)
from smartstay.services.gemini_service import GeminiService, get_gemini_service


router = APIRouter(prefix="/api/gemini", tags=["gemini"])


@router.post("/chat", response_model=ChatResponse)
async def chat(req: ChatRequest, service: GeminiService = Depends(get_gemini_service)):
    reply = await service.chat(req.messages, persona=req.persona)
    return ChatResponse(reply=reply)


@router.post("/summarize-hotel", response_model=SummarizeResponse)
async def summarize_hotel(req: SummarizeRequest, service: GeminiService = Depends(get_gemini_service)):
    summary = await service.summarize_hotel(req.hotel)
    return SummarizeResponse(summary=summary)


@router.post("/compare", response_model=CompareResponse)
async def compare_hotels(req: CompareRequest, service: GeminiService = Depends(get_gemini_service)):
    comparison = await service.compare_hotels(req.hotels)
    return CompareResponse(comparison=comparison)


@router.post("/smart-filter", response_model=SmartFilterResponse)
async def smart_filter(req: SmartFilterRequest, service: GeminiService = Depends(get_gemini_service)):
    result = await service.smart_filter(req.query)
    return SmartFilterResponse(filter=result)


@router.post("/travel-plan", response_model=TravelPlanResponse)
async def travel_plan(req: TravelPlanRequest, service: GeminiService = Depends(get_gemini_service)):
    plan = await service.travel_plan(req.destination, days=req.days, preferences=req.preferences)
    return TravelPlanResponse(plan=plan)


@router.get("/health")
def gemini_health():
    settings = get_settings()
    return {
        "configured": bool(settings.GEMINI_API_KEY),
        "model": settings.GEMINI_MODEL,
        "keySuffix": settings.gemini_key_suffix,
    }
