from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from smartstay.config.settings import API_TITLE, get_settings
from smartstay.models.errors import SmartStayError
from smartstay.api.liteapi_endpoints import router as liteapi_router
from smartstay.api.gemini_endpoints import router as gemini_router
from smartstay.utils.logging_config import setup_logging


logger = setup_logging("api")

app = FastAPI(title=API_TITLE)

# CORS for the browser client
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# Include API endpoints
app.include_router(liteapi_router)
app.include_router(gemini_router)


@app.exception_handler(SmartStayError)
async def smartstay_error_handler(request: Request, exc: SmartStayError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning("%s %s invalid request: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "detail": jsonable_encoder(exc.errors())},
    )


@app.on_event("startup")
async def startup_event():
    settings = get_settings()
    logger.info(
        "SmartStay gateway started: clientOrigin=%s geminiModel=%s geminiKeySuffix=%s liteapiBase=%s",
        settings.CLIENT_ORIGIN,
        settings.GEMINI_MODEL,
        settings.gemini_key_suffix,
        settings.LITEAPI_BASE_URL,
    )


@app.get("/api/health")
def health_check():
    settings = get_settings()
    return {
        "ok": True,
        "service": API_TITLE,
        "time": datetime.now(timezone.utc).isoformat(),
        "geminiConfigured": bool(settings.GEMINI_API_KEY),
        "liteapiConfigured": bool(settings.LITEAPI_KEY),
    }


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=get_settings().PORT)
