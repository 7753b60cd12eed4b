import os
from contextlib import asynccontextmanager

import sentry_sdk
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from travelflow.database import Base, engine
from travelflow.deps import get_location_service, get_translator
from travelflow.errors import APIError, api_error_handler
from travelflow.logging_config import setup_logging
from travelflow.middleware import CTKMiddleware, RequestLoggingMiddleware
from travelflow.ratelimit import limiter
from travelflow.routes import ai, expenses, itinerary, trips

load_dotenv()


def init_sentry() -> None:
    dsn = os.getenv("SENTRY_DSN")
    if not dsn:
        return
    # The bundled OpenAI Agents integration does not match the agents SDK we pin
    disabled = []
    try:
        from sentry_sdk.integrations.openai_agents import OpenAIAgentsIntegration
        disabled.append(OpenAIAgentsIntegration)
    except ImportError:
        pass
    sentry_sdk.init(
        dsn=dsn,
        environment=os.getenv("SENTRY_ENVIRONMENT", "development"),
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
        send_default_pii=False,
        disabled_integrations=disabled,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("TravelFlow API started")
    yield
    # Only close clients that were actually created
    for dependency in (get_location_service, get_translator):
        if dependency.cache_info().currsize:
            await dependency().aclose()


init_sentry()
logger = setup_logging()

app = FastAPI(title="TravelFlow API", version="0.1.0", lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(APIError, api_error_handler)

origins = os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in origins if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CTKMiddleware)

for router in (trips.router, itinerary.router, expenses.router, ai.router):
    app.include_router(router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok"}
