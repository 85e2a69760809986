"""Email-provider webhook endpoint"""
from functools import lru_cache
import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from leadcapture.config import get_settings
from leadcapture.store import DataStore, SupabaseStore
from leadcapture.webhook.handlers import WebhookIngestionHandler
from leadcapture.webhook.models import ProviderEvent

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

# Every method except OPTIONS is an event submission
EVENT_METHODS = ["POST", "PUT", "PATCH", "DELETE", "GET"]


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turns any exception escaping a route into the webhook error envelope"""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception(f"Unhandled webhook error: {exc}")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": str(exc)},
                headers=CORS_HEADERS,
            )


@lru_cache()
def get_store() -> DataStore:
    """Service-role store shared by every request"""
    return SupabaseStore.from_settings(get_settings())


def get_handler(store: DataStore = Depends(get_store)) -> WebhookIngestionHandler:
    return WebhookIngestionHandler(store)


app = FastAPI(
    title="Lead Capture Webhooks",
    description="Email-provider event ingestion",
    version="0.1.0",
)
app.add_middleware(ErrorHandlerMiddleware)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "leadcapture-webhooks"}


@app.options("/")
@app.options("/webhooks/brevo")
async def preflight():
    """CORS pre-flight"""
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@app.api_route("/", methods=EVENT_METHODS)
@app.api_route("/webhooks/brevo", methods=EVENT_METHODS)
async def receive_event(request: Request, handler: WebhookIngestionHandler = Depends(get_handler)):
    """Record one provider event as an interaction"""
    try:
        payload = await request.json()
        logger.info(f"Webhook received: {payload}")
        event = ProviderEvent.model_validate(payload)
        await run_in_threadpool(handler.handle, event)
    except Exception as e:
        logger.error(f"Provider webhook error: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(e)},
            headers=CORS_HEADERS,
        )

    return JSONResponse(content={"success": True}, headers=CORS_HEADERS)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
