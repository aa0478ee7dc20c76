import json
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from starlette.responses import JSONResponse
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from src.routes.api_models import StatusResponse
from src.routes.pubsub_utils import verify_push_token

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/notifications", tags=["push"], status_code=200, response_model=StatusResponse,
             dependencies=[Depends(verify_push_token)])
async def handle_notification(request: Request, body: Any = Body(default=None)):
    """
    Logs whatever was sent to us and acks it. Unlike /example there's no attempt to decode a push envelope.
    """
    try:
        logger.info("Notification received: %s", json.dumps(body, indent=2))
        logger.info("Notification headers: %s", json.dumps(dict(request.headers), indent=2))
        return StatusResponse()
    except Exception as e:
        logger.exception("Error processing notification: %s", e)
        return JSONResponse({"error": "Failed to process notification"}, status_code=HTTP_500_INTERNAL_SERVER_ERROR)
