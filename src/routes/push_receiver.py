import json
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from starlette.responses import JSONResponse
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from src.routes.api_models import AckResponse
from src.routes.pubsub_utils import decode_push_message, parse_push_envelope, verify_push_token

logger = logging.getLogger(__name__)
router = APIRouter()

PROCESSED_MESSAGE = "Message received and processed"
NON_PUBSUB_MESSAGE = "Non-PubSub request received"


@router.post("/example", tags=["push"], status_code=200, response_model=AckResponse,
             dependencies=[Depends(verify_push_token)])
async def handle_push_delivery(request: Request, body: Any = Body(default=None)):
    """
    Handle a pubsub push delivery. The payload is decoded and logged, nothing else happens with it.

    A payload that isn't JSON is still acked with a 200, otherwise pubsub would keep retrying a message we will
    never be able to parse.
    """
    try:
        logger.info("Push notification received. Method: %s URL: %s Client: %s",
                    request.method, request.url, request.client.host if request.client else None)
        logger.info("Request body: %s", json.dumps(body, indent=2))
        logger.info("Request headers: %s", json.dumps(dict(request.headers), indent=2))

        envelope = parse_push_envelope(body)
        if envelope is None:
            logger.info("Received non-PubSub request: %s", body)
            return AckResponse(message=NON_PUBSUB_MESSAGE)

        decode_push_message(envelope.message)
        return AckResponse(message=PROCESSED_MESSAGE)
    except Exception as e:
        logger.exception("Error processing push notification: %s", e)
        return JSONResponse({"error": "Internal server error"}, status_code=HTTP_500_INTERNAL_SERVER_ERROR)
