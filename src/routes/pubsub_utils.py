import base64
import binascii
import json
import logging
import secrets
from json import JSONDecodeError
from typing import Any, Optional

from fastapi import Depends, HTTPException, Query
from pydantic import ValidationError
from starlette.status import HTTP_401_UNAUTHORIZED

from src.context import get_properties
from src.dependencies import Properties
from src.routes.pubsub_models import DecodedPushPayload, PushEnvelope, PushMessage

logger = logging.getLogger(__name__)

"""
The message pubsub pushes to us roughly follows this schema - data is base 64 encoded. PubSub sends both the
camelCase and snake_case spellings of the id and publish time fields.

{
    "message": {
        "attributes": {
            "key": "value"
        },
        "data": "SGVsbG8gQ2xvdWQgUHViL1N1YiEgSGVyZSBpcyBteSBtZXNzYWdlIQ==",
        "messageId": "2070443601311540",
        "message_id": "2070443601311540",
        "publishTime": "2021-02-26T19:13:55.749Z",
        "publish_time": "2021-02-26T19:13:55.749Z"
    },
   "subscription": "projects/myproject/subscriptions/mysubscription"
}
"""


def parse_push_envelope(body: Any) -> Optional[PushEnvelope]:
    """
    Returns the push envelope if the body looks like a PubSub push delivery, otherwise None.
    """
    if not isinstance(body, dict):
        return None
    message = body.get("message")
    if not isinstance(message, dict):
        return None
    data = message.get("data")
    if not isinstance(data, str) or not data:
        return None
    try:
        return PushEnvelope.model_validate(body)
    except ValidationError as e:
        # the metadata is only ever logged, data alone is enough to carry on
        logger.warning("Ignoring unexpected push envelope metadata. Received: %s Error: %s", body, e)
        return PushEnvelope(message=PushMessage(data=data))


def decode_push_message(message: PushMessage) -> DecodedPushPayload:
    """Decodes the data field of a push message.

    Args:
        message (PushMessage): The message part of the push envelope, and its weird base64 data field

    Returns:
        DecodedPushPayload: the decoded text, and the parsed JSON if the text happened to be JSON. Anything that
        goes wrong is logged and recorded on the result, never raised.
    """
    logger.debug(
        "Handling message with ID %s - Publish Time %s - Attributes %s",
        message.message_id,
        message.publish_time,
        message.attributes,
    )
    try:
        text = base64.b64decode(message.data).decode("utf-8", errors="replace")
    except binascii.Error as e:
        logger.error("Payload was not valid base64 - received %s. Error: %s", message.data, e)
        return DecodedPushPayload(error=str(e))
    except Exception as e:
        logger.error("Uncaught Exception while decoding pubsub message. Exception: %s. Message: %s",
                     e, message.model_dump())
        return DecodedPushPayload(error=str(e))

    logger.info("Decoded message: %s", text)
    try:
        payload = json.loads(text)
    except JSONDecodeError as e:
        logger.error("Payload was not in JSON - received %s. Error: %s", text, e)
        return DecodedPushPayload(text=text, error=str(e))

    logger.info("Parsed message: %s", payload)
    return DecodedPushPayload(text=text, payload=payload, parsed=True)


def verify_push_token(
        token: Optional[str] = Query(default=None),
        properties: Properties = Depends(get_properties),
) -> None:
    """
    PubSub push subscriptions can be pointed at an endpoint URL carrying a ?token=... query parameter. When a
    verification token is configured we only accept deliveries carrying it. Without one, anybody can post to us.
    """
    expected_token = properties.push_verification_token
    if not expected_token:
        return
    if token is None or not secrets.compare_digest(token.encode("utf-8"), expected_token.encode("utf-8")):
        logger.warning("Rejected push delivery with a missing or invalid token")
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid push token")
