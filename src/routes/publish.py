import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from src.clients.pubsub_client import PubSubClientException
from src.context import get_properties
from src.dependencies import Properties
from src.routes.api_models import MessageIdResponse, PublishRequest, TopicPublishResponse
from src.services.publish_service import PublishResult, PublishService, get_publish_service

logger = logging.getLogger(__name__)

# The publisher service only ever talks to its default topic, the topic publisher lets callers pick one
single_topic_router = APIRouter()
topic_router = APIRouter()


@single_topic_router.post("/publish", tags=["publish"], status_code=200, response_model=MessageIdResponse)
async def publish_to_default_topic(
        publish_request: Optional[PublishRequest] = None,
        publish_service: PublishService = Depends(get_publish_service),
        properties: Properties = Depends(get_properties),
):
    if publish_request is None or not publish_request.message:
        return _message_required()

    result = await _publish(publish_service, publish_request.message, properties.default_topic_name)
    if isinstance(result, JSONResponse):
        return result
    return MessageIdResponse(message_id=result.message_id)


@topic_router.post("/publish", tags=["publish"], status_code=200, response_model=TopicPublishResponse)
async def publish_to_requested_topic(
        publish_request: Optional[PublishRequest] = None,
        publish_service: PublishService = Depends(get_publish_service),
        properties: Properties = Depends(get_properties),
):
    """
    Publish to the topic named in the body, or the default topic if there isn't one. The topic is created if it
    doesn't exist yet.
    """
    if publish_request is None or not publish_request.message:
        return _message_required()

    topic_name = publish_request.topic_name
    if not topic_name or not topic_name.strip():
        topic_name = properties.default_topic_name

    result = await _publish(publish_service, publish_request.message, topic_name)
    if isinstance(result, JSONResponse):
        return result
    return TopicPublishResponse(message_id=result.message_id, topic=result.topic)


@topic_router.post("/publish/{topic_name}", tags=["publish"], status_code=200, response_model=TopicPublishResponse)
async def publish_to_path_topic(
        topic_name: str,
        publish_request: Optional[PublishRequest] = None,
        publish_service: PublishService = Depends(get_publish_service),
):
    if publish_request is None or not publish_request.message:
        return _message_required()
    if not topic_name.strip():
        logger.warning("Rejected publish request with a blank topic name")
        return JSONResponse({"error": "Topic name is required"}, status_code=HTTP_400_BAD_REQUEST)

    result = await _publish(publish_service, publish_request.message, topic_name)
    if isinstance(result, JSONResponse):
        return result
    return TopicPublishResponse(message_id=result.message_id, topic=result.topic)


async def _publish(publish_service: PublishService, message: str,
                   topic_name: str) -> Union[PublishResult, JSONResponse]:
    try:
        return await publish_service.publish(message, topic_name)
    except PubSubClientException as e:
        logger.error("PubSub error while publishing to topic %s - exception: %s", topic_name, e)
        return _publish_failed(e)
    except Exception as e:
        logger.exception("Uncaught exception while publishing to topic %s", topic_name)
        return _publish_failed(e)


def _message_required() -> JSONResponse:
    logger.warning("Rejected publish request without a message")
    return JSONResponse({"error": "Message is required"}, status_code=HTTP_400_BAD_REQUEST)


def _publish_failed(e: Exception) -> JSONResponse:
    details = str(e) or e.__class__.__name__
    return JSONResponse({"error": "Failed to publish message", "details": details},
                        status_code=HTTP_500_INTERNAL_SERVER_ERROR)
