import json
import logging
from datetime import datetime, timezone

from fastapi import Depends
from pydantic import BaseModel

from src.clients.pubsub_client import PubSubClient
from src.context import get_pubsub_client

logger = logging.getLogger(__name__)


class OutboundMessage(BaseModel):
    message: str
    timestamp: str


class PublishResult(BaseModel):
    message_id: str
    topic: str


class PublishService(object):
    def __init__(self, pubsub_client: PubSubClient):
        self.pubsub_client = pubsub_client

    async def publish(self, message: str, topic_name: str) -> PublishResult:
        """
        Wraps the message with a timestamp, serializes it and ships it off to the topic. The topic gets created on
        the way if it doesn't exist yet. Backend errors are left for the caller to deal with.
        """
        outbound = OutboundMessage(message=message, timestamp=_utc_timestamp())
        data = json.dumps(outbound.model_dump()).encode("utf-8")
        message_id = await self.pubsub_client.publish(topic_name, data)
        logger.info("Message %s published to topic %s", message_id, topic_name)
        return PublishResult(message_id=message_id, topic=topic_name)


def _utc_timestamp() -> str:
    # e.g. 2024-03-01T12:30:00.123Z
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def get_publish_service(pubsub_client: PubSubClient = Depends(get_pubsub_client)) -> PublishService:
    return PublishService(pubsub_client)
