import asyncio
import logging
from concurrent import futures
from functools import partial
from os import environ
from typing import Dict, List

from anyio import to_thread
from google.api_core.exceptions import AlreadyExists, GoogleAPICallError, NotFound, RetryError
from google.cloud import pubsub_v1
from google.pubsub_v1 import PublisherClient

from src.dependencies import Properties

logger = logging.getLogger(__name__)


class PubSubClientException(Exception):
    pass


class PubSubClient(object):
    """
    Thin wrapper around the PubSub publisher API. It knows how to turn a bare topic name into a topic path, make
    sure the topic exists, and hand the payload over to the publisher.

    The GCP client is blocking, so every call that waits on the backend is pushed onto a worker thread.
    """

    def __init__(self, publisher_client: PublisherClient, properties: Properties):
        self.publisher_client = publisher_client
        self.properties = properties
        self._topic_locks: Dict[str, asyncio.Lock] = {}
        self._topic_lock_users: Dict[str, int] = {}

    def topic_path(self, topic_name: str) -> str:
        return self.publisher_client.topic_path(self.properties.pubsub_project_id, topic_name)

    async def topic_exists(self, topic_name: str) -> bool:
        return await to_thread.run_sync(self._topic_exists, self.topic_path(topic_name))

    async def ensure_topic(self, topic_name: str) -> str:
        """
        Makes sure the topic exists in PubSub, creating it if it doesn't.

        Creation is serialized per topic name so concurrent first publishes only create it once. If some other
        process beats us to it, the AlreadyExists error is swallowed since the end result is the same.

        :param topic_name: bare topic name, e.g. "my-topic"
        :return: str : Fully qualified topic path
        """
        if not topic_name or not topic_name.strip():
            raise ValueError("Topic name must be a non-empty string")

        topic_path = self.topic_path(topic_name)
        lock = self._topic_locks.setdefault(topic_name, asyncio.Lock())
        self._topic_lock_users[topic_name] = self._topic_lock_users.get(topic_name, 0) + 1
        try:
            async with lock:
                if not await to_thread.run_sync(self._topic_exists, topic_path):
                    await to_thread.run_sync(self._create_topic, topic_path)
        finally:
            self._release_topic_lock(topic_name)
        return topic_path

    def _release_topic_lock(self, topic_name: str) -> None:
        # locks only live while someone is ensuring that topic, so arbitrary names can't pile up
        self._topic_lock_users[topic_name] -= 1
        if self._topic_lock_users[topic_name] == 0:
            del self._topic_lock_users[topic_name]
            del self._topic_locks[topic_name]

    async def ensure_topics(self, topic_names: List[str]) -> List[str]:
        """
        Best effort version of ensure_topic for a batch of names, used at startup. One bad topic doesn't spoil the
        batch, failures are logged and skipped.

        :return: List(str) of the topic names that are known to exist
        """
        ensured = []
        for topic_name in topic_names:
            try:
                await self.ensure_topic(topic_name)
                ensured.append(topic_name)
            except (PubSubClientException, ValueError) as e:
                logger.error("Could not ensure configured topic %s exists. Error: %s", topic_name, e)
        return ensured

    def close(self) -> None:
        # flushes anything still sitting in the publisher batches
        self.publisher_client.stop()

    async def publish(self, topic_name: str, data: bytes, **attributes: str) -> str:
        topic_path = await self.ensure_topic(topic_name)
        try:
            publish_future = self.publisher_client.publish(topic_path, data, **attributes)
            message_id = await to_thread.run_sync(
                partial(publish_future.result, timeout=self.properties.pubsub_publish_timeout_seconds)
            )
        except futures.TimeoutError as e:
            logger.error("Publishing to %s timed out after %s seconds", topic_path,
                         self.properties.pubsub_publish_timeout_seconds)
            raise PubSubClientException("Publishing to {} timed out".format(topic_path)) from e
        except (GoogleAPICallError, RetryError) as e:
            logger.error("PubSub rejected publish to %s. Error: %s", topic_path, e)
            raise PubSubClientException(str(e)) from e

        logger.info("Published message %s to %s", message_id, topic_path)
        return message_id

    def _topic_exists(self, topic_path: str) -> bool:
        try:
            self.publisher_client.get_topic(
                request={"topic": topic_path}, retry=None, timeout=self.properties.pubsub_request_timeout_seconds
            )
            return True
        except NotFound:
            return False
        except (GoogleAPICallError, RetryError) as e:
            logger.error("Could not check if topic %s exists. Error: %s", topic_path, e)
            raise PubSubClientException(str(e)) from e

    def _create_topic(self, topic_path: str) -> None:
        try:
            self.publisher_client.create_topic(
                request={"name": topic_path}, retry=None, timeout=self.properties.pubsub_request_timeout_seconds
            )
            logger.info("Created topic: %s", topic_path)
        except AlreadyExists as e:
            logger.info("Topic already exists: %s. Exception: %s", topic_path, e)
        except (GoogleAPICallError, RetryError) as e:
            logger.error("Could not create topic %s. Error: %s", topic_path, e)
            raise PubSubClientException(str(e)) from e


def get_publisher_client(properties: Properties) -> PublisherClient:
    """
    The GCP client picks up PUBSUB_EMULATOR_HOST by itself and switches to an insecure channel with anonymous
    credentials, so pointing it at the emulator is just a matter of exporting the variable.
    """
    if properties.pubsub_emulator_host:
        logger.info("Using PubSub emulator at http://%s", properties.pubsub_emulator_host)
        environ["PUBSUB_EMULATOR_HOST"] = properties.pubsub_emulator_host
    return pubsub_v1.PublisherClient()
