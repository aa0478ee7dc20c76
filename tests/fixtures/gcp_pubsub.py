import pytest
from _pytest.fixtures import fixture
from google.cloud.pubsub_v1 import PublisherClient, SubscriberClient

from tests.pubsub_container import PubSubEmulatorContainer


@fixture(scope="session")
def pubsub_container():
    try:
        container = PubSubEmulatorContainer().start()
    except Exception as e:
        pytest.skip(f"Could not start the PubSub emulator container, is docker running? {e}")
    try:
        yield container
    finally:
        container.stop()


@fixture(scope="session")
def publisher_client(pubsub_container: PubSubEmulatorContainer) -> PublisherClient:
    return pubsub_container.publisher()


@fixture(scope="session")
def subscriber_client(pubsub_container: PubSubEmulatorContainer) -> SubscriberClient:
    return pubsub_container.subscriber()
