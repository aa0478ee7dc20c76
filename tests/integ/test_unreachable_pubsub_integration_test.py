from assertpy import assert_that
from fastapi.testclient import TestClient

from src.main import create_topic_publisher_app
from tests.fixtures.test_client import a_properties


def test_unreachable_emulator_is_a_500_not_a_hang(monkeypatch):
    # Given
    monkeypatch.setenv("PUBSUB_EMULATOR_HOST", "localhost:1")
    properties = a_properties(pubsub_emulator_host="localhost:1", pubsub_request_timeout_seconds=2)

    with TestClient(create_topic_publisher_app(properties)) as client:
        # When
        response = client.post("/publish/orders", json={"message": "hello"})

    # Then
    assert_that(response.status_code).is_equal_to(500)
    assert_that(response.json()["error"]).is_equal_to("Failed to publish message")
    assert_that(response.json()["details"]).is_not_empty()
