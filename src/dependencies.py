from typing import Optional

from pydantic_settings import BaseSettings


class Properties(BaseSettings):
    app_name: str = "PubSub Example Services"
    env_name: str = "local"
    pubsub_project_id: str = "test-project"
    pubsub_emulator_host: Optional[str] = None
    pubsub_request_timeout_seconds: float = 30.0
    pubsub_publish_timeout_seconds: float = 60.0
    default_topic_name: str = "example-topic"
    topics_config_path: Optional[str] = None
    ensure_topics_on_startup: bool = True
    push_verification_token: Optional[str] = None
    host: str = "0.0.0.0"
    receiver_port: int = 3001
    publisher_port: int = 3000
    topic_publisher_port: int = 3002
