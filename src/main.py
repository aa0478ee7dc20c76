from __future__ import annotations

import logging.config
import uuid
from contextlib import asynccontextmanager
from os import path
from typing import AsyncIterator, List, Optional

import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from google.pubsub_v1 import PublisherClient
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.clients.pubsub_client import PubSubClient, get_publisher_client
from src.context import ServiceContext
from src.dependencies import Properties
from src.routes import notifications, publish, push_receiver
from src.routes.api_models import StatusResponse
from src.utils.topics_config import load_topics_config

# setup loggers to display more information
log_file_path = path.join(path.dirname(path.abspath(__file__)), "logging.conf")
logging.config.fileConfig(log_file_path, disable_existing_loggers=False)

# get root logger
logger = logging.getLogger(__name__)


def create_app(
        title: str,
        description: str,
        routers: List[APIRouter],
        properties: Optional[Properties] = None,
        publisher_client: Optional[PublisherClient] = None,
        with_pubsub: bool = True,
) -> FastAPI:
    """
    Builds one of the services. Nothing talks to PubSub until the lifespan handler runs, which is where the
    service context (settings, topics, PubSub client) gets built and attached to app.state.

    :param properties: settings to use instead of the ones read from the environment
    :param publisher_client: GCP publisher to use instead of building one, handy for tests
    :param with_pubsub: whether this service publishes at all
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app_properties = properties or Properties()
        topics = load_topics_config(app_properties.topics_config_path).topics
        context = ServiceContext(app_properties, topics=topics)

        if with_pubsub:
            client = publisher_client or get_publisher_client(app_properties)
            context.pubsub_client = PubSubClient(client, app_properties)
            if topics and app_properties.ensure_topics_on_startup:
                ensured = await context.pubsub_client.ensure_topics(topics)
                logger.info("Ensured %s of %s configured topics", len(ensured), len(topics))

        app.state.service_context = context
        logger.info("%s started for project %s", title, app_properties.pubsub_project_id)
        try:
            yield
        finally:
            # an injected publisher belongs to whoever passed it in
            if context.pubsub_client is not None and publisher_client is None:
                context.pubsub_client.close()

    app = FastAPI(title=title, description=description, lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    _register_exception_handlers(app)

    @app.get("/health", tags=["healthcheck"], response_model=StatusResponse)
    async def health():
        return StatusResponse()

    for router in routers:
        app.include_router(router)
    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def custom_http_exception_handler(request, e):
        return await http_exception_handler(request, e)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        uuid_str = str(uuid.uuid4())
        exc_str = f"{uuid_str} - {exc}".replace("\n", " ").replace("   ", " ")
        logger.error(exc_str)
        content = {"status_code": 10422, "message": exc_str, "data": None}
        return JSONResponse(
            content=content, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        )


def create_receiver_app(properties: Optional[Properties] = None) -> FastAPI:
    return create_app(
        title="PubSub Push Receiver",
        description="Decodes and logs PubSub push deliveries",
        routers=[push_receiver.router],
        properties=properties,
        with_pubsub=False,
    )


def create_publisher_app(
        properties: Optional[Properties] = None, publisher_client: Optional[PublisherClient] = None
) -> FastAPI:
    return create_app(
        title="PubSub Publisher",
        description="Publishes messages to the default PubSub topic",
        routers=[publish.single_topic_router],
        properties=properties,
        publisher_client=publisher_client,
    )


def create_topic_publisher_app(
        properties: Optional[Properties] = None, publisher_client: Optional[PublisherClient] = None
) -> FastAPI:
    return create_app(
        title="PubSub Topic Publisher",
        description="Publishes messages to any PubSub topic and receives notifications",
        routers=[publish.topic_router, notifications.router],
        properties=properties,
        publisher_client=publisher_client,
    )


receiver_app = create_receiver_app()
publisher_app = create_publisher_app()
topic_publisher_app = create_topic_publisher_app()


def run_receiver():
    properties = Properties()
    uvicorn.run(receiver_app, host=properties.host, port=properties.receiver_port, log_config=None)


def run_publisher():
    properties = Properties()
    uvicorn.run(publisher_app, host=properties.host, port=properties.publisher_port, log_config=None)


def run_topic_publisher():
    properties = Properties()
    uvicorn.run(topic_publisher_app, host=properties.host, port=properties.topic_publisher_port, log_config=None)
