from typing import List, Optional

from fastapi import Depends, Request

from src.clients.pubsub_client import PubSubClient
from src.dependencies import Properties


class ServiceContext(object):
    """
    Everything a request handler needs that outlives a single request. One of these is built by the app's lifespan
    handler and hung off app.state, so FastAPI dependencies can hand it out without module-level globals.
    """

    def __init__(self, properties: Properties, pubsub_client: Optional[PubSubClient] = None,
                 topics: Optional[List[str]] = None):
        self.properties = properties
        self.pubsub_client = pubsub_client
        self.topics = topics or []


def get_service_context(request: Request) -> ServiceContext:
    return request.app.state.service_context


def get_properties(context: ServiceContext = Depends(get_service_context)) -> Properties:
    return context.properties


def get_pubsub_client(context: ServiceContext = Depends(get_service_context)) -> PubSubClient:
    if context.pubsub_client is None:
        raise RuntimeError("This service was started without a PubSub client")
    return context.pubsub_client
