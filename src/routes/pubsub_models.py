import logging
from datetime import datetime
from typing import Any, Dict, Optional

from dateutil.parser import parse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class PushMessage(BaseModel):
    """
    Only data matters to us. The rest is metadata we log, so anything odd in there is dropped instead of failing
    the whole delivery.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    attributes: Dict[str, Any] = {}
    data: str
    message_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("messageId", "message_id"))
    publish_time: Optional[datetime] = Field(default=None,
                                             validation_alias=AliasChoices("publishTime", "publish_time"))

    @field_validator("attributes", mode="before")
    @classmethod
    def default_attributes(cls, attributes):
        return attributes if isinstance(attributes, dict) else {}

    @field_validator("message_id", mode="before")
    @classmethod
    def message_id_as_string(cls, message_id):
        return None if message_id is None else str(message_id)

    @field_validator("publish_time", mode="before")
    @classmethod
    def parse_publish_time(cls, publish_time):
        if isinstance(publish_time, datetime):
            return publish_time
        if not isinstance(publish_time, str):
            return None
        try:
            return parse(publish_time)
        except (ValueError, OverflowError) as e:
            logger.warning("Could not parse publish time %s. Error: %s", publish_time, e)
            return None


class PushEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: PushMessage
    subscription: Optional[str] = None

    @field_validator("subscription", mode="before")
    @classmethod
    def subscription_as_string(cls, subscription):
        return subscription if isinstance(subscription, str) else None


class DecodedPushPayload(BaseModel):
    text: Optional[str] = None
    payload: Any = None
    parsed: bool = False
    error: Optional[str] = None
