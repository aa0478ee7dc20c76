from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PublishRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message: Optional[str] = None
    topic_name: Optional[str] = Field(default=None, alias="topicName")

    @field_validator("message", "topic_name", mode="before")
    @classmethod
    def non_strings_count_as_missing(cls, value):
        # {"message": 123} should get the same 400 as a missing message, not a 422
        return value if isinstance(value, str) else None


class MessageIdResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message_id: str = Field(alias="messageId")


class TopicPublishResponse(MessageIdResponse):
    topic: str


class StatusResponse(BaseModel):
    status: str = "ok"


class AckResponse(StatusResponse):
    message: str
