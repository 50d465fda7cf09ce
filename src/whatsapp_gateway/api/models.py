"""Pydantic models for API request bodies."""

from pydantic import BaseModel, ConfigDict, Field


class SendMessageRequest(BaseModel):
    """Body of a single text send."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    number: str
    message: str


class BulkMessageRequest(BaseModel):
    """Body of a bulk text send."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    numbers: list[str]
    message: str


class ScheduleMessageRequest(BaseModel):
    """Body of a scheduled text send."""

    model_config = ConfigDict(coerce_numbers_to_str=True, populate_by_name=True)

    number: str
    message: str
    scheduled_time: str | None = Field(default=None, alias="scheduledTime")
