# Pydantic schemas

import json
from decimal import Decimal
from typing import Any
from pydantic import BaseModel, ConfigDict, Field
from app.core.exceptions import MalformedEventError


class IncomingEvent(BaseModel):
    """
    Event payload as sent by clients

    Both named fields are optional and untyped; anything else is kept in
    the model extras and ignored by persistence.
    """

    model_config = ConfigDict(extra="allow")

    event_type: Any = None
    url: Any = None


def _reject_constant(name: str):
    # NaN and Infinity are accepted by json.loads but are not JSON
    raise ValueError(f"Invalid JSON constant: {name}")


def parse_event_body(raw_body: str | bytes | None) -> IncomingEvent:
    """
    Decode a request body into an IncomingEvent

    Raises MalformedEventError if the body is not a JSON object.
    Numbers with a fraction are decoded as Decimal so they stay storable
    in DynamoDB.
    """
    try:
        payload = json.loads(raw_body, parse_float=Decimal, parse_constant=_reject_constant)
    except (TypeError, ValueError) as e:
        raise MalformedEventError() from e

    if not isinstance(payload, dict):
        raise MalformedEventError()

    return IncomingEvent.model_validate(payload)


class NormalizedEventRecord(BaseModel):
    """Queryable form of an event, one per request"""

    model_config = ConfigDict(populate_by_name=True)

    event_id: str = Field(..., alias="eventId")
    received_at: str = Field(..., alias="receivedAt")
    event_type: Any = Field(default=None, alias="eventType")
    url: Any = None

    def to_item(self) -> dict[str, Any]:
        # Absent fields are left out of the item rather than stored as NULL
        return self.model_dump(by_alias=True, exclude_none=True)


class IngestResponse(BaseModel):
    """Response for an accepted event"""

    message: str = "Event processed and stored successfully!"
    event_id: str = Field(..., alias="eventId")

    model_config = ConfigDict(populate_by_name=True)


class InvalidEventResponse(BaseModel):
    """Response for a body that is not a JSON object"""

    message: str = "Invalid JSON format."


class ErrorResponse(BaseModel):
    """Response for a failed initialization or write"""

    message: str = "An internal error occurred."
    error_name: str = Field(..., alias="errorName")
    error_message: str = Field(..., alias="errorMessage")

    model_config = ConfigDict(populate_by_name=True)
