from pydantic import BaseModel


class EventCountResponse(BaseModel):
    """Counter for one event type"""
    event_type: str
    count: int
