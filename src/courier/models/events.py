"""Event-specific data shapes carried in the envelope's `data` field.

Each model serializes with camelCase keys, which is what receivers see.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EventData(BaseModel):
    """Base for event data. Accepts snake_case or camelCase input."""

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_data(self) -> dict[str, Any]:
        """Wire representation for the envelope."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CheckinCompletedData(EventData):
    user_id: str
    user_name: str
    checkin_id: str
    checkin_type: Literal["morning", "evening", "weekly"]
    timestamp: datetime


class GoalAchievedData(EventData):
    user_id: str
    user_name: str
    goal_id: str
    goal_title: str
    achieved_at: datetime


class SessionCompletedData(EventData):
    session_id: str
    client_user_id: str
    client_name: str
    coach_user_id: str
    coach_name: str
    duration_minutes: int = Field(ge=0)
    completed_at: datetime


class ProgramPurchasedData(EventData):
    user_id: str
    user_name: str
    user_email: str
    program_id: str
    program_name: str
    amount_paid: int = Field(ge=0, description="Amount in the smallest currency unit")
    currency: str = Field(min_length=3, max_length=3)
    purchased_at: datetime


class SquadMemberJoinedData(EventData):
    user_id: str
    user_name: str
    user_email: str
    squad_id: str
    squad_name: str
    joined_at: datetime


class PaymentReceivedData(EventData):
    user_id: str
    user_name: str
    user_email: str
    amount: int = Field(ge=0, description="Amount in the smallest currency unit")
    currency: str = Field(min_length=3, max_length=3)
    product_type: Literal["program", "squad", "coaching"]
    product_id: str
    product_name: str
    stripe_payment_id: str
    received_at: datetime


__all__ = [
    "CheckinCompletedData",
    "EventData",
    "GoalAchievedData",
    "PaymentReceivedData",
    "ProgramPurchasedData",
    "SessionCompletedData",
    "SquadMemberJoinedData",
]
