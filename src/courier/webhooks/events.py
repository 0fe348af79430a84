"""Typed helpers for the common platform events.

Each helper validates its data against the event's model and dispatches
it. Plain dicts are accepted in either snake_case or camelCase.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from courier.models import (
    CheckinCompletedData,
    EventData,
    GoalAchievedData,
    PaymentReceivedData,
    ProgramPurchasedData,
    SessionCompletedData,
    SquadMemberJoinedData,
)

if TYPE_CHECKING:
    from .dispatcher import DispatchReport, WebhookDispatcher

DataT = TypeVar("DataT", bound=EventData)


def _coerce(model: type[DataT], data: DataT | dict[str, Any]) -> DataT:
    if isinstance(data, model):
        return data
    return model.model_validate(data)


async def dispatch_checkin_completed(
    dispatcher: WebhookDispatcher,
    organization_id: str,
    data: CheckinCompletedData | dict[str, Any],
) -> DispatchReport:
    return await dispatcher.dispatch_event(
        organization_id, "client.checkin.completed", _coerce(CheckinCompletedData, data)
    )


async def dispatch_goal_achieved(
    dispatcher: WebhookDispatcher,
    organization_id: str,
    data: GoalAchievedData | dict[str, Any],
) -> DispatchReport:
    return await dispatcher.dispatch_event(
        organization_id, "client.goal.achieved", _coerce(GoalAchievedData, data)
    )


async def dispatch_session_completed(
    dispatcher: WebhookDispatcher,
    organization_id: str,
    data: SessionCompletedData | dict[str, Any],
) -> DispatchReport:
    return await dispatcher.dispatch_event(
        organization_id, "coaching.session.completed", _coerce(SessionCompletedData, data)
    )


async def dispatch_program_purchased(
    dispatcher: WebhookDispatcher,
    organization_id: str,
    data: ProgramPurchasedData | dict[str, Any],
) -> DispatchReport:
    return await dispatcher.dispatch_event(
        organization_id, "program.purchased", _coerce(ProgramPurchasedData, data)
    )


async def dispatch_squad_member_joined(
    dispatcher: WebhookDispatcher,
    organization_id: str,
    data: SquadMemberJoinedData | dict[str, Any],
) -> DispatchReport:
    return await dispatcher.dispatch_event(
        organization_id, "squad.member.joined", _coerce(SquadMemberJoinedData, data)
    )


async def dispatch_payment_received(
    dispatcher: WebhookDispatcher,
    organization_id: str,
    data: PaymentReceivedData | dict[str, Any],
) -> DispatchReport:
    return await dispatcher.dispatch_event(
        organization_id, "payment.received", _coerce(PaymentReceivedData, data)
    )


__all__ = [
    "dispatch_checkin_completed",
    "dispatch_goal_achieved",
    "dispatch_payment_received",
    "dispatch_program_purchased",
    "dispatch_session_completed",
    "dispatch_squad_member_joined",
]
