"""Outbound webhook delivery.

Builds, signs and delivers event envelopes to connected receivers, records
every attempt, and retries failures on a fixed backoff table.
"""

from .backoff import DEFAULT_RETRY_DELAYS, BackoffPolicy
from .dispatcher import (
    Delivered,
    DeliveryOutcome,
    DispatchReport,
    Failed,
    Skipped,
    WebhookDispatcher,
)
from .events import (
    dispatch_checkin_completed,
    dispatch_goal_achieved,
    dispatch_payment_received,
    dispatch_program_purchased,
    dispatch_session_completed,
    dispatch_squad_member_joined,
)
from .payload import build_payload
from .scheduler import RetryScheduler, RetrySweepResult
from .signing import (
    SIGNATURE_PREFIX,
    canonical_json,
    canonical_payload,
    compute_signature,
    sign_payload,
    verify_body,
    verify_signature,
)
from .transport import build_headers, encode_body, post_envelope

__all__ = [
    # Dispatch
    "Delivered",
    "DeliveryOutcome",
    "DispatchReport",
    "Failed",
    "Skipped",
    "WebhookDispatcher",
    # Retries
    "DEFAULT_RETRY_DELAYS",
    "BackoffPolicy",
    "RetryScheduler",
    "RetrySweepResult",
    # Envelope
    "build_payload",
    "SIGNATURE_PREFIX",
    "canonical_json",
    "canonical_payload",
    "compute_signature",
    "sign_payload",
    "verify_body",
    "verify_signature",
    # Transport
    "build_headers",
    "encode_body",
    "post_envelope",
    # Event helpers
    "dispatch_checkin_completed",
    "dispatch_goal_achieved",
    "dispatch_payment_received",
    "dispatch_program_purchased",
    "dispatch_session_completed",
    "dispatch_squad_member_joined",
]
