# procurement/workflow.py
"""
Purchase-order lifecycle:

    DRAFT --submit--> SUBMITTED --approve--> PREPARING --mark-ready--> READY --mark-delivered--> DELIVERED
                          |
                          +--reject--> CANCELLED

DRAFT is the only editable state. DELIVERED and CANCELLED are terminal.
Guards that need the database or the actor (core share, approval capability)
are enforced by procurement.services.
"""
from django.db import models

from common import errors


class PurchaseOrderStatus(models.TextChoices):
    DRAFT     = "DRAFT",     "Draft"
    SUBMITTED = "SUBMITTED", "Submitted"
    PREPARING = "PREPARING", "Preparing"
    READY     = "READY",     "Ready"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"


class PurchaseOrderEvent(models.TextChoices):
    SUBMIT         = "submit",         "Submit"
    APPROVE        = "approve",        "Approve"
    REJECT         = "reject",         "Reject"
    MARK_READY     = "mark-ready",     "Mark ready"
    MARK_DELIVERED = "mark-delivered", "Mark delivered"


S = PurchaseOrderStatus
E = PurchaseOrderEvent

# (from, event) -> to, in display order. Keyed by plain string values.
TRANSITIONS = {
    (S.DRAFT.value, E.SUBMIT.value): S.SUBMITTED.value,
    (S.SUBMITTED.value, E.APPROVE.value): S.PREPARING.value,
    (S.SUBMITTED.value, E.REJECT.value): S.CANCELLED.value,
    (S.PREPARING.value, E.MARK_READY.value): S.READY.value,
    (S.READY.value, E.MARK_DELIVERED.value): S.DELIVERED.value,
}

TERMINAL_STATUSES = frozenset({S.DELIVERED.value, S.CANCELLED.value})
EDITABLE_STATUSES = frozenset({S.DRAFT.value})

# Timestamp stamped on the order when it enters a status
STATUS_TIMESTAMP_FIELDS = {
    S.SUBMITTED.value: "submitted_at",
    S.PREPARING.value: "approved_at",
    S.READY.value: "ready_at",
    S.DELIVERED.value: "delivered_at",
    S.CANCELLED.value: "cancelled_at",
}


def allowed_events(status):
    status = str(status)
    return [event for (source, event) in TRANSITIONS if source == status]


def is_terminal(status):
    return str(status) in TERMINAL_STATUSES


def is_editable(status):
    return str(status) in EDITABLE_STATUSES


def next_status(status, event):
    """
    Target status for ``event`` applied in ``status``.

    Raises:
        InvalidTransition: the pair is not in the transition table (this
            includes unknown event names and every event in a terminal state).
    """
    key = (str(status), str(event))
    if key not in TRANSITIONS:
        raise errors.InvalidTransition(status=str(status), event=str(event), allowed_events=allowed_events(status))
    return TRANSITIONS[key]


def event_for_target(status, target):
    """
    Event that moves an order from ``status`` to ``target``; used by the
    status-oriented endpoint (PUT .../status {status}).
    """
    status, target = str(status), str(target)
    for (source, event), destination in TRANSITIONS.items():
        if source == status and destination == target:
            return event
    raise errors.InvalidTransition(
        status=str(status),
        event=f"set-status:{target}",
        allowed_events=allowed_events(status),
    )
