# common/errors.py
"""
Domain error taxonomy shared by the procurement and reporting engines.

Every error carries a machine readable ``code``, the HTTP status the API layer
should answer with, a ``retryable`` flag and a ``details`` dict holding the
offending metric (computed core %, legal next events, ...).
"""
from datetime import date, datetime
from decimal import Decimal


def _jsonable(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    return value


class DomainError(Exception):
    """Base class for all engine errors."""
    code = "domain_error"
    http_status = 400
    retryable = False
    default_message = "Operation failed"

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def as_dict(self):
        payload = {"error": self.message, "code": self.code, "retryable": self.retryable}
        for key, value in self.details.items():
            payload[key] = _jsonable(value)
        return payload


# ---------- validation ----------
class ValidationError(DomainError):
    """Malformed input: negative quantity, unknown product, bad period..."""
    code = "validation_error"
    http_status = 400
    default_message = "Invalid input"


class EmptyOrder(ValidationError):
    code = "empty_order"
    http_status = 422
    default_message = "Purchase order must have at least one line"


class AgreementOverlap(ValidationError):
    code = "agreement_overlap"
    default_message = "Agreement period overlaps an existing agreement"


class NotFound(DomainError):
    code = "not_found"
    http_status = 404
    default_message = "Not found"


# ---------- compliance ----------
class ComplianceError(DomainError):
    code = "compliance_error"
    http_status = 422
    default_message = "Order is not compliant"


class InsufficientCoreRatio(ComplianceError):
    code = "insufficient_core_ratio"

    def __init__(self, core_pct, required_pct, message=None, **details):
        if message is None:
            if core_pct is None:
                message = "Order total is zero; core share is undefined"
            else:
                message = (
                    f"Core items make up {core_pct}% of the order value; "
                    f"at least {required_pct}% is required"
                )
        super().__init__(message, core_pct=core_pct, required_pct=required_pct, **details)


# ---------- state ----------
class StateError(DomainError):
    code = "state_error"
    http_status = 409
    default_message = "Operation not allowed in the current state"


class InvalidTransition(StateError):
    code = "invalid_transition"

    def __init__(self, status, event, allowed_events, message=None):
        allowed = list(allowed_events)
        if message is None:
            legal = ", ".join(allowed) if allowed else "none (terminal state)"
            message = f"Cannot apply '{event}' to a purchase order in status {status}; allowed events: {legal}"
        super().__init__(message, status=status, event=event, allowed_events=allowed)


class OrderNotEditable(StateError):
    code = "order_not_editable"

    def __init__(self, status, message=None, **details):
        message = message or f"Purchase order is {status}; only DRAFT purchase orders can be modified"
        super().__init__(message, status=status, **details)


# ---------- policy ----------
class PolicyError(DomainError):
    code = "policy_error"
    http_status = 422
    default_message = "Operation refused by network policy"


class NoActiveAgreement(PolicyError):
    code = "no_active_agreement"

    def __init__(self, franchisee_id, reference_date, message=None):
        message = message or (
            f"Franchisee {franchisee_id} has no franchise agreement in force on {reference_date.isoformat()}"
        )
        super().__init__(message, franchisee_id=franchisee_id, reference_date=reference_date)


class ApprovalNotPermitted(PolicyError):
    code = "approval_not_permitted"
    http_status = 403
    default_message = "Actor is not allowed to approve purchase orders"


# ---------- concurrency ----------
class ConflictError(DomainError):
    """Lost a concurrent-mutation race. Re-read and retry."""
    code = "conflict"
    http_status = 409
    retryable = True
    default_message = "The record was modified concurrently; reload and retry"


class LockTimeout(ConflictError):
    code = "lock_timeout"
    default_message = "Timed out waiting for a lock on the record; retry later"
