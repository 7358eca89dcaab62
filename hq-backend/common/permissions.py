# common/permissions.py
from rest_framework import permissions
from common.roles import APPROVER_ROLES, BILLING_ROLES, FRANCHISEE_ROLES, HQ_ROLES
from franchisees.models import FranchiseUser


def user_membership(user):
    """Return (role, franchisee_id) for an authenticated user, or (None, None)."""
    if not (user and getattr(user, "is_authenticated", False)):
        return None, None
    row = (
        FranchiseUser.objects.filter(user=user, is_active=True)
        .values_list("role", "franchisee_id")
        .first()
    )
    return row if row else (None, None)


def user_network_role(user):
    return user_membership(user)[0]


def is_headquarters(user):
    if user and getattr(user, "is_superuser", False):
        return True
    return user_network_role(user) in HQ_ROLES


def can_approve_purchase_orders(user):
    if user is None:
        return False
    if getattr(user, "is_superuser", False):
        return True
    return user_network_role(user) in APPROVER_ROLES


def can_generate_royalties(user):
    if user is None:
        return False
    if getattr(user, "is_superuser", False):
        return True
    return user_network_role(user) in BILLING_ROLES


def franchisee_scope(user):
    """
    Franchisee id the user is restricted to.
    HQ users (and superusers) get None, meaning "every franchisee".
    Users without a usable membership get False.
    """
    if getattr(user, "is_superuser", False):
        return None
    role, franchisee_id = user_membership(user)
    if role in HQ_ROLES:
        return None
    if role in FRANCHISEE_ROLES and franchisee_id:
        return franchisee_id
    return False


def can_act_for_franchisee(user, franchisee_id):
    scope = franchisee_scope(user)
    if scope is False:
        return False
    return scope is None or scope == franchisee_id


class IsNetworkMember(permissions.BasePermission):
    """HQ staff or an active franchisee user."""
    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        return franchisee_scope(request.user) is not False


class IsHeadquarters(permissions.BasePermission):
    """
    Allows access only to HQ roles (or superusers).
    """
    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        return is_headquarters(request.user)


class IsBillingStaff(permissions.BasePermission):
    """HQ admin / finance (or superusers): may issue royalty reports."""
    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        return can_generate_royalties(request.user)
