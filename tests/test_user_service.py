"""
Unit tests for user accounts and permission flags.
"""
import pytest

from app.core.errors import DomainValidationError
from app.db.models.user import Permission
from app.services import user_service


def test_has_permission_follows_grants(db):
    user = user_service.create_user(db, username="clerk", password="secret123")
    assert user_service.has_permission(user, Permission.VIEW_SUBSCRIPTIONS)
    assert not user_service.has_permission(user, Permission.APPROVE_REFUNDS)

    user = user_service.add_permission(db, user.id, Permission.APPROVE_REFUNDS)
    assert user_service.has_permission(user, Permission.APPROVE_REFUNDS)

    user = user_service.remove_permission(db, user.id, Permission.VIEW_SUBSCRIPTIONS)
    assert not user_service.has_permission(user, Permission.VIEW_SUBSCRIPTIONS)
    assert user_service.has_permission(user, Permission.APPROVE_REFUNDS)


def test_parse_permissions_is_case_insensitive():
    parsed = user_service.parse_permissions(["view_subscriptions", " Approve_Refunds "])
    assert parsed == Permission.VIEW_SUBSCRIPTIONS | Permission.APPROVE_REFUNDS

    with pytest.raises(DomainValidationError):
        user_service.parse_permissions(["FLY"])


def test_short_password_is_rejected(db):
    with pytest.raises(DomainValidationError):
        user_service.create_user(db, username="shorty", password="12345")
