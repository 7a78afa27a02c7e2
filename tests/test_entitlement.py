"""Tests for the free-tier entitlement gate."""
import pytest

from todo_mcp.models.user import User
from todo_mcp.services.entitlement_service import EntitlementService
from todo_mcp.services.user_service import UserService
from todo_mcp.mcp.base_tool import ValidationError

UPGRADE_URL = "https://billing.example.com/portal"


def gate(session, limit=5):
    return EntitlementService(session, limit=limit, upgrade_url=UPGRADE_URL)


def set_usage(session, user_id, used, status="free"):
    user = UserService(session).get_or_create(user_id)
    user.free_todos_used = used
    user.subscription_status = status
    session.add(user)
    session.commit()


def test_unknown_user_is_created_with_zero_usage(session):
    decision = gate(session).can_create_task("kp_new")

    assert decision.allowed is True
    user = UserService(session).get("kp_new")
    assert user is not None
    assert user.free_todos_used == 0
    assert user.subscription_status == "free"
    assert user.plan == "free"


@pytest.mark.parametrize("used", [0, 1, 4])
def test_below_limit_is_allowed(session, used):
    set_usage(session, "kp_alice", used)

    assert gate(session, limit=5).can_create_task("kp_alice").allowed is True


@pytest.mark.parametrize("used", [5, 6])
def test_at_limit_is_denied_with_upgrade_reason(session, used):
    set_usage(session, "kp_alice", used)

    decision = gate(session, limit=5).can_create_task("kp_alice")

    assert decision.allowed is False
    assert "5" in decision.reason
    assert UPGRADE_URL in decision.reason


def test_active_subscriber_is_always_allowed(session):
    set_usage(session, "kp_alice", 50, status="active")

    assert gate(session, limit=1).can_create_task("kp_alice").allowed is True


def test_cancelled_subscriber_falls_back_to_free_limit(session):
    set_usage(session, "kp_alice", 1, status="cancelled")

    assert gate(session, limit=1).can_create_task("kp_alice").allowed is False


def test_consume_increments_until_limit(session):
    UserService(session).get_or_create("kp_alice")
    entitlements = gate(session, limit=2)

    assert entitlements.consume("kp_alice") is True
    assert entitlements.consume("kp_alice") is True
    assert entitlements.consume("kp_alice") is False
    session.commit()

    user = UserService(session).get("kp_alice")
    session.refresh(user)
    assert user.free_todos_used == 2
    assert user.total_todos_created == 2


def test_consume_for_active_user_counts_total_only(session):
    set_usage(session, "kp_alice", 0, status="active")

    assert gate(session, limit=1).consume("kp_alice") is True
    session.commit()

    user = UserService(session).get("kp_alice")
    session.refresh(user)
    assert user.free_todos_used == 0
    assert user.total_todos_created == 1


def test_status_summary(session):
    set_usage(session, "kp_alice", 2)

    status = gate(session, limit=5).get_status("kp_alice")

    assert status["subscription_status"] == "free"
    assert status["free_todos_used"] == 2
    assert status["remaining_free_todos"] == 3
    assert status["unlimited"] is False


def test_set_subscription_activates_plan(session):
    user = UserService(session).set_subscription("kp_alice", "active")

    assert user.subscription_status == "active"
    assert user.plan == "pro"
    assert gate(session, limit=0).can_create_task("kp_alice").allowed is True


def test_set_subscription_rejects_unknown_status(session):
    with pytest.raises(ValidationError):
        UserService(session).set_subscription("kp_alice", "gold")


def test_one_record_per_subject(session):
    users = UserService(session)
    users.get_or_create("kp_alice", name="Alice")
    users.upsert("kp_alice", "Alicia", "alicia@example.com")
    users.get_or_create("kp_alice")

    from sqlmodel import select
    rows = session.exec(select(User).where(User.user_id == "kp_alice")).all()
    assert len(rows) == 1
    assert rows[0].name == "Alicia"
    assert rows[0].email == "alicia@example.com"
