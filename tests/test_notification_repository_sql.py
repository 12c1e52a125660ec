from datetime import datetime, timedelta, timezone

from app.db.models import Notification
from app.infrastructure.persistence.sqlalchemy.repositories.notification_repository_sql import SqlNotificationRepository


def seed(session, user_id, type, minutes, read=False, category="system", data=None):
    n = Notification(
        user_id=user_id, type=type, title="t", message="m", category=category, data=data, read=read,
        created_at=datetime(2024, 3, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
    )
    session.add(n)
    session.commit()
    session.refresh(n)
    return n


def test_create_round_trips_payload(session):
    repo = SqlNotificationRepository(session)
    record = repo.create("u1", "message", "New message", "hello", None, {"conversation_id": "c1"})
    assert record.category == "system"
    assert record.read is False
    fetched = repo.get_for_user(record.id, "u1")
    assert fetched.data == {"conversation_id": "c1"}
    assert fetched.created_at.tzinfo is not None


def test_list_orders_newest_first_and_filters(session):
    seed(session, "u1", "like", 1, category="social")
    seed(session, "u1", "follow", 3, category="social", read=True)
    seed(session, "u1", "login", 2, category="security")
    seed(session, "u2", "like", 4)
    repo = SqlNotificationRepository(session)

    assert [r.type for r in repo.list_for_user("u1")] == ["follow", "login", "like"]
    assert [r.type for r in repo.list_for_user("u1", category="social")] == ["follow", "like"]
    assert [r.type for r in repo.list_for_user("u1", read=False)] == ["login", "like"]
    assert [r.type for r in repo.list_for_user("u1", type="like")] == ["like"]
    assert [r.type for r in repo.list_for_user("u1", limit=1, offset=1)] == ["login"]
    assert repo.count_unread("u1") == 2


def test_undecodable_data_becomes_empty_payload(session):
    n = seed(session, "u1", "message", 0, data="{not json")
    record = SqlNotificationRepository(session).get_for_user(n.id, "u1")
    assert record.data == {}


def test_mutations_are_owner_scoped(session):
    mine = seed(session, "u1", "like", 0)
    other = seed(session, "u2", "like", 1)
    repo = SqlNotificationRepository(session)

    assert repo.mark_read(other.id, "u1") is False
    assert repo.mark_read(mine.id, "u1") is True
    assert repo.get_for_user(mine.id, "u1").read_at is not None
    assert repo.delete(other.id, "u1") is False
    assert repo.get_for_user(other.id, "u2") is not None


def test_mark_all_read_and_clear_all(session):
    seed(session, "u1", "like", 0)
    seed(session, "u1", "like", 1)
    seed(session, "u2", "like", 2)
    repo = SqlNotificationRepository(session)

    assert repo.mark_all_read("u1") == 2
    assert repo.count_unread("u1") == 0
    assert repo.clear_all("u1") == 2
    assert repo.list_for_user("u1") == []
    assert repo.count_unread("u2") == 1


def test_count_unread_is_zero_for_unknown_user(session):
    seed(session, "u1", "like", 0)
    repo = SqlNotificationRepository(session)
    assert repo.count_unread("nobody") == 0
    assert repo.count_unread("u1") == 1
