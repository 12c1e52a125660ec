from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from fastapi import HTTPException

from app.application.ports.notification_repo import NotificationRecord
from app.application.services.notification_service import NotificationService


class FakeNotificationRepo:
    def __init__(self):
        self.rows = []
        self.calls = []
        self._id = 0

    def add(self, user_id, type, read=False, minutes=0, data=None, category="system"):
        self._id += 1
        record = NotificationRecord(
            id=f"n{self._id}", user_id=user_id, type=type, read=read,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
            category=category, data=data or {}, title="t", message="m",
        )
        self.rows.append(record)
        return record

    def list_for_user(self, user_id, *, type=None, category=None, read=None, limit=50, offset=0):
        self.calls.append(("list", user_id, type, category, read, limit, offset))
        rows = [r for r in self.rows if r.user_id == user_id]
        if type:
            rows = [r for r in rows if r.type == type]
        if category:
            rows = [r for r in rows if r.category == category]
        if read is not None:
            rows = [r for r in rows if r.read == read]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return rows[offset:offset + limit]

    def count_unread(self, user_id):
        return sum(1 for r in self.rows if r.user_id == user_id and not r.read)

    def get_for_user(self, notification_id, user_id) -> Optional[NotificationRecord]:
        return next((r for r in self.rows if r.id == notification_id and r.user_id == user_id), None)

    def create(self, user_id, type, title, message, category, data):
        return self.add(user_id, type, data=data, category=category or "system")

    def mark_read(self, notification_id, user_id):
        r = self.get_for_user(notification_id, user_id)
        if not r:
            return False
        r.read = True
        return True

    def mark_all_read(self, user_id):
        unread = [r for r in self.rows if r.user_id == user_id and not r.read]
        for r in unread:
            r.read = True
        return len(unread)

    def delete(self, notification_id, user_id):
        r = self.get_for_user(notification_id, user_id)
        if not r:
            return False
        self.rows.remove(r)
        return True

    def clear_all(self, user_id):
        before = len(self.rows)
        self.rows = [r for r in self.rows if r.user_id != user_id]
        return before - len(self.rows)


class FakePublisher:
    def __init__(self, fail=False):
        self.events = []
        self.fail = fail

    def publish(self, user_id, event):
        if self.fail:
            raise RuntimeError("socket closed")
        self.events.append((user_id, event))


@pytest.fixture
def repo():
    return FakeNotificationRepo()


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def svc(repo, publisher):
    return NotificationService(repo=repo, publisher=publisher)


def test_list_reports_unread_and_has_more(svc, repo):
    repo.add("u1", "like", minutes=1)
    repo.add("u1", "like", minutes=2, read=True)
    repo.add("u2", "like", minutes=3)
    result = svc.list_notifications("u1", limit=2)
    assert [n.id for n in result["notifications"]] == ["n2", "n1"]
    assert result["unread_count"] == 1
    assert result["has_more"] is True


def test_list_unread_only_filters_read(svc, repo):
    repo.add("u1", "like", read=True)
    repo.add("u1", "follow")
    result = svc.list_notifications("u1", unread_only=True)
    assert [n.type for n in result["notifications"]] == ["follow"]
    assert result["has_more"] is False


def test_grouped_passes_filters_and_pagination(svc, repo):
    repo.add("u1", "message", data={"conversation_id": "c1"}, category="messaging")
    repo.add("u1", "message", minutes=1, data={"conversation_id": "c1"}, category="messaging")
    groups = svc.grouped("u1", limit=10, offset=0, category="messaging", type="message")
    assert repo.calls[-1] == ("list", "u1", "message", "messaging", None, 10, 0)
    assert [g.id for g in groups] == ["message_c1"]
    assert groups[0].unread_count == 2


def test_grouped_for_other_user_requires_admin(svc, repo):
    repo.add("u2", "follow", data={"actor_id": "a1"})
    with pytest.raises(HTTPException) as exc:
        svc.grouped("u1", target_user_id="u2")
    assert exc.value.status_code == 403
    groups = svc.grouped("u1", target_user_id="u2", is_admin=True)
    assert [g.id for g in groups] == ["follow_a1"]


def test_create_validates_and_publishes(svc, repo, publisher):
    record = svc.create({"user_id": "u1", "type": "like", "title": "New like", "message": "x",
                         "data": {"target_id": "p1"}}, caller_id="u1")
    assert record.user_id == "u1"
    assert publisher.events == [("u1", {"type": "new_notification", "notification_id": record.id})]


@pytest.mark.parametrize("payload,status", [
    ({"user_id": "u1", "type": "like", "title": "t"}, 400),
    ({"user_id": "u1", "type": "custom_event", "title": "t", "message": "m"}, 400),
    ({"user_id": "u2", "type": "like", "title": "t", "message": "m"}, 403),
])
def test_create_rejects_bad_payloads(svc, payload, status):
    with pytest.raises(HTTPException) as exc:
        svc.create(payload, caller_id="u1")
    assert exc.value.status_code == status


def test_server_call_may_target_any_user(svc, repo):
    record = svc.create({"user_id": "u9", "type": "welcome", "title": "Hi", "message": "Welcome"},
                        server_call=True)
    assert record.user_id == "u9"


def test_create_without_caller_is_unauthorized(svc):
    with pytest.raises(HTTPException) as exc:
        svc.create({"user_id": "u1", "type": "like", "title": "t", "message": "m"})
    assert exc.value.status_code == 401


def test_mark_read_and_delete_are_owner_scoped(svc, repo, publisher):
    mine = repo.add("u1", "like")
    theirs = repo.add("u2", "like")
    svc.mark_read("u1", mine.id)
    assert mine.read is True
    with pytest.raises(HTTPException) as exc:
        svc.mark_read("u1", theirs.id)
    assert exc.value.status_code == 404
    with pytest.raises(HTTPException):
        svc.delete("u1", theirs.id)
    svc.delete("u1", mine.id)
    assert repo.get_for_user(mine.id, "u1") is None
    assert [e["type"] for _, e in publisher.events] == ["notification_read", "notification_removed"]


def test_mark_all_read_and_clear_all_return_counts(svc, repo):
    repo.add("u1", "like")
    repo.add("u1", "follow")
    repo.add("u1", "follow", read=True)
    repo.add("u2", "follow")
    assert svc.mark_all_read("u1") == 2
    assert svc.unread_count("u1") == 0
    assert svc.clear_all("u1") == 3
    assert svc.unread_count("u2") == 1


def test_publish_failure_does_not_fail_write(repo):
    svc = NotificationService(repo=repo, publisher=FakePublisher(fail=True))
    record = repo.add("u1", "like")
    svc.mark_read("u1", record.id)
    assert record.read is True
