from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from mockfirestore import MockFirestore

from civic_api.config import collections, firebase
from civic_api.core.errors import NotificationError
from civic_api.core.permissions import Role
from civic_api.core.settings import settings
from civic_api.services import (
    analytics_service,
    assignment_service,
    engagement_service,
    issue_service,
    notification_service,
    user_service,
)
from civic_api.services.notification_service import NotificationService
from civic_api.services.user_service import UserService
from civic_api.utils.security import create_access_token


class RecordingNotifications(NotificationService):
    """Keeps outgoing messages in memory instead of delivering them."""

    def __init__(self):
        super().__init__()
        self.emails = []
        self.sms = []
        self.fail = False

    def send_email(self, to, subject, html):
        if self.fail:
            raise NotificationError("SMTP unavailable")
        self.emails.append({"to": to, "subject": subject, "html": html})

    def send_sms(self, to, body):
        if self.fail:
            raise NotificationError("Twilio unavailable")
        self.sms.append({"to": to, "body": body})


@pytest.fixture
def notifications(monkeypatch):
    fake = RecordingNotifications()
    monkeypatch.setattr(notification_service, "_notification_service", fake)
    return fake


@pytest.fixture
def db(monkeypatch, notifications):
    mock_db = MockFirestore()
    monkeypatch.setattr(firebase, "db", mock_db)
    monkeypatch.setattr(settings, "BCRYPT_ROUNDS", 4)
    for module, name in (
        (user_service, "_user_service"),
        (issue_service, "_issue_service"),
        (engagement_service, "_engagement_service"),
        (assignment_service, "_assignment_service"),
        (analytics_service, "_analytics_service"),
    ):
        monkeypatch.setattr(module, name, None)
    return mock_db


@pytest.fixture
def client(db):
    from civic_api.main import app
    return TestClient(app)


@pytest.fixture
def users(db):
    service = UserService(db=db)
    return {
        "citizen": service.create_user("Asha Rao", "asha@civicmail.org", "citizen-pass", phone="+919811111111", is_verified=True),
        "neighbor": service.create_user("Vikram Shah", "vikram@civicmail.org", "neighbor-pass", is_verified=True),
        "worker": service.create_user("Ravi Kumar", "ravi@civicmail.org", "worker-pass", role=Role.WORKER, is_verified=True),
        "admin": service.create_user("City Admin", "admin@civicmail.org", "admin-pass", role=Role.ADMIN, is_verified=True),
    }


def auth_header(user):
    return {"Authorization": f"Bearer {create_access_token(user['id'], user['role'])}"}


@pytest.fixture
def headers(users):
    return {key: auth_header(user) for key, user in users.items()}


def insert_issue(db, created_by, **overrides):
    """Write an issue document directly, bypassing the service, and return its id."""
    now = datetime.now(timezone.utc)
    issue = {
        "title": "Overflowing garbage bin",
        "description": "The bin near the bus stop has not been cleared in days.",
        "category": "waste",
        "priority": "medium",
        "status": "pending",
        "location": {"latitude": 12.9716, "longitude": 77.5946, "address": "MG Road"},
        "photos": [],
        "created_by": created_by,
        "assigned_to": None,
        "upvotes": [],
        "feedback": [],
        "resolution_notes": None,
        "resolved_at": None,
        "created_at": now,
        "updated_at": now,
    }
    issue.update(overrides)
    ref = db.collection(collections.ISSUES).document()
    ref.set(issue)
    return ref.id


def days_ago(days):
    return datetime.now(timezone.utc) - timedelta(days=days)
