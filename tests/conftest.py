from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from journalflow.auth import create_access_token
from journalflow.database import Base, get_db, make_engine
from journalflow.errors import NotificationError
from journalflow.identity import Actor
from journalflow.main import app, get_mailer
from journalflow.notifications import Notifier
from journalflow.orchestrator import assign
from journalflow.store import EntityStore


class RecordingNotifier(Notifier):
    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    def notify(self, recipient_email, template_kind, context):
        if self.fail:
            raise NotificationError("provider down", recipient=recipient_email, template_kind=template_kind)
        self.sent.append((recipient_email, template_kind, dict(context)))


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'journalflow_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return EntityStore(db)


@pytest.fixture
def notifier():
    return RecordingNotifier()


def _make_user(store, name, email, role):
    user = store.insert(
        "users",
        {"name": name, "email": email, "hashed_password": "not-a-real-hash", "role": role},
    )
    return Actor(id=user.id, email=user.email, role=user.role, name=user.name)


@pytest.fixture
def admin(store):
    return _make_user(store, "Editor", "editor@journal.org", "admin")


@pytest.fixture
def author(store):
    return _make_user(store, "Ada Author", "ada@uni.edu", "author")


@pytest.fixture
def other_author(store):
    return _make_user(store, "Otto Other", "otto@uni.edu", "author")


@pytest.fixture
def reviewer(store):
    return _make_user(store, "Rita Reviewer", "rita@lab.org", "reviewer")


@pytest.fixture
def second_reviewer(store):
    return _make_user(store, "Sam Second", "sam@lab.org", "reviewer")


@pytest.fixture
def proposal(store, author):
    return store.insert(
        "proposals",
        {
            "author_id": author.id,
            "title": "Working memory limits",
            "abstract": "We measure capacity limits of working memory.",
            "research_area": "Memory & Learning",
            "keywords": ["working memory", "fMRI"],
            "status": "submitted",
            "submitted_at": datetime.utcnow(),
        },
    )


@pytest.fixture
def client(session_factory, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def make(actor: Actor) -> dict:
        return {"Authorization": f"Bearer {create_access_token({'sub': actor.email})}"}

    return make


@pytest.fixture
def assignment(store, notifier, proposal, reviewer):
    """The proposal turned into a paper with ``reviewer`` as lead editor."""
    result = assign(store, notifier, proposal.id, reviewer.id, is_lead_editor=True)
    notifier.sent.clear()
    return result
