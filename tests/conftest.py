import os

os.environ.setdefault("JWT_SECRET", "test-secret-key")
os.environ["INIT_DB_ON_STARTUP"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session
from sqlalchemy.pool import StaticPool

from taskboard.main import app
from taskboard.api.deps import get_db_session
from taskboard.database import build_engine
from taskboard.services import membership


@pytest.fixture
def test_engine():
    """Fresh in-memory database per test"""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    try:
        yield engine
    finally:
        SQLModel.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def db_session(test_engine):
    with Session(test_engine) as session:
        yield session


@pytest.fixture
def client(db_session: Session):
    def get_test_db():
        return db_session

    app.dependency_overrides[get_db_session] = get_test_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def team(db_session: Session):
    """A registered team: returns its code and the leader's id."""
    result = membership.register_leader(
        db_session,
        email="alice@example.com",
        password="pw",
        name="Alice",
        team_name="Team A",
    )
    return {"team_code": result["teamCode"], "leader_id": result["user"]["id"]}


@pytest.fixture
def make_member(db_session: Session, team):
    """Register a member of ``team`` and optionally move it to approved/rejected."""
    counter = {"n": 0}

    def _make(status: str = "approved", team_code: str = None) -> int:
        counter["n"] += 1
        code = team_code or team["team_code"]
        result = membership.register_member(
            db_session,
            email=f"member{counter['n']}@example.com",
            password="pw",
            name=f"Member {counter['n']}",
            team_code=code,
        )
        member_id = result["user"]["id"]
        if status == "approved":
            membership.approve_member(
                db_session, user_id=member_id, team_code=code, approved_by=team["leader_id"]
            )
        elif status == "rejected":
            membership.reject_member(
                db_session, user_id=member_id, team_code=code, rejected_by=team["leader_id"]
            )
        return member_id

    return _make
