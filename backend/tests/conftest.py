from __future__ import annotations

import json
import os
import sys
from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import Session, sessionmaker

# Make `backend/` importable regardless of pytest import mode.
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.core.config import settings
from app.core.db.base import Base
from app.core.db.models import User
from app.core.db.session import get_db, import_model_modules
from app.domain.facilities.enums import (
    CheckFrequency,
    CovenantType,
    FacilityStatus,
    ThresholdOperator,
)
from app.domain.facilities.models import Covenant, Facility
from app.main import create_app
from app.shared.enums import Env

# Ensure model modules are imported so Base.metadata is complete.
import_model_modules()


@pytest.fixture()
def db_engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture()
def session_factory(db_engine) -> sessionmaker[Session]:
    return sessionmaker(bind=db_engine, autoflush=False, autocommit=False, class_=Session)


@pytest.fixture()
def db_session(session_factory) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db_session: Session) -> TestClient:
    settings.env = Env.dev
    app = create_app()

    def _override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    return TestClient(app)


def dev_actor_header(actor_id: str, role: str) -> dict[str, str]:
    return {"X-DEV-ACTOR": json.dumps({"actor_id": actor_id, "role": role})}


@pytest.fixture()
def users(db_session: Session) -> dict[str, User]:
    out = {
        "ops": User(email="ops@navlend.test", display_name="Ops", role="operations"),
        "admin": User(email="admin@navlend.test", display_name="Admin", role="admin"),
        "gp1": User(email="gp1@navlend.test", display_name="GP One", role="gp"),
        "gp2": User(email="gp2@navlend.test", display_name="GP Two", role="gp"),
    }
    db_session.add_all(out.values())
    db_session.commit()
    return out


@pytest.fixture()
def headers_for() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        return dev_actor_header(str(user.id), user.role)

    return _headers


@pytest.fixture()
def make_facility(db_session: Session) -> Callable[..., Facility]:
    def _make(**overrides) -> Facility:
        data = {
            "fund_name": "Harbor Growth Fund IV",
            "gp_name": "Harbor Capital",
            "principal_amount": 25_000_000.0,
            "outstanding_balance": 18_000_000.0,
            "interest_rate": 8.5,
            "ltv_ratio": 14.0,
            "current_nav": 128_571_428.0,
            "sector": "Technology",
            "vintage_year": 2019,
            "status": FacilityStatus.ACTIVE,
        }
        data.update(overrides)
        facility = Facility(**data)
        db_session.add(facility)
        db_session.commit()
        return facility

    return _make


@pytest.fixture()
def make_covenant(db_session: Session) -> Callable[..., Covenant]:
    def _make(facility: Facility, **overrides) -> Covenant:
        data = {
            "covenant_type": CovenantType.LTV_RATIO,
            "threshold_operator": ThresholdOperator.LESS_THAN_EQUAL,
            "threshold_value": 15.0,
            "check_frequency": CheckFrequency.QUARTERLY,
        }
        data.update(overrides)
        covenant = Covenant(facility_id=facility.id, **data)
        db_session.add(covenant)
        db_session.commit()
        return covenant

    return _make
