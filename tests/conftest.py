import os
from datetime import date, time

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('AUTO_COMPLETE_ENABLED', 'false')

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from backend.auth.jwt_handler import token_for_user  # noqa: E402
from backend.database import Base, get_db, init_schema  # noqa: E402
from backend.main import create_app  # noqa: E402
from backend.models.availability import TherapistAvailability  # noqa: E402
from backend.models.therapy_session import TherapySession  # noqa: E402
from backend.models.user import ROLE_ADMIN, ROLE_PATIENT, ROLE_THERAPIST, User  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    init_schema(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def _create_user(db, email: str, role: str) -> User:
    user = User(email=email, full_name=email.split('@')[0].title(), hashed_password='', role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def therapist(db) -> User:
    return _create_user(db, 'therapist@example.com', ROLE_THERAPIST)


@pytest.fixture
def other_therapist(db) -> User:
    return _create_user(db, 'other.therapist@example.com', ROLE_THERAPIST)


@pytest.fixture
def patient(db) -> User:
    return _create_user(db, 'patient@example.com', ROLE_PATIENT)


@pytest.fixture
def other_patient(db) -> User:
    return _create_user(db, 'other.patient@example.com', ROLE_PATIENT)


@pytest.fixture
def admin(db) -> User:
    return _create_user(db, 'admin@example.com', ROLE_ADMIN)


@pytest.fixture
def add_window(db):
    def build(therapist_id: int, day_of_week: str, start: time, end: time) -> TherapistAvailability:
        window = TherapistAvailability(
            therapist_id=therapist_id,
            day_of_week=day_of_week,
            start_time=start,
            end_time=end,
        )
        db.add(window)
        db.commit()
        db.refresh(window)
        return window

    return build


@pytest.fixture
def add_session(db):
    def build(
        therapist_id: int,
        patient_id: int,
        scheduled_date: date,
        start: time,
        end: time,
        status: str = 'pending',
    ) -> TherapySession:
        session = TherapySession(
            therapist_id=therapist_id,
            patient_id=patient_id,
            scheduled_date=scheduled_date,
            start_time=start,
            end_time=end,
            status=status,
        )
        db.add(session)
        db.commit()
        db.refresh(session)
        return session

    return build


@pytest.fixture
def client(session_factory):
    app = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def auth_headers():
    def build(user: User) -> dict[str, str]:
        token = token_for_user(user)
        return {'Authorization': f'Bearer {token}'}

    return build
