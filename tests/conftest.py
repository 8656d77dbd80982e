"""
Shared pytest fixtures for the Ministry Hub test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_member / make_ministry / make_module / make_room / make_reservation:
      ORM factories (flush, no commit)
"""

import pytest

from ministry_hub import create_app
from ministry_hub.models import db as _db
from ministry_hub.models.member import Member, Ministry, MinistryAssignment
from ministry_hub.models.room import Room, RoomReservation
from ministry_hub.models.training import TrainingModule


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Factories ────────────────────────────────────────────────────────────


@pytest.fixture()
def make_ministry():
    def _make(name="Worship Team", **kwargs):
        ministry = Ministry(name=name, **kwargs)
        _db.session.add(ministry)
        _db.session.flush()
        return ministry
    return _make


@pytest.fixture()
def make_member():
    counter = {"n": 0}

    def _make(full_name="Test Member", role="member", ministries=(), leads=(), **kwargs):
        counter["n"] += 1
        email = kwargs.pop("email", f"member{counter['n']}@example.org")
        member = Member(full_name=full_name, email=email, role=role, **kwargs)
        _db.session.add(member)
        _db.session.flush()
        for ministry in ministries:
            _db.session.add(MinistryAssignment(member_id=member.id, ministry_id=ministry.id))
        for ministry in leads:
            _db.session.add(MinistryAssignment(
                member_id=member.id, ministry_id=ministry.id, role="leader",
            ))
        _db.session.flush()
        return member
    return _make


@pytest.fixture()
def make_module():
    def _make(title="Module", **kwargs):
        module = TrainingModule(title=title, **kwargs)
        _db.session.add(module)
        _db.session.flush()
        return module
    return _make


@pytest.fixture()
def make_room():
    def _make(name="Room 101", **kwargs):
        room = Room(name=name, **kwargs)
        _db.session.add(room)
        _db.session.flush()
        return room
    return _make


@pytest.fixture()
def make_reservation():
    def _make(room, start, end, title="Booking", **kwargs):
        reservation = RoomReservation(
            room_id=room.id, title=title, start_time=start, end_time=end, **kwargs,
        )
        _db.session.add(reservation)
        _db.session.flush()
        return reservation
    return _make
