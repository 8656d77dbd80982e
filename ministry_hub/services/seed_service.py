"""
Demo data for local development (``flask seed-demo``).

Idempotent: records are looked up by their unique names first.
"""

import logging

from sqlalchemy import select

from ministry_hub.models import db
from ministry_hub.models.member import Ministry
from ministry_hub.models.room import Room
from ministry_hub.models.training import TrainingModule

logger = logging.getLogger(__name__)

DEMO_MINISTRY = "Guest Services"
DEMO_ROOM = "Fellowship Hall"

_DEEP_MODULE = {
    "title": "Welcoming Guests Well",
    "description": "How our hospitality team greets, guides and follows up with guests.",
    "category": "general",
    "estimated_minutes": 45,
    "is_required": True,
    "audience": "ministry",
    "sort_order": 1,
    "lessons": [
        {"title": "Why hospitality matters", "content": "Every guest is someone's first Sunday."},
        {"title": "The first ten minutes", "content": "Parking lot, doors, lobby, seat."},
        {"title": "Kids check-in", "content": "Safety first: tags, rooms, pickup."},
        {"title": "Connection card", "content": "Helping guests take a next step."},
        {"title": "Follow-up", "content": "A note within 48 hours."},
    ],
    "knowledge_check_questions": [
        {"question": "When should a guest get a follow-up note?",
         "options": ["Within 48 hours", "Next month"], "correct_answer": "Within 48 hours"},
        {"question": "Where does a first-time family go with children?",
         "options": ["Kids check-in", "Straight to the sanctuary"], "correct_answer": "Kids check-in"},
    ],
    "intensive_assessment_questions": [
        {"question": "Name the four first-ten-minute touch points.",
         "options": ["Parking, doors, lobby, seat", "Doors, stage, exit"],
         "correct_answer": "Parking, doors, lobby, seat", "weight": 2},
        {"question": "What is required at kids pickup?",
         "options": ["Matching tag", "Nothing"], "correct_answer": "Matching tag", "weight": 2},
        {"question": "What does the connection card help with?",
         "options": ["A next step", "Seating"], "correct_answer": "A next step", "weight": 1},
    ],
}

_LEGACY_MODULE = {
    "title": "Child Safety Policy",
    "description": "Required policy review for anyone serving with minors.",
    "category": "safety",
    "estimated_minutes": 20,
    "is_required": True,
    "audience": "all",
    "sort_order": 2,
    "lesson_summary": "Two-adult rule, check-in procedure, incident reporting.",
    "content_sections": [
        {"title": "Two-adult rule", "content": "Never be alone with a child.",
         "key_points": ["Two unrelated adults", "Open doors"]},
    ],
    "study_questions": [
        {"question": "Which part of the policy is hardest to follow on a busy Sunday?"},
    ],
    "assessments": [
        {"question": "How many adults must be present?", "options": ["1", "2", "3"], "correct_answer": 1},
        {"question": "Doors to classrooms stay...", "options": ["Open", "Locked"], "correct_answer": 0},
        {"question": "Who receives incident reports?",
         "options": ["Ministry leader", "Nobody"], "correct_answer": 0},
        {"question": "Children leave with...", "options": ["Anyone", "The tag holder"], "correct_answer": 1},
    ],
}


def seed_demo() -> dict:
    """Create the demo ministry, room and two modules. Returns what was created."""
    created = {"ministries": 0, "rooms": 0, "modules": 0}

    ministry = db.session.execute(
        select(Ministry).where(Ministry.name == DEMO_MINISTRY)
    ).scalar_one_or_none()
    if ministry is None:
        ministry = Ministry(name=DEMO_MINISTRY, description="Greeters, ushers and parking team.")
        db.session.add(ministry)
        db.session.flush()
        created["ministries"] += 1

    if not db.session.execute(select(Room.id).where(Room.name == DEMO_ROOM)).first():
        db.session.add(Room(
            name=DEMO_ROOM, capacity=120, location="Main building",
            amenities=["projector", "kitchen access", "round tables"],
        ))
        created["rooms"] += 1

    for fields in (_DEEP_MODULE, _LEGACY_MODULE):
        exists = db.session.execute(
            select(TrainingModule.id).where(TrainingModule.title == fields["title"])
        ).first()
        if exists:
            continue
        ministry_id = ministry.id if fields["audience"] == "ministry" else None
        db.session.add(TrainingModule(ministry_id=ministry_id, **fields))
        created["modules"] += 1

    db.session.commit()
    logger.info("Demo data seeded: %s", created)
    return created
