"""
Tests for the training blueprint and service.

Covers:
  - module list/detail with enabled steps
  - hub audience rules (leader / ministry / all, ministry-scoped modules)
  - progress upsert: creation, monotonic percent, completed ⇒ 100, backward move → 422,
    assessed modules only complete by scoring, no repeat completion
  - session endpoint: first interaction creates the record, lesson advance records
    its band, no skipping past recorded progress, review mode writes nothing,
    finished modules need review mode
  - assessment endpoint: 3 of 4 → 75, stored as completed / shown as submitted
  - next module in the same track
  - leader review: submissions list, approve, reject, 403 / 409 paths
"""

import pytest

from ministry_hub.models.training import UserTrainingProgress


def _lessons(n):
    return [{"title": f"Lesson {i + 1}", "content": "..."} for i in range(n)]


def _index_questions(n, correct=1):
    return [
        {"question": f"Q{i + 1}", "options": ["A", "B", "C"], "correct_answer": correct}
        for i in range(n)
    ]


@pytest.fixture()
def ministry(make_ministry):
    return make_ministry("Kids Ministry")


@pytest.fixture()
def member(make_member, ministry):
    return make_member("Mary Member", ministries=[ministry])


@pytest.fixture()
def leader(make_member, ministry):
    return make_member("Larry Leader", role="leader", leads=[ministry])


@pytest.fixture()
def deep_module(make_module, ministry):
    return make_module(
        "Deep Dive",
        ministry_id=ministry.id,
        sort_order=1,
        lessons=_lessons(5),
        knowledge_check_questions=[
            {"question": "k", "options": ["A", "B"], "correct_answer": "A"},
        ],
        intensive_assessment_questions=[
            {"question": "a", "options": ["A", "B"], "correct_answer": "A", "weight": 1},
            {"question": "b", "options": ["A", "B"], "correct_answer": "B", "weight": 3},
        ],
    )


@pytest.fixture()
def quiz_module(make_module, ministry):
    return make_module(
        "Safety Quiz", ministry_id=ministry.id, sort_order=2, assessments=_index_questions(4),
    )


@pytest.fixture()
def reading_module(make_module):
    return make_module("Orientation Reading", sort_order=3, lessons=_lessons(2))


def _progress_url(member, module, suffix="progress"):
    return f"/api/v1/members/{member.id}/training/modules/{module.id}/{suffix}"


def _record(member, module):
    return UserTrainingProgress.query.filter_by(member_id=member.id, module_id=module.id).first()


def _pass_quiz(client, member, module):
    return client.post(_progress_url(member, module, "assessment"),
                       json={"answers": ["1", "1", "1", "1"]})


def _session_event(client, member, module, session, event="next"):
    return client.post(_progress_url(member, module, "session"),
                       json={"session": session, "event": event})


class TestModules:
    def test_list_and_detail(self, client, deep_module, quiz_module):
        res = client.get("/api/v1/training/modules")
        assert res.status_code == 200
        assert [m["title"] for m in res.get_json()["items"]] == ["Deep Dive", "Safety Quiz"]

        res = client.get(f"/api/v1/training/modules/{deep_module.id}")
        body = res.get_json()
        assert body["is_deep"] is True
        assert body["enabled_steps"] == ["lesson", "knowledge-check", "assessment"]

    def test_unknown_module_404(self, client):
        res = client.get("/api/v1/training/modules/999")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"


class TestHubAudience:
    def test_visibility_rules(self, client, make_module, make_ministry, make_member, ministry):
        other = make_ministry("Parking Team")
        make_module("General", audience="all")
        make_module("Kids only", audience="all", ministry_id=ministry.id)
        make_module("Parking only", audience="ministry", ministry_id=other.id)
        make_module("Unscoped ministry", audience="ministry")
        make_module("Leaders", audience="leader")
        make_module("Kids leaders", audience="leader", ministry_id=ministry.id)

        member = make_member("M", ministries=[ministry])
        lead = make_member("L", role="leader", leads=[ministry])

        def visible(person):
            body = client.get(f"/api/v1/members/{person.id}/training").get_json()
            return {m["title"] for m in body["required"] + body["optional"] + body["completed"]}

        assert visible(member) == {"General", "Kids only"}
        assert visible(lead) == {"General", "Kids only", "Leaders", "Kids leaders"}

    def test_hub_groups_completed_and_submitted(self, client, member, quiz_module, make_module):
        make_module("Required", is_required=True)
        _pass_quiz(client, member, quiz_module)
        body = client.get(f"/api/v1/members/{member.id}/training").get_json()
        assert [m["title"] for m in body["required"]] == ["Required"]
        assert [m["title"] for m in body["completed"]] == ["Safety Quiz"]
        assert body["submitted"][0]["display_status"] == "submitted"
        assert body["counts"]["completed"] == 1


class TestProgressUpsert:
    def test_create_then_advance(self, client, member, deep_module):
        res = client.post(_progress_url(member, deep_module),
                          json={"status": "in-progress", "progress_percent": 24})
        assert res.status_code == 200
        assert res.get_json()["progress_percent"] == 24
        assert res.get_json()["started_at"] is not None

    def test_percent_does_not_decrease(self, client, member, deep_module):
        client.post(_progress_url(member, deep_module),
                    json={"status": "in-progress", "progress_percent": 48})
        res = client.post(_progress_url(member, deep_module),
                          json={"status": "in-progress", "progress_percent": 12})
        assert res.get_json()["progress_percent"] == 48

    def test_completed_forces_100(self, client, member, reading_module):
        res = client.post(_progress_url(member, reading_module),
                          json={"status": "completed", "progress_percent": 40})
        body = res.get_json()
        assert res.status_code == 200
        assert body["status"] == "completed"
        assert body["progress_percent"] == 100
        assert body["display_status"] == "submitted"
        assert body["completed_at"] is not None

    def test_backward_move_rejected(self, client, member, reading_module):
        client.post(_progress_url(member, reading_module), json={"status": "completed"})
        res = client.post(_progress_url(member, reading_module), json={"status": "in-progress"})
        assert res.status_code == 422

    def test_repeat_completion_rejected(self, client, member, reading_module):
        client.post(_progress_url(member, reading_module), json={"status": "completed"})
        first_completed_at = _record(member, reading_module).completed_at

        res = client.post(_progress_url(member, reading_module), json={"status": "submitted"})
        assert res.status_code == 422
        assert _record(member, reading_module).completed_at == first_completed_at

    @pytest.mark.parametrize("status", ["completed", "submitted"])
    def test_assessed_module_cannot_be_completed_directly(
        self, client, member, quiz_module, deep_module, status,
    ):
        for module in (quiz_module, deep_module):
            res = client.post(_progress_url(member, module),
                              json={"status": status, "assessment_score": 10})
            assert res.status_code == 422
            assert res.get_json()["code"] == "ERR_BUSINESS_RULE"
            assert _record(member, module) is None

    def test_assessed_module_completes_after_in_progress_only_by_scoring(
        self, client, member, quiz_module,
    ):
        client.post(_progress_url(member, quiz_module),
                    json={"status": "in-progress", "progress_percent": 50})
        res = client.post(_progress_url(member, quiz_module), json={"status": "completed"})
        assert res.status_code == 422
        assert _record(member, quiz_module).status == "in-progress"

        assert _pass_quiz(client, member, quiz_module).get_json()["progress"]["status"] == "completed"

    def test_score_in_body_is_ignored(self, client, member, reading_module):
        res = client.post(_progress_url(member, reading_module),
                          json={"status": "in-progress", "assessment_score": 95})
        assert res.status_code == 200
        assert res.get_json()["assessment_score"] is None

    @pytest.mark.parametrize("payload", [
        {},
        {"status": "approved"},
        {"status": ["completed"]},
        {"status": "in-progress", "progress_percent": 101},
        {"status": "in-progress", "progress_percent": "50"},
    ])
    def test_invalid_input_400(self, client, member, deep_module, payload):
        res = client.post(_progress_url(member, deep_module), json=payload)
        assert res.status_code == 400

    def test_non_json_body_415(self, client, member, deep_module):
        res = client.post(_progress_url(member, deep_module), data="status=completed",
                          content_type="text/plain")
        assert res.status_code == 415


class TestSessionEndpoint:
    def test_first_event_creates_record_and_records_lesson_band(self, client, member, deep_module):
        res = _session_event(client, member, deep_module, {"stage": "lesson", "lesson_index": 0})
        assert res.status_code == 200
        body = res.get_json()
        assert body["outcome"] == "advanced"
        assert body["session"]["lesson_index"] == 1
        assert body["progress_update"] == {"status": "in-progress", "progress_percent": 12}
        assert body["progress"]["progress_percent"] == 12

    def test_walking_lessons_records_each_band(self, client, member, deep_module):
        session = {"stage": "lesson", "lesson_index": 0}
        for expected in (12, 24, 36):
            body = _session_event(client, member, deep_module, session).get_json()
            assert body["progress"]["progress_percent"] == expected
            session = body["session"]
        assert session["lesson_index"] == 3

    def test_previous_writes_nothing(self, client, member, deep_module):
        session = {"stage": "lesson", "lesson_index": 0}
        for _ in range(4):
            session = _session_event(client, member, deep_module, session).get_json()["session"]
        assert session["lesson_index"] == 4

        res = _session_event(client, member, deep_module, session, event="previous")
        assert res.status_code == 200
        assert res.get_json()["progress_update"] is None
        assert _record(member, deep_module).progress_percent == 48

    def test_forged_assessment_stage_refused(self, client, member, deep_module):
        res = _session_event(client, member, deep_module, {
            "stage": "assessment", "question_index": 0, "answers": {"0": "A"},
        })
        assert res.status_code == 422
        details = res.get_json()["details"]
        assert details["required_percent"] == 80
        assert details["progress_percent"] == 0
        assert _record(member, deep_module) is None

    def test_skipping_lessons_refused(self, client, member, deep_module):
        _session_event(client, member, deep_module, {"stage": "lesson", "lesson_index": 0})
        res = _session_event(client, member, deep_module, {"stage": "lesson", "lesson_index": 3})
        assert res.status_code == 422
        assert _record(member, deep_module).progress_percent == 12

    def test_passing_assessment_completes(self, client, member, deep_module):
        # the first assessment question is done at 90
        client.post(_progress_url(member, deep_module),
                    json={"status": "in-progress", "progress_percent": 90})
        res = _session_event(client, member, deep_module, {
            "stage": "assessment", "question_index": 1, "answers": {"0": "A", "1": "B"},
        })
        body = res.get_json()
        assert body["outcome"] == "passed"
        assert body["progress"]["status"] == "completed"
        assert body["progress"]["assessment_score"] == 100

    def test_retry_after_failed_attempt(self, client, member, deep_module):
        client.post(_progress_url(member, deep_module),
                    json={"status": "in-progress", "progress_percent": 90})
        res = _session_event(client, member, deep_module, {
            "stage": "assessment", "question_index": 1, "answers": {"0": "B", "1": "A"},
        })
        body = res.get_json()
        assert body["outcome"] == "failed"
        assert body["progress"]["status"] == "in-progress"

        res = _session_event(client, member, deep_module, body["session"], event="retry")
        assert res.status_code == 200
        assert res.get_json()["session"]["stage"] == "assessment"

    def test_finished_module_requires_review_mode(self, client, member, deep_module):
        client.post(_progress_url(member, deep_module, "assessment"),
                    json={"answers": {"0": "A", "1": "B"}})
        res = client.post(_progress_url(member, deep_module, "session"), json={"event": "next"})
        assert res.status_code == 422

        res = client.post(_progress_url(member, deep_module, "session"),
                          json={"event": "start_review"})
        assert res.status_code == 200
        session = res.get_json()["session"]
        assert session["review_mode"] is True

        for _ in range(4):
            res = _session_event(client, member, deep_module, session)
            assert res.get_json()["progress_update"] is None
            session = res.get_json()["session"]
        record = _record(member, deep_module)
        assert record.status == "completed"
        assert record.progress_percent == 100

    def test_review_mode_unavailable_before_completion(self, client, member, deep_module):
        res = client.post(_progress_url(member, deep_module, "session"),
                          json={"event": "start_review"})
        assert res.status_code == 422

    def test_non_numeric_score_422(self, client, member, deep_module):
        res = _session_event(client, member, deep_module, {"stage": "lesson", "score": "abc"})
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_BUSINESS_RULE"

    @pytest.mark.parametrize("payload", [{}, {"event": ["next"]}, {"event": "next", "session": []}])
    def test_malformed_event_400(self, client, member, deep_module, payload):
        res = client.post(_progress_url(member, deep_module, "session"), json=payload)
        assert res.status_code == 400


class TestAssessmentEndpoint:
    def test_three_of_four_passes_with_75(self, client, member, quiz_module):
        res = client.post(_progress_url(member, quiz_module, "assessment"),
                          json={"answers": ["1", "1", "1", "0"]})
        body = res.get_json()
        assert res.status_code == 200
        assert body["score"] == 75
        assert body["passed"] is True
        assert body["progress"]["status"] == "completed"
        assert body["progress"]["display_status"] == "submitted"

    def test_fail_leaves_status_unchanged(self, client, member, quiz_module):
        client.post(_progress_url(member, quiz_module), json={"status": "in-progress"})
        res = client.post(_progress_url(member, quiz_module, "assessment"),
                          json={"answers": ["1", "0", "0", "0"]})
        body = res.get_json()
        assert body["score"] == 25
        assert body["passed"] is False
        assert body["progress"]["status"] == "in-progress"

    def test_review_mode_pass_is_not_recorded(self, client, member, quiz_module):
        res = client.post(_progress_url(member, quiz_module, "assessment"),
                          json={"answers": ["1", "1", "1", "1"], "review_mode": True})
        assert res.get_json()["passed"] is True
        assert _record(member, quiz_module) is None


class TestNextModule:
    def test_next_in_same_ministry(self, client, member, deep_module, quiz_module):
        res = client.get(_progress_url(member, deep_module, "next"))
        assert res.get_json()["next"]["id"] == quiz_module.id

    def test_no_next_when_already_done(self, client, member, deep_module, quiz_module):
        _pass_quiz(client, member, quiz_module)
        res = client.get(_progress_url(member, deep_module, "next"))
        assert res.get_json()["next"] is None

    def test_general_track_excludes_ministry_modules(self, client, member, make_module, deep_module):
        first = make_module("General 1", sort_order=1)
        second = make_module("General 2", sort_order=5)
        res = client.get(_progress_url(member, first, "next"))
        assert res.get_json()["next"]["id"] == second.id


class TestLeaderReview:
    def _submit(self, client, member, module):
        _pass_quiz(client, member, module)
        return _record(member, module)

    def test_submissions_listed_for_led_ministry(self, client, member, leader, quiz_module):
        self._submit(client, member, quiz_module)
        res = client.get(f"/api/v1/training/submissions?leader_id={leader.id}")
        items = res.get_json()["items"]
        assert len(items) == 1
        assert items[0]["member_name"] == "Mary Member"
        assert items[0]["module_title"] == "Safety Quiz"

    def test_leader_of_other_ministry_sees_nothing(
        self, client, member, quiz_module, make_member, make_ministry,
    ):
        self._submit(client, member, quiz_module)
        outsider = make_member("O", role="leader", leads=[make_ministry("Choir")])
        res = client.get(f"/api/v1/training/submissions?leader_id={outsider.id}")
        assert res.get_json()["items"] == []

    def test_approve(self, client, member, leader, quiz_module):
        record = self._submit(client, member, quiz_module)
        res = client.post(f"/api/v1/training/progress/{record.id}/approve",
                          json={"leader_id": leader.id})
        body = res.get_json()
        assert res.status_code == 200
        assert body["status"] == "approved"
        assert body["approved_by_id"] == leader.id
        assert body["display_status"] == "approved"

    def test_reject_then_retake(self, client, member, leader, quiz_module):
        record = self._submit(client, member, quiz_module)
        res = client.post(f"/api/v1/training/progress/{record.id}/reject",
                          json={"leader_id": leader.id, "feedback": "Review section 2"})
        assert res.get_json()["status"] == "rejected"
        assert res.get_json()["rejection_feedback"] == "Review section 2"

        res = client.post(_progress_url(member, quiz_module),
                          json={"status": "in-progress", "progress_percent": 0})
        assert res.status_code == 200
        assert res.get_json()["status"] == "in-progress"
        assert res.get_json()["progress_percent"] == 0

        assert _pass_quiz(client, member, quiz_module).get_json()["progress"]["status"] == "completed"

    def test_reject_requires_feedback(self, client, member, leader, quiz_module):
        record = self._submit(client, member, quiz_module)
        res = client.post(f"/api/v1/training/progress/{record.id}/reject",
                          json={"leader_id": leader.id})
        assert res.status_code == 400

    def test_non_leader_forbidden(self, client, member, quiz_module, make_member):
        record = self._submit(client, member, quiz_module)
        other = make_member("Plain")
        res = client.post(f"/api/v1/training/progress/{record.id}/approve",
                          json={"leader_id": other.id})
        assert res.status_code == 403

    def test_approve_in_progress_is_state_conflict(self, client, member, leader, quiz_module):
        client.post(_progress_url(member, quiz_module), json={"status": "in-progress"})
        record = _record(member, quiz_module)
        res = client.post(f"/api/v1/training/progress/{record.id}/approve",
                          json={"leader_id": leader.id})
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"

    def test_pastor_sees_all_ministries(self, client, member, quiz_module, make_member):
        self._submit(client, member, quiz_module)
        pastor = make_member("P", role="pastor")
        res = client.get(f"/api/v1/training/submissions?leader_id={pastor.id}")
        assert len(res.get_json()["items"]) == 1
