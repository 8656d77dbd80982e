"""
Tests for the discipleship path rules and endpoints.

Covers:
  - get_step_status: flags map to complete / not-started, absent record is all not-started
  - step gating: step i is actionable only when step i-1 is complete
  - available_actions: flag steps only complete, tri-state steps start then complete
  - progress_percent: stays within [0, 100] and never decreases as steps complete
  - plan_step_action: gated, backward and unsupported actions are rejected
  - API: GET path view, POST step actions, 422 on gating, 404 on unknown member
"""

import pytest

from ministry_hub.core.exceptions import ValidationError
from ministry_hub.services import discipleship_path as dp

ALL_DONE = {
    "has_attended_sunday": True,
    "has_attended_next_night": True,
    "learn_status": "complete",
    "love_status": "complete",
    "lead_status": "complete",
}


def _progress(**overrides):
    base = {
        "has_attended_sunday": False,
        "has_attended_next_night": False,
        "learn_status": "not-started",
        "love_status": "not-started",
        "lead_status": "not-started",
    }
    base.update(overrides)
    return base


class TestStepStatus:
    def test_absent_record_is_all_not_started(self):
        for step in dp.DISCIPLESHIP_STEPS:
            assert dp.get_step_status(step.id, None) == "not-started"

    def test_flag_steps_map_to_complete(self):
        progress = _progress(has_attended_sunday=True)
        assert dp.get_step_status("worship", progress) == "complete"
        assert dp.get_step_status("next-night", progress) == "not-started"

    def test_tri_state_passes_through(self):
        progress = _progress(learn_status="in-progress")
        assert dp.get_step_status("learn", progress) == "in-progress"

    def test_unknown_step_raises(self):
        with pytest.raises(ValidationError):
            dp.get_step_status("baptism", None)


class TestGating:
    def test_first_step_always_actionable(self):
        assert dp.is_step_actionable(0, None) is True

    @pytest.mark.parametrize("index", range(1, 5))
    def test_step_blocked_until_previous_complete(self, index):
        """Every prefix of completed steps unlocks exactly the next step."""
        done = {}
        fields = [s.field for s in dp.DISCIPLESHIP_STEPS]
        for i in range(index - 1):
            done[fields[i]] = True if dp.DISCIPLESHIP_STEPS[i].is_flag else "complete"
        blocked = _progress(**done)
        assert dp.is_step_actionable(index, blocked) is False
        assert dp.available_actions(dp.DISCIPLESHIP_STEPS[index].id, blocked) == []

        previous = dp.DISCIPLESHIP_STEPS[index - 1]
        done[previous.field] = True if previous.is_flag else "complete"
        assert dp.is_step_actionable(index, _progress(**done)) is True

    def test_completing_gated_step_is_rejected(self):
        with pytest.raises(ValidationError, match="before"):
            dp.plan_step_action("learn", "complete", _progress(has_attended_sunday=True))

    def test_in_progress_predecessor_does_not_unlock(self):
        progress = _progress(
            has_attended_sunday=True, has_attended_next_night=True, learn_status="in-progress",
        )
        assert dp.is_step_actionable(3, progress) is False


class TestAvailableActions:
    def test_flag_step_offers_complete_only(self):
        assert dp.available_actions("worship", None) == ["complete"]

    def test_tri_state_offers_start_then_complete(self):
        base = {"has_attended_sunday": True, "has_attended_next_night": True}
        assert dp.available_actions("learn", _progress(**base)) == ["start"]
        assert dp.available_actions(
            "learn", _progress(learn_status="in-progress", **base)
        ) == ["complete"]

    def test_complete_step_offers_nothing(self):
        assert dp.available_actions("worship", _progress(has_attended_sunday=True)) == []


class TestPercent:
    def test_percent_bounds(self):
        assert dp.progress_percent(None) == 0
        assert dp.progress_percent(ALL_DONE) == 100

    def test_percent_never_decreases_along_the_path(self):
        progress = _progress()
        seen = [dp.progress_percent(progress)]
        for step in dp.DISCIPLESHIP_STEPS:
            if not step.is_flag:
                progress.update(dp.plan_step_action(step.id, "start", progress))
                seen.append(dp.progress_percent(progress))
            progress.update(dp.plan_step_action(step.id, "complete", progress))
            seen.append(dp.progress_percent(progress))
        assert seen == sorted(seen)
        assert all(0 <= p <= 100 for p in seen)
        assert seen[-1] == 100

    def test_next_step_and_xp(self):
        progress = _progress(has_attended_sunday=True)
        assert dp.next_step(progress).id == "next-night"
        assert dp.next_step(ALL_DONE) is None
        assert dp.xp_summary(progress) == {"earned": 100, "available": 1200}


class TestPlanStepAction:
    def test_start_on_flag_step_rejected(self):
        with pytest.raises(ValidationError, match="no in-progress state"):
            dp.plan_step_action("worship", "start", None)

    def test_complete_twice_rejected(self):
        with pytest.raises(ValidationError, match="already complete"):
            dp.plan_step_action("worship", "complete", _progress(has_attended_sunday=True))

    def test_tri_state_can_complete_directly(self):
        base = _progress(has_attended_sunday=True, has_attended_next_night=True)
        assert dp.plan_step_action("learn", "complete", base) == {"learn_status": "complete"}

    def test_unknown_action_rejected(self):
        with pytest.raises(ValidationError, match="Unknown action"):
            dp.plan_step_action("worship", "undo", None)


class TestMinistryPathApi:
    def test_get_path_for_new_member(self, client, make_member):
        member = make_member()
        res = client.get(f"/api/v1/members/{member.id}/ministry-path")
        assert res.status_code == 200
        body = res.get_json()
        assert body["progress_percent"] == 0
        assert body["next_step"] == "worship"
        assert [s["actionable"] for s in body["steps"]] == [True, False, False, False, False]

    def test_step_actions_persist_in_order(self, client, make_member):
        member = make_member()
        base = f"/api/v1/members/{member.id}/ministry-path/steps"

        assert client.post(f"{base}/worship/complete").status_code == 200
        assert client.post(f"{base}/next-night/complete").status_code == 200
        res = client.post(f"{base}/learn/start")
        assert res.status_code == 200
        body = res.get_json()
        assert body["progress"]["learn_status"] == "in-progress"
        assert body["progress_percent"] == 40.0
        assert body["xp"]["earned"] == 200

    def test_gated_step_returns_422(self, client, make_member):
        member = make_member()
        res = client.post(f"/api/v1/members/{member.id}/ministry-path/steps/love/start")
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_BUSINESS_RULE"
        assert res.get_json()["details"]["blocked_by"] == "learn"

    def test_unknown_member_returns_404(self, client):
        res = client.get("/api/v1/members/9999/ministry-path")
        assert res.status_code == 404
