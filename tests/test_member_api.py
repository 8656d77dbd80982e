"""
Tests for the member & ministry blueprint.

Covers:
  - member create (defaults, lowercase email, 400 / 409 / 422 paths)
  - member get / list with role filter
  - ministry create/list, duplicate name → 409
  - join ministry, re-activating an old assignment
"""

import pytest

from ministry_hub.models.member import MinistryAssignment


class TestMembers:
    def test_create_member(self, client):
        res = client.post("/api/v1/members", json={
            "full_name": "Grace Hopper", "email": "Grace@Example.org",
        })
        assert res.status_code == 201
        body = res.get_json()
        assert body["email"] == "grace@example.org"
        assert body["role"] == "member"
        assert body["is_leader"] is False
        assert body["ministry_ids"] == []

    def test_duplicate_email_409(self, client):
        payload = {"full_name": "A", "email": "a@example.org"}
        client.post("/api/v1/members", json=payload)
        res = client.post("/api/v1/members", json={**payload, "email": "A@example.org"})
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"

    @pytest.mark.parametrize("payload", [
        {},
        {"full_name": "A"},
        {"full_name": "A", "email": "not-an-address"},
    ])
    def test_invalid_member_400(self, client, payload):
        assert client.post("/api/v1/members", json=payload).status_code == 400

    def test_unknown_role_422(self, client):
        res = client.post("/api/v1/members", json={
            "full_name": "A", "email": "a@example.org", "role": "bishop",
        })
        assert res.status_code == 422

    def test_get_member(self, client, make_member):
        member = make_member("Ruth", role="leader")
        res = client.get(f"/api/v1/members/{member.id}")
        assert res.status_code == 200
        assert res.get_json()["is_leader"] is True

    def test_get_unknown_member_404(self, client):
        assert client.get("/api/v1/members/4040").status_code == 404

    def test_list_filters_by_role(self, client, make_member):
        make_member("Anna")
        make_member("Ben", role="pastor")
        res = client.get("/api/v1/members?role=pastor")
        body = res.get_json()
        assert body["total"] == 1
        assert body["items"][0]["full_name"] == "Ben"


class TestMinistries:
    def test_create_and_list(self, client, make_ministry):
        make_ministry("Retired Team", is_active=False)
        res = client.post("/api/v1/ministries", json={"name": "Youth"})
        assert res.status_code == 201
        assert res.get_json()["member_count"] == 0

        names = [m["name"] for m in client.get("/api/v1/ministries").get_json()["items"]]
        assert names == ["Youth"]
        res = client.get("/api/v1/ministries?include_inactive=1")
        assert res.get_json()["total"] == 2

    def test_duplicate_name_409(self, client, make_ministry):
        make_ministry("Youth")
        res = client.post("/api/v1/ministries", json={"name": "Youth"})
        assert res.status_code == 409

    def test_join_ministry(self, client, make_member, make_ministry):
        member = make_member()
        ministry = make_ministry("Ushers")
        res = client.post(f"/api/v1/ministries/{ministry.id}/members",
                          json={"member_id": member.id, "role": "leader"})
        assert res.status_code == 201
        assert res.get_json()["role"] == "leader"
        assert client.get(f"/api/v1/members/{member.id}").get_json()["ministry_ids"] == [ministry.id]

    def test_rejoin_reactivates(self, client, make_member, make_ministry):
        ministry = make_ministry("Ushers")
        member = make_member(ministries=[ministry])
        assignment = MinistryAssignment.query.filter_by(member_id=member.id).one()
        assignment.is_active = False

        res = client.post(f"/api/v1/ministries/{ministry.id}/members",
                          json={"member_id": member.id})
        assert res.status_code == 201
        assert res.get_json()["id"] == assignment.id
        assert res.get_json()["is_active"] is True

    def test_join_requires_integer_member_id(self, client, make_ministry):
        ministry = make_ministry()
        res = client.post(f"/api/v1/ministries/{ministry.id}/members", json={"member_id": "1"})
        assert res.status_code == 400

    def test_join_unknown_ministry_404(self, client, make_member):
        member = make_member()
        res = client.post("/api/v1/ministries/999/members", json={"member_id": member.id})
        assert res.status_code == 404
