"""Tests for the JSON API routes."""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock, patch

from firebase_admin import auth

from tests.conftest import FirestoreTestCase

OWNER = {"uid": "owner", "email": "Owner@Example.com"}
MEMBER = {"uid": "u2", "email": "marco@example.com"}


class RoutesTestCase(FirestoreTestCase):
    """Test case for the user and group blueprints."""

    def setUp(self) -> None:
        super().setUp()
        self.mock_firestore = MagicMock()
        self.mock_firestore.client.return_value = self.db

        patchers = {
            "user_routes": patch(
                "leaguebook.user.routes.firestore", new=self.mock_firestore
            ),
            "group_routes": patch(
                "leaguebook.group.routes.firestore", new=self.mock_firestore
            ),
            "verify_id_token": patch("firebase_admin.auth.verify_id_token"),
        }
        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)

        self.db.collection_group = MagicMock()
        self.db.collection_group.return_value.where.return_value.limit.return_value.stream.return_value = []  # noqa: E501
        self.client = self.app.test_client()
        self.login(OWNER)

    def login(self, token_payload: dict) -> None:
        self.mocks["verify_id_token"].return_value = token_payload

    def post(self, path: str, json=None, **kwargs):
        headers = kwargs.pop("headers", {"Authorization": "Bearer mock-token"})
        return self.client.post(path, json=json, headers=headers, **kwargs)

    def assertError(self, response, status_code: int, code: str) -> None:
        self.assertEqual(response.status_code, status_code, response.get_json())
        body = response.get_json()
        self.assertFalse(body["ok"])
        self.assertEqual(body["error"]["code"], code)
        self.assertTrue(body["error"]["message"])

    def create_group(self) -> dict:
        response = self.post(
            "/api/groups/create",
            {"name": "Depot", "founderName": "Anna", "founderSurname": "Rossi"},
        )
        self.assertEqual(response.status_code, 200, response.get_json())
        return response.get_json()

    def test_missing_token(self) -> None:
        response = self.post("/api/user/handle", {"handle": "anna"}, headers={})
        self.assertError(response, 401, "unauthenticated")

        response = self.post(
            "/api/user/handle", {"handle": "anna"}, headers={"Authorization": "Basic x"}
        )
        self.assertError(response, 401, "unauthenticated")

    def test_invalid_token(self) -> None:
        self.mocks["verify_id_token"].side_effect = auth.InvalidIdTokenError("bad")
        response = self.post("/api/user/handle", {"handle": "anna"})
        self.assertError(response, 401, "unauthenticated")

    def test_token_without_uid(self) -> None:
        self.login({"email": "x@example.com"})
        response = self.post("/api/groups/list")
        self.assertError(response, 401, "unauthenticated")

    def test_set_handle(self) -> None:
        self.add_user("owner")

        response = self.post("/api/user/handle", {"handle": " Anna "})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.get_json(), {"ok": True, "handle": "Anna", "handleLower": "anna"}
        )
        self.mocks["verify_id_token"].assert_called_with("mock-token")

    def test_set_handle_errors(self) -> None:
        self.add_user("owner")
        self.db.collection("handles").document("taken").set({"uid": "someone"})

        self.assertError(self.post("/api/user/handle", {"handle": "x"}), 400, "invalid-argument")
        self.assertError(
            self.post("/api/user/handle", {"handle": "Taken"}), 409, "already-exists"
        )
        self.login({"uid": "ghost"})
        self.assertError(
            self.post("/api/user/handle", {"handle": "ghosty"}), 412, "failed-precondition"
        )

    def test_update_profile(self) -> None:
        self.add_user("owner", profile={"custom": {"team": "Blue"}})

        response = self.post(
            "/api/user/profile",
            {"fields": {"car": "Fiat"}, "privacy": {"car": {"mode": "group"}}},
        )

        self.assertEqual(response.get_json(), {"ok": True})
        profile = self.doc("users/owner")["profile"]
        self.assertEqual(profile["custom"], {"team": "Blue", "car": "Fiat"})
        self.assertEqual(profile["privacy"], {"car": {"mode": "group"}})

    def test_update_profile_errors(self) -> None:
        self.assertError(self.post("/api/user/profile", {"fields": {}}), 404, "not-found")
        self.add_user("owner")
        self.assertError(self.post("/api/user/profile", [1, 2]), 400, "invalid-argument")
        self.assertError(
            self.post("/api/user/profile", {"fields": "car"}), 400, "invalid-argument"
        )

    def test_update_profile_field(self) -> None:
        self.add_user("owner", profile={})

        response = self.post(
            "/api/user/profile/field", {"fieldKey": "nickname", "value": "annar"}
        )

        self.assertEqual(response.get_json(), {"ok": True, "fieldKey": "handle"})
        self.assertEqual(self.doc("users/owner")["profile"]["custom"]["handle"], "annar")
        self.assertError(
            self.post("/api/user/profile/field", {"fieldKey": "a.b"}),
            400,
            "invalid-argument",
        )

    def test_create_and_list_groups(self) -> None:
        created = self.create_group()
        self.assertTrue(created["ok"])
        self.assertEqual(len(created["joinCode"]), 6)
        self.assertIsNone(created["logoUrl"])

        listed = self.post("/api/groups/list").get_json()
        self.assertEqual(listed["activeGroupId"], created["groupId"])
        self.assertEqual(
            listed["joined"],
            [
                {
                    "groupId": created["groupId"],
                    "name": "Depot",
                    "joinCode": created["joinCode"],
                    "logoUrl": "",
                    "active": True,
                }
            ],
        )
        self.assertEqual(listed["invited"], [])

    def test_create_group_validation(self) -> None:
        response = self.post("/api/groups/create", {"name": "Depot"})
        self.assertError(response, 400, "invalid-argument")
        response = self.post(
            "/api/groups/create",
            {
                "name": "Depot",
                "founderName": "Anna",
                "founderSurname": "Rossi",
                "logoBase64": "***",
            },
        )
        self.assertError(response, 400, "invalid-argument")

    def test_set_active_group(self) -> None:
        group_id = self.create_group()["groupId"]

        response = self.post("/api/groups/active", {"groupId": group_id})
        self.assertEqual(response.get_json(), {"ok": True, "groupId": group_id})

        self.login(MEMBER)
        self.assertError(
            self.post("/api/groups/active", {"groupId": group_id}),
            403,
            "permission-denied",
        )

    def test_join_request_flow(self) -> None:
        created = self.create_group()
        group_id = created["groupId"]

        self.login(MEMBER)
        response = self.post("/api/groups/join", {"joinCode": created["joinCode"].lower()})
        self.assertEqual(
            response.get_json(),
            {
                "ok": True,
                "groupId": group_id,
                "alreadyMember": False,
                "alreadyRequested": False,
            },
        )
        self.assertError(
            self.post("/api/groups/join-requests/list", {"groupId": group_id}),
            403,
            "permission-denied",
        )

        self.login(OWNER)
        response = self.post(
            "/api/groups/join-requests/respond",
            {"groupId": group_id, "requestId": "u2", "accept": True},
        )
        self.assertEqual(
            response.get_json(),
            {"ok": True, "groupId": group_id, "requestId": "u2", "accept": True},
        )
        self.assertEqual(self.doc(f"groups/{group_id}/members/u2")["roleId"], "member")

        response = self.post(
            "/api/groups/join-requests/respond",
            {"groupId": group_id, "requestId": "u2", "accept": True},
        )
        self.assertError(response, 412, "failed-precondition")

    def test_respond_requires_literal_true_to_accept(self) -> None:
        group_id = self.create_group()["groupId"]
        self.db.collection("groups").document(group_id).collection(
            "join_requests"
        ).document("u2").set({"uid": "u2", "status": "pending", "createdAt": 1})

        response = self.post(
            "/api/groups/join-requests/respond",
            {"groupId": group_id, "requestId": "u2", "accept": "yes"},
        )

        self.assertFalse(response.get_json()["accept"])
        self.assertEqual(
            self.doc(f"groups/{group_id}/join_requests/u2")["status"], "rejected"
        )

    def test_list_and_accept_join_requests(self) -> None:
        group_id = self.create_group()["groupId"]
        self.add_user("u2", email="marco@example.com")
        self.db.collection("groups").document(group_id).collection(
            "join_requests"
        ).document("u2").set({"uid": "u2", "status": "pending", "createdAt": 1})

        response = self.post("/api/groups/join-requests/list", {"groupId": group_id})
        self.assertEqual(
            response.get_json(),
            {
                "ok": True,
                "requests": [
                    {"id": "u2", "uid": "u2", "status": "pending", "createdAt": 1}
                ],
            },
        )

        response = self.post(
            "/api/groups/join-requests/accept",
            {"groupId": group_id, "requesterUid": "u2"},
        )
        self.assertTrue(response.get_json()["accept"])
        self.assertIsNotNone(self.doc(f"groups/{group_id}/members/u2"))

    def test_accept_invite_route(self) -> None:
        group_id = self.create_group()["groupId"]
        self.db.collection("groups").document(group_id).collection(
            "invites"
        ).document("i1").set({"emailLower": "marco@example.com", "status": "pending"})

        self.login(MEMBER)
        response = self.post(
            "/api/groups/invites/accept", {"groupId": group_id, "inviteId": "i1"}
        )
        self.assertEqual(
            response.get_json(),
            {"ok": True, "groupId": group_id, "inviteId": "i1", "roleId": "member"},
        )
        self.assertError(
            self.post("/api/groups/invites/accept", {"groupId": group_id, "inviteId": "nope"}),
            404,
            "not-found",
        )

    def test_unknown_join_code(self) -> None:
        self.assertError(
            self.post("/api/groups/join", {"joinCode": "QQQQQQ"}), 404, "not-found"
        )

    def test_unknown_route_and_method(self) -> None:
        self.assertError(self.client.get("/api/nope"), 404, "not-found")
        self.assertEqual(self.client.get("/api/groups/list").status_code, 405)


if __name__ == "__main__":
    unittest.main()
