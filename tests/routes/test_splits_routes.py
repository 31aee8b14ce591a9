"""
Tests for the /splits endpoints.

The session store is overridden with one whose extraction and suggestion
collaborators are AsyncMocks, so the whole workflow runs in-process.
"""

import asyncio
import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from bilbul.auth.dependencies import AuthenticatedUser, get_optional_user
from bilbul.main import app
from bilbul.services.session_store import SessionStore, get_session_store
from bilbul.split.errors import ExternalServiceFailure


@pytest.fixture
def store(extractor, suggester, usage):
    return SessionStore(
        extractor=extractor,
        suggester=suggester,
        usage=usage,
        timeout_seconds=1.0,
        max_participants=5,
        ttl_seconds=600.0,
    )


@pytest.fixture
def client(store):
    """Create test client with the in-memory store wired in."""
    app.dependency_overrides[get_session_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def signed_in():
    async def mock_optional_user():
        return AuthenticatedUser(user_id="user-123", access_token="test-token")

    app.dependency_overrides[get_optional_user] = mock_optional_user
    yield


@pytest.fixture
def receipt_png() -> bytes:
    image = Image.new("RGB", (120, 200), color="white")
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _create(client) -> str:
    response = client.post("/splits")
    assert response.status_code == 201
    return response.json()["session_id"]


def _upload(client, session_id, image_bytes, people=2, client_id="device-1"):
    return client.post(
        f"/splits/{session_id}/receipt",
        files={"image": ("receipt.png", image_bytes, "image/png")},
        data={"number_of_people": str(people)},
        headers={"X-Client-Id": client_id},
    )


def _to_manual(client, session_id, receipt_png):
    assert _upload(client, session_id, receipt_png).status_code == 200
    assert client.post(f"/splits/{session_id}/confirm-items").status_code == 200
    assert client.post(f"/splits/{session_id}/manual").status_code == 200


def _assign(client, session_id, item_index, participant_id, quantity, **extra):
    body = {"item_index": item_index, "participant_id": participant_id, "quantity": quantity}
    body.update(extra)
    return client.put(f"/splits/{session_id}/assignments", json=body)


class TestSessionLifecycle:

    def test_create_session(self, client):
        response = client.post("/splits")

        assert response.status_code == 201
        data = response.json()
        assert data["state"] == "UPLOAD"
        assert data["version"] == 0
        assert data["receipt"] is None
        assert data["participants"] == []

    def test_get_unknown_session(self, client):
        response = client.get("/splits/does-not-exist")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "not_found"

    def test_delete_session(self, client):
        session_id = _create(client)

        response = client.delete(f"/splits/{session_id}")

        assert response.status_code == 200
        assert response.json()["status"] == "DELETED"
        assert client.get(f"/splits/{session_id}").status_code == 404

    def test_health_reports_sessions(self, client):
        _create(client)

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["active_sessions"] == 1


class TestReceiptUpload:

    def test_upload_image(self, client, extractor, receipt_png):
        session_id = _create(client)

        response = _upload(client, session_id, receipt_png)

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "REVIEWING"
        assert data["receipt"]["items"] == [
            {"index": 0, "name": "Coffee", "price": 10.0, "quantity": 2, "remaining": 2}
        ]
        assert data["receipt"]["total_amount"] == 10.0
        assert [p["display_name"] for p in data["participants"]] == ["Person 1", "Person 2"]
        photo_url = extractor.await_args.args[0]
        assert photo_url.startswith("data:image/png;base64,")

    def test_upload_photo_url(self, client, extractor):
        session_id = _create(client)

        response = client.post(
            f"/splits/{session_id}/receipt",
            data={"number_of_people": "3", "photo_url": "https://example.com/r.jpg"},
        )

        assert response.status_code == 200
        extractor.assert_awaited_once_with("https://example.com/r.jpg")

    def test_non_image_rejected(self, client, extractor):
        session_id = _create(client)

        response = client.post(
            f"/splits/{session_id}/receipt",
            files={"image": ("notes.txt", b"hello", "text/plain")},
            data={"number_of_people": "2"},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_file_type"
        extractor.assert_not_awaited()

    def test_missing_image(self, client):
        session_id = _create(client)

        response = client.post(f"/splits/{session_id}/receipt", data={"number_of_people": "2"})

        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "invalid_receipt_data"

    def test_too_many_people(self, client, receipt_png):
        session_id = _create(client)

        response = _upload(client, session_id, receipt_png, people=6)

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_assignment"

    def test_non_receipt_image(self, client, extractor, receipt_png):
        extractor.return_value = {"items": [], "totalAmount": 0}
        session_id = _create(client)

        response = _upload(client, session_id, receipt_png)

        assert response.status_code == 422
        assert "No items found" in response.json()["detail"]["details"]
        assert client.get(f"/splits/{session_id}").json()["state"] == "UPLOAD"

    def test_extraction_failure_is_bad_gateway(self, client, extractor, receipt_png):
        extractor.side_effect = ExternalServiceFailure("extraction", "Gemini unavailable")
        session_id = _create(client)

        response = _upload(client, session_id, receipt_png)

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["error"] == "external_service_failure"
        assert detail["retryable"] is True

    def test_extraction_timeout_is_gateway_timeout(self, client, store, receipt_png):
        async def slow_extractor(photo_url):
            await asyncio.sleep(5)

        store._extractor = slow_extractor
        store._timeout_seconds = 0.05
        session_id = _create(client)

        response = _upload(client, session_id, receipt_png)

        assert response.status_code == 504
        assert response.json()["detail"]["timed_out"] is True


class TestManualFlow:

    def test_coffee_split_end_to_end(self, client, receipt_png):
        session_id = _create(client)
        _to_manual(client, session_id, receipt_png)

        assert _assign(client, session_id, 0, 1, 1).status_code == 200
        response = _assign(client, session_id, 0, 2, 1)
        assert response.json()["is_complete"] is True
        totals = {p["id"]: p["total_display"] for p in response.json()["participants"]}
        assert totals == {1: "5.00", 2: "5.00"}

        assert client.post(f"/splits/{session_id}/finish-assignment").status_code == 200
        response = client.post(f"/splits/{session_id}/confirm")
        assert response.status_code == 200
        assert response.json()["state"] == "RESULT_SHOWN"
        assert response.json()["mode"] == "MANUAL"

        summary = client.get(f"/splits/{session_id}/summary")
        assert summary.status_code == 200
        assert summary.json()["text"] == (
            "Person 1: $5.00\n"
            "  1 x Coffee\n"
            "Person 2: $5.00\n"
            "  1 x Coffee\n"
        )

    def test_over_assign_conflict(self, client, receipt_png):
        session_id = _create(client)
        _to_manual(client, session_id, receipt_png)
        _assign(client, session_id, 0, 1, 2)

        response = _assign(client, session_id, 0, 2, 1)

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["error"] == "quantity_exceeds_remaining"
        assert detail["available"] == 0
        assignments = client.get(f"/splits/{session_id}").json()["assignments"]
        assert assignments == [{"item_index": 0, "participant_id": 1, "quantity": 2}]

    def test_finish_incomplete_conflict(self, client, receipt_png):
        session_id = _create(client)
        _to_manual(client, session_id, receipt_png)
        _assign(client, session_id, 0, 1, 1)

        response = client.post(f"/splits/{session_id}/finish-assignment")

        assert response.status_code == 409
        assert response.json()["detail"]["unassigned_items"] == ["Coffee"]

    def test_assignment_schema_validation(self, client, receipt_png):
        session_id = _create(client)
        _to_manual(client, session_id, receipt_png)

        response = _assign(client, session_id, 0, 1, 0)

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_edit_item_and_rename_participant(self, client, receipt_png):
        session_id = _create(client)
        _upload(client, session_id, receipt_png)

        response = client.patch(
            f"/splits/{session_id}/items/0", json={"name": "Latte", "price": 12.0}
        )
        assert response.status_code == 200
        assert response.json()["receipt"]["items"][0]["name"] == "Latte"
        assert response.json()["receipt"]["total_amount"] == 10.0

        response = client.patch(
            f"/splits/{session_id}/participants/2", json={"display_name": "Ben"}
        )
        assert response.status_code == 200
        assert response.json()["participants"][1]["display_name"] == "Ben"

    def test_edit_item_requires_a_change(self, client, receipt_png):
        session_id = _create(client)
        _upload(client, session_id, receipt_png)

        response = client.patch(f"/splits/{session_id}/items/0", json={})

        assert response.status_code == 422

    def test_command_in_wrong_state(self, client):
        session_id = _create(client)

        response = client.post(f"/splits/{session_id}/manual")

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "invalid_session_state"

    def test_stale_version_rejected(self, client, receipt_png):
        session_id = _create(client)
        _upload(client, session_id, receipt_png)

        response = client.post(
            f"/splits/{session_id}/confirm-items", json={"expected_version": 0}
        )

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["error"] == "version_conflict"
        assert detail["current_version"] == 1

    def test_reset_returns_to_upload(self, client, receipt_png):
        session_id = _create(client)
        _to_manual(client, session_id, receipt_png)

        response = client.post(f"/splits/{session_id}/reset")

        assert response.status_code == 200
        assert response.json()["state"] == "UPLOAD"
        assert response.json()["receipt"] is None

    def test_summary_before_result(self, client):
        session_id = _create(client)

        response = client.get(f"/splits/{session_id}/summary")

        assert response.status_code == 409


class TestSimpleFlow:

    def test_suggestion(self, client, suggester, receipt_png):
        session_id = _create(client)
        _upload(client, session_id, receipt_png)
        client.post(f"/splits/{session_id}/confirm-items")

        response = client.post(f"/splits/{session_id}/suggestion")

        assert response.status_code == 200
        assert response.json()["mode"] == "SIMPLE"
        assert response.json()["result_text"] == "Person 1: $5.00\nPerson 2: $5.00\n"

    def test_suggestion_failure_keeps_state(self, client, suggester, receipt_png):
        suggester.side_effect = RuntimeError("model overloaded")
        session_id = _create(client)
        _upload(client, session_id, receipt_png)
        client.post(f"/splits/{session_id}/confirm-items")

        response = client.post(f"/splits/{session_id}/suggestion")

        assert response.status_code == 502
        assert client.get(f"/splits/{session_id}").json()["state"] == "CHOOSING_STRATEGY"


class TestFreeSplitLimit:

    def _complete_split(self, client, receipt_png, client_id):
        session_id = _create(client)
        assert _upload(client, session_id, receipt_png, client_id=client_id).status_code == 200
        client.post(f"/splits/{session_id}/confirm-items")
        assert client.post(f"/splits/{session_id}/suggestion").status_code == 200

    def test_second_anonymous_split_requires_sign_in(self, client, receipt_png):
        self._complete_split(client, receipt_png, "device-1")

        response = _upload(client, _create(client), receipt_png, client_id="device-1")

        assert response.status_code == 401
        detail = response.json()["detail"]
        assert detail["error"] == "sign_in_required"
        assert detail["details"] == "Please sign in to continue using Bilbul."

    def test_other_device_still_free(self, client, receipt_png):
        self._complete_split(client, receipt_png, "device-1")

        response = _upload(client, _create(client), receipt_png, client_id="device-2")

        assert response.status_code == 200

    def test_missing_client_id_tracked_per_caller_across_sessions(self, client, receipt_png, usage):
        def upload_without_client_id(session_id):
            return client.post(
                f"/splits/{session_id}/receipt",
                files={"image": ("receipt.png", receipt_png, "image/png")},
                data={"number_of_people": "2"},
            )

        first = _create(client)
        assert upload_without_client_id(first).status_code == 200
        client.post(f"/splits/{first}/confirm-items")
        assert client.post(f"/splits/{first}/suggestion").status_code == 200

        response = upload_without_client_id(_create(client))

        assert response.status_code == 401
        assert usage.has_completed_split("addr:testclient")

    def test_signed_in_user_not_limited(self, client, signed_in, receipt_png, usage):
        usage.record_completed_split("device-1")

        response = _upload(client, _create(client), receipt_png, client_id="device-1")

        assert response.status_code == 200

    def test_invalid_bearer_token_rejected(self, client, receipt_png):
        session_id = _create(client)

        response = client.post(
            f"/splits/{session_id}/receipt",
            files={"image": ("receipt.png", receipt_png, "image/png")},
            data={"number_of_people": "2"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401
