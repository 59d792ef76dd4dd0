from typing import Dict

import pytest
from fastapi.testclient import TestClient

from tests.mocks import MockApplicationServer


@pytest.fixture
def session_id(client: TestClient, auth_headers: Dict[str, str]) -> str:
    response = client.post("/api/sessions", json={}, headers=auth_headers)
    return response.json()["id"]


class TestSendMessageEndpoint:
    def test_send_message(
        self, client: TestClient, auth_headers: Dict[str, str], session_id: str
    ):
        response = client.post(
            f"/api/sessions/{session_id}/messages",
            json={"text": "Hello"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        data = response.json()

        assert data["user"]["role"] == "user"
        assert data["user"]["text"] == "Hello"
        assert data["assistant"]["role"] == "assistant"
        assert data["assistant"]["text"] == "Hello from ChatJPT"
        assert set(data["user"]) == {"id", "role", "text", "ts"}
        assert data["assistant"]["ts"] >= data["user"]["ts"]

    def test_send_message_passes_prompt_to_generator(
        self,
        mock_server: MockApplicationServer,
        client: TestClient,
        auth_headers: Dict[str, str],
        session_id: str,
    ):
        client.post(
            f"/api/sessions/{session_id}/messages",
            json={"text": "What is Redis?"},
            headers=auth_headers,
        )

        prompts = mock_server.service_container.reply_generator.prompts
        assert len(prompts) == 1
        assert prompts[0].endswith("User: What is Redis?\nAssistant:")

    @pytest.mark.parametrize("body", [{}, {"text": ""}, {"text": None}, {"text": 5}])
    def test_send_message_requires_text(
        self,
        mock_server: MockApplicationServer,
        client: TestClient,
        auth_headers: Dict[str, str],
        session_id: str,
        body,
    ):
        response = client.post(
            f"/api/sessions/{session_id}/messages", json=body, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["error_type"] == "ValidationError"
        assert mock_server.service_container.reply_generator.prompts == []

        messages = client.get(
            f"/api/sessions/{session_id}/messages", headers=auth_headers
        ).json()
        assert messages == []

    def test_send_message_accepts_whitespace_text(
        self, client: TestClient, auth_headers: Dict[str, str], session_id: str
    ):
        response = client.post(
            f"/api/sessions/{session_id}/messages",
            json={"text": "   "},
            headers=auth_headers,
        )
        assert response.status_code == 201
        assert response.json()["user"]["text"] == "   "

    def test_send_message_without_body(
        self, client: TestClient, auth_headers: Dict[str, str], session_id: str
    ):
        response = client.post(
            f"/api/sessions/{session_id}/messages", headers=auth_headers
        )
        assert response.status_code == 400

    def test_send_message_unknown_session(
        self,
        mock_server: MockApplicationServer,
        client: TestClient,
        auth_headers: Dict[str, str],
    ):
        response = client.post(
            "/api/sessions/missing/messages", json={"text": "hi"}, headers=auth_headers
        )
        assert response.status_code == 404
        assert mock_server.service_container.reply_generator.prompts == []
        assert client.get("/api/sessions", headers=auth_headers).json() == []

    def test_send_message_generator_failure_returns_fallback(
        self,
        mock_server: MockApplicationServer,
        client: TestClient,
        auth_headers: Dict[str, str],
        session_id: str,
    ):
        mock_server.service_container.reply_generator.fail_with()

        response = client.post(
            f"/api/sessions/{session_id}/messages",
            json={"text": "Hello"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        assert response.json()["assistant"]["text"] == "⚠️ AI service error."

    def test_send_message_bumps_session(
        self, client: TestClient, auth_headers: Dict[str, str], session_id: str
    ):
        other = client.post("/api/sessions", json={}, headers=auth_headers).json()["id"]

        response = client.post(
            f"/api/sessions/{session_id}/messages",
            json={"text": "bump"},
            headers=auth_headers,
        )
        assistant_ts = response.json()["assistant"]["ts"]

        sessions = client.get("/api/sessions", headers=auth_headers).json()
        assert [s["id"] for s in sessions] == [session_id, other]
        assert sessions[0]["updatedAt"] == assistant_ts

    def test_send_message_to_other_users_session(
        self,
        client: TestClient,
        auth_headers: Dict[str, str],
        other_auth_headers: Dict[str, str],
        session_id: str,
    ):
        response = client.post(
            f"/api/sessions/{session_id}/messages",
            json={"text": "intrusion"},
            headers=other_auth_headers,
        )
        assert response.status_code == 404

        messages = client.get(
            f"/api/sessions/{session_id}/messages", headers=auth_headers
        ).json()
        assert messages == []

    def test_send_message_no_service(
        self, client_no_services: TestClient, auth_headers: Dict[str, str]
    ):
        response = client_no_services.post(
            "/api/sessions/s1/messages", json={"text": "hi"}, headers=auth_headers
        )
        assert response.status_code == 503


class TestSendMessageRequestBodies:
    @pytest.mark.parametrize("raw", ["{not json", '["hi"]', '"hi"', "null"])
    def test_send_message_rejects_non_object_body(
        self,
        mock_server: MockApplicationServer,
        client: TestClient,
        auth_headers: Dict[str, str],
        session_id: str,
        raw: str,
    ):
        response = client.post(
            f"/api/sessions/{session_id}/messages",
            content=raw,
            headers={**auth_headers, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error_type"] == "ValidationError"
        assert mock_server.service_container.reply_generator.prompts == []

    @pytest.mark.parametrize("raw", ["{not json", '["hi"]', '{"text": "hi"}'])
    def test_send_message_without_token_is_unauthorized(
        self, mock_server: MockApplicationServer, client: TestClient, raw: str
    ):
        response = client.post(
            "/api/sessions/s1/messages",
            content=raw,
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert mock_server.service_container.redis_client.calls == []
        assert mock_server.service_container.reply_generator.prompts == []


class TestListMessagesEndpoint:
    def test_list_messages_empty_for_unknown_session(
        self, client: TestClient, auth_headers: Dict[str, str]
    ):
        response = client.get("/api/sessions/missing/messages", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == []

    def test_list_messages_in_order(
        self, client: TestClient, auth_headers: Dict[str, str], session_id: str
    ):
        for text in ["one", "two", "three"]:
            client.post(
                f"/api/sessions/{session_id}/messages",
                json={"text": text},
                headers=auth_headers,
            )

        messages = client.get(
            f"/api/sessions/{session_id}/messages", headers=auth_headers
        ).json()

        assert [m["role"] for m in messages] == ["user", "assistant"] * 3
        assert [m["text"] for m in messages if m["role"] == "user"] == [
            "one",
            "two",
            "three",
        ]
        timestamps = [m["ts"] for m in messages]
        assert timestamps == sorted(timestamps)
        assert len({m["id"] for m in messages}) == 6

    def test_list_messages_returns_full_log(
        self,
        mock_server: MockApplicationServer,
        client: TestClient,
        auth_headers: Dict[str, str],
        session_id: str,
    ):
        for i in range(25):
            client.post(
                f"/api/sessions/{session_id}/messages",
                json={"text": f"message {i}"},
                headers=auth_headers,
            )

        messages = client.get(
            f"/api/sessions/{session_id}/messages", headers=auth_headers
        ).json()
        assert len(messages) == 50

        last_prompt = mock_server.service_container.reply_generator.prompts[-1]
        history_lines = [
            line
            for line in last_prompt.split("\n")
            if line.startswith(("User: ", "Assistant: "))
        ]
        assert len(history_lines) <= 20
        assert history_lines[-1] == "User: message 24"

    def test_list_messages_storage_failure(
        self,
        mock_server: MockApplicationServer,
        client: TestClient,
        auth_headers: Dict[str, str],
    ):
        mock_server.service_container.redis_client.failing_commands.add("xrange")

        response = client.get("/api/sessions/s1/messages", headers=auth_headers)
        assert response.status_code == 500
        assert response.json()["error_type"] == "StorageError"

    def test_list_messages_no_service(
        self, client_no_services: TestClient, auth_headers: Dict[str, str]
    ):
        response = client_no_services.get(
            "/api/sessions/s1/messages", headers=auth_headers
        )
        assert response.status_code == 503
