"""Integration tests for the chat endpoints."""

import uuid

import pytest

from servicehub.schemas.messages import MAX_MESSAGE_LENGTH


def unique_conversation() -> str:
    """Generate a unique conversation ID for each test."""
    return f"conv_{uuid.uuid4().hex[:8]}"


class TestFilterEndpoint:
    """Tests for POST /api/v1/messages/filter."""

    @pytest.mark.anyio
    async def test_filter_redacts_contacts(self, client):
        response = await client.post(
            "/api/v1/messages/filter",
            json={"content": "Chiamami al 333 1234567"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["is_blocked"] is True
        assert data["sanitized_content"] == "Chiamami al [number hidden]"
        assert data["blocked_reasons"] == ["phone", "contact_attempt"]
        assert data["notice"].startswith("Per la tua sicurezza, numeri di telefono")

    @pytest.mark.anyio
    async def test_filter_contact_attempt_only(self, client):
        response = await client.post(
            "/api/v1/messages/filter",
            json={"content": "scrivimi su telegram", "language": "en"},
        )

        data = response.json()
        assert data["is_blocked"] is False
        assert data["sanitized_content"] == "scrivimi su telegram"
        assert data["notice"].startswith("Reminder:")

    @pytest.mark.anyio
    async def test_clean_message_has_no_notice(self, client):
        response = await client.post(
            "/api/v1/messages/filter",
            json={"content": "A domani!"},
        )

        data = response.json()
        assert data["is_blocked"] is False
        assert data["notice"] == ""

    @pytest.mark.anyio
    async def test_overlong_message_rejected(self, client):
        response = await client.post(
            "/api/v1/messages/filter",
            json={"content": "a" * (MAX_MESSAGE_LENGTH + 1)},
        )

        assert response.status_code == 422


class TestConversationEndpoints:
    """Tests for sending, listing and reading messages."""

    @pytest.mark.anyio
    async def test_stored_message_is_sanitized(self, client):
        conversation = unique_conversation()
        response = await client.post(
            f"/api/v1/conversations/{conversation}/messages",
            json={
                "sender_id": "client-1",
                "sender_type": "client",
                "content": "La mia mail è anna@example.it",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"]["content"] == "La mia mail è [email hidden]"
        assert data["message"]["is_blocked"] is True
        assert data["blocked_reasons"] == ["email", "contact_attempt"]
        assert "original_content" not in data["message"]

        listing = await client.get(f"/api/v1/conversations/{conversation}/messages")
        assert listing.status_code == 200
        messages = listing.json()
        assert len(messages) == 1
        assert "anna@example.it" not in listing.text

    @pytest.mark.anyio
    async def test_messages_listed_oldest_first(self, client):
        conversation = unique_conversation()
        for text in ("primo", "secondo", "terzo"):
            await client.post(
                f"/api/v1/conversations/{conversation}/messages",
                json={"sender_id": "pro-1", "sender_type": "professional", "content": text},
            )

        response = await client.get(f"/api/v1/conversations/{conversation}/messages")

        assert [m["content"] for m in response.json()] == ["primo", "secondo", "terzo"]

    @pytest.mark.anyio
    async def test_attachment_only_message(self, client):
        conversation = unique_conversation()
        response = await client.post(
            f"/api/v1/conversations/{conversation}/messages",
            json={
                "sender_id": "client-1",
                "sender_type": "client",
                "file_url": "https://storage.test/chat/photo.jpg",
            },
        )

        assert response.status_code == 201
        assert response.json()["message"]["message_type"] == "image"

    @pytest.mark.anyio
    async def test_empty_message_rejected(self, client):
        response = await client.post(
            f"/api/v1/conversations/{unique_conversation()}/messages",
            json={"sender_id": "client-1", "sender_type": "client", "content": "  "},
        )

        assert response.status_code == 422

    @pytest.mark.anyio
    async def test_overlong_message_not_stored(self, client):
        conversation = unique_conversation()
        response = await client.post(
            f"/api/v1/conversations/{conversation}/messages",
            json={
                "sender_id": "client-1",
                "sender_type": "client",
                "content": "ciao " * 1000,
            },
        )

        assert response.status_code == 422
        listing = await client.get(f"/api/v1/conversations/{conversation}/messages")
        assert listing.json() == []

    @pytest.mark.anyio
    async def test_invalid_sender_type_rejected(self, client):
        response = await client.post(
            f"/api/v1/conversations/{unique_conversation()}/messages",
            json={"sender_id": "x", "sender_type": "admin", "content": "ciao"},
        )

        assert response.status_code == 422

    @pytest.mark.anyio
    async def test_mark_as_read_only_touches_other_sender(self, client):
        conversation = unique_conversation()
        url = f"/api/v1/conversations/{conversation}/messages"
        await client.post(url, json={"sender_id": "client-1", "sender_type": "client", "content": "ciao"})
        await client.post(url, json={"sender_id": "client-1", "sender_type": "client", "content": "ci sei?"})
        await client.post(url, json={"sender_id": "pro-1", "sender_type": "professional", "content": "sì"})

        response = await client.post(
            f"/api/v1/conversations/{conversation}/read",
            json={"reader_id": "pro-1"},
        )
        assert response.status_code == 200
        assert response.json() == {"updated": 2}

        again = await client.post(
            f"/api/v1/conversations/{conversation}/read",
            json={"reader_id": "pro-1"},
        )
        assert again.json() == {"updated": 0}

        messages = (await client.get(url)).json()
        assert [m["is_read"] for m in messages] == [True, True, False]
