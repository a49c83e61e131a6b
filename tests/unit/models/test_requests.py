"""Tests for API request models."""

import pytest
from pydantic import TypeAdapter, ValidationError

from wa_gateway.models.requests import (
    CreateSessionRequest,
    ImageMessageRequest,
    SendMessageRequest,
    TextMessageRequest,
)


class TestCreateSessionRequest:

    @pytest.mark.parametrize("session_id", ["shop-42", "tenant_1.main", "15551234567@c.us"])
    def test_accepts_storage_safe_ids(self, session_id):
        assert CreateSessionRequest(session_id=session_id).session_id == session_id

    @pytest.mark.parametrize("session_id", ["", ".", "..", "a/b", "a\\b", "white space"])
    def test_rejects_unsafe_ids(self, session_id):
        with pytest.raises(ValidationError):
            CreateSessionRequest(session_id=session_id)


class TestMessageRequests:

    def test_type_defaults_per_endpoint_model(self):
        request = TextMessageRequest(session_id="A", to="1555", message="hi")

        assert request.type == "text"

    def test_discriminator_selects_model(self):
        adapter = TypeAdapter(SendMessageRequest)

        request = adapter.validate_python(
            {"type": "image", "session_id": "A", "to": "1555", "image": "https://cdn.test/a.png"}
        )

        assert isinstance(request, ImageMessageRequest)
        assert request.media_source == "https://cdn.test/a.png"
        assert request.caption is None

    def test_discriminator_requires_type(self):
        with pytest.raises(ValidationError):
            TypeAdapter(SendMessageRequest).validate_python({"session_id": "A", "to": "1555", "message": "hi"})

    def test_blank_recipient_rejected(self):
        with pytest.raises(ValidationError):
            TextMessageRequest(session_id="A", to="", message="hi")
