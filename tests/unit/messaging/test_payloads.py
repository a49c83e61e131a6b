"""Tests for the outbound payload models."""

import pytest
from pydantic import TypeAdapter, ValidationError

from wa_gateway.messaging.payloads import (
    AudioPayload,
    ContactCard,
    DocumentPayload,
    OutboundPayload,
    _MediaPayload,
    TextPayload,
    is_remote_source,
)

adapter = TypeAdapter(OutboundPayload)


class TestDiscriminatedPayload:

    def test_type_selects_model(self) -> None:
        payload = adapter.validate_python({"type": "document", "document": "https://x.example/a.pdf"})

        assert isinstance(payload, DocumentPayload)
        assert payload.media_source == "https://x.example/a.pdf"

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            adapter.validate_python({"type": "sticker", "sticker": "abc"})

    def test_missing_required_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            adapter.validate_python({"type": "text"})

    def test_empty_text_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TextPayload(message="")

    def test_audio_is_voice_note_by_default(self) -> None:
        assert AudioPayload(audio="abc").ptt is True


class TestContactCard:

    def test_number_keeps_digits_only(self) -> None:
        assert ContactCard(name="Support", number="+1 (555) 000-1111").number == "15550001111"

    def test_number_without_digits_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ContactCard(name="Support", number="n/a")

    def test_vcard_format(self) -> None:
        vcard = ContactCard(name="Support", number="15550001111").to_vcard()

        assert vcard.splitlines() == [
            "BEGIN:VCARD",
            "VERSION:3.0",
            "FN:Support",
            "TEL;type=CELL;type=VOICE;waid=15550001111:15550001111",
            "END:VCARD",
        ]


@pytest.mark.parametrize(
    ("source", "remote"),
    [
        ("https://cdn.example.com/a.png", True),
        ("http://cdn.example.com/a.png", True),
        ("iVBORw0KGgo=", False),
        ("data:image/png;base64,iVBORw0KGgo=", False),
    ],
)
def test_is_remote_source(source, remote) -> None:
    assert is_remote_source(source) is remote


class TestMediaPayloadBase:

    def test_base_cannot_be_instantiated(self) -> None:
        with pytest.raises(TypeError):
            _MediaPayload()

    def test_every_media_kind_exposes_its_source(self) -> None:
        for kind in ("image", "video", "audio", "document"):
            payload = adapter.validate_python({"type": kind, kind: "aGVsbG8="})

            assert isinstance(payload, _MediaPayload)
            assert payload.media_source == "aGVsbG8="
