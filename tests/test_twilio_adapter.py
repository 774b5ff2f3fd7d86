"""Tests for Twilio webhook form normalization and signature checks."""

import pytest
from twilio.request_validator import RequestValidator

from jengatrack.whatsapp.twilio_adapter import (
    InvalidPayloadError,
    SignatureVerificationError,
    normalize,
    verify_signature,
)

URL = "https://hooks.jengatrack.test/webhooks/whatsapp/twilio"


class TestNormalize:
    def test_text_message(self):
        msg = normalize({"From": "whatsapp:+256700000001", "Body": "spent 5 on nails", "MessageSid": "SM1"})

        assert msg.from_number == "whatsapp:+256700000001"
        assert msg.body == "spent 5 on nails"
        assert msg.num_media == 0
        assert msg.media_url is None
        assert msg.message_sid == "SM1"
        assert not msg.has_media

    def test_media_message(self):
        msg = normalize(
            {
                "From": "whatsapp:+256700000001",
                "NumMedia": "1",
                "MediaUrl0": "https://api.twilio.com/media/ME1",
                "MediaContentType0": "image/jpeg",
            }
        )

        assert msg.body == ""
        assert msg.has_media
        assert msg.media_content_type == "image/jpeg"

    def test_media_fields_ignored_without_num_media(self):
        msg = normalize({"From": "whatsapp:+1", "MediaUrl0": "https://x/ME1"})

        assert msg.media_url is None

    def test_button_reply_text(self):
        msg = normalize({"From": "whatsapp:+1", "Body": "", "ButtonPayload": "btn_confirm", "ButtonText": "Yes"})

        assert msg.button_payload == "btn_confirm"
        assert msg.reply_text == "Yes"

    @pytest.mark.parametrize("form", [{}, {"From": "  "}, {"Body": "hi"}])
    def test_missing_from(self, form):
        with pytest.raises(InvalidPayloadError):
            normalize(form)

    @pytest.mark.parametrize("num_media", ["x", "-1"])
    def test_invalid_num_media(self, num_media):
        with pytest.raises(InvalidPayloadError):
            normalize({"From": "whatsapp:+1", "NumMedia": num_media})


class TestVerifySignature:
    def test_valid_signature(self):
        params = {"From": "whatsapp:+1", "Body": "hi"}
        signature = RequestValidator("token").compute_signature(URL, params)

        verify_signature("token", URL, params, signature)

    def test_wrong_signature(self):
        with pytest.raises(SignatureVerificationError):
            verify_signature("token", URL, {"Body": "hi"}, "bogus")

    def test_missing_signature(self):
        with pytest.raises(SignatureVerificationError):
            verify_signature("token", URL, {"Body": "hi"}, None)
