"""Tests for input shape handling and field validation."""

import json

import pytest

from smtp_mailer.errors import RequestValidationError
from smtp_mailer.models import AttachmentPayload, EmailRequest
from smtp_mailer.normalizer import (
    is_valid_address,
    normalize_attachments,
    parse_request,
    unwrap_params,
)

VALID = {"to": "a@b.com", "subject": "Hi", "body": "Hello"}


class TestUnwrapParams:
    """Accepted input shapes, first match wins."""

    def test_json_string_in_list(self):
        data = unwrap_params([json.dumps(VALID)])
        assert data == VALID

    def test_positional_values_when_first_element_is_not_json(self):
        data = unwrap_params(["a@b.com", "Hi", "Hello"])
        assert data == VALID

    def test_positional_values_are_padded(self):
        data = unwrap_params(["a@b.com"])
        assert data == {"to": "a@b.com", "subject": None, "body": None}

    def test_json_non_object_falls_back_to_positional(self):
        data = unwrap_params(['"a@b.com"', "Hi", "Hello"])
        assert data["to"] == '"a@b.com"'
        assert data["subject"] == "Hi"

    def test_single_mapping_in_list_is_unwrapped(self):
        assert unwrap_params([VALID]) == VALID

    def test_mapping_directly(self):
        assert unwrap_params(VALID) == VALID

    def test_tuple_is_a_sequence_too(self):
        assert unwrap_params(("a@b.com", "Hi", "Hello")) == VALID

    @pytest.mark.parametrize("params", [None, 42, [], [1, 2], "a@b.com"])
    def test_unsupported_shapes_rejected(self, params):
        with pytest.raises(RequestValidationError, match="invalid parameters"):
            unwrap_params(params)


class TestValidation:
    """Ordered field checks with distinct messages."""

    @pytest.mark.parametrize(
        "missing, message",
        [
            ("to", "recipient required"),
            ("subject", "subject required"),
            ("body", "message required"),
        ],
    )
    def test_missing_required_field(self, missing, message):
        params = {k: v for k, v in VALID.items() if k != missing}
        with pytest.raises(RequestValidationError) as exc_info:
            parse_request(params)
        assert str(exc_info.value) == message
        assert exc_info.value.code == "invalid_request"

    def test_empty_string_counts_as_missing(self):
        with pytest.raises(RequestValidationError, match="subject required"):
            parse_request({**VALID, "subject": ""})

    def test_missing_fields_checked_before_address_format(self):
        with pytest.raises(RequestValidationError, match="message required"):
            parse_request({"to": "not-an-address", "subject": "Hi"})

    @pytest.mark.parametrize("address", ["plainaddress", "a@b", "a b@c.com", "a@@b.com", "@b.com"])
    def test_invalid_recipient(self, address):
        with pytest.raises(RequestValidationError, match="invalid recipient address"):
            parse_request({**VALID, "to": address})

    def test_invalid_cc(self):
        with pytest.raises(RequestValidationError, match="invalid CC address"):
            parse_request({**VALID, "cc": "nope"})

    def test_invalid_bcc(self):
        with pytest.raises(RequestValidationError, match="invalid BCC address"):
            parse_request({**VALID, "bcc": "nope@"})

    def test_cc_checked_before_bcc(self):
        with pytest.raises(RequestValidationError, match="invalid CC address"):
            parse_request({**VALID, "cc": "x", "bcc": "y"})

    def test_unsupported_provider(self):
        with pytest.raises(RequestValidationError, match="unsupported provider: ses"):
            parse_request({**VALID, "provider": "ses"})

    def test_smtp_provider_accepted(self):
        assert parse_request({**VALID, "provider": "SMTP"}).provider == "smtp"

    def test_non_boolean_html_flag_rejected(self):
        with pytest.raises(RequestValidationError, match="is_html"):
            parse_request({**VALID, "isHtml": "maybe"})

    def test_address_pattern(self):
        assert is_valid_address("first.last@sub.example.org")
        assert not is_valid_address(None)
        assert not is_valid_address("")


class TestParseRequest:
    def test_minimal_request(self):
        req = parse_request(VALID)
        assert isinstance(req, EmailRequest)
        assert req.to == "a@b.com"
        assert req.is_html is False
        assert req.cc is None
        assert req.bcc is None
        assert req.attachments is None
        assert req.provider == "smtp"

    def test_html_flag_and_copies(self):
        req = parse_request({**VALID, "isHtml": True, "cc": "c@d.com", "bcc": "e@f.com"})
        assert req.is_html is True
        assert req.cc == "c@d.com"
        assert req.bcc == "e@f.com"

    def test_empty_cc_is_treated_as_absent(self):
        assert parse_request({**VALID, "cc": ""}).cc is None

    def test_legacy_field_names(self):
        req = parse_request({
            "para": "a@b.com",
            "assunto": "Oi",
            "mensagem": "Ola",
            "html": True,
            "anexos": [{"nome": "a.txt", "conteudo": "SGVsbG8=", "tipo": "text/plain"}],
        })
        assert (req.to, req.subject, req.body, req.is_html) == ("a@b.com", "Oi", "Ola", True)
        assert req.attachments[0].name == "a.txt"
        assert req.attachments[0].mime_type == "text/plain"

    def test_existing_request_passes_through(self):
        original = parse_request({**VALID, "attachments": [{"name": "a.txt", "content": "SGVsbG8="}]})
        again = parse_request(original)
        assert again == original


class TestAttachments:
    def test_empty_content_dropped(self):
        attachments = normalize_attachments([
            {"name": "a.txt", "content": "SGVsbG8="},
            {"name": "b.txt", "content": ""},
        ])
        assert [a.name for a in attachments] == ["a.txt"]

    def test_single_mapping_is_one_element_collection(self):
        attachments = normalize_attachments({"nome": "a.txt", "conteudo": "SGVsbG8="})
        assert len(attachments) == 1
        assert attachments[0].content == "SGVsbG8="

    def test_all_empty_yields_none(self):
        assert normalize_attachments([{"name": "b.txt", "content": None}]) is None
        assert normalize_attachments([]) is None
        assert normalize_attachments(None) is None

    def test_values_coerced_to_strings(self):
        attachments = normalize_attachments([{"name": 123, "content": "QQ=="}])
        assert attachments[0].name == "123"

    def test_non_mapping_entries_skipped(self):
        attachments = normalize_attachments(["junk", {"name": "a.txt", "content": "QQ=="}])
        assert len(attachments) == 1

    def test_payload_instances_kept(self):
        payload = AttachmentPayload(name="a.txt", content="QQ==")
        assert normalize_attachments([payload]) == [payload]

    def test_scalar_rejected(self):
        with pytest.raises(RequestValidationError, match="invalid attachments"):
            normalize_attachments(42)


def test_whitespace_only_attachment_content_dropped():
    attachments = normalize_attachments([
        {"name": "x.txt", "content": "   "},
        {"name": "y.txt", "content": "\n\t"},
        {"name": "a.txt", "content": "SGVsbG8="},
    ])
    assert [a.name for a in attachments] == ["a.txt"]
