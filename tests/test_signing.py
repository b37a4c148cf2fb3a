"""
Test suite for DKIM signing

This module tests the signing engine end to end: body hashing, header
selection and canonicalization, the signed text and the RSA-SHA256
signature, and the failure modes.
"""

import base64
import hashlib
import logging
from email.message import EmailMessage
from unittest.mock import Mock

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from mail_dkim.exceptions import DkimSigningError, SigningErrorCodes
from mail_dkim.signing import (
    Canonicalization,
    DkimSignature,
    DkimSignHeader,
    DkimSigner,
    HeaderTag,
    SignedHeaders,
    add_dkim_signature,
    as_message_source,
    build_signing_input,
    canonicalize_headers,
    create_signer,
    format_signature_header,
    hash_body,
    prepend_signature_header,
    sign,
)

EMPTY_BODY_HASH = "frcCV1k9oG9oKj3dpUqdJg1PxRT2RSN/XKdLCPjaYaY="

BASIC_SIGN_HEADERS = [
    DkimSignHeader("From", True),
    DkimSignHeader("To"),
    DkimSignHeader("Subject"),
    DkimSignHeader("Date"),
]


def parse_tags(value):
    """Split a DKIM-Signature value into an ordered list of (tag, value)"""
    return [tuple(item.split("=", 1)) for item in value.split("; ")]


class TestSign:
    """Test the sign operation"""

    def test_empty_body_signature(self, rsa_key, raw_message, basic_headers, verify_signature):
        """Test the signature value of a message without body"""
        message = raw_message(basic_headers)

        value = sign(message, rsa_key, "s1", "duotail.com", "tao.dong@duotail.com", BASIC_SIGN_HEADERS)

        expected_prefix = (
            "v=1; a=rsa-sha256; d=duotail.com; c=simple/simple; i=tao.dong@duotail.com; "
            "s=s1; h=From:To:Subject:Date; "
            f"bh={EMPTY_BODY_HASH}; b="
        )
        assert value.startswith(expected_prefix)
        assert len(value) > len(expected_prefix)
        assert verify_signature(rsa_key.public_key(), value, basic_headers[:4])

    def test_tag_order(self, rsa_key, raw_message, basic_headers):
        value = sign(raw_message(basic_headers), rsa_key, "s1", "duotail.com", "@duotail.com", BASIC_SIGN_HEADERS)
        assert [tag for tag, _ in parse_tags(value)] == ["v", "a", "d", "c", "i", "s", "h", "bh", "b"]
        assert "\r" not in value and "\n" not in value

    def test_signature_verifies_with_body(self, rsa_key, raw_message, basic_headers, verify_signature):
        message = raw_message(basic_headers, "Hello\r\nWorld\r\n")
        value = sign(message, rsa_key, "s1", "duotail.com", "tao.dong@duotail.com", BASIC_SIGN_HEADERS)

        assert dict(parse_tags(value))["bh"] == base64.b64encode(
            hashlib.sha256(b"Hello\r\nWorld\r\n").digest()
        ).decode("ascii")
        assert verify_signature(rsa_key.public_key(), value, basic_headers[:4])

    def test_signature_fails_with_other_key(self, rsa_key, other_rsa_key, raw_message, basic_headers, verify_signature):
        from cryptography.exceptions import InvalidSignature

        value = sign(raw_message(basic_headers), rsa_key, "s1", "duotail.com", "@duotail.com", BASIC_SIGN_HEADERS)
        with pytest.raises(InvalidSignature):
            verify_signature(other_rsa_key.public_key(), value, basic_headers[:4])

    def test_relaxed_modes(self, rsa_key, raw_message, verify_signature):
        """Test relaxed header and body canonicalization"""
        headers = [("From", "a@example.com"), ("Subject", "Hello   World  ")]
        message = raw_message(headers, "line  one \t\r\n\r\n\r\n")

        value = sign(
            message, rsa_key, "sel", "example.com", "a@example.com",
            [DkimSignHeader("From", True), DkimSignHeader("Subject")],
            Canonicalization.RELAXED, "relaxed"
        )
        tags = dict(parse_tags(value))
        assert tags["c"] == "relaxed/relaxed"
        assert tags["bh"] == base64.b64encode(
            hashlib.sha256(b"line one\r\n").digest()
        ).decode("ascii")
        assert verify_signature(rsa_key.public_key(), value, headers, Canonicalization.RELAXED)

    def test_mixed_modes(self, rsa_key, raw_message, basic_headers):
        value = sign(
            raw_message(basic_headers), rsa_key, "s1", "duotail.com", "@duotail.com",
            BASIC_SIGN_HEADERS, "relaxed", None
        )
        assert dict(parse_tags(value))["c"] == "relaxed/simple"

    def test_default_modes_are_simple(self, rsa_key, raw_message, basic_headers):
        value = sign(raw_message(basic_headers), rsa_key, "s1", "duotail.com", "@duotail.com", BASIC_SIGN_HEADERS)
        assert dict(parse_tags(value))["c"] == "simple/simple"

    def test_repeated_header_signed_per_occurrence(self, rsa_key, raw_message, verify_signature):
        headers = [("From", "a@example.com"), ("Received", "one"), ("Received", "two")]
        value = sign(
            raw_message(headers), rsa_key, "sel", "example.com", "@example.com",
            [DkimSignHeader("From", True), DkimSignHeader("Received")]
        )
        assert dict(parse_tags(value))["h"] == "From:Received:Received"
        assert verify_signature(rsa_key.public_key(), value, headers)

    def test_absent_optional_header_skipped(self, rsa_key, raw_message, caplog):
        headers = [("From", "a@example.com")]
        with caplog.at_level(logging.DEBUG, logger="mail_dkim.signing.dkim_signer"):
            value = sign(
                raw_message(headers), rsa_key, "sel", "example.com", "@example.com",
                [DkimSignHeader("From", True), DkimSignHeader("Cc")]
            )
        assert dict(parse_tags(value))["h"] == "From"
        assert "Optional header Cc not present" in caplog.text

    def test_h_follows_descriptor_order(self, rsa_key, raw_message):
        headers = [("Subject", "s"), ("From", "a@example.com")]
        value = sign(
            raw_message(headers), rsa_key, "sel", "example.com", "@example.com",
            [DkimSignHeader("From", True), DkimSignHeader("Subject")]
        )
        assert dict(parse_tags(value))["h"] == "From:Subject"

    def test_body_change_changes_only_bh_and_b(self, rsa_key, raw_message, basic_headers):
        first = dict(parse_tags(sign(
            raw_message(basic_headers, "one\r\n"), rsa_key, "s1", "duotail.com", "@duotail.com", BASIC_SIGN_HEADERS
        )))
        second = dict(parse_tags(sign(
            raw_message(basic_headers, "two\r\n"), rsa_key, "s1", "duotail.com", "@duotail.com", BASIC_SIGN_HEADERS
        )))
        assert first["bh"] != second["bh"]
        assert first["b"] != second["b"]
        assert first["h"] == second["h"]

    def test_unsigned_header_change_keeps_signature(self, rsa_key, raw_message, basic_headers):
        """Headers outside the list do not affect the signature"""
        first = sign(
            raw_message(basic_headers + [("X-Mailer", "one")]), rsa_key, "s1", "duotail.com", "@duotail.com",
            BASIC_SIGN_HEADERS
        )
        second = sign(
            raw_message(basic_headers + [("X-Mailer", "two")]), rsa_key, "s1", "duotail.com", "@duotail.com",
            BASIC_SIGN_HEADERS
        )
        assert first == second

    def test_email_message_input(self, rsa_key, verify_signature):
        message = EmailMessage()
        message["From"] = "tao.dong@duotail.com"
        message["To"] = "test@gmail.com"
        message["Subject"] = "Empty Body"

        value = sign(message, rsa_key, "s1", "duotail.com", "tao.dong@duotail.com", BASIC_SIGN_HEADERS)

        tags = dict(parse_tags(value))
        assert tags["h"] == "From:To:Subject"
        assert tags["bh"] == EMPTY_BODY_HASH
        assert verify_signature(
            rsa_key.public_key(), value,
            [("From", "tao.dong@duotail.com"), ("To", "test@gmail.com"), ("Subject", "Empty Body")]
        )

    def test_domain_and_identity_normalized(self, rsa_key, raw_message, basic_headers):
        value = sign(
            raw_message(basic_headers), rsa_key, "s1", " DuoTail.com ", "Tao.Dong@DUOTAIL.com",
            BASIC_SIGN_HEADERS
        )
        tags = dict(parse_tags(value))
        assert tags["d"] == "duotail.com"
        assert tags["i"] == "tao.dong@duotail.com"

    def test_subdomain_identity(self, rsa_key, raw_message, basic_headers):
        value = sign(
            raw_message(basic_headers), rsa_key, "s1", "duotail.com", "user@mail.duotail.com",
            BASIC_SIGN_HEADERS
        )
        assert dict(parse_tags(value))["i"] == "user@mail.duotail.com"


class TestSignFailures:
    """Test signing failure modes"""

    def test_missing_required_header(self, rsa_key, raw_message, basic_headers):
        with pytest.raises(DkimSigningError) as exc_info:
            sign(
                raw_message(basic_headers[:4]), rsa_key, "s1", "duotail.com", "@duotail.com",
                [DkimSignHeader("From", True), DkimSignHeader("Content-Type", True)]
            )
        assert exc_info.value.message == "Required header Content-Type is missing."
        assert exc_info.value.error_code == SigningErrorCodes.MISSING_REQUIRED_HEADER

    def test_required_header_case_sensitive(self, rsa_key, raw_message):
        with pytest.raises(DkimSigningError) as exc_info:
            sign(
                raw_message([("from", "a@example.com")]), rsa_key, "sel", "example.com", "@example.com",
                [DkimSignHeader("From", True)]
            )
        assert exc_info.value.error_code == SigningErrorCodes.MISSING_REQUIRED_HEADER

    @pytest.mark.parametrize("identity", [
        "tao.dong@gmail.com",
        "user@notduotail.com",
        "duotail.com",
    ])
    def test_identity_domain_mismatch(self, rsa_key, raw_message, basic_headers, identity):
        with pytest.raises(DkimSigningError) as exc_info:
            sign(raw_message(basic_headers), rsa_key, "s1", "duotail.com", identity, BASIC_SIGN_HEADERS)
        assert exc_info.value.error_code == SigningErrorCodes.IDENTITY_DOMAIN_MISMATCH
        assert exc_info.value.message == f"The identity {identity} is not end with domain duotail.com"

    def test_empty_selector(self, rsa_key, raw_message, basic_headers):
        with pytest.raises(DkimSigningError) as exc_info:
            sign(raw_message(basic_headers), rsa_key, " ", "duotail.com", "@duotail.com", BASIC_SIGN_HEADERS)
        assert exc_info.value.error_code == SigningErrorCodes.INVALID_PARAMETER

    def test_empty_domain(self, rsa_key, raw_message, basic_headers):
        with pytest.raises(DkimSigningError) as exc_info:
            sign(raw_message(basic_headers), rsa_key, "s1", "", "@duotail.com", BASIC_SIGN_HEADERS)
        assert exc_info.value.error_code == SigningErrorCodes.INVALID_PARAMETER

    def test_empty_header_list(self, rsa_key, raw_message, basic_headers):
        with pytest.raises(DkimSigningError) as exc_info:
            sign(raw_message(basic_headers), rsa_key, "s1", "duotail.com", "@duotail.com", [])
        assert exc_info.value.error_code == SigningErrorCodes.INVALID_PARAMETER

    def test_non_rsa_key(self, raw_message, basic_headers):
        key = ec.generate_private_key(ec.SECP256R1())
        with pytest.raises(DkimSigningError) as exc_info:
            sign(raw_message(basic_headers), key, "s1", "duotail.com", "@duotail.com", BASIC_SIGN_HEADERS)
        assert exc_info.value.message == "Failed to create signature."
        assert exc_info.value.error_code == SigningErrorCodes.INVALID_PRIVATE_KEY

    def test_body_read_failure(self, rsa_key):
        source = Mock()
        source.get_header_values.return_value = ["a@example.com"]
        source.get_body_bytes.side_effect = OSError("disk gone")

        with pytest.raises(DkimSigningError) as exc_info:
            sign(source, rsa_key, "sel", "example.com", "@example.com", [DkimSignHeader("From", True)])
        assert exc_info.value.message == "Failed to hash message body."
        assert exc_info.value.error_code == SigningErrorCodes.BODY_READ_FAILED
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_header_read_failure(self, rsa_key):
        source = Mock()
        source.get_header_values.side_effect = ValueError("bad header")
        source.get_body_bytes.return_value = b""

        with pytest.raises(DkimSigningError) as exc_info:
            sign(source, rsa_key, "sel", "example.com", "@example.com", [DkimSignHeader("From", True)])
        assert exc_info.value.error_code == SigningErrorCodes.HEADER_READ_FAILED

    def test_unsupported_message(self, rsa_key):
        with pytest.raises(DkimSigningError) as exc_info:
            sign(12345, rsa_key, "sel", "example.com", "@example.com", [DkimSignHeader("From", True)])
        assert exc_info.value.error_code == SigningErrorCodes.INVALID_PARAMETER


class TestSigningSteps:
    """Test the individual signing steps"""

    def test_hash_body_empty(self, raw_message):
        source = as_message_source(raw_message([("From", "a@example.com")]))
        assert hash_body(source) == EMPTY_BODY_HASH
        assert hash_body(source, Canonicalization.RELAXED) == "47DEQpj8HBSa+/TImW+5JCeuQeRkm5NMpJWZG3hSuFU="

    def test_canonicalize_headers(self, raw_message):
        source = as_message_source(raw_message([("From", "a@example.com"), ("Subject", "Hi  there")]))
        signed = canonicalize_headers(
            source, [DkimSignHeader("Subject"), DkimSignHeader("From", True)], Canonicalization.RELAXED
        )
        assert signed.names == ["Subject", "From"]
        assert signed.lines == ["subject:Hi there", "from:a@example.com"]
        assert signed.tag_value == "Subject:From"

    def test_build_signing_input(self):
        signature = DkimSignature()
        for tag, value in [
            (HeaderTag.DOMAIN, "example.com"),
            (HeaderTag.SELECTOR, "sel"),
            (HeaderTag.IDENTITY, "@example.com"),
            (HeaderTag.CANONICALIZATION, "simple/simple"),
            (HeaderTag.HEADERS, "From"),
            (HeaderTag.BODY_HASH, "hash"),
        ]:
            signature.add_tag_value(tag, value)
        signed = SignedHeaders()
        signed.append("From", "From: a@example.com")

        assert build_signing_input(signature, signed) == (
            "From: a@example.com\r\n"
            "DKIM-Signature: v=1; a=rsa-sha256; d=example.com; c=simple/simple; "
            "i=@example.com; s=sel; h=From; bh=hash; b="
        )

    def test_build_signing_input_relaxed(self):
        signature = DkimSignature()
        for tag in (HeaderTag.DOMAIN, HeaderTag.SELECTOR, HeaderTag.IDENTITY,
                    HeaderTag.CANONICALIZATION, HeaderTag.HEADERS, HeaderTag.BODY_HASH):
            signature.add_tag_value(tag, "x")
        signed = SignedHeaders()
        signed.append("From", "from:a@example.com")

        signing_input = build_signing_input(signature, signed, Canonicalization.RELAXED)
        assert signing_input.startswith("from:a@example.com\r\ndkim-signature:v=1; ")
        assert signing_input.endswith("; b=")

    def test_build_signing_input_incomplete(self):
        with pytest.raises(DkimSigningError) as exc_info:
            build_signing_input(DkimSignature(), SignedHeaders())
        assert exc_info.value.error_code == SigningErrorCodes.INCOMPLETE_SIGNATURE


class TestDkimSigner:
    """Test the reusable signer"""

    def test_default_identity(self, rsa_key):
        signer = DkimSigner(rsa_key, "s1", "duotail.com")
        assert signer.identity == "@duotail.com"
        assert signer.domain == "duotail.com"
        assert signer.selector == "s1"

    def test_default_identity_from_normalized_domain(self, rsa_key, raw_message, basic_headers):
        signer = DkimSigner(rsa_key, "s1", " Example.COM ")
        assert signer.identity == "@example.com"
        assert signer.domain == "example.com"

        tags = dict(parse_tags(signer.sign(raw_message(basic_headers), [DkimSignHeader("From", True)])))
        assert tags["d"] == "example.com"
        assert tags["i"] == "@example.com"

    def test_default_headers(self, rsa_key, raw_message, basic_headers):
        """The default header list includes Content-Type"""
        signer = create_signer(rsa_key, "s1", "duotail.com")
        value = signer.sign(raw_message(basic_headers))
        assert dict(parse_tags(value))["h"] == "From:To:Subject:Date:Content-Type"

    def test_sign_with_headers_override(self, rsa_key, raw_message, basic_headers):
        signer = DkimSigner(rsa_key, "s1", "duotail.com", header_canonicalization="relaxed")
        value = signer.sign(raw_message(basic_headers), [DkimSignHeader("From", True)])
        tags = dict(parse_tags(value))
        assert tags["h"] == "From"
        assert tags["c"] == "relaxed/simple"

    def test_invalid_parameters_rejected_early(self, rsa_key):
        with pytest.raises(DkimSigningError):
            DkimSigner(rsa_key, "s1", "duotail.com", identity="a@gmail.com")

    def test_info_logged_without_secrets(self, rsa_key, raw_message, basic_headers, caplog):
        signer = DkimSigner(rsa_key, "s1", "duotail.com")
        with caplog.at_level(logging.INFO, logger="mail_dkim.signing.dkim_signer"):
            signer.sign(raw_message(basic_headers))
        assert "Created DKIM signature for d=duotail.com s=s1" in caplog.text
        assert "Empty Body" not in caplog.text


class TestIntegration:
    """Test adding the signature to messages"""

    def test_add_dkim_signature(self, rsa_key):
        message = EmailMessage()
        message["From"] = "tao.dong@duotail.com"
        message["Subject"] = "Hello"
        message.set_content("Hi\n")

        signer = DkimSigner(rsa_key, "s1", "duotail.com")
        value = add_dkim_signature(message, signer)

        assert message["DKIM-Signature"] is not None
        assert dict(parse_tags(value))["d"] == "duotail.com"

    def test_add_dkim_signature_refuses_second(self, rsa_key):
        message = EmailMessage()
        message["From"] = "tao.dong@duotail.com"
        signer = DkimSigner(rsa_key, "s1", "duotail.com")
        add_dkim_signature(message, signer)

        with pytest.raises(DkimSigningError) as exc_info:
            add_dkim_signature(message, signer)
        assert exc_info.value.error_code == SigningErrorCodes.INVALID_PARAMETER

    def test_prepend_signature_header(self):
        raw = b"From: a@example.com\r\n\r\nbody\r\n"
        result = prepend_signature_header(raw, "v=1; b=x")
        assert result == b"DKIM-Signature: v=1; b=x\r\nFrom: a@example.com\r\n\r\nbody\r\n"
        assert format_signature_header("v=1") == "DKIM-Signature: v=1"
