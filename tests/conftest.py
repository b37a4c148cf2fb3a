"""
Shared fixtures for the mail DKIM test suite
"""

import base64

import dkim
import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from mail_dkim.crypto import dns_txt_record, generate_private_key
from mail_dkim.signing import Canonicalization

CRLF = "\r\n"


@pytest.fixture(scope="session")
def rsa_key():
    """RSA key pair shared by the whole session"""
    return generate_private_key(2048)


@pytest.fixture(scope="session")
def other_rsa_key():
    return generate_private_key(2048)


@pytest.fixture
def raw_message():
    """Build a raw CRLF message from (name, value) pairs and a body"""
    def build(headers, body=""):
        lines = [f"{name}: {value}" for name, value in headers]
        return (CRLF.join(lines) + CRLF + CRLF + body).encode("utf-8")
    return build


@pytest.fixture
def basic_headers():
    return [
        ("From", "tao.dong@duotail.com"),
        ("To", "test@gmail.com"),
        ("Subject", "Empty Body"),
        ("Date", "Tue, 10 Dec 2024 00:00:00 +0000"),
        ("Content-Type", "text/plain; charset=UTF-8"),
    ]


@pytest.fixture
def verify_signature():
    """
    Check a DKIM-Signature value against the signed header lines.

    ``header_lines`` are the (name, value) pairs in signing order; the
    function rebuilds the signed text independently of the signer and
    verifies ``b=`` with the public key.
    """
    def verify(public_key, value, header_lines, header_canonicalization=Canonicalization.SIMPLE):
        unsigned = value[:value.rindex("; b=") + len("; b=")]
        signature = base64.b64decode(value[len(unsigned):])
        signed_text = "".join(
            header_canonicalization.canonicalize_header(name, header_value) + CRLF
            for name, header_value in header_lines
        )
        signed_text += header_canonicalization.canonicalize_header("DKIM-Signature", unsigned)
        public_key.verify(signature, signed_text.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256())
        return True
    return verify


@pytest.fixture
def dkim_verify():
    """
    Verify a serialized signed message with dkimpy.

    The key record is served for any selector, so the check covers only
    what a receiving server computes from the transmitted bytes.
    """
    def verify(message_bytes, key):
        record = dns_txt_record(key).encode("ascii")
        return dkim.verify(message_bytes, dnsfunc=lambda name, timeout=5: record)
    return verify
