"""
Utility functions for DKIM signing
"""

import base64
import hashlib
import time
from typing import Optional


def base64_encode(data: bytes) -> str:
    """Base64-encode without line breaks"""
    return base64.b64encode(data).decode("ascii")


def to_wire_bytes(text: str) -> bytes:
    """Encode message text back to the bytes it was decoded from"""
    return text.encode("utf-8", errors="surrogateescape")


def from_wire_bytes(data: bytes) -> str:
    """Decode message bytes as UTF-8, keeping undecodable bytes as surrogate escapes"""
    return data.decode("utf-8", errors="surrogateescape")


def sha256_base64(text: str) -> str:
    """
    Hash message text with SHA-256.

    Args:
        text: Text to hash

    Returns:
        str: Base64-encoded digest
    """
    return base64_encode(hashlib.sha256(to_wire_bytes(text)).digest())


def normalize_string(value: Optional[str]) -> Optional[str]:
    """Trim and lower-case a domain or identity (None stays None)"""
    if value is None:
        return None
    return value.strip().lower()


def identity_matches_domain(identity: str, domain: str) -> bool:
    """Check that the identity is a mailbox at, or a name under, the domain"""
    return identity.endswith("@" + domain) or identity.endswith("." + domain)


class PerformanceTimer:
    """Simple wall clock timer for logging signing durations"""

    def __init__(self):
        self.start_time = time.perf_counter()

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.start_time) * 1000
