"""
Type definitions for DKIM signing

This module provides the signature tag enumeration, the sign-header descriptor
and the per-call signing request used by the signing engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .canonicalization import Canonicalization

DKIM_SIGNATURE_HEADER = "DKIM-Signature"


class HeaderTag(str, Enum):
    """DKIM-Signature tags in the order they are serialized"""
    VERSION = "v"
    ALGORITHM = "a"
    DOMAIN = "d"
    CANONICALIZATION = "c"
    IDENTITY = "i"
    SELECTOR = "s"
    HEADERS = "h"
    BODY_HASH = "bh"
    SIGNATURE = "b"

    @property
    def tag_name(self) -> str:
        return self.value


@dataclass(frozen=True, eq=False)
class DkimSignHeader:
    """
    Header field to be signed.

    Two descriptors are equal when their names are equal (case-sensitive);
    the ``required`` flag takes no part in equality or hashing, so a later
    descriptor with the same name replaces an earlier one when merging.

    Attributes:
        name: Header field name, matched case-sensitively against the message
        required: Signing fails when a required header is absent
    """
    name: str
    required: bool = False

    def __post_init__(self):
        """Validate header name"""
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Header name cannot be blank")

    def __eq__(self, other: Any) -> bool:
        if self is other:
            return True
        if not isinstance(other, DkimSignHeader):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)


@dataclass
class SigningRequest:
    """
    Parameters of a single signing call

    Attributes:
        private_key: RSA private key used for the signature
        selector: DNS selector of the published public key
        domain: Signing domain (d=), normalized to lower case
        identity: Agent or user identity (i=), normalized to lower case
        headers: Ordered header descriptors to sign
        header_canonicalization: Header canonicalization algorithm
        body_canonicalization: Body canonicalization algorithm
    """
    private_key: RSAPrivateKey
    selector: str
    domain: str
    identity: str
    headers: List[DkimSignHeader] = field(default_factory=list)
    header_canonicalization: Canonicalization = Canonicalization.SIMPLE
    body_canonicalization: Canonicalization = Canonicalization.SIMPLE

    @property
    def canonicalization_value(self) -> str:
        """Value of the c= tag"""
        return f"{self.header_canonicalization.type_name}/{self.body_canonicalization.type_name}"


@dataclass
class SignedHeaders:
    """
    Canonicalized header fields selected for signing

    Attributes:
        names: Header names in signing order, repeated per occurrence (h=)
        lines: Canonical header lines aligned with ``names``
    """
    names: List[str] = field(default_factory=list)
    lines: List[str] = field(default_factory=list)

    def append(self, name: str, line: str) -> None:
        self.names.append(name)
        self.lines.append(line)

    @property
    def tag_value(self) -> str:
        return ":".join(self.names)

