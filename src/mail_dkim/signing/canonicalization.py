"""
DKIM canonicalization algorithms

RFC 6376 section 3.4 defines two canonicalization algorithms, "simple" and
"relaxed", each applied independently to the header fields and to the body.
Each member of :class:`Canonicalization` carries its own body and header
transform.
"""

import re
from enum import Enum
from typing import Callable, Optional, Union

CRLF = "\r\n"

_TRAILING_LINE_WSP = re.compile(r"[ \t]+\r\n")
_WSP_RUN = re.compile(r"[ \t]+")
_WHITESPACE_RUN = re.compile(r"\s+")


def _strip_extra_trailing_crlf(body: str) -> str:
    while body.endswith(CRLF + CRLF):
        body = body[:-2]
    return body


def simple_body(body: Optional[str]) -> str:
    """
    Simple body canonicalization.

    An empty body becomes a single CRLF, a missing trailing CRLF is added and
    trailing empty lines are reduced to exactly one CRLF.

    Args:
        body: Message body text (None is treated as empty)

    Returns:
        str: Canonical body
    """
    if not body:
        return CRLF

    if not body.endswith(CRLF):
        return body + CRLF

    return _strip_extra_trailing_crlf(body)


def relaxed_body(body: Optional[str]) -> str:
    """
    Relaxed body canonicalization.

    Whitespace at the end of lines is removed, runs of space and tab inside a
    line are reduced to a single space and trailing empty lines are removed.
    An empty body (or one that reduces to a lone CRLF) becomes the empty string.

    Args:
        body: Message body text (None is treated as empty)

    Returns:
        str: Canonical body
    """
    if not body:
        return ""

    if not body.endswith(CRLF):
        body += CRLF

    body = _TRAILING_LINE_WSP.sub(CRLF, body)
    body = _WSP_RUN.sub(" ", body)
    body = _strip_extra_trailing_crlf(body)

    if body == CRLF:
        return ""

    return body


def simple_header(name: str, value: str) -> str:
    """Simple header canonicalization: the field is used unchanged."""
    return name + ": " + value


def relaxed_header(name: str, value: str) -> str:
    """
    Relaxed header canonicalization.

    The field name is lower-cased, whitespace around the colon is dropped and
    whitespace runs in the value are reduced to a single space.
    """
    return name.strip().lower() + ":" + _WHITESPACE_RUN.sub(" ", value).strip()


class Canonicalization(Enum):
    """Canonicalization algorithm with its body and header transforms"""

    SIMPLE = ("simple", simple_body, simple_header)
    RELAXED = ("relaxed", relaxed_body, relaxed_header)

    def __init__(
        self,
        type_name: str,
        body_operator: Callable[[Optional[str]], str],
        header_operator: Callable[[str, str], str],
    ):
        self.type_name = type_name
        self.body_operator = body_operator
        self.header_operator = header_operator

    def canonicalize_body(self, body: Optional[str]) -> str:
        return self.body_operator(body)

    def canonicalize_header(self, name: str, value: str) -> str:
        return self.header_operator(name, value)

    @classmethod
    def from_type(cls, type_name: Optional[str]) -> "Canonicalization":
        """
        Look up a canonicalization by its name, ignoring case.

        Args:
            type_name: "simple" or "relaxed"

        Returns:
            Canonicalization: The matching algorithm, SIMPLE when unknown or None
        """
        if type_name is not None:
            for member in cls:
                if member.type_name == type_name.strip().lower():
                    return member
        return cls.SIMPLE

    def __str__(self) -> str:
        return self.type_name


CanonicalizationLike = Union[Canonicalization, str, None]


def resolve_canonicalization(value: CanonicalizationLike) -> Canonicalization:
    """Resolve a member, a name or None to a Canonicalization (SIMPLE by default)"""
    if isinstance(value, Canonicalization):
        return value
    return Canonicalization.from_type(value)
