"""
Integration of DKIM signing with ``email.message`` objects

Signs a message and adds the resulting DKIM-Signature header to it.
"""

import logging
from email.message import Message
from typing import Iterable, Optional

from ..exceptions import DkimSigningError, SigningErrorCodes
from .dkim_signer import DkimSigner
from .types import DKIM_SIGNATURE_HEADER, DkimSignHeader

logger = logging.getLogger(__name__)


class UnfoldedHeader:
    """
    Header stored in an ``email.message.Message`` and written unchanged.

    Policies fold and RFC 2047-encode plain string values when the message
    is serialized, which would alter a signed header. Both header protocols
    are provided: ``fold`` for ``email.policy.EmailPolicy`` and ``encode``
    for ``email.policy.compat32``.
    """

    def __init__(self, name: str, value: str):
        self.name = name
        self.value = value

    def fold(self, *, policy) -> str:
        return f"{self.name}: {self.value}{policy.linesep}"

    def encode(self, splitchars=None, maxlinelen=None, linesep="\n") -> str:
        return self.value

    def __str__(self) -> str:
        return self.value

    def __eq__(self, other) -> bool:
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return f"UnfoldedHeader({self.name!r}, {self.value!r})"


def has_dkim_signature(message: Message) -> bool:
    """Check whether the message already carries a DKIM-Signature header"""
    return any(name.lower() == DKIM_SIGNATURE_HEADER.lower() for name in message.keys())


def add_dkim_signature(
    message: Message,
    signer: DkimSigner,
    headers: Optional[Iterable[DkimSignHeader]] = None
) -> str:
    """
    Sign a message and add the DKIM-Signature header to it.

    The header is appended on a single line and is never folded or encoded
    when the message is serialized. Only one signature per message is
    supported.

    Args:
        message: Message to sign, modified in place
        signer: Configured signer
        headers: Headers to sign instead of the signer's list

    Returns:
        str: The DKIM-Signature header value that was added

    Raises:
        DkimSigningError: If the message is already signed or signing fails
    """
    if has_dkim_signature(message):
        raise DkimSigningError(
            "Message already has a DKIM-Signature header",
            SigningErrorCodes.INVALID_PARAMETER,
            {"header": DKIM_SIGNATURE_HEADER}
        )

    value = signer.sign(message, headers)
    message[DKIM_SIGNATURE_HEADER] = UnfoldedHeader(DKIM_SIGNATURE_HEADER, value)
    logger.debug(f"Added {DKIM_SIGNATURE_HEADER} header for d={signer.domain}")
    return value


def format_signature_header(value: str) -> str:
    """Render the complete header line ``DKIM-Signature: <value>``"""
    return f"{DKIM_SIGNATURE_HEADER}: {value}"


def prepend_signature_header(raw_message: bytes, value: str) -> bytes:
    """
    Prepend the DKIM-Signature header line to a serialized message.

    Args:
        raw_message: RFC 5322 message bytes
        value: DKIM-Signature header value

    Returns:
        bytes: Message with the header line as its first line
    """
    linesep = b"\r\n" if b"\r\n" in raw_message else b"\n"
    return format_signature_header(value).encode("utf-8") + linesep + raw_message
