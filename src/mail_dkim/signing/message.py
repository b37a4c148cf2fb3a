"""
Message access for signing

The signing engine reads a message through two capabilities only: header
values by exact name and the raw body bytes. :class:`EmailMessageSource`
provides them for messages built with the standard library ``email`` package
and :class:`RawMessageSource` for serialized messages.
"""

import re
from email import policy as email_policy
from email.generator import BytesGenerator
from email.message import Message
from email.parser import BytesParser
from io import BytesIO
from typing import List, Optional, Protocol, Union, runtime_checkable

from .utils import from_wire_bytes

HEADER_BODY_SEPARATOR = b"\r\n\r\n"
_LINE_ENDING = re.compile(rb"\r?\n")

# Raw messages keep their header lines exactly as received
RAW_MESSAGE_POLICY = email_policy.default.clone(refold_source="none")


@runtime_checkable
class MessageSource(Protocol):
    """Read-only view of a message used by the signer"""

    def get_header_values(self, name: str) -> Optional[List[str]]:
        """Return every value of the named header in message order, or None"""
        ...

    def get_body_bytes(self) -> bytes:
        """Return the message body as transmitted"""
        ...


class EmailMessageSource:
    """
    MessageSource over an ``email.message.Message``.

    Header names are matched exactly (case-sensitive). Header values are
    returned as the message's own policy writes them on the wire with CRLF
    line endings, folding included. 8-bit header text is decoded as UTF-8
    with undecodable bytes kept as surrogate escapes. The body is the
    message as serialized the same way, minus the header block and the
    empty line ending it.
    """

    def __init__(self, message: Message):
        if not isinstance(message, Message):
            raise TypeError("message must be an email.message.Message instance")
        self.message = message
        self._policy = (message.policy or email_policy.compat32).clone(linesep="\r\n")

    def get_header_values(self, name: str) -> Optional[List[str]]:
        values = [
            self._wire_value(header_name, value)
            for header_name, value in self.message.raw_items()
            if header_name == name
        ]
        return values or None

    def get_body_bytes(self) -> bytes:
        buffer = BytesIO()
        generator = BytesGenerator(buffer, mangle_from_=False, policy=self._policy)
        generator.flatten(self.message)
        return _body_after_headers(buffer.getvalue())

    def _wire_value(self, name: str, value) -> str:
        # fold_binary is what BytesGenerator writes for this header
        folded = from_wire_bytes(self._policy.fold_binary(name, value))
        _, _, rendered = folded.partition(":")
        if rendered.startswith(" "):
            rendered = rendered[1:]
        if rendered.endswith("\r\n"):
            rendered = rendered[:-2]
        return rendered


class RawMessageSource(EmailMessageSource):
    """
    MessageSource over a raw RFC 5322 message.

    Headers are read from the parsed message, which keeps header lines as
    received. The body is taken from the raw bytes with line endings
    normalized to CRLF, so it matches what is transmitted when the signature
    header is prepended to the same bytes.
    """

    def __init__(self, raw_message: bytes):
        super().__init__(BytesParser(policy=RAW_MESSAGE_POLICY).parsebytes(raw_message))
        self.raw_message = raw_message

    def get_body_bytes(self) -> bytes:
        return _body_after_headers(_LINE_ENDING.sub(b"\r\n", self.raw_message))


def _body_after_headers(rendered: bytes) -> bytes:
    if rendered.startswith(b"\r\n"):
        return rendered[2:]

    _, separator, body = rendered.partition(HEADER_BODY_SEPARATOR)
    return body if separator else b""


MessageLike = Union[MessageSource, Message, bytes, str]


def as_message_source(message: MessageLike) -> MessageSource:
    """
    Wrap a supported message object in a MessageSource.

    Args:
        message: A MessageSource, an ``email.message.Message`` or a raw
            RFC 5322 message as bytes or str

    Returns:
        MessageSource: Source usable by the signer

    Raises:
        TypeError: If the message type is not supported
    """
    if isinstance(message, Message):
        return EmailMessageSource(message)

    if isinstance(message, str):
        message = message.encode("utf-8")

    if isinstance(message, bytes):
        return RawMessageSource(message)

    if isinstance(message, MessageSource):
        return message

    raise TypeError(f"Unsupported message type: {type(message).__name__}")
