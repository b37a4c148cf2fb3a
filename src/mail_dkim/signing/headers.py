"""
Selection of the header fields to sign

Provides the conventional default header list and merges caller-supplied
headers into it. Header names are case-sensitive throughout.
"""

import logging
from enum import Enum
from typing import Iterable, List, Optional

from .types import DkimSignHeader

logger = logging.getLogger(__name__)


class StandardMessageHeader(str, Enum):
    """Header names signed by default"""
    FROM = "From"
    TO = "To"
    SUBJECT = "Subject"
    CONTENT_TYPE = "Content-Type"
    CC = "Cc"
    DATE = "Date"
    REPLY_TO = "Reply-To"
    MESSAGE_ID = "Message-ID"
    LIST_UNSUBSCRIBE = "List-Unsubscribe"
    LIST_UNSUBSCRIBE_POST = "List-Unsubscribe-Post"
    MIME_VERSION = "MIME-Version"


DEFAULT_SIGN_HEADERS = (
    DkimSignHeader(StandardMessageHeader.FROM.value, True),
    DkimSignHeader(StandardMessageHeader.TO.value),
    DkimSignHeader(StandardMessageHeader.SUBJECT.value),
    DkimSignHeader(StandardMessageHeader.DATE.value),
    DkimSignHeader(StandardMessageHeader.CC.value),
    DkimSignHeader(StandardMessageHeader.CONTENT_TYPE.value),
    DkimSignHeader(StandardMessageHeader.REPLY_TO.value),
    DkimSignHeader(StandardMessageHeader.MESSAGE_ID.value),
    DkimSignHeader(StandardMessageHeader.LIST_UNSUBSCRIBE.value),
    DkimSignHeader(StandardMessageHeader.LIST_UNSUBSCRIBE_POST.value),
    DkimSignHeader(StandardMessageHeader.MIME_VERSION.value),
)


def merge_sign_headers(headers: Iterable[DkimSignHeader]) -> List[DkimSignHeader]:
    """
    De-duplicate header descriptors by name.

    A later descriptor replaces an earlier one with the same name but keeps
    the earlier one's position.

    Args:
        headers: Header descriptors in priority order (later wins)

    Returns:
        list: De-duplicated descriptors
    """
    positions = {}
    merged: List[DkimSignHeader] = []

    for header in headers:
        index = positions.get(header)
        if index is None:
            positions[header] = len(merged)
            merged.append(header)
            continue

        previous = merged[index]
        if previous.required != header.required:
            logger.warning(
                f"Header {header.name} overridden: required changed from "
                f"{previous.required} to {header.required}"
            )
        merged[index] = header

    return merged


def get_dkim_sign_headers(
    custom_headers: Optional[Iterable[DkimSignHeader]] = None,
    ignored_headers: Optional[Iterable[str]] = None
) -> List[DkimSignHeader]:
    """
    Get the headers to sign.

    The defaults are From (required), To, Subject, Date, Cc, Content-Type,
    Reply-To, Message-ID, List-Unsubscribe, List-Unsubscribe-Post and
    MIME-Version. From can be neither overridden nor ignored.

    Args:
        custom_headers: Extra headers; a header named like a default one
            replaces it in place
        ignored_headers: Header names to leave unsigned

    Returns:
        list: Ordered header descriptors
    """
    from_name = StandardMessageHeader.FROM.value
    headers = list(DEFAULT_SIGN_HEADERS)

    if custom_headers:
        headers.extend(h for h in custom_headers if h.name != from_name)
        headers = merge_sign_headers(headers)

    if ignored_headers:
        ignored = {name for name in ignored_headers if name != from_name}
        headers = [h for h in headers if h.name not in ignored]

    return headers
