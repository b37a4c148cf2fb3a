"""
DKIM-Signature tag-value model

Holds the tag values of one signature and serializes them in the fixed tag
order with the ``"; "`` delimiter receiving verifiers expect.
"""

from typing import Dict, Iterable, List, Optional

from ..exceptions import DkimSigningError, SigningErrorCodes
from .types import HeaderTag

TAG_DELIMITER = "; "
TAG_VALUE_DELIMITER = "="

SIGNATURE_VERSION = "1"
SIGNATURE_ALGORITHM = "rsa-sha256"


class DkimSignature:
    """
    Ordered tag-value list of a DKIM-Signature header.

    ``v`` and ``a`` are populated on construction; every other tag must be
    added before the value can be serialized.
    """

    def __init__(self):
        self._tags: Dict[HeaderTag, str] = {
            HeaderTag.VERSION: SIGNATURE_VERSION,
            HeaderTag.ALGORITHM: SIGNATURE_ALGORITHM,
        }

    def add_tag_value(self, tag: HeaderTag, value: str) -> None:
        """Store a tag value, replacing any previous one"""
        self._tags[tag] = value

    def get_tag_value(self, tag: HeaderTag) -> Optional[str]:
        return self._tags.get(tag)

    def get_value(self) -> str:
        """
        Serialize every tag, including the signature.

        Returns:
            str: ``v=1; a=rsa-sha256; d=...; ...; b=...``

        Raises:
            DkimSigningError: If any tag has no value
        """
        return self._form_string_value(list(HeaderTag))

    def get_before_hash_value(self) -> str:
        """
        Serialize every tag except ``b``.

        This is the tag list hashed together with the signed headers, before
        the signature itself exists.

        Raises:
            DkimSigningError: If any tag other than ``b`` has no value
        """
        return self._form_string_value([tag for tag in HeaderTag if tag is not HeaderTag.SIGNATURE])

    def missing_tags(self, tags: Optional[Iterable[HeaderTag]] = None) -> List[str]:
        tags = list(HeaderTag) if tags is None else tags
        return [tag.tag_name for tag in tags if tag not in self._tags]

    def _form_string_value(self, tags: List[HeaderTag]) -> str:
        missing = self.missing_tags(tags)
        if missing:
            raise DkimSigningError(
                f"Missing value for tag(s): {', '.join(missing)}",
                SigningErrorCodes.INCOMPLETE_SIGNATURE,
                {"missing_tags": missing}
            )

        return TAG_DELIMITER.join(
            f"{tag.tag_name}{TAG_VALUE_DELIMITER}{self._tags[tag]}" for tag in tags
        )

    def __repr__(self) -> str:
        tags = ", ".join(f"{tag.tag_name}={value!r}" for tag, value in self._tags.items())
        return f"DkimSignature({tags})"
