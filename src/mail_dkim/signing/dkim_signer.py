"""
DKIM signing engine

Computes the body hash, canonicalizes the selected header fields, signs them
together with the DKIM-Signature header itself using RSA-SHA256 and returns
the unfolded DKIM-Signature header value.
"""

import logging
from email.errors import MessageError
from typing import Iterable, List, Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from ..crypto.rsa_keys import rsa_sha256_sign
from ..exceptions import DkimSigningError, SigningErrorCodes
from .canonicalization import (
    CRLF,
    Canonicalization,
    CanonicalizationLike,
    resolve_canonicalization,
)
from .headers import get_dkim_sign_headers
from .message import MessageLike, MessageSource, as_message_source
from .signature import DkimSignature
from .types import (
    DKIM_SIGNATURE_HEADER,
    DkimSignHeader,
    HeaderTag,
    SignedHeaders,
    SigningRequest,
)
from .utils import (
    PerformanceTimer,
    base64_encode,
    from_wire_bytes,
    identity_matches_domain,
    normalize_string,
    sha256_base64,
    to_wire_bytes,
)

logger = logging.getLogger(__name__)


def sign(
    message: MessageLike,
    private_key: RSAPrivateKey,
    selector: str,
    domain: str,
    identity: str,
    headers: Iterable[DkimSignHeader],
    header_canonicalization: CanonicalizationLike = None,
    body_canonicalization: CanonicalizationLike = None
) -> str:
    """
    Generate an unfolded DKIM-Signature header value.

    The value should be the last header added to the message before it is
    sent.

    Args:
        message: Message to sign
        private_key: RSA private key
        selector: Selector of the published public key
        domain: Signing domain
        identity: Signing identity, ending with ``@domain`` or ``.domain``
        headers: Headers to sign, see :func:`get_dkim_sign_headers`
        header_canonicalization: Header canonicalization, simple when None
        body_canonicalization: Body canonicalization, simple when None

    Returns:
        str: ``v=1; a=rsa-sha256; d=...; c=...; i=...; s=...; h=...; bh=...; b=...``

    Raises:
        DkimSigningError: If the message cannot be signed
    """
    request = create_signing_request(
        private_key, selector, domain, identity, headers,
        header_canonicalization, body_canonicalization
    )
    return sign_with_request(message, request)


def create_signing_request(
    private_key: RSAPrivateKey,
    selector: str,
    domain: str,
    identity: str,
    headers: Iterable[DkimSignHeader],
    header_canonicalization: CanonicalizationLike = None,
    body_canonicalization: CanonicalizationLike = None
) -> SigningRequest:
    """
    Validate and normalize signing parameters.

    Raises:
        DkimSigningError: If a parameter is invalid
    """
    if not selector or not selector.strip():
        raise DkimSigningError("Selector cannot be empty", SigningErrorCodes.INVALID_PARAMETER)

    domain = normalize_string(domain)
    identity = normalize_string(identity)

    if not domain:
        raise DkimSigningError("Domain cannot be empty", SigningErrorCodes.INVALID_PARAMETER)

    if not identity or not identity_matches_domain(identity, domain):
        raise DkimSigningError(
            f"The identity {identity} is not end with domain {domain}",
            SigningErrorCodes.IDENTITY_DOMAIN_MISMATCH,
            {"identity": identity, "domain": domain}
        )

    header_list = list(headers or [])
    if not header_list:
        raise DkimSigningError("At least one header must be signed", SigningErrorCodes.INVALID_PARAMETER)

    return SigningRequest(
        private_key=private_key,
        selector=selector,
        domain=domain,
        identity=identity,
        headers=header_list,
        header_canonicalization=resolve_canonicalization(header_canonicalization),
        body_canonicalization=resolve_canonicalization(body_canonicalization)
    )


def sign_with_request(message: MessageLike, request: SigningRequest) -> str:
    """
    Sign a message with already validated parameters.

    Raises:
        DkimSigningError: If the message cannot be signed
    """
    timer = PerformanceTimer()
    source = _as_source(message)

    signature = DkimSignature()
    signature.add_tag_value(HeaderTag.DOMAIN, request.domain)
    signature.add_tag_value(HeaderTag.SELECTOR, request.selector)
    # i= should be dkim-quoted-printable; identities are used verbatim
    signature.add_tag_value(HeaderTag.IDENTITY, request.identity)
    signature.add_tag_value(HeaderTag.CANONICALIZATION, request.canonicalization_value)
    signature.add_tag_value(
        HeaderTag.BODY_HASH,
        hash_body(source, request.body_canonicalization)
    )

    signed_headers = canonicalize_headers(source, request.headers, request.header_canonicalization)
    signature.add_tag_value(HeaderTag.HEADERS, signed_headers.tag_value)
    logger.debug(f"Signing headers: {signed_headers.tag_value}")

    signing_input = build_signing_input(signature, signed_headers, request.header_canonicalization)
    signature.add_tag_value(
        HeaderTag.SIGNATURE,
        create_signature_value(signing_input, request.private_key)
    )

    value = signature.get_value()
    logger.info(
        f"Created DKIM signature for d={request.domain} s={request.selector} "
        f"in {timer.elapsed_ms():.2f}ms"
    )
    return value


def hash_body(source: MessageSource, canonicalization: Optional[Canonicalization] = None) -> str:
    """
    Compute the bh= value of a message.

    The body bytes are decoded as UTF-8 (undecodable bytes pass through
    unchanged), canonicalized and hashed with SHA-256.

    Raises:
        DkimSigningError: If the body cannot be read
    """
    canonicalization = canonicalization or Canonicalization.SIMPLE

    try:
        body = source.get_body_bytes()
    except (OSError, MessageError, ValueError) as e:
        raise DkimSigningError(
            "Failed to hash message body.",
            SigningErrorCodes.BODY_READ_FAILED,
            {"original_error": str(e)}
        ) from e

    body_text = from_wire_bytes(body) if body else ""
    body_hash = sha256_base64(canonicalization.canonicalize_body(body_text))
    logger.debug(f"Body hash ({canonicalization.type_name}): {body_hash}")
    return body_hash


def canonicalize_headers(
    source: MessageSource,
    headers: Iterable[DkimSignHeader],
    canonicalization: Optional[Canonicalization] = None
) -> SignedHeaders:
    """
    Select and canonicalize the header fields to sign.

    Every occurrence of a listed header is signed, in message order. Absent
    optional headers are skipped.

    Raises:
        DkimSigningError: If a required header is absent
    """
    canonicalization = canonicalization or Canonicalization.SIMPLE
    signed = SignedHeaders()

    for header in headers:
        name = header.name
        try:
            values = source.get_header_values(name)
        except (OSError, MessageError, ValueError) as e:
            raise DkimSigningError(
                f"Failed to get header {name}",
                SigningErrorCodes.HEADER_READ_FAILED,
                {"header": name, "original_error": str(e)}
            ) from e

        if not values:
            if header.required:
                raise DkimSigningError(
                    f"Required header {name} is missing.",
                    SigningErrorCodes.MISSING_REQUIRED_HEADER,
                    {"header": name}
                )
            logger.debug(f"Optional header {name} not present, skipped")
            continue

        for value in values:
            signed.append(name, canonicalization.canonicalize_header(name, value))

    return signed


def build_signing_input(
    signature: DkimSignature,
    signed_headers: SignedHeaders,
    canonicalization: Optional[Canonicalization] = None
) -> str:
    """
    Build the exact text that is signed.

    The canonical header lines, each terminated by CRLF, followed by the
    canonicalized DKIM-Signature header with an empty ``b=`` and no
    trailing CRLF.

    Raises:
        DkimSigningError: If a tag other than b= has no value
    """
    canonicalization = canonicalization or Canonicalization.SIMPLE

    unsigned_value = f"{signature.get_before_hash_value()}; {HeaderTag.SIGNATURE.tag_name}="
    signature_line = canonicalization.canonicalize_header(DKIM_SIGNATURE_HEADER, unsigned_value)

    return "".join(line + CRLF for line in signed_headers.lines) + signature_line


def create_signature_value(signing_input: str, private_key: RSAPrivateKey) -> str:
    """
    Sign the signing input with RSA-SHA256.

    Returns:
        str: Base64-encoded signature

    Raises:
        DkimSigningError: If the key cannot produce a signature
    """
    if not isinstance(private_key, RSAPrivateKey):
        raise DkimSigningError(
            "Failed to create signature.",
            SigningErrorCodes.INVALID_PRIVATE_KEY,
            {"key_type": type(private_key).__name__}
        )

    try:
        return base64_encode(rsa_sha256_sign(private_key, to_wire_bytes(signing_input)))
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise DkimSigningError(
            "Failed to create signature.",
            SigningErrorCodes.SIGNING_FAILED,
            {"original_error": str(e)}
        ) from e


def _as_source(message: MessageLike) -> MessageSource:
    try:
        return as_message_source(message)
    except (TypeError, MessageError) as e:
        raise DkimSigningError(
            f"Unsupported message: {e}",
            SigningErrorCodes.INVALID_PARAMETER,
            {"original_error": str(e)}
        ) from e


class DkimSigner:
    """
    DKIM signer bound to one key, selector and signing identity

    This class wraps :func:`sign` for callers that sign many messages with the
    same parameters.
    """

    def __init__(
        self,
        private_key: RSAPrivateKey,
        selector: str,
        domain: str,
        identity: Optional[str] = None,
        header_canonicalization: CanonicalizationLike = None,
        body_canonicalization: CanonicalizationLike = None,
        headers: Optional[Iterable[DkimSignHeader]] = None
    ):
        """
        Initialize the signer.

        Args:
            private_key: RSA private key
            selector: Selector of the published public key
            domain: Signing domain
            identity: Signing identity (default ``@domain``)
            header_canonicalization: Header canonicalization, simple when None
            body_canonicalization: Body canonicalization, simple when None
            headers: Headers to sign by default (default header list when None)

        Raises:
            DkimSigningError: If the parameters are invalid
        """
        if identity is None and normalize_string(domain):
            identity = "@" + normalize_string(domain)
        self.headers: List[DkimSignHeader] = list(headers) if headers is not None else get_dkim_sign_headers()
        self.request = create_signing_request(
            private_key, selector, domain, identity, self.headers,
            header_canonicalization, body_canonicalization
        )

    @property
    def domain(self) -> str:
        return self.request.domain

    @property
    def selector(self) -> str:
        return self.request.selector

    @property
    def identity(self) -> str:
        return self.request.identity

    def sign(self, message: MessageLike, headers: Optional[Iterable[DkimSignHeader]] = None) -> str:
        """
        Sign a message.

        Args:
            message: Message to sign
            headers: Headers to sign instead of the signer's default list

        Returns:
            str: Unfolded DKIM-Signature header value
        """
        request = self.request
        if headers is not None:
            request = create_signing_request(
                request.private_key, request.selector, request.domain, request.identity,
                headers, request.header_canonicalization, request.body_canonicalization
            )
        return sign_with_request(message, request)


def create_signer(
    private_key: RSAPrivateKey,
    selector: str,
    domain: str,
    identity: Optional[str] = None,
    header_canonicalization: CanonicalizationLike = None,
    body_canonicalization: CanonicalizationLike = None
) -> DkimSigner:
    """Create a new DKIM signer"""
    return DkimSigner(
        private_key, selector, domain, identity,
        header_canonicalization, body_canonicalization
    )
