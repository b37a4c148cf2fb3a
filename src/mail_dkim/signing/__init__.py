"""
Mail DKIM - Signing Module

RFC 6376 DomainKeys Identified Mail signatures with RSA-SHA256.
This module canonicalizes the message, builds the DKIM-Signature tag list
and signs it with an RSA private key.
"""

from .canonicalization import (
    Canonicalization,
    simple_body,
    relaxed_body,
    simple_header,
    relaxed_header,
    resolve_canonicalization,
)

from .types import (
    DKIM_SIGNATURE_HEADER,
    HeaderTag,
    DkimSignHeader,
    SigningRequest,
    SignedHeaders,
)

from .signature import DkimSignature

from .headers import (
    StandardMessageHeader,
    DEFAULT_SIGN_HEADERS,
    get_dkim_sign_headers,
    merge_sign_headers,
)

from .message import (
    MessageSource,
    EmailMessageSource,
    RawMessageSource,
    as_message_source,
)

from .dkim_signer import (
    DkimSigner,
    create_signer,
    sign,
    hash_body,
    canonicalize_headers,
    build_signing_input,
)

from .integration import (
    UnfoldedHeader,
    add_dkim_signature,
    format_signature_header,
    prepend_signature_header,
)

# Public API exports
__all__ = [
    # Canonicalization
    'Canonicalization',
    'simple_body',
    'relaxed_body',
    'simple_header',
    'relaxed_header',
    'resolve_canonicalization',
    # Types
    'DKIM_SIGNATURE_HEADER',
    'HeaderTag',
    'DkimSignHeader',
    'SigningRequest',
    'SignedHeaders',
    'DkimSignature',
    # Header selection
    'StandardMessageHeader',
    'DEFAULT_SIGN_HEADERS',
    'get_dkim_sign_headers',
    'merge_sign_headers',
    # Message access
    'MessageSource',
    'EmailMessageSource',
    'RawMessageSource',
    'as_message_source',
    # Core signing functionality
    'DkimSigner',
    'create_signer',
    'sign',
    'hash_body',
    'canonicalize_headers',
    'build_signing_input',
    # Integration
    'add_dkim_signature',
    'format_signature_header',
    'prepend_signature_header',
    'UnfoldedHeader',
]
