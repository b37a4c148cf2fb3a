"""
Mail DKIM for Python
DKIM (RFC 6376) RSA-SHA256 signing for outgoing email
"""

from .version import __version__
from .signing import (
    Canonicalization,
    DkimSignHeader,
    DkimSignature,
    DkimSigner,
    StandardMessageHeader,
    DEFAULT_SIGN_HEADERS,
    MessageSource,
    EmailMessageSource,
    create_signer,
    sign,
    get_dkim_sign_headers,
    merge_sign_headers,
    add_dkim_signature,
)
from .crypto import (
    load_private_key,
    load_private_key_from_file,
    load_public_key,
    generate_private_key,
    format_private_key,
    format_public_key,
    dns_txt_record,
)
from .config import (
    SignerConfig,
    load_config_from_dict,
    load_config_from_json,
    load_config_from_file,
    apply_env_overrides,
)
from .exceptions import (
    MailDkimError,
    DkimSigningError,
    KeyLoadError,
    ConfigurationError,
    SigningErrorCodes,
)

__all__ = [
    '__version__',
    # Signing
    'Canonicalization',
    'DkimSignHeader',
    'DkimSignature',
    'DkimSigner',
    'StandardMessageHeader',
    'DEFAULT_SIGN_HEADERS',
    'MessageSource',
    'EmailMessageSource',
    'create_signer',
    'sign',
    'get_dkim_sign_headers',
    'merge_sign_headers',
    'add_dkim_signature',
    # Keys
    'load_private_key',
    'load_private_key_from_file',
    'load_public_key',
    'generate_private_key',
    'format_private_key',
    'format_public_key',
    'dns_txt_record',
    # Configuration
    'SignerConfig',
    'load_config_from_dict',
    'load_config_from_json',
    'load_config_from_file',
    'apply_env_overrides',
    # Exceptions
    'MailDkimError',
    'DkimSigningError',
    'KeyLoadError',
    'ConfigurationError',
    'SigningErrorCodes',
]
