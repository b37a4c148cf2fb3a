"""
RSA key management for DKIM signing
"""

from .rsa_keys import (
    DEFAULT_KEY_SIZE,
    MIN_KEY_SIZE,
    load_private_key,
    load_private_key_from_file,
    load_public_key,
    generate_private_key,
    format_private_key,
    format_public_key,
    dns_txt_record,
    rsa_sha256_sign,
)

__all__ = [
    'DEFAULT_KEY_SIZE',
    'MIN_KEY_SIZE',
    'load_private_key',
    'load_private_key_from_file',
    'load_public_key',
    'generate_private_key',
    'format_private_key',
    'format_public_key',
    'dns_txt_record',
    'rsa_sha256_sign',
]
