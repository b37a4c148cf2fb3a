"""
RSA key material for DKIM signing

This module loads and generates the RSA keys used for rsa-sha256 signatures,
using the cryptography package.
"""

import base64
from pathlib import Path
from typing import Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..exceptions import KeyLoadError, SigningErrorCodes

DEFAULT_KEY_SIZE = 2048
MIN_KEY_SIZE = 1024
PUBLIC_EXPONENT = 65537

KeyData = Union[str, bytes]


def _to_bytes(data: KeyData) -> bytes:
    if isinstance(data, str):
        return data.encode("ascii")
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    raise KeyLoadError(
        "Key data must be str or bytes",
        SigningErrorCodes.INVALID_PRIVATE_KEY,
        {"type": type(data).__name__}
    )


def load_private_key(data: KeyData, password: Optional[bytes] = None) -> rsa.RSAPrivateKey:
    """
    Parse an RSA private key.

    Args:
        data: PEM (PKCS#8 or PKCS#1) text or DER bytes
        password: Password for an encrypted key

    Returns:
        RSAPrivateKey: Parsed private key

    Raises:
        KeyLoadError: If the data is not an RSA private key
    """
    key_bytes = _to_bytes(data)

    try:
        if key_bytes.lstrip().startswith(b"-----"):
            key = serialization.load_pem_private_key(key_bytes, password=password)
        else:
            key = serialization.load_der_private_key(key_bytes, password=password)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyLoadError(
            f"Failed to read private key: {e}",
            SigningErrorCodes.INVALID_PRIVATE_KEY,
            {"original_error": str(e)}
        ) from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyLoadError(
            "Private key is not an RSA key",
            SigningErrorCodes.INVALID_PRIVATE_KEY,
            {"key_type": type(key).__name__}
        )

    if key.key_size < MIN_KEY_SIZE:
        raise KeyLoadError(
            f"RSA key too small: {key.key_size} bits (minimum {MIN_KEY_SIZE})",
            SigningErrorCodes.INVALID_PRIVATE_KEY,
            {"key_size": key.key_size}
        )

    return key


def load_private_key_from_file(path: Union[str, Path], password: Optional[bytes] = None) -> rsa.RSAPrivateKey:
    """Read and parse an RSA private key file"""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise KeyLoadError(
            f"Failed to read private key file: {e}",
            SigningErrorCodes.INVALID_PRIVATE_KEY,
            {"path": str(path)}
        ) from e

    return load_private_key(data, password)


def load_public_key(data: KeyData) -> rsa.RSAPublicKey:
    """
    Parse an RSA public key from PEM SubjectPublicKeyInfo or DER.

    Raises:
        KeyLoadError: If the data is not an RSA public key
    """
    key_bytes = _to_bytes(data)

    try:
        if key_bytes.lstrip().startswith(b"-----"):
            key = serialization.load_pem_public_key(key_bytes)
        else:
            key = serialization.load_der_public_key(key_bytes)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise KeyLoadError(
            f"Failed to read public key: {e}",
            "INVALID_PUBLIC_KEY",
            {"original_error": str(e)}
        ) from e

    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyLoadError("Public key is not an RSA key", "INVALID_PUBLIC_KEY")

    return key


def generate_private_key(key_size: int = DEFAULT_KEY_SIZE) -> rsa.RSAPrivateKey:
    """Generate a new RSA private key"""
    if key_size < MIN_KEY_SIZE:
        raise KeyLoadError(
            f"Key size must be at least {MIN_KEY_SIZE} bits",
            SigningErrorCodes.INVALID_PRIVATE_KEY,
            {"key_size": key_size}
        )
    return rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=key_size)


def format_private_key(key: rsa.RSAPrivateKey) -> str:
    """Serialize a private key as unencrypted PKCS#8 PEM"""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ).decode("ascii")


def format_public_key(key: Union[rsa.RSAPrivateKey, rsa.RSAPublicKey]) -> str:
    """Serialize the public half of a key as SubjectPublicKeyInfo PEM"""
    if isinstance(key, rsa.RSAPrivateKey):
        key = key.public_key()
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode("ascii")


def dns_txt_record(key: Union[rsa.RSAPrivateKey, rsa.RSAPublicKey]) -> str:
    """
    Build the DKIM key record published at ``<selector>._domainkey.<domain>``.

    Args:
        key: RSA private or public key

    Returns:
        str: TXT record value ``v=DKIM1; k=rsa; p=...``
    """
    if isinstance(key, rsa.RSAPrivateKey):
        key = key.public_key()
    der = key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return f"v=DKIM1; k=rsa; p={base64.b64encode(der).decode('ascii')}"


def rsa_sha256_sign(private_key: rsa.RSAPrivateKey, data: bytes) -> bytes:
    """Sign data with RSASSA-PKCS1-v1_5 and SHA-256"""
    return private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())
