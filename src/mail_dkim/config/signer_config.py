"""
Signer configuration management

Loads DKIM signer settings from JSON files, dictionaries and environment
variables.
"""

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from ..crypto.rsa_keys import load_private_key, load_private_key_from_file
from ..exceptions import ConfigurationError, KeyLoadError
from ..signing.canonicalization import Canonicalization
from ..signing.dkim_signer import DkimSigner
from ..signing.headers import get_dkim_sign_headers
from ..signing.types import DkimSignHeader

ENV_SELECTOR = "MAIL_DKIM_SELECTOR"
ENV_DOMAIN = "MAIL_DKIM_DOMAIN"
ENV_IDENTITY = "MAIL_DKIM_IDENTITY"
ENV_PRIVATE_KEY_PATH = "MAIL_DKIM_PRIVATE_KEY_PATH"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
OPTIONAL_FIELDS = ("identity", "private_key_path", "private_key_pem")


@dataclass
class SignerConfig:
    """
    DKIM signer configuration

    Attributes:
        selector: Selector of the published public key
        domain: Signing domain
        identity: Signing identity (default ``@domain``)
        private_key_path: Path of the PEM private key
        private_key_pem: Inline PEM private key, used when no path is set
        header_canonicalization: "simple" or "relaxed"
        body_canonicalization: "simple" or "relaxed"
        extra_headers: Headers signed in addition to the defaults
        ignored_headers: Default headers left unsigned
        log_level: Logging level name for the command-line tool
    """
    selector: str
    domain: str
    identity: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_pem: Optional[str] = None
    header_canonicalization: str = Canonicalization.SIMPLE.type_name
    body_canonicalization: str = Canonicalization.SIMPLE.type_name
    extra_headers: List[DkimSignHeader] = field(default_factory=list)
    ignored_headers: List[str] = field(default_factory=list)
    log_level: str = "INFO"

    def sign_headers(self) -> List[DkimSignHeader]:
        """Resolve the ordered list of headers to sign"""
        return get_dkim_sign_headers(self.extra_headers, self.ignored_headers)

    def load_private_key(self):
        """
        Load the configured RSA private key.

        Raises:
            ConfigurationError: If no key is configured or it cannot be read
        """
        try:
            if self.private_key_path:
                return load_private_key_from_file(self.private_key_path)
            if self.private_key_pem:
                return load_private_key(self.private_key_pem)
        except KeyLoadError as e:
            raise ConfigurationError(
                f"Invalid private key: {e}", "MISSING_KEY", {"original_error": str(e)}
            ) from e

        raise ConfigurationError(
            "No private key configured (private_key_path or private_key_pem)",
            "MISSING_KEY"
        )

    def create_signer(self) -> DkimSigner:
        """Create a DkimSigner from this configuration"""
        return DkimSigner(
            self.load_private_key(),
            self.selector,
            self.domain,
            identity=self.identity,
            header_canonicalization=self.header_canonicalization,
            body_canonicalization=self.body_canonicalization,
            headers=self.sign_headers()
        )


def _parse_sign_header(item: Any) -> DkimSignHeader:
    if isinstance(item, str):
        return DkimSignHeader(item)
    if isinstance(item, dict):
        return DkimSignHeader(item["name"], bool(item.get("required", False)))
    raise TypeError(f"Header entry must be a name or an object, got {type(item).__name__}")


def _validate(config: SignerConfig) -> SignerConfig:
    for name in ("selector", "domain"):
        if not getattr(config, name):
            raise ConfigurationError(f"Missing required field: {name}", "MISSING_FIELD", {"field": name})

    for name in ("selector", "domain", "identity", "private_key_path", "private_key_pem",
                 "header_canonicalization", "body_canonicalization", "log_level"):
        value = getattr(config, name)
        if value is None and name in OPTIONAL_FIELDS:
            continue
        if not isinstance(value, str):
            raise ConfigurationError(
                f"Invalid {name}: expected a string, got {type(value).__name__}",
                "INVALID_FORMAT",
                {"field": name}
            )

    for name in ("header_canonicalization", "body_canonicalization"):
        value = getattr(config, name)
        if value.lower() not in (c.type_name for c in Canonicalization):
            raise ConfigurationError(
                f"Invalid {name}: {value}",
                "INVALID_FORMAT",
                {"field": name, "value": value}
            )

    if config.log_level.upper() not in LOG_LEVELS:
        raise ConfigurationError(f"Invalid log_level: {config.log_level}", "INVALID_FORMAT")

    return config


def load_config_from_dict(data: Mapping[str, Any]) -> SignerConfig:
    """
    Build a signer configuration from a dictionary.

    Raises:
        ConfigurationError: If required fields are missing or values are invalid
    """
    if not isinstance(data, Mapping):
        raise ConfigurationError("Configuration must be a JSON object", "INVALID_FORMAT")

    try:
        config = SignerConfig(
            selector=data.get("selector", ""),
            domain=data.get("domain", ""),
            identity=data.get("identity"),
            private_key_path=data.get("private_key_path"),
            private_key_pem=data.get("private_key_pem"),
            header_canonicalization=data.get("header_canonicalization", Canonicalization.SIMPLE.type_name),
            body_canonicalization=data.get("body_canonicalization", Canonicalization.SIMPLE.type_name),
            extra_headers=[_parse_sign_header(h) for h in data.get("extra_headers", [])],
            ignored_headers=list(data.get("ignored_headers", [])),
            log_level=data.get("log_level", "INFO")
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration format: {e}", "INVALID_FORMAT") from e

    return _validate(config)


def load_config_from_json(json_string: str) -> SignerConfig:
    """Load signer configuration from a JSON string"""
    try:
        data = json.loads(json_string)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Failed to parse configuration JSON: {e}", "PARSE_ERROR") from e
    return load_config_from_dict(data)


def load_config_from_file(file_path: Union[str, Path]) -> SignerConfig:
    """Load signer configuration from a JSON file"""
    try:
        with open(Path(file_path), 'r', encoding='utf-8') as f:
            json_string = f.read()
    except OSError as e:
        raise ConfigurationError(f"Failed to read configuration file: {e}", "FILE_ERROR") from e
    return load_config_from_json(json_string)


def apply_env_overrides(config: SignerConfig, environ: Optional[Mapping[str, str]] = None) -> SignerConfig:
    """
    Override configuration values from environment variables.

    Recognized variables: MAIL_DKIM_SELECTOR, MAIL_DKIM_DOMAIN,
    MAIL_DKIM_IDENTITY and MAIL_DKIM_PRIVATE_KEY_PATH.

    Returns:
        SignerConfig: A new configuration with the overrides applied
    """
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}

    for variable, attribute in (
        (ENV_SELECTOR, "selector"),
        (ENV_DOMAIN, "domain"),
        (ENV_IDENTITY, "identity"),
        (ENV_PRIVATE_KEY_PATH, "private_key_path"),
    ):
        value = environ.get(variable)
        if value:
            overrides[attribute] = value

    if not overrides:
        return config
    return _validate(replace(config, **overrides))
