"""
Configuration management for the mail DKIM signer

This module loads signer settings (selector, domain, key, canonicalization
and header selection) from JSON and environment variables.
"""

from .signer_config import (
    SignerConfig,
    ENV_SELECTOR,
    ENV_DOMAIN,
    ENV_IDENTITY,
    ENV_PRIVATE_KEY_PATH,
    load_config_from_dict,
    load_config_from_json,
    load_config_from_file,
    apply_env_overrides,
)

__all__ = [
    'SignerConfig',
    'ENV_SELECTOR',
    'ENV_DOMAIN',
    'ENV_IDENTITY',
    'ENV_PRIVATE_KEY_PATH',
    'load_config_from_dict',
    'load_config_from_json',
    'load_config_from_file',
    'apply_env_overrides',
]
