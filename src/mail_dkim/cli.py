"""
Command-line interface for mail-dkim-python
Signs messages with DKIM and generates RSA signing keys
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import SignerConfig, apply_env_overrides, load_config_from_file
from .config.signer_config import LOG_LEVELS
from .crypto import (
    DEFAULT_KEY_SIZE,
    dns_txt_record,
    format_private_key,
    format_public_key,
    generate_private_key,
)
from .exceptions import ConfigurationError, MailDkimError
from .signing import DkimSignHeader, format_signature_header, prepend_signature_header

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog='mail-dkim',
        description='DKIM (RFC 6376) signing for email messages'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'mail-dkim-python {__version__}'
    )

    parser.add_argument(
        '--log-level',
        choices=LOG_LEVELS,
        type=str.upper,
        help='Logging level (default: from configuration, else WARNING)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    setup_sign_parser(subparsers)
    setup_keygen_parser(subparsers)

    return parser


def setup_sign_parser(subparsers):
    """Setup message signing subcommand."""
    sign_parser = subparsers.add_parser('sign', help='Create a DKIM-Signature for a message')
    sign_parser.add_argument('--message', required=True, help='RFC 5322 message file ("-" for stdin)')
    sign_parser.add_argument('--config', help='JSON signer configuration file')
    sign_parser.add_argument('--key', help='RSA private key file (PEM)')
    sign_parser.add_argument('--selector', help='Selector of the published public key')
    sign_parser.add_argument('--domain', help='Signing domain (d=)')
    sign_parser.add_argument('--identity', help='Signing identity (i=), defaults to @domain')
    sign_parser.add_argument(
        '--header-canonicalization',
        choices=['simple', 'relaxed'],
        help='Header canonicalization (default: simple)'
    )
    sign_parser.add_argument(
        '--body-canonicalization',
        choices=['simple', 'relaxed'],
        help='Body canonicalization (default: simple)'
    )
    sign_parser.add_argument(
        '--header',
        action='append',
        default=[],
        metavar='HEADER',
        help='Additional header to sign, NAME or NAME:required (repeatable)'
    )
    sign_parser.add_argument(
        '--ignore-header',
        action='append',
        default=[],
        metavar='NAME',
        help='Default header to leave unsigned (repeatable)'
    )
    sign_parser.add_argument(
        '--output-message',
        action='store_true',
        help='Print the whole message with the DKIM-Signature header prepended'
    )


def setup_keygen_parser(subparsers):
    """Setup key generation subcommand."""
    keygen_parser = subparsers.add_parser('keygen', help='Generate an RSA key pair for DKIM')
    keygen_parser.add_argument(
        '--bits',
        type=int,
        default=DEFAULT_KEY_SIZE,
        help=f'RSA key size in bits (default: {DEFAULT_KEY_SIZE})'
    )
    keygen_parser.add_argument('--private-out', help='Write the private key PEM to this file')
    keygen_parser.add_argument('--public-out', help='Write the public key PEM to this file')
    keygen_parser.add_argument('--selector', help='Selector used to print the DNS record name')
    keygen_parser.add_argument('--domain', help='Domain used to print the DNS record name')


def parse_header_option(value: str) -> DkimSignHeader:
    """Parse ``NAME`` or ``NAME:required`` into a header descriptor."""
    name, _, flag = value.partition(':')
    flag = flag.strip().lower()
    if flag not in ('', 'required'):
        raise ConfigurationError(f"Invalid header option: {value}", "INVALID_FORMAT")
    try:
        return DkimSignHeader(name.strip(), flag == 'required')
    except ValueError as e:
        raise ConfigurationError(f"Invalid header option: {value}", "INVALID_FORMAT") from e


def build_sign_config(args) -> SignerConfig:
    """Combine the configuration file, environment and command-line options."""
    if args.config:
        config = load_config_from_file(args.config)
    else:
        if not args.selector or not args.domain:
            raise ConfigurationError(
                "--selector and --domain are required without --config",
                "MISSING_FIELD"
            )
        config = SignerConfig(selector=args.selector, domain=args.domain)

    config = apply_env_overrides(config)

    overrides = {}
    if args.selector:
        overrides['selector'] = args.selector
    if args.domain:
        overrides['domain'] = args.domain
    if args.identity:
        overrides['identity'] = args.identity
    if args.key:
        overrides['private_key_path'] = args.key
    if args.header_canonicalization:
        overrides['header_canonicalization'] = args.header_canonicalization
    if args.body_canonicalization:
        overrides['body_canonicalization'] = args.body_canonicalization
    if args.header:
        overrides['extra_headers'] = list(config.extra_headers) + [parse_header_option(h) for h in args.header]
    if args.ignore_header:
        overrides['ignored_headers'] = list(config.ignored_headers) + list(args.ignore_header)

    return replace(config, **overrides)


def read_message(path: str) -> bytes:
    """Read raw message bytes from a file or stdin."""
    if path == '-':
        return sys.stdin.buffer.read()
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise MailDkimError(f"Failed to read message file: {e}", "FILE_ERROR") from e


def handle_sign_command(args) -> int:
    """Handle message signing command."""
    config = build_sign_config(args)
    if not args.log_level:
        logging.getLogger().setLevel(config.log_level.upper())
    signer = config.create_signer()
    raw_message = read_message(args.message)

    value = signer.sign(raw_message)

    if args.output_message:
        sys.stdout.buffer.write(prepend_signature_header(raw_message, value))
        sys.stdout.flush()
    else:
        print(format_signature_header(value))
    return 0


def handle_keygen_command(args) -> int:
    """Handle key generation command."""
    private_key = generate_private_key(args.bits)
    private_pem = format_private_key(private_key)
    public_pem = format_public_key(private_key)

    if args.private_out:
        _write_file(args.private_out, private_pem)
        print(f"Private key written to: {args.private_out}")
    else:
        print(private_pem, end='')

    if args.public_out:
        _write_file(args.public_out, public_pem)
        print(f"Public key written to: {args.public_out}")

    record = dns_txt_record(private_key)
    if args.selector and args.domain:
        print(f"{args.selector}._domainkey.{args.domain} IN TXT \"{record}\"")
    else:
        print(f"DNS TXT record: {record}")
    return 0


def _write_file(path: str, content: str):
    try:
        Path(path).write_text(content, encoding='ascii')
    except OSError as e:
        raise MailDkimError(f"Failed to write {path}: {e}", "FILE_ERROR") from e


def configure_logging(level: Optional[str]):
    logging.basicConfig(
        level=getattr(logging, (level or 'WARNING').upper()),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        stream=sys.stderr
    )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI

    Args:
        argv: Command line arguments (None to use sys.argv)

    Returns:
        int: Exit code (0 for success, non-zero for failure)
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    try:
        if args.command == 'sign':
            return handle_sign_command(args)
        elif args.command == 'keygen':
            return handle_keygen_command(args)
        else:
            parser.print_help()
            return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 130
    except MailDkimError as e:
        logger.debug(f"Command failed with {e.error_code}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
