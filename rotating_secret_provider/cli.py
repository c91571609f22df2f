# -*- coding: utf-8 -*-
"""
Command line interface for the rotating secret provider.

Commands:
    serve            run a file backed provider and its rotation listener
    rotate           rotate a running provider's secret and print the new one
    token            issue a bearer token signed with the configured secret
    generate-secret  print a fresh random secret
"""

import argparse
import logging
import signal
import sys
import threading
from datetime import datetime

import pytz
from pydantic import ValidationError

from .client import RotationClient
from .config import load_settings, build_secret_provider, parse_duration, PROVIDER_FILE
from .crypto import generate_secure_secret, DEFAULT_SECRET_BYTES
from .exceptions import SecretRotationError
from .file_provider import FileSecretProvider
from .jwt_service import JWTService, KNOWN_PERMISSIONS
from .log import setup_logging
from .providers import StaticSecretProvider
from .store import load_store


def parse_permissions(value):
    return [p.strip() for p in (value or "").split(",") if p.strip()]


def cmd_serve(args, settings):
    """Run the file provider until interrupted."""
    stop = threading.Event()

    def _handle_signal(signum, frame):
        logging.getLogger(__name__).info(f"Received signal {signum}, shutting down")
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    provider = FileSecretProvider(args.file or settings.SECRETS_FILE_PATH,
                                  tcp_addr=args.address or settings.SECRETS_TCP_ADDR,
                                  max_deprecated=settings.SECRETS_MAX_DEPRECATED)
    with provider:
        if provider.server.wait_until_running(5.0):
            logging.getLogger(__name__).info(
                f"Serving secrets from {provider.file_path}, "
                f"rotate via {provider.server.get_address()}")
        while not stop.wait(1.0):
            pass
    return 0


def cmd_rotate(args, settings):
    """Rotate via a running server, decrypting the answer with the old secret."""
    old_secret = args.old_secret
    if not old_secret:
        print("An old secret is required to decrypt the rotated secret", file=sys.stderr)
        return 1

    try:
        with RotationClient(args.address or settings.SECRETS_TCP_ADDR,
                            timeout=args.timeout) as client:
            new_secret = client.rotate(old_secret)
    except (SecretRotationError, OSError) as e:
        print(f"Rotation failed: {e}", file=sys.stderr)
        return 1

    print(new_secret)
    return 0


def cmd_token(args, settings):
    """Issue a bearer token for the given permissions."""
    api_key = args.apikey or settings.API_KEY
    if api_key != settings.API_KEY:
        print("Invalid API key. Use --apikey or set API_KEY", file=sys.stderr)
        return 1

    permissions = parse_permissions(args.permissions)
    if not permissions:
        print("At least one permission is required", file=sys.stderr)
        return 1
    unknown = [p for p in permissions if p not in KNOWN_PERMISSIONS]
    if unknown:
        print(f"Invalid permissions {unknown}. Allowed: {', '.join(KNOWN_PERMISSIONS)}",
              file=sys.stderr)
        return 1

    try:
        expiry = parse_duration(args.expiry) if args.expiry else settings.jwt_expiry
        if settings.SECRET_PROVIDER == PROVIDER_FILE:
            # sign with the stored secret without starting a rotation listener
            provider = StaticSecretProvider(load_store(settings.SECRETS_FILE_PATH).current.secret)
        else:
            provider = build_secret_provider(settings)
        token = JWTService(provider, expiry).generate_token(permissions)
    except SecretRotationError as e:
        print(f"Failed to generate token: {e}", file=sys.stderr)
        return 1

    expires_at = datetime.now(pytz.utc) + expiry
    print(f"Token: {token}")
    print(f"Expires: {expires_at:%Y-%m-%d %H:%M:%S %Z}")
    print(f"Permissions: {', '.join(permissions)}")
    print()
    print("Use this token in the Authorization header:")
    print(f"Authorization: Bearer {token}")
    return 0


def cmd_generate_secret(args, settings):
    try:
        print(generate_secure_secret(args.bytes))
    except SecretRotationError as e:
        print(f"Error generating secret: {e}", file=sys.stderr)
        return 1
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        prog="rotating-secrets",
        description="File backed JWT secret provider with TCP driven rotation",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="serve secrets and accept rotation commands")
    serve.add_argument("--file", help="secret store file (default SECRETS_FILE_PATH)")
    serve.add_argument("--address", help="rotation listener host:port (default SECRETS_TCP_ADDR)")
    serve.set_defaults(func=cmd_serve)

    rotate = subparsers.add_parser("rotate", help="rotate the secret of a running server")
    rotate.add_argument("--address", help="rotation server host:port (default SECRETS_TCP_ADDR)")
    rotate.add_argument("--old-secret", help="current secret, used to decrypt the new one")
    rotate.add_argument("--timeout", type=float, default=5.0, help="socket timeout in seconds")
    rotate.set_defaults(func=cmd_rotate)

    token = subparsers.add_parser("token", help="generate a bearer token")
    token.add_argument("--apikey", help="API key (default API_KEY)")
    token.add_argument("--permissions", default="banks:read",
                       help="comma separated permissions, e.g. banks:read,banks:write")
    token.add_argument("--expiry", help="token lifetime such as 24h or 1h30m (default JWT_EXPIRY)")
    token.set_defaults(func=cmd_token)

    generate = subparsers.add_parser("generate-secret", help="print a random secret")
    generate.add_argument("--bytes", type=int, default=DEFAULT_SECRET_BYTES,
                          help="random bytes before base64 encoding")
    generate.set_defaults(func=cmd_generate_secret)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1
    setup_logging("DEBUG" if args.verbose else settings.LOG_LEVEL)
    return args.func(args, settings)


if __name__ == "__main__":
    sys.exit(main())
