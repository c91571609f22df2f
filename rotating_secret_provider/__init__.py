# -*- coding: utf-8 -*-
"""rotating_secret_provider

A file backed JWT secret provider whose secret can be rotated over a small TCP
control channel without restarting the service. The rotated secret is returned
encrypted under the secret it replaces so only its previous holder can read it.

"""

from rotating_secret_provider.exceptions import SecretRotationError, \
    InvalidConfig, \
    NoActiveSecret, \
    CryptoError, \
    InvalidArgument, \
    RandomSourceError, \
    DecodeError, \
    TruncatedInput, \
    AuthenticationFailure, \
    SecretStoreError, \
    SecretStoreNotFound, \
    SecretStoreParseError, \
    SecretStorePersistError, \
    ServerAlreadyRunning, \
    RotationFailed, \
    InvalidToken, \
    AuthorizationError, \
    Unauthorized, \
    Forbidden
from rotating_secret_provider.crypto import generate_secure_secret, encrypt_secret, decrypt_secret
from rotating_secret_provider.store import SecretEntry, \
    SecretStore, \
    load_store, \
    save_store, \
    initialize_store, \
    load_or_initialize_store
from rotating_secret_provider.tcp_server import TCPRotationServer, RotationResponse
from rotating_secret_provider.providers import SecretProvider, EnvSecretProvider, StaticSecretProvider
from rotating_secret_provider.file_provider import FileSecretProvider
from rotating_secret_provider.client import RotationClient
from rotating_secret_provider.jwt_service import JWTService, Claims
from rotating_secret_provider.decorators import InjectSecretString, RequirePermissions
from ._version import __version__

__all__ = ["__version__",
           "SecretRotationError",
           "InvalidConfig",
           "NoActiveSecret",
           "CryptoError",
           "InvalidArgument",
           "RandomSourceError",
           "DecodeError",
           "TruncatedInput",
           "AuthenticationFailure",
           "SecretStoreError",
           "SecretStoreNotFound",
           "SecretStoreParseError",
           "SecretStorePersistError",
           "ServerAlreadyRunning",
           "RotationFailed",
           "InvalidToken",
           "AuthorizationError",
           "Unauthorized",
           "Forbidden",
           "generate_secure_secret",
           "encrypt_secret",
           "decrypt_secret",
           "SecretEntry",
           "SecretStore",
           "load_store",
           "save_store",
           "initialize_store",
           "load_or_initialize_store",
           "TCPRotationServer",
           "RotationResponse",
           "SecretProvider",
           "EnvSecretProvider",
           "StaticSecretProvider",
           "FileSecretProvider",
           "RotationClient",
           "JWTService",
           "Claims",
           "InjectSecretString",
           "RequirePermissions"]
