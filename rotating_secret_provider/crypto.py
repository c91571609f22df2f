# -*- coding: utf-8 -*-
"""Secret generation and symmetric encryption of one secret under another.

A newly generated secret is sealed with AES-256-GCM using a key derived from
the secret it replaces. Only a holder of the old secret can recover the new
one, so the sealed form can travel over an unauthenticated channel.

Wire format of an encrypted secret (before base64)::

    nonce (12 bytes) || ciphertext || GCM tag (16 bytes)
"""

import base64
import binascii
import hashlib
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import InvalidArgument, RandomSourceError, DecodeError, TruncatedInput, \
    AuthenticationFailure

NONCE_SIZE = 12

DEFAULT_SECRET_BYTES = 32


def _random_bytes(length):
    try:
        return secrets.token_bytes(length)
    except (OSError, NotImplementedError) as e:
        raise RandomSourceError(f"failed to generate random bytes: {e}") from e


def _derive_key(key_material):
    # sha256 collapses any passphrase into the 32 bytes AES-256 needs
    return hashlib.sha256(key_material.encode("utf-8")).digest()


def generate_secure_secret(byte_length=DEFAULT_SECRET_BYTES):
    """
    Generate a cryptographically secure secret.

    :type byte_length: int
    :param byte_length: number of random bytes drawn from the OS entropy source
    :return: the random bytes base64 encoded
    """
    if byte_length <= 0:
        raise InvalidArgument(byte_length)

    return base64.b64encode(_random_bytes(byte_length)).decode("ascii")


def encrypt_secret(plaintext, key_material):
    """
    Encrypt ``plaintext`` with a key derived from ``key_material``.

    A fresh nonce is drawn on every call and prepended to the sealed data.

    :type plaintext: str
    :param plaintext: the new secret
    :type key_material: str
    :param key_material: the old secret, any length
    :return: base64 encoded nonce and sealed data
    """
    nonce = _random_bytes(NONCE_SIZE)
    sealed = AESGCM(_derive_key(key_material)).encrypt(nonce, plaintext.encode("utf-8"), None)
    return base64.b64encode(nonce + sealed).decode("ascii")


def decrypt_secret(encrypted, key_material):
    """
    Reverse :func:`encrypt_secret`.

    Raises :class:`DecodeError` for malformed base64, :class:`TruncatedInput`
    when the payload cannot even hold a nonce and :class:`AuthenticationFailure`
    when the key is wrong or the ciphertext was altered.
    """
    try:
        payload = base64.b64decode(encrypted, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"failed to decode base64: {e}") from e

    if len(payload) < NONCE_SIZE:
        raise TruncatedInput(len(payload), NONCE_SIZE)

    nonce, sealed = payload[:NONCE_SIZE], payload[NONCE_SIZE:]
    try:
        plaintext = AESGCM(_derive_key(key_material)).decrypt(nonce, sealed, None)
    except InvalidTag as e:
        raise AuthenticationFailure("failed to decrypt: authentication failed") from e

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"decrypted secret is not utf-8: {e}") from e
