# -*- coding: utf-8 -*-

class SecretRotationError(Exception):
    """Base Error class."""


class InvalidConfig(SecretRotationError, ValueError):
    """Raised at construction time for unusable configuration."""


class NoActiveSecret(SecretRotationError):
    CUSTOM_ERROR_MESSAGE = "No active secret available from {}"

    def __init__(self, source):
        super(NoActiveSecret, self).__init__(self.CUSTOM_ERROR_MESSAGE.format(source))
        self._source = source

    @property
    def source(self):
        return self._source


class CryptoError(SecretRotationError):
    """Base class for secret generation and encryption failures."""


class InvalidArgument(CryptoError, ValueError):
    CUSTOM_ERROR_MESSAGE = "byte length must be positive, got {}"

    def __init__(self, byte_length):
        super(InvalidArgument, self).__init__(self.CUSTOM_ERROR_MESSAGE.format(byte_length))


class RandomSourceError(CryptoError):
    """The operating system entropy source failed."""


class DecodeError(CryptoError):
    """Encrypted payload is not valid base64."""


class TruncatedInput(CryptoError):
    CUSTOM_ERROR_MESSAGE = "ciphertext too short: {} bytes, nonce needs {}"

    def __init__(self, length, nonce_size):
        super(TruncatedInput, self).__init__(self.CUSTOM_ERROR_MESSAGE.format(length,
                                                                              nonce_size))


class AuthenticationFailure(CryptoError):
    """Authenticated decryption failed: wrong key or tampered ciphertext."""


class SecretStoreError(SecretRotationError):
    """Base class for secret store persistence failures."""


class SecretStoreNotFound(SecretStoreError):
    CUSTOM_ERROR_MESSAGE = "Secret store file {} does not exist"

    def __init__(self, path):
        super(SecretStoreNotFound, self).__init__(self.CUSTOM_ERROR_MESSAGE.format(path))
        self._path = path

    @property
    def path(self):
        return self._path


class SecretStoreParseError(SecretStoreError):
    CUSTOM_ERROR_MESSAGE = "Failed to parse secret store file {}: {}"

    def __init__(self, path, reason):
        super(SecretStoreParseError, self).__init__(self.CUSTOM_ERROR_MESSAGE.format(path,
                                                                                     reason))
        self._path = path

    @property
    def path(self):
        return self._path


class SecretStorePersistError(SecretStoreError):
    CUSTOM_ERROR_MESSAGE = "Failed to write secret store file {}: {}"

    def __init__(self, path, error):
        super(SecretStorePersistError, self).__init__(self.CUSTOM_ERROR_MESSAGE.format(path,
                                                                                       str(error)))
        self._path = path
        self._error = error

    @property
    def path(self):
        return self._path

    @property
    def error(self):
        return self._error


class ServerAlreadyRunning(SecretRotationError):
    CUSTOM_ERROR_MESSAGE = "Rotation server on {} is already running"

    def __init__(self, address):
        super(ServerAlreadyRunning, self).__init__(self.CUSTOM_ERROR_MESSAGE.format(address))


class RotationFailed(SecretRotationError):
    CUSTOM_ERROR_MESSAGE = "Rotation via {} failed: {}"

    def __init__(self, address, error):
        super(RotationFailed, self).__init__(self.CUSTOM_ERROR_MESSAGE.format(address, error))
        self._error = error

    @property
    def error(self):
        return self._error


class InvalidToken(SecretRotationError):
    """A bearer token failed validation."""


class AuthorizationError(SecretRotationError):
    status_code = 401


class Unauthorized(AuthorizationError):
    status_code = 401


class Forbidden(AuthorizationError):
    status_code = 403
