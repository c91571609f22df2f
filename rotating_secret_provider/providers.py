# -*- coding: utf-8 -*-
"""Secret providers.

Anything that signs or verifies tokens depends only on :class:`SecretProvider`,
a single ``get_secret()`` capability, so the secret can come from the
environment, a rotating file store or a fixed value in tests.
"""

import os
from abc import ABC, abstractmethod

from .exceptions import NoActiveSecret

DEFAULT_JWT_SECRET_ENV = "JWT_SECRET"

DEFAULT_JWT_SECRET = "your-super-secret-jwt-key"


class SecretProvider(ABC):
    """Abstract source of the secret currently used for signing."""

    @abstractmethod
    def get_secret(self):
        """Return the live secret as a string.

        Raises:
            NoActiveSecret: if the source has no usable secret.
        """
        pass


class EnvSecretProvider(SecretProvider):
    """Reads the secret from an environment variable on every call."""

    def __init__(self, env_var=DEFAULT_JWT_SECRET_ENV, default=DEFAULT_JWT_SECRET):
        self._env_var = env_var
        self._default = default

    @property
    def env_var(self):
        return self._env_var

    def get_secret(self):
        secret = os.environ.get(self._env_var) or self._default or ""
        # values pasted into env files often carry stray whitespace
        secret = secret.strip()
        if not secret:
            raise NoActiveSecret(f"environment variable {self._env_var}")
        return secret


class StaticSecretProvider(SecretProvider):

    def __init__(self, secret=None, error=None):
        self._secret = secret
        self._error = error

    def get_secret(self):
        if self._error is not None:
            raise self._error
        if not self._secret:
            raise NoActiveSecret("static provider")
        return self._secret
