# -*- coding: utf-8 -*-
"""File backed secret provider with rotation over TCP.

The provider owns the secret store and its file. A background thread runs a
:class:`TCPRotationServer` whose ``rotate`` command

1. generates a new secret
2. encrypts it with the current secret
3. retires the current secret into the deprecated window
4. persists the whole store
5. answers with the ciphertext

so whoever already holds the old secret can recover the new one while nothing
usable crosses the wire.
"""

import logging
import threading

from .crypto import generate_secure_secret, encrypt_secret, DEFAULT_SECRET_BYTES
from .exceptions import InvalidConfig, NoActiveSecret
from .providers import SecretProvider
from .store import load_or_initialize_store, save_store, DEFAULT_MAX_DEPRECATED
from .tcp_server import TCPRotationServer

DEFAULT_TCP_ADDR = ":8888"


def _log_server_error(exc):
    logging.getLogger(__name__).error("Rotation server failed", exc_info=exc)


def _run_server(server, stop_event, on_error):
    try:
        server.start(stop_event)
    except Exception as e:
        on_error(e)


class FileSecretProvider(SecretProvider):
    """Serves the current secret from a rotating file store.

    Args:
        file_path (str): path of the json store file, created if absent.
        tcp_addr (str, optional): ``host:port`` for the rotation listener.
            Port 0 picks a free port, see :meth:`server`. Defaults to ``:8888``.
        max_deprecated (int, optional): how many retired secrets are kept
            for validating older tokens. Non positive values use the default.
        on_server_error (callable, optional): receives any exception that stops
            the background server. Defaults to logging it.
    """

    def __init__(self, file_path, tcp_addr=None, max_deprecated=None, on_server_error=None):
        if not file_path:
            raise InvalidConfig("file path cannot be empty")
        if not tcp_addr:
            tcp_addr = DEFAULT_TCP_ADDR
        if not max_deprecated or max_deprecated <= 0:
            max_deprecated = DEFAULT_MAX_DEPRECATED

        self._file_path = file_path
        self._tcp_addr = tcp_addr
        self._max_deprecated = max_deprecated
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._closed = False

        with self._lock:
            self._store = load_or_initialize_store(file_path)

        self._server = TCPRotationServer(tcp_addr, self.handle_rotate_command)
        t = threading.Thread(target=_run_server,
                             name=f"rotation_server_{tcp_addr}",
                             args=(self._server, self._stop_event,
                                   on_server_error or _log_server_error))
        t.daemon = True
        t.start()
        self._thread = t

    @property
    def file_path(self):
        return self._file_path

    @property
    def max_deprecated(self):
        return self._max_deprecated

    @property
    def server(self):
        return self._server

    def get_secret(self):
        with self._lock:
            secret = self._store.current.secret
        if not secret:
            raise NoActiveSecret(self._file_path)
        return secret

    def get_all_secrets(self):
        """Return ``(current, [deprecated, ...])`` with deprecated oldest first."""
        with self._lock:
            store = self._store
        return store.current.secret, [entry.secret for entry in store.deprecated]

    def get_store(self):
        with self._lock:
            return self._store

    def handle_rotate_command(self):
        """Rotate the secret and return the new one encrypted under the old one.

        The rotated store is written to disk before it replaces the in memory
        store, so a failed write leaves both on the old secret.
        """
        with self._lock:
            new_secret = generate_secure_secret(DEFAULT_SECRET_BYTES)
            encrypted = encrypt_secret(new_secret, self._store.current.secret)

            rotated = self._store.rotated(new_secret, self._max_deprecated)
            save_store(rotated, self._file_path)

            retired = self._store.current.id
            self._store = rotated

        logging.getLogger(__name__).info(
            f"Rotated secret {retired} to {rotated.current.id}, "
            f"{len(rotated.deprecated)} deprecated secrets kept")
        return encrypted

    rotate = handle_rotate_command

    def close(self, timeout=5.0):
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._stop_event.set()
        self._server.stop()
        self._thread.join(timeout)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
