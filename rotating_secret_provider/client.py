# -*- coding: utf-8 -*-
"""Client side of the rotation channel."""

import json
import logging
import socket

from .crypto import decrypt_secret
from .exceptions import RotationFailed, SecretRotationError
from .tcp_server import parse_address, RotationResponse, ROTATE_ACTION


class RotationClient:
    """
    One connection to a rotation server. Several commands may be sent over it.

    Use as a context manager::

        with RotationClient("127.0.0.1:8888") as client:
            new_secret = client.rotate(old_secret)
    """

    def __init__(self, address, timeout=5.0):
        self._address = address
        self._timeout = timeout
        self._sock = None
        self._reader = None

    @property
    def address(self):
        return self._address

    def connect(self):
        if self._sock is None:
            host, port = parse_address(self._address)
            # ":8888" style addresses mean the local machine
            self._sock = socket.create_connection((host or "127.0.0.1", port), self._timeout)
            self._reader = self._sock.makefile("rb")
        return self

    def close(self):
        if self._reader is not None:
            self._reader.close()
            self._reader = None
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def send_raw(self, line):
        """Send one line as is and return the server's decoded response."""
        self.connect()
        self._sock.sendall(line.rstrip("\n").encode("utf-8") + b"\n")
        reply = self._reader.readline()
        if not reply:
            raise SecretRotationError(f"connection to {self._address} closed without response")
        try:
            return RotationResponse.from_dict(json.loads(reply))
        except (ValueError, AttributeError) as e:
            raise SecretRotationError(f"malformed response from {self._address}: {e}") from e

    def send_command(self, action):
        return self.send_raw(json.dumps({"action": action}))

    def rotate_encrypted(self):
        """Trigger a rotation and return the encrypted new secret."""
        response = self.send_command(ROTATE_ACTION)
        if not response.success:
            raise RotationFailed(self._address, response.error)
        return response.encrypted_data

    def rotate(self, old_secret):
        """Trigger a rotation and return the new secret decrypted with ``old_secret``."""
        new_secret = decrypt_secret(self.rotate_encrypted(), old_secret)
        logging.getLogger(__name__).info(f"Rotated secret via {self._address}")
        return new_secret
