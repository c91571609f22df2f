# -*- coding: utf-8 -*-
"""TCP control channel used to trigger secret rotation.

Clients send newline delimited json commands and receive one json line back
per command::

    -> {"action": "rotate"}
    <- {"success": true, "encrypted_data": "<base64>"}

A bare ``rotate`` line (any case) is accepted for older clients. A malformed
or unknown command gets a failure response and the connection stays open.
"""

import json
import logging
import socket
import threading
from dataclasses import dataclass

from .exceptions import InvalidConfig, ServerAlreadyRunning, SecretRotationError

ROTATE_ACTION = "rotate"

INVALID_COMMAND_FORMAT = "Invalid command format"

MAX_LINE_BYTES = 64 * 1024


def parse_address(address):
    """Split ``host:port`` into a tuple. An empty host binds every interface."""
    if isinstance(address, tuple):
        return address
    if not address or ":" not in address:
        raise InvalidConfig(f"address must be host:port, got {address!r}")
    host, _, port = address.rpartition(":")
    host = host.strip("[]")
    try:
        return host, int(port)
    except ValueError:
        raise InvalidConfig(f"invalid port in address {address!r}") from None


def format_address(sockname):
    host, port = sockname[0], sockname[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


@dataclass
class RotationResponse:
    success: bool
    encrypted_data: str = None
    error: str = None

    def to_dict(self):
        data = {"success": self.success}
        if self.encrypted_data is not None:
            data["encrypted_data"] = self.encrypted_data
        if self.error is not None:
            data["error"] = self.error
        return data

    def to_line(self):
        return (json.dumps(self.to_dict()) + "\n").encode("utf-8")

    @classmethod
    def from_dict(cls, data):
        return cls(success=bool(data.get("success")),
                   encrypted_data=data.get("encrypted_data"),
                   error=data.get("error"))


def parse_command(line):
    """Return the action named by one command line, or None if it is not a command."""
    try:
        command = json.loads(line)
    except (ValueError, RecursionError):
        # deeply nested input exhausts the decoder's recursion limit
        command = None

    if isinstance(command, dict):
        action = command.get("action", "")
        if isinstance(action, str):
            return action
        return None

    if line.lower() == ROTATE_ACTION:
        return ROTATE_ACTION
    return None


class TCPRotationServer:
    """Accepts rotation commands and hands them to a rotation handler.

    The handler is a no argument callable returning the encrypted new secret.
    It owns all serialisation of rotation work; the server only tracks whether
    it is running, its listener and the open connections it closes on stop.
    Command lines are capped at ``MAX_LINE_BYTES``.
    """

    def __init__(self, address, handler, poll_interval=0.25):
        if handler is None:
            raise InvalidConfig("rotation handler cannot be None")
        self._address = address
        self._bind = parse_address(address)
        self._handler = handler
        self._poll_interval = poll_interval
        self._listener = None
        self._running = False
        self._lock = threading.Lock()
        self._listening = threading.Event()
        self._connections = set()

    def start(self, stop_event=None):
        """Bind and accept connections until stopped.

        Blocks the calling thread. Returns cleanly when :meth:`stop` is called
        or ``stop_event`` is set.
        """
        with self._lock:
            if self._running:
                raise ServerAlreadyRunning(self._address)
            self._running = True

        try:
            listener = socket.create_server(self._bind)
        except OSError as e:
            with self._lock:
                self._running = False
            raise SecretRotationError(f"failed to listen on {self._address}: {e}") from e

        listener.settimeout(self._poll_interval)
        with self._lock:
            if not self._running:
                listener.close()
                return
            self._listener = listener
            self._address = format_address(listener.getsockname())
        self._listening.set()
        logging.getLogger(__name__).info(f"Rotation server listening on {self._address}")

        while True:
            if stop_event is not None and stop_event.is_set():
                self.stop()
            if not self.is_running():
                return
            try:
                conn, peer = listener.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self.is_running():
                    return
                raise SecretRotationError(f"failed to accept connection: {e}") from e

            t = threading.Thread(target=self._handle_connection,
                                 name=f"rotation_conn_{peer[0]}:{peer[1]}",
                                 args=(conn, peer))
            t.daemon = True
            t.start()

    def stop(self):
        with self._lock:
            if not self._running:
                return
            self._running = False
            listener = self._listener
            connections = list(self._connections)
            self._listening.clear()

        # wakes connection threads blocked in readline so no command runs after stop
        for conn in connections:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError as e:
                logging.getLogger(__name__).debug(f"Connection already closed on stop: {e}")

        if listener is not None:
            listener.close()
            logging.getLogger(__name__).info(f"Rotation server on {self._address} stopped")

    def is_running(self):
        with self._lock:
            return self._running

    def get_address(self):
        with self._lock:
            return self._address

    def wait_until_running(self, timeout=None):
        return self._listening.wait(timeout)

    def _handle_connection(self, conn, peer):
        with self._lock:
            if not self._running:
                conn.close()
                return
            self._connections.add(conn)
        try:
            with conn, conn.makefile("rb") as reader:
                self._serve_lines(conn, reader)
        except OSError as e:
            if self.is_running():
                logging.getLogger(__name__).warning(
                    f"Connection error from {peer[0]}:{peer[1]}: {e}")
        finally:
            with self._lock:
                self._connections.discard(conn)

    def _serve_lines(self, conn, reader):
        oversized = False
        while True:
            raw = reader.readline(MAX_LINE_BYTES + 1)
            if not raw:
                return
            if not raw.endswith(b"\n") and len(raw) > MAX_LINE_BYTES:
                # answer once, then drop the rest of the line chunk by chunk
                if not oversized:
                    conn.sendall(RotationResponse(success=False,
                                                  error=INVALID_COMMAND_FORMAT).to_line())
                oversized = True
                continue
            if oversized:
                oversized = False
                continue
            if not self.is_running():
                return
            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                continue
            conn.sendall(self.handle_line(line).to_line())

    def handle_line(self, line):
        action = parse_command(line)
        if action is None:
            return RotationResponse(success=False, error=INVALID_COMMAND_FORMAT)
        return self.handle_command(action)

    def handle_command(self, action):
        if action.lower() == ROTATE_ACTION:
            try:
                encrypted = self._handler()
            except Exception as e:
                logging.getLogger(__name__).exception("Rotation handler failed")
                return RotationResponse(success=False, error=str(e))
            return RotationResponse(success=True, encrypted_data=encrypted)

        return RotationResponse(success=False, error=f"Unknown command: {action}")
