# -*- coding: utf-8 -*-
"""
The secret store: one current secret plus a bounded window of deprecated ones.

Persisted as a single pretty printed json document readable only by its owner

{
    "current": {"id": "...", "secret": "...", "created_at": "...", "rotated_at": null},
    "deprecated": [                      # oldest first
        {"id": "...", "secret": "...", "created_at": "...", "rotated_at": "..."},
        ...
    ]
}

Store values are treated as immutable. A rotation builds a new store so the
owner can persist it before it replaces the one readers are using.
"""

import json
import logging
import os
import tempfile
import uuid
from dataclasses import dataclass, field
from datetime import datetime

import pytz
from dateutil import parser

from .crypto import generate_secure_secret, DEFAULT_SECRET_BYTES
from .exceptions import SecretStoreNotFound, SecretStoreParseError, SecretStorePersistError

DEFAULT_MAX_DEPRECATED = 5

STORE_FILE_MODE = 0o600


def utcnow():
    return datetime.now(pytz.utc)


def _format_time(value):
    if value is None:
        return None
    return value.isoformat()


def _parse_time(value):
    if value is None:
        return None
    parsed = parser.isoparse(value)
    if parsed.tzinfo is None:
        parsed = pytz.utc.localize(parsed)
    return parsed


@dataclass(frozen=True)
class SecretEntry:
    id: str
    secret: str
    created_at: datetime
    rotated_at: datetime = None

    @classmethod
    def new(cls, secret, now=None):
        return cls(id=str(uuid.uuid4()), secret=secret, created_at=now or utcnow())

    def retire(self, now):
        return SecretEntry(id=self.id,
                           secret=self.secret,
                           created_at=self.created_at,
                           rotated_at=now)

    def to_dict(self):
        return {
            "id": self.id,
            "secret": self.secret,
            "created_at": _format_time(self.created_at),
            "rotated_at": _format_time(self.rotated_at),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(id=data["id"],
                   secret=data["secret"],
                   created_at=_parse_time(data["created_at"]),
                   rotated_at=_parse_time(data.get("rotated_at")))


@dataclass(frozen=True)
class SecretStore:
    current: SecretEntry
    deprecated: tuple = field(default_factory=tuple)

    def rotated(self, new_secret, max_deprecated, now=None):
        """Return the store that results from installing ``new_secret`` as current.

        The current entry is stamped with ``rotated_at`` and appended to the
        deprecated window; the oldest deprecated entries are evicted until at
        most ``max_deprecated`` remain.
        """
        now = now or utcnow()
        deprecated = self.deprecated + (self.current.retire(now),)
        if len(deprecated) > max_deprecated:
            deprecated = deprecated[len(deprecated) - max_deprecated:]
        return SecretStore(current=SecretEntry.new(new_secret, now), deprecated=deprecated)

    def to_dict(self):
        return {
            "current": self.current.to_dict(),
            "deprecated": [entry.to_dict() for entry in self.deprecated],
        }

    @classmethod
    def from_dict(cls, data):
        return cls(current=SecretEntry.from_dict(data["current"]),
                   deprecated=tuple(SecretEntry.from_dict(entry)
                                    for entry in data.get("deprecated") or []))


def load_store(path):
    """Load and validate the store at ``path``.

    Raises SecretStoreNotFound when the file is absent so callers can bootstrap,
    SecretStoreParseError for anything else that makes the file unusable.
    """
    try:
        with open(path, "rb") as fh:
            raw = fh.read()
    except FileNotFoundError:
        raise SecretStoreNotFound(path) from None
    except OSError as e:
        raise SecretStoreParseError(path, e) from e

    try:
        # UnicodeDecodeError is a ValueError
        store = SecretStore.from_dict(json.loads(raw.decode("utf-8")))
    except (ValueError, KeyError, TypeError, AttributeError, OverflowError,
            RecursionError) as e:
        raise SecretStoreParseError(path, e) from e

    if not isinstance(store.current.secret, str) or not store.current.secret:
        raise SecretStoreParseError(path, "no current secret found in file")
    if store.current.rotated_at is not None:
        raise SecretStoreParseError(path, "current secret is marked as rotated")

    return store


def save_store(store, path):
    """Write the whole store to ``path`` with owner only permissions.

    The document goes to a temporary file in the same directory which then
    replaces ``path``, so readers of the file never see a partial write.
    """
    data = json.dumps(store.to_dict(), indent=2)
    directory = os.path.dirname(os.path.abspath(path))
    tmp_path = None
    try:
        # mkstemp creates the file 0600
        fd, tmp_path = tempfile.mkstemp(prefix=".secrets-", suffix=".tmp", dir=directory)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp_path, STORE_FILE_MODE)
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as e:
        raise SecretStorePersistError(path, e) from e
    finally:
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                logging.getLogger(__name__).warning(f"Could not remove temporary file {tmp_path}")


def initialize_store(path):
    """Create a store with one freshly generated current secret and persist it."""
    store = SecretStore(current=SecretEntry.new(generate_secure_secret(DEFAULT_SECRET_BYTES)))
    save_store(store, path)
    logging.getLogger(__name__).info(f"Initialized secret store {path} with secret {store.current.id}")
    return store


def load_or_initialize_store(path):
    try:
        store = load_store(path)
    except SecretStoreNotFound:
        return initialize_store(path)
    logging.getLogger(__name__).info(
        f"Loaded secret store {path} current {store.current.id} "
        f"with {len(store.deprecated)} deprecated secrets")
    return store
