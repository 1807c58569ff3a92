"""Durable fingerprint -> FileRecord index.

The index lives in a directory and holds a single SQLite database. Every
``put`` is committed with ``synchronous=FULL`` before it returns, so a
record that was reported written survives a crash.
"""

import json
import logging
import os
import sqlite3
from pathlib import Path

import attr

from .errors import EncodingFailure, IndexUnavailable, IndexWriteFailure

logger = logging.getLogger(__name__)

DB_NAME = 'index.sqlite3'

# tags written by the original uploader, kept so old indexes stay readable
FIELD_TAGS = {
    'fingerprint': 'sha',
    'stored_name': 'name',
    'content_type': 'type',
    'remote_prefix': 'file_path',
    'modified_at': 'modify_time',
}


def _content_type(value):
    return '' if value is None else value


@attr.s(auto_attribs=True, frozen=True)
class FileRecord():
    """Metadata kept for one uploaded fingerprint.

    Attributes:
        fingerprint (str): Lowercase hex digest of the content.
        stored_name (str): Filename component of the object key.
        content_type (str): MIME type sent with the upload, ``''`` if the
            extension did not resolve.
        remote_prefix (str): Key prefix, trailing ``/`` included.
        modified_at (str): Source mtime as ``YYYYMMDDHHMMSS``.
    """
    fingerprint: str
    stored_name: str
    content_type: str = attr.ib(converter=_content_type)
    remote_prefix: str
    modified_at: str

    @property
    def key(self):
        return self.remote_prefix + self.stored_name

    def encode(self) -> bytes:
        try:
            return json.dumps({tag: getattr(self, name)
                               for name, tag in FIELD_TAGS.items()}).encode('utf8')
        except (TypeError, ValueError) as exc:
            raise EncodingFailure('cannot encode record for {0}: {1}'.format(self.fingerprint, exc),
                                  fingerprint=self.fingerprint) from exc

    @classmethod
    def decode(cls, data: bytes, fingerprint=None) -> 'FileRecord':
        try:
            fields = json.loads(data)
        except (TypeError, ValueError) as exc:
            raise EncodingFailure('cannot decode record for {0}: {1}'.format(fingerprint, exc),
                                  fingerprint=fingerprint) from exc
        if not isinstance(fields, dict):
            raise EncodingFailure('record for {0} is not an object'.format(fingerprint),
                                  fingerprint=fingerprint)
        missing = [tag for tag in FIELD_TAGS.values() if tag not in fields]
        if missing:
            raise EncodingFailure('record for {0} lacks {1}'.format(fingerprint, ', '.join(missing)),
                                  fingerprint=fingerprint)
        return cls(**{name: fields[tag] for name, tag in FIELD_TAGS.items()})


def fingerprint_key(fingerprint: str) -> bytes:
    """Raw digest bytes used as the index key for hex `fingerprint`."""
    if not fingerprint or len(fingerprint) % 2:
        raise ValueError('Invalid fingerprint: "{0}" has odd or zero length'.format(fingerprint))
    try:
        return bytes.fromhex(fingerprint)
    except ValueError:
        raise ValueError('Invalid fingerprint: "{0}" is not hex'.format(fingerprint))


@attr.s(auto_attribs=True)
class Index():
    """Persistent map of content fingerprint to :class:`FileRecord`.

    Use :meth:`open` as a context manager so the database is closed on
    every exit path::

        with Index.open(path) as index:
            record = index.lookup(fingerprint)
    """
    root: Path = attr.ib(converter=Path)
    connection: sqlite3.Connection = attr.ib(default=None, repr=False)

    @classmethod
    def open(cls, root):
        index = cls(root)
        index.connect()
        return index

    def connect(self):
        self.root = self.root.expanduser().resolve()
        dbfile = self.root / DB_NAME
        try:
            os.makedirs(self.root, exist_ok=True)
            self.connection = sqlite3.connect(str(dbfile), isolation_level=None)
            self.connection.execute('PRAGMA journal_mode=WAL')
            self.connection.execute('PRAGMA synchronous=FULL')
            self.connection.execute('CREATE TABLE IF NOT EXISTS records ('
                                    'fingerprint BLOB PRIMARY KEY, '
                                    'record BLOB NOT NULL)')
        except (OSError, sqlite3.Error) as exc:
            self.close()
            raise IndexUnavailable('cannot open index at {0}: {1}'.format(dbfile, exc)) from exc
        logger.debug("opened index %s", dbfile)

    def close(self):
        if self.connection is not None:
            self.connection.close()
            self.connection = None
            logger.debug("closed index %s", self.root)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _require_open(self, fingerprint, error):
        if self.connection is None:
            raise error('index at {0} is not open'.format(self.root), fingerprint=fingerprint)

    def lookup(self, fingerprint):
        """Return the record stored for `fingerprint`, or ``None``.

        Raises:
            ValueError: If `fingerprint` is not a hex digest.
            IndexUnavailable: If the database cannot be read.
            EncodingFailure: If the stored value is not a valid record.
        """
        key = fingerprint_key(fingerprint)
        self._require_open(fingerprint, IndexUnavailable)
        try:
            row = self.connection.execute('SELECT record FROM records WHERE fingerprint = ?',
                                          (key,)).fetchone()
        except sqlite3.Error as exc:
            raise IndexUnavailable('cannot read {0} from index: {1}'.format(fingerprint, exc),
                                   fingerprint=fingerprint) from exc
        if row is None:
            return None
        return FileRecord.decode(row[0], fingerprint=fingerprint)

    def put(self, fingerprint, record):
        """Durably store `record` under `fingerprint`.

        Raises:
            ValueError: If `fingerprint` is not a hex digest or does not
                match ``record.fingerprint``.
            IndexWriteFailure: If the write is not committed.
        """
        key = fingerprint_key(fingerprint)
        if record.fingerprint != fingerprint:
            raise ValueError('record fingerprint {0} does not match key {1}'.format(
                record.fingerprint, fingerprint))
        value = record.encode()
        self._require_open(fingerprint, IndexWriteFailure)
        try:
            with self.connection:
                self.connection.execute('BEGIN IMMEDIATE')
                self.connection.execute('INSERT INTO records (fingerprint, record) VALUES (?, ?)',
                                        (key, value))
        except sqlite3.Error as exc:
            raise IndexWriteFailure('cannot write {0} to index: {1}'.format(fingerprint, exc),
                                    fingerprint=fingerprint) from exc

    def records(self):
        """Yield every stored record in key order."""
        self._require_open(None, IndexUnavailable)
        try:
            rows = self.connection.execute('SELECT fingerprint, record FROM records '
                                           'ORDER BY fingerprint').fetchall()
        except sqlite3.Error as exc:
            raise IndexUnavailable('cannot iterate index: {0}'.format(exc)) from exc
        for key, value in rows:
            yield FileRecord.decode(value, fingerprint=key.hex())

    def __contains__(self, fingerprint):
        return self.lookup(fingerprint) is not None

    def __iter__(self):
        return self.records()
