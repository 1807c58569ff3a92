# -*- coding: utf-8 -*-
"""hashupload uploads a directory tree to an object store, once per content.

Every file is identified by the hash of its bytes. A local index maps each
hash to where its content was stored, so content already uploaded, under any
name or path, is never sent again.

Typical use cases for this kind of system are ones where:

- A local tree is mirrored to S3/MinIO repeatedly (e.g. photo backups).
- The same files show up under several names or folders.
- Remote keys should stay browsable (``YYYYMM/name-YYYYMMDDHHMMSS.ext``).
"""

from .__meta__ import (
    __title__,
    __summary__,
    __url__,
    __version__,
    __author__,
    __email__,
    __license__
)

from .errors import (HashUploadError, ConfigInvalid, IOFailure, IndexUnavailable,
                     IndexWriteFailure, UploadFailure, EncodingFailure)
from .hashupload import Uploader, PathIterator, FileState, hash_file, hash_readable, is_uploadable
from .index import Index, FileRecord
from .naming import add_timestamp_suffix, remote_prefix, timestamp_string


__all__ = ('Uploader', 'PathIterator', 'FileState', 'Index', 'FileRecord', 'hash_file',
           'hash_readable', 'is_uploadable', 'add_timestamp_suffix', 'remote_prefix',
           'timestamp_string', 'HashUploadError', 'ConfigInvalid', 'IOFailure',
           'IndexUnavailable', 'IndexWriteFailure', 'UploadFailure', 'EncodingFailure')
