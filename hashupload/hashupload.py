"""Module for the Uploader pipeline."""

import enum
import hashlib
import logging
import mimetypes
from pathlib import Path

import attr
import humanize

from .errors import IndexWriteFailure, IOFailure
from .index import FileRecord
from .naming import add_timestamp_suffix, mtime_of, remote_prefix, timestamp_string

logger = logging.getLogger(__name__)

BLOCK_SIZE = 256 * 128 * 2
DEFAULT_ALGORITHM = 'sha256'
EXCLUDED_EXTENSIONS = frozenset(['.zip'])


def is_uploadable(path):
    """True for a regular file, or a symlink that resolves to one."""
    assert isinstance(path, Path)
    try:
        return path.is_file()  # follows symlinks; False for broken ones and directories
    except OSError:  # self-referencing symlink loops
        return False


def hash_readable(handle, algorithm=DEFAULT_ALGORITHM):
    hasher = hashlib.new(algorithm)
    for chunk in iter(lambda: handle.read(BLOCK_SIZE), b''):
        hasher.update(chunk)
    return hasher.hexdigest()


def hash_file(path, algorithm=DEFAULT_ALGORITHM):
    """Return the lowercase hex digest of the file at `path`.

    Raises:
        IOFailure: If the file cannot be opened or read to the end.
    """
    try:
        with open(path, 'rb') as handle:
            return hash_readable(handle, algorithm)
    except OSError as exc:
        raise IOFailure('cannot hash {0}: {1}'.format(path, exc), path=path) from exc


def content_type_for(path):
    """MIME type for the last extension of `path`, ``''`` if it is unknown.

    Only the final suffix is looked up, so ``backup.tar.gz`` gets the type
    of ``.gz``, not ``.tar``.
    """
    ext = Path(path).suffix
    if not ext:
        return ''
    if not mimetypes.inited:
        mimetypes.init()
    for table in (mimetypes.types_map, mimetypes.common_types):
        content_type = table.get(ext) or table.get(ext.lower())
        if content_type:
            return content_type
    return ''


def is_excluded(path, excluded_extensions=EXCLUDED_EXTENSIONS):
    return Path(path).suffix.lower() in excluded_extensions


@attr.s(auto_attribs=True, kw_only=True)
class PathIterator():
    """Yield absolute paths below `path`, depth first, in name order.

    Symlinks are yielded but never followed.
    """
    path: Path = attr.ib(converter=Path)
    return_dirs: bool = True

    def __attrs_post_init__(self):
        self.root = self.path.absolute()

    def go(self):
        yield from self._walk(self.root)

    def _walk(self, directory):
        try:
            entries = sorted(directory.iterdir())
        except OSError as exc:
            raise IOFailure('cannot list {0}: {1}'.format(directory, exc), path=directory) from exc
        for sub in entries:
            if sub.is_symlink():  # must be before is_dir()
                yield sub
            elif sub.is_dir():
                if self.return_dirs:
                    yield sub
                yield from self._walk(sub)
            else:
                yield sub

    def __iter__(self):
        return self.go()


class FileState(enum.Enum):
    IGNORED = 'ignored'
    EXCLUDED = 'excluded'
    SKIPPED = 'skipped'
    INDEXED = 'indexed'


@attr.s(auto_attribs=True)
class Outcome():
    """What happened to one discovered path.

    Attributes:
        path (Path): The discovered path.
        state (FileState): Terminal state reached.
        record (FileRecord, optional): Stored or newly written record, for
            ``SKIPPED`` and ``INDEXED``.
        size (int): Bytes uploaded, 0 unless ``INDEXED``.
    """
    path: Path
    state: FileState
    record: FileRecord = None
    size: int = 0


@attr.s(auto_attribs=True)
class RunSummary():
    discovered: int = 0
    ignored: int = 0
    excluded: int = 0
    skipped: int = 0
    uploaded: int = 0
    bytes_uploaded: int = 0

    def add(self, outcome):
        self.discovered += 1
        if outcome.state is FileState.IGNORED:
            self.ignored += 1
        elif outcome.state is FileState.EXCLUDED:
            self.excluded += 1
        elif outcome.state is FileState.SKIPPED:
            self.skipped += 1
        elif outcome.state is FileState.INDEXED:
            self.uploaded += 1
            self.bytes_uploaded += outcome.size

    def __str__(self):
        return '{0} paths: {1} uploaded ({2}), {3} already stored, {4} excluded, {5} ignored'.format(
            humanize.intcomma(self.discovered), humanize.intcomma(self.uploaded),
            humanize.naturalsize(self.bytes_uploaded), humanize.intcomma(self.skipped),
            humanize.intcomma(self.excluded), humanize.intcomma(self.ignored))


@attr.s(auto_attribs=True, kw_only=True)
class Uploader():
    """Deduplicating uploader.

    Each file is hashed and looked up in `index`; content not seen before is
    sent to `store` and recorded in `index` once the store acknowledged it.
    Any error aborts the run.

    Attributes:
        index (Index): Open fingerprint index.
        store (object): Anything with ``put_file(bucket, key, local_path,
            content_type) -> int``.
        bucket (str): Target bucket name.
        algorithm (str): ``hashlib`` algorithm used for fingerprints.
        excluded_extensions (frozenset): Lowercase extensions never uploaded.
    """
    index: object
    store: object
    bucket: str
    algorithm: str = DEFAULT_ALGORITHM
    excluded_extensions: frozenset = EXCLUDED_EXTENSIONS

    def process(self, path):
        path = Path(path)
        if not is_uploadable(path):
            logger.debug("not a file, ignoring: %s", path)
            return Outcome(path, FileState.IGNORED)
        if is_excluded(path, self.excluded_extensions):
            logger.info("excluded: %s", path)
            return Outcome(path, FileState.EXCLUDED)

        try:
            stat = path.stat()
        except OSError as exc:
            raise IOFailure('cannot stat {0}: {1}'.format(path, exc), path=path) from exc
        fingerprint = hash_file(path, self.algorithm)
        logger.info("%s sha: %s", path, fingerprint)

        record = self.index.lookup(fingerprint)
        if record is not None:
            logger.info("already stored: name:%s, type:%s, path:%s, modify_time:%s",
                        record.stored_name, record.content_type, record.remote_prefix, record.modified_at)
            return Outcome(path, FileState.SKIPPED, record)

        modified = mtime_of(stat)
        timestamp = timestamp_string(modified)
        record = FileRecord(fingerprint=fingerprint,
                            stored_name=add_timestamp_suffix(path.name, timestamp),
                            content_type=content_type_for(path),
                            remote_prefix=remote_prefix(modified),
                            modified_at=timestamp)
        logger.info("uploading %s as %s (type %r)", path, record.key, record.content_type)
        size = self.store.put_file(self.bucket, record.key, str(path), record.content_type)
        logger.info("uploaded %s, %s", record.key, humanize.naturalsize(size))
        try:
            self.index.put(fingerprint, record)
        except IndexWriteFailure:
            logger.error("%s was stored as %s but is not indexed", path, record.key)
            raise
        return Outcome(path, FileState.INDEXED, record, size)

    def run(self, paths):
        """Process `paths` in order; return a :class:`RunSummary`."""
        summary = RunSummary()
        for path in paths:
            summary.add(self.process(path))
        logger.info("done: %s", summary)
        return summary
