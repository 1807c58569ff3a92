"""Exceptions raised by hashupload.

Nothing in the package recovers from these; they propagate to the caller
(the CLI logs them and exits non-zero).
"""


class HashUploadError(Exception):
    """Base class for all hashupload errors."""


class ConfigInvalid(HashUploadError):
    """Configuration is missing a required field or holds a bad value."""


class IOFailure(HashUploadError):
    """A local file could not be opened, stat'ed or read to completion."""

    def __init__(self, message, path=None):
        super().__init__(message)
        self.path = path


class IndexUnavailable(HashUploadError):
    """The index could not be opened or read."""

    def __init__(self, message, fingerprint=None):
        super().__init__(message)
        self.fingerprint = fingerprint


class IndexWriteFailure(HashUploadError):
    """A record could not be durably written to the index."""

    def __init__(self, message, fingerprint=None):
        super().__init__(message)
        self.fingerprint = fingerprint


class UploadFailure(HashUploadError):
    """The object store rejected or failed an upload."""

    def __init__(self, message, path=None, key=None):
        super().__init__(message)
        self.path = path
        self.key = key


class EncodingFailure(HashUploadError):
    """A record could not be serialized or deserialized."""

    def __init__(self, message, fingerprint=None):
        super().__init__(message)
        self.fingerprint = fingerprint
