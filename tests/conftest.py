# -*- coding: utf-8 -*-

import os
from datetime import datetime

import pytest

from hashupload import Index, Uploader
from hashupload.errors import IndexWriteFailure, UploadFailure

MTIME = datetime(2024, 1, 31, 15, 30, 0)


class RecordingStore():
    """Object store double that remembers every put_file call."""

    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail
        self.cause = None

    def put_file(self, bucket, key, local_path, content_type):
        self.calls.append((bucket, key, local_path, content_type))
        if self.fail:
            raise UploadFailure('refused ' + key, path=local_path, key=key) from self.cause
        return os.path.getsize(local_path)


class CrashingIndex():
    """Wraps an Index and fails every put, as if the process died after the upload."""

    def __init__(self, index):
        self.index = index

    def lookup(self, fingerprint):
        return self.index.lookup(fingerprint)

    def put(self, fingerprint, record):
        raise IndexWriteFailure('disk went away', fingerprint=fingerprint)


def write_file(directory, name, content, mtime=MTIME):
    path = directory.join(name)
    path.write_binary(content)
    os.utime(str(path), (mtime.timestamp(), mtime.timestamp()))
    return path


@pytest.fixture
def source(tmpdir):
    return tmpdir.mkdir('source')


@pytest.fixture
def index_path(tmpdir):
    return str(tmpdir.join('index'))


@pytest.fixture
def index(index_path):
    with Index.open(index_path) as index:
        yield index


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def uploader(index, store):
    return Uploader(index=index, store=store, bucket='bucket')
