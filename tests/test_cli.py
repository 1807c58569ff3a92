# -*- coding: utf-8 -*-

import logging

import pytest
from click.testing import CliRunner

import hashupload.cli.cli as cli_module
from hashupload import FileRecord, Index
from hashupload.cli.cli import cli
from hashupload.config import ENV_PREFIX
from conftest import RecordingStore, write_file

FOO_SHA256 = '2c26b46b68ffc68ff99b453c1d30413413422d706483bfa0f98a5e886266e7ae'


@pytest.fixture
def settings_env(monkeypatch, tmpdir, source):
    db_path = str(tmpdir.join('index'))
    values = {
        'ENDPOINT': 'localhost:9000',
        'ACCESS_KEY_ID': 'minioadmin',
        'SECRET_ACCESS_KEY': 'minioadmin',
        'BUCKET_NAME': 'backup',
        'DB_PATH': db_path,
        'UPLOAD_PATH': str(source),
    }
    for name, value in values.items():
        monkeypatch.setenv(ENV_PREFIX + name, value)
    return values


@pytest.fixture
def fake_store(monkeypatch):
    store = RecordingStore()

    class FakeMinioStore():
        @classmethod
        def from_settings(cls, settings):
            return store

    monkeypatch.setattr(cli_module, 'MinioStore', FakeMinioStore)
    return store


def invoke(tmpdir, *args):
    env_file = str(tmpdir.join('absent.env'))
    return CliRunner().invoke(cli, ['--env-file', env_file] + list(args))


def test_cli_hash(tmpdir, source):
    path = write_file(source, 'foo.txt', b'foo')
    result = invoke(tmpdir, 'hash', str(path))
    assert result.exit_code == 0
    assert result.stdout == '{0} {1}\n'.format(FOO_SHA256, path)


def test_cli_upload(tmpdir, source, settings_env, fake_store):
    write_file(source, 'a.txt', b'hello')
    write_file(source, 'b.txt', b'hello')
    write_file(source, 'c.zip', b'PK')

    result = invoke(tmpdir, 'upload')
    assert result.exit_code == 0, result.output
    assert [call[1] for call in fake_store.calls] == ['202401/a-20240131153000.txt']
    assert all(call[0] == 'backup' for call in fake_store.calls)

    result = invoke(tmpdir, 'upload', str(source))
    assert result.exit_code == 0, result.output
    assert len(fake_store.calls) == 1


def test_cli_upload_failure_exits_nonzero(tmpdir, source, settings_env, fake_store):
    write_file(source, 'a.txt', b'hello')
    fake_store.fail = True
    result = invoke(tmpdir, 'upload')
    assert result.exit_code == 1
    with Index.open(settings_env['DB_PATH']) as index:
        assert list(index) == []


def test_cli_missing_config(tmpdir, monkeypatch, fake_store):
    for name in ('ENDPOINT', 'ACCESS_KEY_ID', 'SECRET_ACCESS_KEY', 'BUCKET_NAME', 'DB_PATH', 'UPLOAD_PATH'):
        monkeypatch.delenv(ENV_PREFIX + name, raising=False)
    result = invoke(tmpdir, 'upload')
    assert result.exit_code == 1
    assert fake_store.calls == []


def test_cli_lookup_and_iterate(tmpdir, settings_env):
    record = FileRecord(fingerprint=FOO_SHA256, stored_name='foo-20240131153000.txt',
                        content_type='text/plain', remote_prefix='202401/',
                        modified_at='20240131153000')
    with Index.open(settings_env['DB_PATH']) as index:
        index.put(FOO_SHA256, record)

    expected = '{0} 202401/foo-20240131153000.txt text/plain 20240131153000\n'.format(FOO_SHA256)
    missing = 'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'

    result = invoke(tmpdir, 'lookup', FOO_SHA256.upper(), missing)
    assert result.exit_code == 0, result.output
    assert result.stdout == expected + missing + ' not found\n'

    result = invoke(tmpdir, 'iterate')
    assert result.exit_code == 0, result.output
    assert result.stdout == expected


def test_cli_lookup_invalid_digest(tmpdir, settings_env):
    result = invoke(tmpdir, 'lookup', 'invalid')
    assert result.exit_code == 2


def test_cli_error_logs_cause(tmpdir, source, settings_env, fake_store, caplog):
    write_file(source, 'a.txt', b'hello')
    fake_store.fail = True
    fake_store.cause = ConnectionResetError('peer went away')
    caplog.set_level(logging.ERROR)
    result = invoke(tmpdir, 'upload')
    assert result.exit_code == 1
    errors = [record.getMessage() for record in caplog.records if record.levelno == logging.ERROR]
    assert any('refused 202401/a-20240131153000.txt' in message and 'peer went away' in message
               for message in errors)
