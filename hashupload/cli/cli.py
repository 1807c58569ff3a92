#!/usr/bin/env python3

import hashlib
import logging
import sys
from pathlib import Path

import click

from hashupload import HashUploadError
from hashupload import Index
from hashupload import PathIterator
from hashupload import Uploader
from hashupload import hash_readable
from hashupload.config import DEFAULT_ENV_FILE
from hashupload.config import load_settings
from hashupload.store import MinioStore

logger = logging.getLogger('hashupload')

ALGS = list(hashlib.algorithms_guaranteed)
ALGS.sort()


def fail(ctx, exc):
    if exc.__cause__ is not None:
        logger.error("error: %s (caused by: %r)", exc, exc.__cause__)
    else:
        logger.error("error: %s", exc)
    ctx.exit(1)


def print_record(record):
    print(record.fingerprint, record.key, record.content_type or '-', record.modified_at)


@click.group()
@click.option('--env-file', type=click.Path(dir_okay=False), default=DEFAULT_ENV_FILE,
              show_default=True, help="dotenv file with HASHUPLOAD_* settings")
@click.option('--verbose', is_flag=True)
@click.pass_context
def cli(ctx, env_file, verbose):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
                        stream=sys.stderr)
    ctx.obj = {'env_file': env_file}


@cli.command()
@click.argument("source", type=click.Path(exists=True, file_okay=False, resolve_path=True), required=False)
@click.pass_context
def upload(ctx, source):
    """Upload every new file below SOURCE (default: the configured upload path)."""
    try:
        settings = load_settings(ctx.obj['env_file'])
        store = MinioStore.from_settings(settings)
        root = Path(source) if source else settings.upload_path
        logger.info("uploading %s to bucket %s", root, settings.bucket_name)
        with Index.open(settings.db_path) as index:
            uploader = Uploader(index=index, store=store, bucket=settings.bucket_name)
            uploader.run(PathIterator(path=root))
    except HashUploadError as exc:
        fail(ctx, exc)


@cli.command(name='hash')
@click.argument("infiles", type=click.File(mode='rb'), nargs=-1)
@click.option('--algorithm', type=click.Choice(ALGS), default='sha256', show_default=True)
def hash_command(infiles, algorithm):
    """Print the fingerprint of each file."""
    for infile in infiles:
        print(hash_readable(infile, algorithm), infile.name)


@cli.command()
@click.argument("digests", type=str, nargs=-1)
@click.pass_context
def lookup(ctx, digests):
    """Print the stored record for each digest."""
    try:
        settings = load_settings(ctx.obj['env_file'])
        with Index.open(settings.db_path) as index:
            for digest in digests:
                try:
                    record = index.lookup(digest.lower())
                except ValueError as exc:
                    raise click.BadParameter(str(exc), param_hint='DIGESTS')
                if record is None:
                    print(digest, "not found")
                else:
                    print_record(record)
    except HashUploadError as exc:
        fail(ctx, exc)


@cli.command()
@click.pass_context
def iterate(ctx):
    """Print every record in the index."""
    try:
        settings = load_settings(ctx.obj['env_file'])
        with Index.open(settings.db_path) as index:
            for record in index:
                print_record(record)
    except HashUploadError as exc:
        fail(ctx, exc)


if __name__ == '__main__':
    cli()
