"""Remote object naming.

Objects are bucketed by the month of their source file's modification time
and renamed with the full timestamp so that two files sharing a name never
share a key.
"""

import os
from datetime import datetime

TIMESTAMP_FORMAT = '%Y%m%d%H%M%S'
PREFIX_FORMAT = '%Y%m'
SEPARATOR = '/'


def timestamp_string(when: datetime) -> str:
    return when.strftime(TIMESTAMP_FORMAT)


def remote_prefix(when: datetime) -> str:
    """Return the ``YYYYMM/`` prefix objects modified at `when` go under."""
    return when.strftime(PREFIX_FORMAT) + SEPARATOR


def add_timestamp_suffix(filename: str, timestamp: str) -> str:
    """Insert `timestamp` between the stem and the extension of `filename`.

    >>> add_timestamp_suffix('report.pdf', '20240131153000')
    'report-20240131153000.pdf'
    >>> add_timestamp_suffix('README', '20240131153000')
    'README-20240131153000'
    """
    stem, ext = os.path.splitext(filename)
    return '{0}-{1}{2}'.format(stem, timestamp, ext)


def mtime_of(stat_result) -> datetime:
    """Local-time modification datetime of an ``os.stat`` result."""
    return datetime.fromtimestamp(stat_result.st_mtime)
