# -*- coding: utf-8 -*-
"""Define project metadata
"""

__title__ = 'hashupload'
__summary__ = 'Deduplicating uploader from a directory tree to an S3 compatible object store.'
__url__ = ''

__version__ = '0.1.0'

__install_requires__ = ['attrs', 'click', 'humanize', 'minio', 'pydantic', 'pydantic-settings', 'urllib3']
__tests_require__ = ['pytest']

__author__ = 'hashupload developers'
__email__ = ''

__license__ = 'MIT License'
