"""Object store client.

The pipeline only needs ``put_file(bucket, key, local_path, content_type)``
returning the number of bytes stored; :class:`MinioStore` provides it on top
of an S3 compatible endpoint.
"""

import logging
import os
from typing import Optional

import attr
import urllib3
from minio import Minio
from minio.error import MinioException

from .errors import ConfigInvalid, UploadFailure

logger = logging.getLogger(__name__)


def connect_minio(endpoint, access_key, secret_key, secure=False, timeout=None) -> Minio:
    if not endpoint:
        raise ConfigInvalid("object store endpoint not specified")
    if not access_key or not secret_key:
        raise ConfigInvalid("object store access key or secret key not specified")
    http_client = None
    if timeout:
        http_client = urllib3.PoolManager(timeout=urllib3.Timeout(connect=timeout, read=timeout),
                                          retries=urllib3.Retry(total=3, backoff_factor=0.2,
                                                                status_forcelist=[500, 502, 503, 504]))
    try:
        return Minio(endpoint, access_key=access_key, secret_key=secret_key,
                     secure=secure, http_client=http_client)
    except ValueError as exc:
        raise ConfigInvalid("Cannot connect to object store {0!r}: {1}".format(endpoint, exc)) from exc


@attr.s(auto_attribs=True)
class MinioStore():
    """Upload files to a MinIO/S3 bucket."""
    client: Minio

    @classmethod
    def from_settings(cls, settings):
        return cls(connect_minio(settings.endpoint,
                                 settings.access_key_id,
                                 settings.secret_access_key.get_secret_value(),
                                 secure=settings.secure,
                                 timeout=settings.upload_timeout))

    def put_file(self, bucket: str, key: str, local_path, content_type: Optional[str]) -> int:
        """Store `local_path` as `key` in `bucket`, returning its size.

        An empty `content_type` is left to the client's default.
        """
        local_path = os.fspath(local_path)
        try:
            size = os.path.getsize(local_path)
            kwargs = {'content_type': content_type} if content_type else {}
            result = self.client.fput_object(bucket, key, local_path, **kwargs)
        except (MinioException, urllib3.exceptions.HTTPError, OSError) as exc:
            raise UploadFailure("upload of {0} to {1}/{2} failed: {3}".format(local_path, bucket, key, exc),
                                path=local_path, key=key) from exc
        logger.debug("stored %s/%s etag=%s version=%s", bucket, key,
                     getattr(result, 'etag', None), getattr(result, 'version_id', None))
        return size
