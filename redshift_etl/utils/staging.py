"""
Staging stores for record streams.

Records are written as delimited text (optionally gzip-compressed) so the
COPY command can read them back with matching DELIMITER/CSV options.
LocalStagingStore writes to a directory and is meant for debugging and
tests; S3StagingStore uploads to the bucket the cluster loads from.
"""

import csv
import datetime
import gzip
import logging
import os
import shutil
import tempfile
import time
from typing import Any, Iterable, Optional, Sequence, TextIO, Tuple

import boto3

from redshift_etl.core.interfaces import StagingStore
from redshift_etl.models.credentials import AWSCredentials

PART_FILE_NAME = 'part-00000'


def _format_value(value: Any) -> Any:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, datetime.datetime):
        return value.isoformat(sep=' ')
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    return value


def write_delimited(records: Iterable[Sequence[Any]], stream: TextIO,
                    delimiter: str = ',', quote_char: str = '"') -> int:
    """
    Write records as delimited lines.

    Args:
        records: Record stream, one sequence of values per row
        stream: Text stream opened with newline=''
        delimiter: Field delimiter
        quote_char: Quote character for fields that need quoting

    Returns:
        Number of records written
    """
    writer = csv.writer(stream, delimiter=delimiter, quotechar=quote_char,
                        quoting=csv.QUOTE_MINIMAL, lineterminator='\n')
    count = 0
    for record in records:
        writer.writerow([_format_value(v) for v in record])
        count += 1
    return count


class _DelimitedStagingStore(StagingStore):
    """Shared file-format settings for the concrete stores"""

    def __init__(self, delimiter: str = ',', quote_char: str = '"', compress: bool = False,
                 logger: Optional[logging.Logger] = None):
        self.delimiter = delimiter
        self.quote_char = quote_char
        self.compress = compress
        self.logger = logger or logging.getLogger(__name__)

    @property
    def part_file_name(self) -> str:
        return f"{PART_FILE_NAME}.gz" if self.compress else PART_FILE_NAME

    def _write_file(self, path: str, records: Iterable[Sequence[Any]]) -> int:
        if self.compress:
            with gzip.open(path, 'wt', encoding='utf-8', newline='', compresslevel=1) as f:
                return write_delimited(records, f, self.delimiter, self.quote_char)
        with open(path, 'w', encoding='utf-8', newline='') as f:
            return write_delimited(records, f, self.delimiter, self.quote_char)


class LocalStagingStore(_DelimitedStagingStore):
    """Stages records into a local directory"""

    def write(self, base_path: str, records: Iterable[Sequence[Any]]) -> str:
        os.makedirs(base_path, exist_ok=True)
        part_path = os.path.join(base_path, self.part_file_name)

        start_time = time.time()
        count = self._write_file(part_path, records)

        self.logger.info(
            f"Staged {count:,} records to {part_path} in {time.time() - start_time:.1f}s"
        )
        return base_path

    def delete(self, location: str) -> None:
        if os.path.isdir(location):
            shutil.rmtree(location)
            self.logger.debug(f"Removed staged data: {location}")


def parse_s3_path(path: str) -> Tuple[str, str]:
    """
    Split an s3:// URL into bucket and key prefix.

    Raises:
        ValueError: If path is not an s3:// URL with a bucket
    """
    if not path.startswith('s3://'):
        raise ValueError(f"Not an S3 path: {path}")
    bucket, _, prefix = path[len('s3://'):].partition('/')
    if not bucket:
        raise ValueError(f"No bucket in S3 path: {path}")
    return bucket, prefix.strip('/')


class S3StagingStore(_DelimitedStagingStore):
    """
    Stages records into S3.

    Records are written to a local temporary part file first and then
    uploaded with a managed (multipart when large) transfer.
    """

    def __init__(self, credentials: AWSCredentials = AWSCredentials.RUNTIME_DETERMINED,
                 region: Optional[str] = None, client=None, **kwargs):
        super().__init__(**kwargs)
        self.credentials = credentials
        self.region = region
        self._client = client

    @property
    def client(self):
        """Lazily created boto3 S3 client"""
        if self._client is None:
            client_kwargs = {}
            if self.region:
                client_kwargs['region_name'] = self.region
            if not self.credentials.is_runtime_determined:
                client_kwargs['aws_access_key_id'] = self.credentials.access_key
                client_kwargs['aws_secret_access_key'] = self.credentials.secret_key
            self._client = boto3.client('s3', **client_kwargs)
        return self._client

    def write(self, base_path: str, records: Iterable[Sequence[Any]]) -> str:
        bucket, prefix = parse_s3_path(base_path)
        key = f"{prefix}/{self.part_file_name}" if prefix else self.part_file_name

        with tempfile.TemporaryDirectory(prefix='redshift_stage_') as tmpdir:
            local_path = os.path.join(tmpdir, self.part_file_name)
            count = self._write_file(local_path, records)

            size_mb = os.path.getsize(local_path) / (1024 * 1024)
            self.logger.info(f"Uploading {count:,} records ({size_mb:.1f} MB) to s3://{bucket}/{key}")

            start_time = time.time()
            self.client.upload_file(local_path, bucket, key)
            upload_time = time.time() - start_time
            upload_rate = size_mb / upload_time if upload_time > 0 else 0
            self.logger.info(f"Upload complete in {upload_time:.1f}s ({upload_rate:.1f} MB/s)")

        return f"s3://{bucket}/{prefix}/" if prefix else f"s3://{bucket}/"

    def delete(self, location: str) -> None:
        bucket, prefix = parse_s3_path(location)
        paginator = self.client.get_paginator('list_objects_v2')

        removed = 0
        for page in paginator.paginate(Bucket=bucket, Prefix=f"{prefix}/" if prefix else ''):
            objects = [{'Key': obj['Key']} for obj in page.get('Contents', [])]
            if objects:
                self.client.delete_objects(Bucket=bucket, Delete={'Objects': objects})
                removed += len(objects)

        self.logger.debug(f"Removed {removed} staged object(s) under {location}")


def create_staging_store(staging_path: str, credentials: AWSCredentials,
                         region: Optional[str] = None, **kwargs) -> StagingStore:
    """S3 store for s3:// paths, local store for anything else"""
    if staging_path.startswith('s3://'):
        return S3StagingStore(credentials=credentials, region=region, **kwargs)
    return LocalStagingStore(**kwargs)
