"""
Tests for staging stores
"""

import datetime
import gzip
import io
import os

import pytest
from unittest.mock import MagicMock, patch

from redshift_etl.models.credentials import AWSCredentials
from redshift_etl.utils.staging import (
    LocalStagingStore,
    S3StagingStore,
    create_staging_store,
    parse_s3_path,
    write_delimited,
)


class TestWriteDelimited:
    """Record formatting"""

    def test_quoting_and_nulls(self):
        stream = io.StringIO()
        count = write_delimited([(1, 'a,b', None), (2, 'say "hi"', True)], stream)

        assert count == 2
        assert stream.getvalue() == '1,"a,b",\n2,"say ""hi""",true\n'

    def test_custom_delimiter_and_dates(self):
        stream = io.StringIO()
        write_delimited([(datetime.date(2024, 1, 31), datetime.datetime(2024, 1, 31, 12, 30))],
                        stream, delimiter='|')
        assert stream.getvalue() == '2024-01-31|2024-01-31 12:30:00\n'


class TestLocalStagingStore:
    """Directory-backed staging"""

    def test_write_and_delete(self, temp_dir):
        store = LocalStagingStore()
        base = str(temp_dir / 'users' / 'abc')

        location = store.write(base, [(1, 'ada'), (2, 'grace')])

        assert location == base
        with open(os.path.join(base, 'part-00000')) as f:
            assert f.read() == '1,ada\n2,grace\n'

        store.delete(location)
        assert not os.path.exists(base)

    def test_gzip(self, temp_dir):
        store = LocalStagingStore(compress=True, delimiter='\t')
        base = str(temp_dir / 'stage')

        store.write(base, [(1, 'ada')])

        with gzip.open(os.path.join(base, 'part-00000.gz'), 'rt') as f:
            assert f.read() == '1\tada\n'

    def test_delete_missing_is_noop(self, temp_dir):
        LocalStagingStore().delete(str(temp_dir / 'missing'))


class TestS3StagingStore:
    """S3 staging against a mocked client"""

    def test_parse_s3_path(self):
        assert parse_s3_path('s3://bucket/a/b/') == ('bucket', 'a/b')
        assert parse_s3_path('s3://bucket') == ('bucket', '')
        with pytest.raises(ValueError):
            parse_s3_path('/tmp/x')
        with pytest.raises(ValueError):
            parse_s3_path('s3:///x')

    def test_write_uploads_part_file(self):
        client = MagicMock()
        uploaded = {}

        def upload_file(path, bucket, key):
            with open(path) as f:
                uploaded[(bucket, key)] = f.read()

        client.upload_file.side_effect = upload_file
        store = S3StagingStore(client=client)

        location = store.write('s3://bucket/stage/users/abc', [(1, 'ada')])

        assert location == 's3://bucket/stage/users/abc/'
        assert uploaded == {('bucket', 'stage/users/abc/part-00000'): '1,ada\n'}

    def test_delete_removes_prefix(self):
        client = MagicMock()
        paginator = MagicMock()
        paginator.paginate.return_value = [
            {'Contents': [{'Key': 'stage/users/abc/part-00000'}]},
            {},
        ]
        client.get_paginator.return_value = paginator
        store = S3StagingStore(client=client)

        store.delete('s3://bucket/stage/users/abc/')

        paginator.paginate.assert_called_once_with(Bucket='bucket', Prefix='stage/users/abc/')
        client.delete_objects.assert_called_once_with(
            Bucket='bucket', Delete={'Objects': [{'Key': 'stage/users/abc/part-00000'}]}
        )

    @patch('redshift_etl.utils.staging.boto3.client')
    def test_client_uses_explicit_credentials(self, mock_client):
        store = S3StagingStore(credentials=AWSCredentials('AKIA', 'secret'), region='eu-west-1')

        store.client

        mock_client.assert_called_once_with(
            's3', region_name='eu-west-1', aws_access_key_id='AKIA', aws_secret_access_key='secret'
        )

    @patch('redshift_etl.utils.staging.boto3.client')
    def test_client_uses_ambient_credentials(self, mock_client):
        S3StagingStore().client
        mock_client.assert_called_once_with('s3')


class TestCreateStagingStore:
    def test_local(self):
        store = create_staging_store('/tmp/stage', AWSCredentials.RUNTIME_DETERMINED, region='x', compress=True)
        assert isinstance(store, LocalStagingStore)
        assert store.compress is True

    def test_s3(self):
        store = create_staging_store('s3://bucket/stage', AWSCredentials('a', 'b'), region='us-east-1')
        assert isinstance(store, S3StagingStore)
        assert store.region == 'us-east-1'
