from __future__ import annotations

import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, ConnectTimeoutError, ReadTimeoutError

from objstore.exceptions import MaxRetriesReached, MissingBucketError, TransientTimeoutError
from objstore.service import BackendType, ServiceConfig, StorageService
from objstore.storage.s3 import S3Client


def _boto_client() -> MagicMock:
    client = MagicMock()
    client.meta.endpoint_url = "https://s3.amazonaws.com"
    return client


def _timeout() -> ClientError:
    return ClientError({"Error": {"Code": "RequestTimeout", "Message": "Your socket connection timed out"}}, "PutObject")


def test_default_bucket_is_bound():
    boto_client = _boto_client()
    S3Client(boto_client, default_bucket="vizual").put_object({"Key": "k", "Body": b"x"})
    boto_client.put_object.assert_called_once_with(Bucket="vizual", Key="k", Body=b"x")


def test_explicit_bucket_overrides_default():
    boto_client = _boto_client()
    S3Client(boto_client, default_bucket="vizual").delete_object({"Bucket": "other", "Key": "k"})
    boto_client.delete_object.assert_called_once_with(Bucket="other", Key="k")


def test_missing_bucket_fails_before_request():
    boto_client = _boto_client()
    with pytest.raises(MissingBucketError):
        S3Client(boto_client).get_object({"Key": "k"})
    boto_client.get_object.assert_not_called()


def test_get_object_reads_streaming_body():
    boto_client = _boto_client()
    stream = MagicMock()
    stream.read.return_value = b"contents"
    boto_client.get_object.return_value = {"Body": stream, "ContentLength": 8}

    result = S3Client(boto_client, default_bucket="b").get_object({"Key": "k"})

    assert result["Body"] == b"contents"
    stream.close.assert_called_once()


@pytest.mark.parametrize("error", [ReadTimeoutError(endpoint_url="https://s3"), ConnectTimeoutError(endpoint_url="https://s3")])
def test_connection_timeouts_become_transient(error):
    boto_client = _boto_client()
    boto_client.put_object.side_effect = error

    with pytest.raises(TransientTimeoutError) as excinfo:
        S3Client(boto_client, default_bucket="b").put_object({"Key": "k", "Body": b"x"})

    assert excinfo.value.__cause__ is error


def test_upload_maps_options_to_transfer_config():
    boto_client = _boto_client()
    client = S3Client(boto_client, default_bucket="b")

    result = client.upload(
        {"Key": "dir/big file.bin", "Body": b"abc", "ContentType": "application/octet-stream"},
        {"partSize": 8 * 1024 * 1024, "queueSize": 2, "leavePartsOnError": True},
    )

    kwargs = boto_client.upload_fileobj.call_args.kwargs
    assert kwargs["Bucket"] == "b"
    assert kwargs["Key"] == "dir/big file.bin"
    assert kwargs["ExtraArgs"] == {"ContentType": "application/octet-stream"}
    assert kwargs["Fileobj"].read() == b"abc"
    assert kwargs["Config"].multipart_chunksize == 8 * 1024 * 1024
    assert kwargs["Config"].max_concurrency == 2
    assert result["Location"] == "https://s3.amazonaws.com/b/dir/big%20file.bin"


def test_upload_passes_file_objects_through():
    boto_client = _boto_client()
    body = io.BytesIO(b"abc")
    S3Client(boto_client, default_bucket="b").upload({"Key": "k", "Body": body})

    kwargs = boto_client.upload_fileobj.call_args.kwargs
    assert kwargs["Fileobj"] is body
    assert kwargs["ExtraArgs"] is None
    assert kwargs["Config"] is None


def _service(boto_client: MagicMock, **overrides) -> StorageService:
    config = ServiceConfig(
        backend_type=BackendType.REMOTE,
        base_url_without_bucket="https://s3.amazonaws.com",
        bucket="vizualai-test",
        **overrides,
    )
    return StorageService(S3Client(boto_client, default_bucket="vizualai-test"), config)


@pytest.mark.asyncio()
async def test_service_retries_request_timeouts():
    boto_client = _boto_client()
    boto_client.put_object.side_effect = [_timeout(), _timeout(), {"ETag": '"1"'}]

    result = await _service(boto_client, key_prefix="p").put_object({"Key": "x", "Body": b"d"})

    assert result == {"ETag": '"1"'}
    assert boto_client.put_object.call_count == 3
    boto_client.put_object.assert_called_with(Bucket="vizualai-test", Key="p/x", Body=b"d")


@pytest.mark.asyncio()
async def test_service_stops_at_retry_budget():
    boto_client = _boto_client()
    boto_client.put_object.side_effect = _timeout()

    with pytest.raises(MaxRetriesReached) as excinfo:
        await _service(boto_client, max_retries_on_timeout=2).put_object({"Key": "x", "Body": b"d"})

    assert boto_client.put_object.call_count == 2
    assert "max retries (2)" in str(excinfo.value)


@pytest.mark.asyncio()
async def test_service_surfaces_no_such_key():
    boto_client = _boto_client()
    boto_client.get_object.side_effect = ClientError(
        {"Error": {"Code": "NoSuchKey", "Message": "The specified key does not exist."}}, "GetObject"
    )

    with pytest.raises(ClientError) as excinfo:
        await _service(boto_client).get_object({"Key": "some/key/up/there.txt"})

    assert excinfo.value.response["Error"]["Code"] == "NoSuchKey"
