"""Tests for transcript_processor.storage.object_store module."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from transcript_processor.storage.object_store import ObjectStorageClient
from transcript_processor.utils.errors import StorageError


def _make_client():
    """Create a client with a mocked boto3 s3 client."""
    with patch("transcript_processor.storage.object_store.boto3") as mock_boto:
        mock_s3 = MagicMock()
        mock_boto.client.return_value = mock_s3
        client = ObjectStorageClient(
            endpoint_url="https://storage.example.com",
            bucket="audio-files",
            access_key_id="key-id",
            secret_access_key="secret-key",
        )
    return client, mock_s3, mock_boto


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "failed"}}, "PutObject")


class TestObjectStorageClientInit:
    """Tests for ObjectStorageClient initialization."""

    def test_builds_s3_client_for_endpoint(self) -> None:
        client, _, mock_boto = _make_client()

        assert client.bucket == "audio-files"
        assert client.region == "us-east-1"
        mock_boto.client.assert_called_once_with(
            "s3",
            endpoint_url="https://storage.example.com",
            aws_access_key_id="key-id",
            aws_secret_access_key="secret-key",
            region_name="us-east-1",
        )

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STORAGE_ENDPOINT", "https://env.example.com")
        monkeypatch.setenv("STORAGE_BUCKET", "env-bucket")
        monkeypatch.setenv("STORAGE_REGION", "eu-west-1")
        with patch("transcript_processor.storage.object_store.boto3"):
            client = ObjectStorageClient()
        assert client.endpoint_url == "https://env.example.com"
        assert client.bucket == "env-bucket"
        assert client.region == "eu-west-1"

    def test_missing_endpoint_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("STORAGE_ENDPOINT", raising=False)
        with pytest.raises(StorageError, match="STORAGE_ENDPOINT is required") as exc:
            ObjectStorageClient(bucket="b")
        assert exc.value.operation == "init"

    def test_missing_bucket_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("STORAGE_BUCKET", raising=False)
        with pytest.raises(StorageError, match="STORAGE_BUCKET is required"):
            ObjectStorageClient(endpoint_url="https://storage.example.com")


class TestObjectStorageClientUpload:
    """Tests for ObjectStorageClient.upload()."""

    def test_upload_puts_object(self) -> None:
        client, mock_s3, _ = _make_client()

        path = client.upload("transcriptions/a.mp3", b"bytes", "audio/mpeg")

        assert path == "transcriptions/a.mp3"
        mock_s3.put_object.assert_called_once_with(
            Bucket="audio-files",
            Key="transcriptions/a.mp3",
            Body=b"bytes",
            ContentType="audio/mpeg",
        )

    def test_upload_without_content_type(self) -> None:
        client, mock_s3, _ = _make_client()
        client.upload("json/a.json", b"{}")
        assert "ContentType" not in mock_s3.put_object.call_args.kwargs

    def test_upload_error_raises_storage_error(self) -> None:
        client, mock_s3, _ = _make_client()
        mock_s3.put_object.side_effect = _client_error("AccessDenied")

        with pytest.raises(StorageError, match="AccessDenied") as exc:
            client.upload("transcriptions/a.mp3", b"bytes")
        assert exc.value.operation == "upload"


class TestObjectStorageClientRemove:
    """Tests for ObjectStorageClient.remove()."""

    def test_remove_deletes_all_keys(self) -> None:
        client, mock_s3, _ = _make_client()
        mock_s3.delete_objects.return_value = {}

        client.remove(["a", "b"])

        mock_s3.delete_objects.assert_called_once_with(
            Bucket="audio-files",
            Delete={"Objects": [{"Key": "a"}, {"Key": "b"}], "Quiet": True},
        )

    def test_remove_nothing_makes_no_call(self) -> None:
        client, mock_s3, _ = _make_client()
        client.remove([])
        mock_s3.delete_objects.assert_not_called()

    def test_partial_failure_raises(self) -> None:
        client, mock_s3, _ = _make_client()
        mock_s3.delete_objects.return_value = {"Errors": [{"Key": "b", "Code": "X"}]}

        with pytest.raises(StorageError, match="Failed to remove objects: b") as exc:
            client.remove(["a", "b"])
        assert exc.value.operation == "remove"

    def test_request_failure_raises(self) -> None:
        client, mock_s3, _ = _make_client()
        mock_s3.delete_objects.side_effect = _client_error("InternalError")

        with pytest.raises(StorageError, match="InternalError"):
            client.remove(["a"])
