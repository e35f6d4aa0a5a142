"""Tests for blob stores. S3 logic runs against a stub client, no endpoint needed."""

from __future__ import annotations

import io

import pytest
from botocore.exceptions import ClientError, ParamValidationError

from vaultfs.blob import BlobService, LocalBlobService, MemoryBlobService, S3BlobService
from vaultfs.errors import BlobExistsError, StorageBackendError


@pytest.fixture(params=["memory", "local"])
def blobs(request, tmp_path):
    if request.param == "memory":
        return MemoryBlobService()
    return LocalBlobService(tmp_path / "blobs")


def _read(blobs, name):
    data = blobs.get(name)
    assert data is not None
    with data:
        return data.read()


class TestBlobService:
    def test_satisfies_protocol(self, blobs):
        assert isinstance(blobs, BlobService)

    def test_missing(self, blobs):
        assert blobs.get("abcd") is None

    def test_put_and_get(self, blobs):
        assert blobs.get("abcd") is None
        blobs.put("abcd", io.BytesIO(b"result_abcd"))
        assert _read(blobs, "abcd") == b"result_abcd"
        assert blobs.get("efgh") is None

        blobs.put("efgh", io.BytesIO(b"result_efgh"))
        blobs.put("ijkl", io.BytesIO(b"result_ijkl"))
        assert _read(blobs, "abcd") == b"result_abcd"
        assert _read(blobs, "efgh") == b"result_efgh"
        assert _read(blobs, "ijkl") == b"result_ijkl"

    def test_put_existing_fails(self, blobs):
        blobs.put("abcd", io.BytesIO(b"first"))
        with pytest.raises(BlobExistsError):
            blobs.put("abcd", io.BytesIO(b"second"))
        assert _read(blobs, "abcd") == b"first"


class TestLocalBlobService:
    def test_sharded_layout(self, tmp_path):
        blobs = LocalBlobService(tmp_path)
        blobs.put("abcdef", io.BytesIO(b"data"))

        assert (tmp_path / "ab" / "abcdef").read_bytes() == b"data"
        assert [p.name for p in (tmp_path / "ab").iterdir()] == ["abcdef"]

    def test_store_name_includes_root(self, tmp_path):
        assert LocalBlobService(tmp_path).store == f"file:{tmp_path}"
        assert LocalBlobService(tmp_path, store="backups").store == "backups"

    @pytest.mark.parametrize("name", ["", "../x", "a/b", ".hidden"])
    def test_rejects_unsafe_names(self, tmp_path, name):
        with pytest.raises(StorageBackendError):
            LocalBlobService(tmp_path).put(name, io.BytesIO(b"data"))


def _client_error(code, operation):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class _StubS3:
    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.calls: list[dict] = []
        self.fail_with: Exception | None = None

    def put_object(self, **kwargs):
        self.calls.append(kwargs)
        if self.fail_with is not None:
            raise self.fail_with
        key = kwargs["Key"]
        if kwargs.get("IfNoneMatch") == "*" and key in self.objects:
            raise _client_error("PreconditionFailed", "PutObject")
        self.objects[key] = kwargs["Body"].read()
        return {"ETag": '"etag"'}

    def get_object(self, *, Bucket, Key):
        if self.fail_with is not None:
            raise self.fail_with
        if Key not in self.objects:
            raise _client_error("NoSuchKey", "GetObject")
        return {"Body": io.BytesIO(self.objects[Key])}


class TestS3BlobService:
    @pytest.fixture
    def stub(self):
        return _StubS3()

    @pytest.fixture
    def s3_blobs(self, stub):
        return S3BlobService(bucket="backups", prefix="/objects/", client=stub)

    def test_store_name(self, s3_blobs):
        assert s3_blobs.store == "s3:backups/objects"
        assert S3BlobService(bucket="b", client=_StubS3()).store == "s3:b"

    def test_put_uses_conditional_create(self, s3_blobs, stub):
        s3_blobs.put("abcd", io.BytesIO(b"data"))

        assert stub.calls[0]["Bucket"] == "backups"
        assert stub.calls[0]["Key"] == "objects/abcd"
        assert stub.calls[0]["IfNoneMatch"] == "*"
        assert stub.objects == {"objects/abcd": b"data"}

    def test_put_existing_fails(self, s3_blobs):
        s3_blobs.put("abcd", io.BytesIO(b"data"))
        with pytest.raises(BlobExistsError):
            s3_blobs.put("abcd", io.BytesIO(b"data"))

    def test_get(self, s3_blobs):
        assert s3_blobs.get("abcd") is None
        s3_blobs.put("abcd", io.BytesIO(b"data"))
        assert s3_blobs.get("abcd").read() == b"data"

    def test_unsupported_conditional_write(self, s3_blobs, stub):
        stub.fail_with = ParamValidationError(report="Unknown parameter IfNoneMatch")
        with pytest.raises(StorageBackendError, match="conditional write"):
            s3_blobs.put("abcd", io.BytesIO(b"data"))

    def test_other_errors_are_wrapped(self, s3_blobs, stub):
        stub.fail_with = _client_error("AccessDenied", "PutObject")
        with pytest.raises(StorageBackendError) as exc_info:
            s3_blobs.put("abcd", io.BytesIO(b"data"))
        assert isinstance(exc_info.value.__cause__, ClientError)

        with pytest.raises(StorageBackendError):
            s3_blobs.get("abcd")
