"""Tests for the S3 adapter using botocore's Stubber."""

import pytest
from botocore.stub import Stubber

from docgen.adapters.storage.s3 import S3ObjectStorage
from docgen.core.errors import NotFound, StorageFailure


@pytest.fixture
def storage():
    return S3ObjectStorage(region="us-east-1")


@pytest.mark.asyncio
async def test_put_stringifies_metadata(storage):
    with Stubber(storage.s3_client) as stub:
        stub.add_response("put_object", {}, {
            "Bucket": "docs",
            "Key": "documents/f/a.pdf",
            "Body": b"%PDF-",
            "ContentType": "application/pdf",
            "Metadata": {"fileId": "f", "size": "5"},
        })
        await storage.put("docs", "documents/f/a.pdf", b"%PDF-", "application/pdf", metadata={"fileId": "f", "size": 5})
        stub.assert_no_pending_responses()


@pytest.mark.asyncio
async def test_missing_object_is_not_found(storage):
    with Stubber(storage.s3_client) as stub:
        stub.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
        with pytest.raises(NotFound):
            await storage.get("docs", "documents/f/missing.pdf")


@pytest.mark.asyncio
async def test_exists(storage):
    with Stubber(storage.s3_client) as stub:
        stub.add_response("head_object", {"ContentLength": 3})
        stub.add_client_error("head_object", service_error_code="404", http_status_code=404)
        assert await storage.exists("out", "outputs/a") is True
        assert await storage.exists("out", "outputs/b") is False


@pytest.mark.asyncio
async def test_access_denied_is_storage_failure(storage):
    with Stubber(storage.s3_client) as stub:
        stub.add_client_error("get_object", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(StorageFailure):
            await storage.get("docs", "documents/f/a.pdf")
        stub.assert_no_pending_responses()


@pytest.mark.asyncio
async def test_presigned_urls(storage):
    url = await storage.presign_get("out", "outputs/f/x.xlsx", 600)
    assert "outputs/f/x.xlsx" in url
    assert "X-Amz-Expires=600" in url

    url = await storage.presign_put("docs", "documents/f/a.pdf", "application/pdf", 3600)
    assert "X-Amz-Expires=3600" in url
