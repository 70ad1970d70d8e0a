from datetime import datetime, timezone

import pytest

from infrastructure.external.storage import StorageConfig
from infrastructure.external.storage.providers.s3 import S3Provider


class PagedS3Client:
    """Stands in for a boto3 client; serves ListObjectsV2 in fixed pages."""

    def __init__(self, keys, page_size=2):
        self.keys = sorted(keys)
        self.page_size = page_size
        self.calls = []

    def list_objects_v2(self, **params):
        self.calls.append(params)
        start = int(params.get("ContinuationToken") or 0)
        matching = [k for k in self.keys if k.startswith(params.get("Prefix", ""))]
        page = matching[start:start + self.page_size]
        response = {
            "Contents": [
                {
                    "Key": k,
                    "Size": 1,
                    "ETag": '"e"',
                    "LastModified": datetime(2024, 5, 1, tzinfo=timezone.utc),
                }
                for k in page
            ],
            "IsTruncated": start + self.page_size < len(matching),
        }
        if response["IsTruncated"]:
            response["NextContinuationToken"] = str(start + self.page_size)
        return response


@pytest.mark.asyncio
async def test_listing_follows_continuation_tokens_to_the_end():
    client = PagedS3Client([f"{i}.jpg" for i in range(5)])
    provider = S3Provider(client, StorageConfig(type="s3", bucket="media"))

    keys = [obj.key async for obj in provider.iter_objects()]

    assert keys == ["0.jpg", "1.jpg", "2.jpg", "3.jpg", "4.jpg"]
    assert len(client.calls) == 3
    assert client.calls[1]["ContinuationToken"] == "2"
    assert all(call["Bucket"] == "media" for call in client.calls)


@pytest.mark.asyncio
async def test_empty_bucket_lists_nothing():
    provider = S3Provider(PagedS3Client([]), StorageConfig(type="s3", bucket="media"))
    assert [obj async for obj in provider.iter_objects()] == []
