from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError

from bookstudio.errors import PersistenceError
from bookstudio.infrastructure.spaces import (
    SpacesClient,
    audiobook_path,
    block_path,
    chapter_path,
)


@pytest.fixture
def bucket():
    """Object store contents keyed by path."""
    return {}


@pytest.fixture
def s3(bucket):
    client = AsyncMock()

    async def put_object(Bucket, Key, Body, ContentType, ACL):
        bucket[Key] = Body

    async def head_object(Bucket, Key):
        if Key not in bucket:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {"ContentLength": len(bucket[Key])}

    client.put_object.side_effect = put_object
    client.head_object.side_effect = head_object
    return client


@pytest.fixture
def spaces_client(s3):
    client = SpacesClient()
    client._session = MagicMock()
    client._session.client.return_value.__aenter__.return_value = s3
    return client


def test_artifact_paths_are_deterministic():
    assert block_path("studio-1", "b-1") == "studio-1/blocks/b-1.mp3"
    assert chapter_path("studio-1", "c-1") == "studio-1/chapters/c-1.mp3"
    assert audiobook_path("studio-1") == "studio-1/complete_audiobook/studio-1.mp3"


@pytest.mark.asyncio
async def test_upload_to_same_path_replaces_content(spaces_client, s3, bucket):
    path = block_path("studio-1", "b-1")

    first = await spaces_client.upload_artifact(path, b"first take")
    second = await spaces_client.upload_artifact(path, b"second take")

    assert bucket == {path: b"second take"}
    assert first.url == second.url
    assert first.path == second.path == path
    assert first.artifact_id != second.artifact_id
    _, kwargs = s3.put_object.call_args
    assert kwargs["ContentType"] == "audio/mpeg"
    assert kwargs["ACL"] == "public-read"


@pytest.mark.asyncio
async def test_url_is_derived_from_path(spaces_client):
    artifact = await spaces_client.upload_artifact("studio-1/chapters/c-1.mp3", b"audio")

    assert artifact.url == spaces_client.public_url("studio-1/chapters/c-1.mp3")
    assert artifact.url.endswith("/studio-1/chapters/c-1.mp3")


@pytest.mark.asyncio
async def test_public_base_url_takes_precedence(spaces_client):
    spaces_client.public_base_url = "https://cdn.example.com/"

    assert spaces_client.public_url("a/b.mp3") == "https://cdn.example.com/a/b.mp3"


@pytest.mark.asyncio
async def test_empty_upload_is_refused(spaces_client, s3):
    with pytest.raises(PersistenceError):
        await spaces_client.upload_artifact("studio-1/blocks/b.mp3", b"")
    s3.put_object.assert_not_called()


@pytest.mark.asyncio
async def test_storage_failure_raises_persistence_error(spaces_client, s3):
    s3.put_object.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "PutObject"
    )

    with pytest.raises(PersistenceError) as exc_info:
        await spaces_client.upload_artifact("studio-1/blocks/b.mp3", b"audio")
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_artifact_exists(spaces_client):
    path = block_path("studio-1", "b-1")
    assert await spaces_client.artifact_exists(path) is False

    await spaces_client.upload_artifact(path, b"audio")

    assert await spaces_client.artifact_exists(path) is True
