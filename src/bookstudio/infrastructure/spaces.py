import logging
import uuid
from dataclasses import dataclass

import aioboto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from bookstudio.api.settings import Settings, get_settings
from bookstudio.errors import PersistenceError

logger = logging.getLogger(__name__)

AUDIO_CONTENT_TYPE = "audio/mpeg"


def block_path(studio_id: str, block_id: str) -> str:
    return f"{studio_id}/blocks/{block_id}.mp3"


def chapter_path(studio_id: str, chapter_id: str) -> str:
    return f"{studio_id}/chapters/{chapter_id}.mp3"


def audiobook_path(studio_id: str) -> str:
    return f"{studio_id}/complete_audiobook/{studio_id}.mp3"


@dataclass(frozen=True)
class StoredArtifact:
    """Result of an upload. Only ``path`` and ``url`` are stable across regenerations."""

    artifact_id: str
    url: str
    path: str


class SpacesClient:
    """DigitalOcean Spaces client for generated audio artifacts."""

    def __init__(self, settings: Settings | None = None):
        settings = settings or get_settings()
        self.bucket = settings.do_spaces_bucket
        self.endpoint = settings.spaces_endpoint
        self.public_base_url = settings.do_spaces_public_base_url
        self._client_params = {
            "service_name": "s3",
            "region_name": settings.do_spaces_region,
            "endpoint_url": self.endpoint,
            "aws_access_key_id": settings.do_spaces_key,
            "aws_secret_access_key": settings.do_spaces_secret,
            "config": Config(signature_version="s3v4"),
        }
        self._session = aioboto3.Session()

    def public_url(self, key: str) -> str:
        """Return the public locator for *key*; derived from the path only."""
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        return f"{self.endpoint.rstrip('/')}/{self.bucket}/{key}"

    async def upload_artifact(
        self, key: str, data: bytes, content_type: str = AUDIO_CONTENT_TYPE
    ) -> StoredArtifact:
        """Upload *data* to *key*, replacing whatever is stored there.

        A fresh artifact id is generated on every upload.
        """
        if not data:
            raise PersistenceError(f"Refusing to upload empty artifact to {key}")
        try:
            async with self._session.client(**self._client_params) as s3:
                await s3.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=data,
                    ContentType=content_type,
                    ACL="public-read",
                )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"[Spaces] Audio upload failed for {key}: {e}")
            raise PersistenceError(f"Failed to upload file: {e}") from e

        logger.info(f"[Spaces] Audio upload successful: {key} ({len(data)} bytes)")
        return StoredArtifact(artifact_id=str(uuid.uuid4()), url=self.public_url(key), path=key)

    async def artifact_exists(self, key: str) -> bool:
        """Return True when an object is stored at *key*."""
        try:
            async with self._session.client(**self._client_params) as s3:
                await s3.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return False
            logger.warning(f"[Spaces] HEAD failed for {key}: {e}")
            return False
        except BotoCoreError as e:
            logger.warning(f"[Spaces] HEAD failed for {key}: {e}")
            return False
