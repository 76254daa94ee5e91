"""EvidenceStore — uploads clinical evidence files to S3-compatible storage.

Uploads need the elevated storage credential (``STORAGE_SERVICE_KEY``) so
they are not subject to per-row bucket policies.  When that credential is
missing the store refuses to upload with a :class:`ConfigurationError`
rather than silently falling back to a weaker client.

The boto3 client is created lazily from the injected
:class:`~devscreen_rules.config.StorageSettings`, and the blocking
``put_object`` call runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from devscreen_rules.config import StorageSettings
from devscreen_rules.constants import (
    EVIDENCE_CACHE_CONTROL,
    EVIDENCE_DEFAULT_CONTENT_TYPE,
)
from devscreen_rules.errors import (
    ConfigurationError,
    InvalidInputError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

# Fragments that indicate an access-policy rejection (case-sensitive)
_POLICY_ERROR_MARKERS = ("row-level security", "RLS", "AccessDenied", "Access Denied")


class EvidenceStore:
    """Writes evidence bytes into the configured bucket.

    Args:
        settings: storage endpoint, bucket and credentials.
        client: optional pre-built S3 client (used by tests).
    """

    def __init__(self, settings: StorageSettings, *, client: Any | None = None) -> None:
        self._settings = settings
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self._settings.service_key)

    def _get_client(self) -> Any:
        if self._client is None:
            if not self._settings.service_key:
                logger.error(
                    "Storage service key not available; evidence uploads are disabled"
                )
                raise ConfigurationError(
                    "Storage service not configured. Please set "
                    "STORAGE_SERVICE_KEY environment variable."
                )
            self._client = boto3.client(
                "s3",
                endpoint_url=self._settings.endpoint_url,
                aws_access_key_id=self._settings.access_key_id,
                aws_secret_access_key=self._settings.service_key,
                region_name=self._settings.region,
            )
        return self._client

    async def upload(
        self,
        *,
        file_path: str,
        data: bytes,
        user_id: str,
        screening_id: str,
        question_id: str,
        content_type: str | None = None,
    ) -> str:
        """Upload *data* under *file_path*, overwriting any existing object.

        Returns the stored path.

        Raises:
            InvalidInputError: a required parameter is missing or empty.
            ConfigurationError: the elevated credential is not configured.
            UpstreamError: the storage backend rejected the upload.
        """
        if not (file_path and data and user_id and screening_id and question_id):
            raise InvalidInputError("Missing required parameters")

        client = self._get_client()
        logger.info(
            "Uploading evidence: bucket=%s, path=%s, size=%d",
            self._settings.bucket, file_path, len(data),
        )
        try:
            await asyncio.to_thread(
                client.put_object,
                Bucket=self._settings.bucket,
                Key=file_path,
                Body=data,
                ContentType=content_type or EVIDENCE_DEFAULT_CONTENT_TYPE,
                CacheControl=EVIDENCE_CACHE_CONTROL,
                Metadata={
                    "user-id": user_id,
                    "screening-id": screening_id,
                    "question-id": question_id,
                },
            )
        except (BotoCoreError, ClientError) as exc:
            msg = str(exc)
            logger.error("Evidence upload failed for %s: %s", file_path, msg)
            if any(marker in msg for marker in _POLICY_ERROR_MARKERS):
                raise UpstreamError(
                    f"Storage access policy error: {msg}. Ensure "
                    "STORAGE_SERVICE_KEY is set and bucket policies allow "
                    "service uploads."
                ) from exc
            raise UpstreamError(f"Failed to upload evidence: {msg}") from exc

        logger.info("Evidence upload successful: %s", file_path)
        return file_path
