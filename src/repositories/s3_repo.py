"""S3-backed attachment storage for chat messages and tickets."""

import time
from typing import Optional

import boto3

from models.conversation import Attachment
from utils.error_handling import ValidationError

MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024


class S3AttachmentStore:
    """Upload customer files and hand back a (file_name, file_url) pair.

    Size is checked here, at upload time; the core stores the returned
    reference verbatim and never reads file content.
    """

    def __init__(
        self,
        bucket_name: str,
        max_bytes: int = MAX_ATTACHMENT_BYTES,
        client: Optional[object] = None,
    ):
        self.bucket_name = bucket_name
        self.max_bytes = max_bytes
        self.client = client or boto3.client("s3")

    def upload(self, owner_id: str, file_name: str, content: bytes) -> Attachment:
        """Store content under <owner_id>/<epoch_ms>.<ext>."""
        if not file_name.strip():
            raise ValidationError("file_name must not be blank", field="file_name")
        if len(content) > self.max_bytes:
            raise ValidationError(
                f"File exceeds the {self.max_bytes // (1024 * 1024)} MB limit",
                field="content",
            )

        ext = file_name.rsplit(".", 1)[-1] if "." in file_name else "bin"
        key = f"{owner_id}/{int(time.time() * 1000)}.{ext}"
        self.client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=content,
            StorageClass="INTELLIGENT_TIERING",
        )
        return Attachment(file_name=file_name, file_url=f"s3://{self.bucket_name}/{key}")
