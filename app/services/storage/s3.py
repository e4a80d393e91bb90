"""AWS S3 storage backend."""

import aioboto3
from botocore.exceptions import ClientError

from app.services.storage.base import StorageBackendInterface, StorageUsage, StoredFile


class S3StorageBackend(StorageBackendInterface):
    """Storage backend using AWS S3 or an S3-compatible service.

    Suitable for:
    - Production deployments
    - Direct browser uploads through pre-signed PUT URLs
    """

    name = "s3"
    supports_signed_upload = True

    def __init__(
        self,
        bucket_name: str,
        region_name: str = "us-east-1",
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        endpoint_url: str | None = None,  # For S3-compatible services
        prefix: str = "",  # Optional prefix for all keys
        public_url: str | None = None,  # e.g. a CDN in front of the bucket
    ):
        """Initialize S3 storage backend.

        Args:
            bucket_name: S3 bucket name
            region_name: AWS region
            aws_access_key_id: AWS access key (optional, uses env/IAM if not provided)
            aws_secret_access_key: AWS secret key
            endpoint_url: Custom endpoint URL for S3-compatible services
            prefix: Optional prefix for all keys (e.g., "production/")
            public_url: Base URL objects are publicly served from
        """
        self._bucket_name = bucket_name
        self.region_name = region_name
        self.endpoint_url = endpoint_url
        self.prefix = prefix.rstrip("/") + "/" if prefix else ""

        if public_url:
            self.public_url = public_url.rstrip("/")
        elif endpoint_url:
            self.public_url = f"{endpoint_url.rstrip('/')}/{bucket_name}"
        else:
            self.public_url = f"https://{bucket_name}.s3.{region_name}.amazonaws.com"

        # Configure boto3 session
        self.session_kwargs = {
            "region_name": region_name,
        }
        if aws_access_key_id and aws_secret_access_key:
            self.session_kwargs["aws_access_key_id"] = aws_access_key_id
            self.session_kwargs["aws_secret_access_key"] = aws_secret_access_key

        self.client_kwargs = {}
        if endpoint_url:
            self.client_kwargs["endpoint_url"] = endpoint_url

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def _s3_key(self, key: str) -> str:
        """Get full S3 key from storage key."""
        return f"{self.prefix}{key}"

    def _get_client(self):
        """Get an S3 client context manager from a fresh session."""
        session = aioboto3.Session(**self.session_kwargs)
        return session.client("s3", **self.client_kwargs)

    async def put(self, key: str, data: bytes, content_type: str) -> StoredFile:
        """Store a blob in S3."""
        s3_key = self._s3_key(key)

        async with self._get_client() as client:
            response = await client.put_object(
                Bucket=self.bucket_name,
                Key=s3_key,
                Body=data,
                ContentType=content_type,
            )

        return StoredFile(
            key=key,
            size_bytes=len(data),
            content_type=content_type,
            etag=response.get("ETag", "").strip('"') or None,
            url=await self.get_url(key),
        )

    async def get_url(self, key: str) -> str:
        """Get the public URL of an object."""
        return f"{self.public_url}/{self._s3_key(key)}"

    async def delete(self, key: str) -> bool:
        """Delete an object from S3."""
        if not await self.exists(key):
            return False

        async with self._get_client() as client:
            await client.delete_object(Bucket=self.bucket_name, Key=self._s3_key(key))
        return True

    async def exists(self, key: str) -> bool:
        """Check if an object exists in S3."""
        async with self._get_client() as client:
            try:
                await client.head_object(Bucket=self.bucket_name, Key=self._s3_key(key))
                return True
            except ClientError:
                return False

    async def usage(self) -> StorageUsage:
        """Sum object sizes under the key prefix."""
        count = 0
        total_size = 0

        async with self._get_client() as client:
            paginator = client.get_paginator("list_objects_v2")

            async for page in paginator.paginate(Bucket=self.bucket_name, Prefix=self.prefix):
                for obj in page.get("Contents", []):
                    count += 1
                    total_size += obj.get("Size", 0)

        return StorageUsage(object_count=count, total_bytes=total_size)

    async def sign_upload(self, key: str, content_type: str, expires_in: int) -> str:
        """Get a pre-signed PUT URL for a direct upload."""
        async with self._get_client() as client:
            url: str = await client.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self.bucket_name,
                    "Key": self._s3_key(key),
                    "ContentType": content_type,
                },
                ExpiresIn=expires_in,
            )

        return url
