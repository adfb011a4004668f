"""Avatar object storage: Supabase Storage bucket, or S3 when configured."""
import asyncio
import logging
from typing import Optional

import boto3
from botocore.exceptions import ClientError
from supabase import AsyncClient

from dishes_api.config import settings

logger = logging.getLogger(__name__)


class SupabaseAvatarStorage:
    def __init__(self, supabase: AsyncClient, bucket_name: Optional[str] = None):
        self.supabase = supabase
        self.bucket_name = bucket_name or settings.avatar_bucket

    async def upload_file(self, file_content: bytes, key: str, content_type: str) -> str:
        """Upload without overwriting and return the stored path"""
        response = await self.supabase.storage.from_(self.bucket_name).upload(
            key,
            file_content,
            file_options={"content-type": content_type, "upsert": "false"},
        )
        return getattr(response, "path", None) or key

    async def get_public_url(self, key: str) -> str:
        return await self.supabase.storage.from_(self.bucket_name).get_public_url(key)

    async def delete_file(self, key: str) -> None:
        await self.supabase.storage.from_(self.bucket_name).remove([key])


class S3AvatarStorage:
    def __init__(self, key_prefix: str = "avatars"):
        if not settings.s3_configured:
            raise ValueError("AWS S3 credentials and bucket name must be configured")

        self.s3_client = boto3.client(
            's3',
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region
        )
        self.bucket_name = settings.s3_bucket_name
        self.key_prefix = key_prefix

    def _object_key(self, key: str) -> str:
        return f"{self.key_prefix}/{key}" if self.key_prefix else key

    async def upload_file(self, file_content: bytes, key: str, content_type: str) -> str:
        """Upload file to S3; IfNoneMatch refuses to replace an existing object"""
        object_key = self._object_key(key)
        try:
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.bucket_name,
                Key=object_key,
                Body=file_content,
                ContentType=content_type,
                IfNoneMatch="*",
            )
        except ClientError as e:
            logger.error(f"Failed to upload avatar to S3: {str(e)}")
            raise
        return object_key

    async def get_public_url(self, key: str) -> str:
        object_key = self._object_key(key)
        if settings.s3_public_base_url:
            return f"{settings.s3_public_base_url.rstrip('/')}/{object_key}"
        return f"https://{self.bucket_name}.s3.{settings.aws_region}.amazonaws.com/{object_key}"

    async def delete_file(self, key: str) -> None:
        await asyncio.to_thread(
            self.s3_client.delete_object, Bucket=self.bucket_name, Key=self._object_key(key)
        )


class AvatarStorageHolder:
    """Process-wide S3 backend, built once on first use"""
    _s3_storage: Optional[S3AvatarStorage] = None

    @classmethod
    def get_s3_storage(cls) -> Optional[S3AvatarStorage]:
        if cls._s3_storage is None:
            try:
                cls._s3_storage = S3AvatarStorage()
            except Exception as e:
                logger.warning(f"S3 avatar storage initialization failed ({str(e)}), will use Supabase Storage")
        return cls._s3_storage

    @classmethod
    def reset(cls):
        cls._s3_storage = None


def get_avatar_storage(supabase: AsyncClient):
    """S3 when fully configured, Supabase Storage otherwise"""
    if settings.s3_configured:
        s3_storage = AvatarStorageHolder.get_s3_storage()
        if s3_storage is not None:
            return s3_storage
    return SupabaseAvatarStorage(supabase)
