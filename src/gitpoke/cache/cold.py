"""Cold store: durable, higher-latency object storage used as the fallback badge tier."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from gitpoke.errors import TransientDependencyError
from gitpoke.resilience import DURABLE_STORE


class DurableObjectStore(ABC):
    """Abstract durable object store capability."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        ...

    @abstractmethod
    async def put(self, key: str, data: bytes) -> None:
        ...

    @abstractmethod
    async def ping(self) -> bool:
        ...


class S3ObjectStore(DurableObjectStore):
    """Object store on S3 via aioboto3. The session is owned by AppDependencies."""

    def __init__(self, session: Any, bucket: str, prefix: str = "badges/", region: str = "us-east-1") -> None:  # noqa: ANN401
        self.session = session
        self.bucket = bucket
        self.prefix = prefix
        self.region = region

    def _object_key(self, key: str) -> str:
        return f"{self.prefix}{key.replace(':', '/')}.json"

    async def get(self, key: str) -> bytes | None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            async with self.session.client("s3", region_name=self.region) as s3:
                response = await s3.get_object(Bucket=self.bucket, Key=self._object_key(key))
                async with response["Body"] as body:
                    return await body.read()
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                return None
            raise TransientDependencyError(DURABLE_STORE, str(exc)) from exc
        except BotoCoreError as exc:
            raise TransientDependencyError(DURABLE_STORE, str(exc)) from exc

    async def put(self, key: str, data: bytes) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            async with self.session.client("s3", region_name=self.region) as s3:
                await s3.put_object(
                    Bucket=self.bucket,
                    Key=self._object_key(key),
                    Body=data,
                    ContentType="application/json",
                )
        except (BotoCoreError, ClientError) as exc:
            raise TransientDependencyError(DURABLE_STORE, str(exc)) from exc

    async def ping(self) -> bool:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            async with self.session.client("s3", region_name=self.region) as s3:
                await s3.head_bucket(Bucket=self.bucket)
        except (BotoCoreError, ClientError) as exc:
            raise TransientDependencyError(DURABLE_STORE, str(exc)) from exc
        return True


class InMemoryObjectStore(DurableObjectStore):
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}

    async def get(self, key: str) -> bytes | None:
        return self.objects.get(key)

    async def put(self, key: str, data: bytes) -> None:
        self.objects[key] = data

    async def ping(self) -> bool:
        return True
