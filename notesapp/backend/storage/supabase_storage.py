"""
Supabase Storage Adapter.

ObjectStorage backed by a Supabase Storage bucket. The supabase client is
synchronous, so every call runs in the shared I/O pool, bounded by the
"storage" semaphore and guarded by a circuit breaker.
"""

from collections.abc import Callable
from typing import Any

import aiobreaker
from supabase import Client, create_client

from notesapp.backend.core.concurrency import get_semaphore, run_blocking
from notesapp.backend.core.exceptions import StorageError
from notesapp.backend.core.logging import get_logger
from notesapp.backend.core.resilience import create_circuit_breaker

logger = get_logger(__name__)


class SupabaseObjectStorage:
    """Object storage on a single Supabase bucket."""

    def __init__(
        self,
        client: Client,
        bucket: str,
        breaker: aiobreaker.CircuitBreaker | None = None,
    ) -> None:
        self._client = client
        self.bucket = bucket
        self._breaker = breaker or create_circuit_breaker("storage")

    @classmethod
    def from_config(cls) -> "SupabaseObjectStorage":
        """Build the adapter from storage.yaml and the service role key in .env."""
        from notesapp.backend.core.config import get_app_config, get_settings

        storage_config = get_app_config().storage
        client = create_client(storage_config.url, get_settings().supabase_service_role_key)
        breaker = create_circuit_breaker(
            "storage",
            fail_max=storage_config.circuit_breaker.fail_max,
            timeout_duration=storage_config.circuit_breaker.timeout_duration,
        )
        logger.info("Object storage configured", extra={"bucket": storage_config.bucket})
        return cls(client, storage_config.bucket, breaker)

    async def _call(self, operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            async with get_semaphore("storage"):
                return await self._breaker.call_async(run_blocking, fn, *args, **kwargs)
        except aiobreaker.CircuitBreakerError as e:
            logger.warning(
                "Object storage circuit open",
                extra={"operation": operation, "bucket": self.bucket},
            )
            raise StorageError("Object storage is temporarily unavailable") from e
        except StorageError:
            raise
        except Exception as e:
            logger.error(
                "Object storage call failed",
                extra={"operation": operation, "bucket": self.bucket, "error": str(e)},
            )
            raise StorageError(f"Object storage {operation} failed") from e

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        bucket = self._client.storage.from_(self.bucket)
        await self._call(
            "upload",
            bucket.upload,
            path=path,
            file=data,
            file_options={"content-type": content_type},
        )
        logger.info("Object uploaded", extra={"path": path, "size": len(data)})
        return path

    async def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        bucket = self._client.storage.from_(self.bucket)
        result = await self._call("sign", bucket.create_signed_url, path, ttl_seconds)
        url = None
        if isinstance(result, dict):
            url = result.get("signedURL") or result.get("signedUrl")
        if not url:
            raise StorageError("Object storage returned no signed URL")
        return url

    async def remove(self, path: str) -> None:
        bucket = self._client.storage.from_(self.bucket)
        await self._call("remove", bucket.remove, [path])
        logger.info("Object removed", extra={"path": path})

    async def check(self) -> None:
        await self._call("check", self._client.storage.get_bucket, self.bucket)
