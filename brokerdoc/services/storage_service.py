"""Storage service for handling Supabase storage operations."""

from typing import Any, Dict

import httpx

from brokerdoc.core.exceptions import ResourceNotFound, StorageError
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)


class StorageService:
    """Service for managing files in Supabase storage.

    Built once at startup; each call opens its own short-lived HTTP client.
    """

    def __init__(self, supabase_url: str, service_role_key: str, timeout: int = 60):
        self.url = supabase_url.rstrip("/")
        self.service_role_key = service_role_key
        self.timeout = timeout
        self.base_api_url = f"{self.url}/storage/v1"
        self.headers = {
            "Authorization": f"Bearer {self.service_role_key}",
            "apikey": self.service_role_key,
        }

    async def upload_bytes(
        self,
        content: bytes,
        bucket: str,
        path: str,
        content_type: str = "application/octet-stream",
    ) -> Dict[str, Any]:
        """Upload raw bytes to Supabase storage without overwriting.

        Args:
            content: The bytes to upload.
            bucket: Target bucket name.
            path: Target path within the bucket.
            content_type: MIME type stored with the object.

        Returns:
            Dict containing the upload result.

        Raises:
            StorageError: If the upload fails.
        """
        upload_url = f"{self.base_api_url}/object/{bucket}/{path}"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    upload_url,
                    headers={
                        **self.headers,
                        "Content-Type": content_type,
                        "x-upsert": "false",
                        "cache-control": "3600",
                    },
                    content=content,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error uploading file to Supabase: {str(e)}", exc_info=True)
            raise StorageError(f"Storage upload error: {str(e)}", original_error=e) from e

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to upload file to Supabase: {response.text}",
                extra={"bucket": bucket, "path": path, "status_code": response.status_code},
            )
            raise StorageError(f"Upload failed: {response.text}")

        LOGGER.info("Uploaded object", extra={"bucket": bucket, "path": path, "bytes": len(content)})
        return response.json()

    async def delete_object(self, bucket: str, path: str) -> None:
        """Remove an object from storage.

        Raises:
            StorageError: If the delete fails.
        """
        url = f"{self.base_api_url}/object/{bucket}"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.request(
                    "DELETE",
                    url,
                    headers=self.headers,
                    json={"prefixes": [path]},
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error deleting object from Supabase: {str(e)}", exc_info=True)
            raise StorageError(f"Storage delete error: {str(e)}", original_error=e) from e

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to delete object: {response.text}",
                extra={"bucket": bucket, "path": path, "status_code": response.status_code},
            )
            raise StorageError(f"Delete failed: {response.text}")

        LOGGER.info("Deleted object", extra={"bucket": bucket, "path": path})

    def get_public_url(self, bucket: str, path: str) -> str:
        """Public URL of an object in a public bucket."""
        return f"{self.base_api_url}/object/public/{bucket}/{path}"

    async def fetch_bytes(self, url: str) -> bytes:
        """Download a file by absolute URL.

        Args:
            url: Absolute http(s) URL, e.g. a template's pdf_form_url.

        Returns:
            The response body.

        Raises:
            ResourceNotFound: If the URL is relative (no hosted file to fetch).
            StorageError: If the download fails.
        """
        if not url.startswith(("http://", "https://")):
            raise ResourceNotFound(f"Template PDF not found: {url}")

        try:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                response = await client.get(url, timeout=self.timeout)
        except httpx.HTTPError as e:
            LOGGER.error(f"Error downloading {url}: {str(e)}", exc_info=True)
            raise StorageError(f"Failed to fetch {url}: {str(e)}", original_error=e) from e

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to fetch file: HTTP {response.status_code}",
                extra={"url": url, "status_code": response.status_code},
            )
            raise StorageError(f"Failed to fetch {url}: HTTP {response.status_code}")

        return response.content
