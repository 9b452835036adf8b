"""Transcription record persistence via the database REST endpoint.

Inserts and deletes rows of the `transcription_data` table through the
PostgREST interface exposed at {SUPABASE_URL}/rest/v1.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from transcript_processor.utils.errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "transcription_data"


class TranscriptRecordsClient:
    """Client for transcription records over the REST API.

    Reads configuration from environment variables:
        SUPABASE_URL, SUPABASE_SERVICE_KEY
    """

    def __init__(
        self,
        project_url: str | None = None,
        service_key: str | None = None,
        table: str = DEFAULT_TABLE,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.project_url = (
            project_url or os.environ.get("SUPABASE_URL", "")
        ).rstrip("/")
        self.service_key = service_key or os.environ.get("SUPABASE_SERVICE_KEY", "")
        self.table = table

        if not self.project_url:
            raise StorageError("SUPABASE_URL is required", operation="init")
        if not self.service_key:
            raise StorageError("SUPABASE_SERVICE_KEY is required", operation="init")

        self._client = client or httpx.AsyncClient(timeout=30.0)

    @property
    def table_url(self) -> str:
        return f"{self.project_url}/rest/v1/{self.table}"

    def _headers(self) -> dict[str, str]:
        """Build authentication headers for the REST endpoint."""
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }

    async def close(self) -> None:
        """Close the shared HTTP client and release connection pool."""
        await self._client.aclose()

    async def insert_record(self, row: dict[str, Any]) -> str:
        """Insert one row and return its id.

        Args:
            row: Column values (file_name, file_path, metadata, raw_response).

        Returns:
            The id of the inserted row.

        Raises:
            StorageError: If the request fails or the reply holds no row.
        """
        headers = {**self._headers(), "Prefer": "return=representation"}
        try:
            response = await self._client.post(self.table_url, headers=headers, json=row)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StorageError(
                f"Record insert failed: HTTP {exc.response.status_code}",
                operation="insert_record",
            ) from exc
        except httpx.RequestError as exc:
            raise StorageError(
                f"Record insert failed: {exc}", operation="insert_record"
            ) from exc

        try:
            rows = response.json()
            record_id = rows[0]["id"]
        except (ValueError, LookupError, TypeError) as exc:
            raise StorageError(
                "Record insert returned no row", operation="insert_record"
            ) from exc
        return str(record_id)

    async def delete_records(self, ids: list[str]) -> None:
        """Delete rows by id.

        Raises:
            StorageError: If the request fails.
        """
        if not ids:
            return
        params = {"id": f"in.({','.join(ids)})"}
        try:
            response = await self._client.delete(
                self.table_url, headers=self._headers(), params=params
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StorageError(
                f"Record delete failed: HTTP {exc.response.status_code}",
                operation="delete_records",
            ) from exc
        except httpx.RequestError as exc:
            raise StorageError(
                f"Record delete failed: {exc}", operation="delete_records"
            ) from exc
