"""ASR through the backend `transcribe-audio` edge function.

The edge function holds the Deepgram key server-side. It accepts the
chunk as a base64 data URL and returns Deepgram's JSON unchanged, or
`{"error": "..."}` with a 500 status.
"""

import base64
import logging
import os

import httpx

from transcript_processor.asr.deepgram import parse_deepgram_response
from transcript_processor.asr.interface import (
    ASREngine,
    Transcript,
    TranscriptionOptions,
)
from transcript_processor.utils.errors import RemoteServiceError

logger = logging.getLogger(__name__)

DEFAULT_FUNCTION_NAME = "transcribe-audio"
PROVIDER = "supabase"
_LIST_PARAMS = {"keywords", "keyterm"}


class SupabaseFunctionEngine(ASREngine):
    """Transcribe chunks by invoking a backend edge function.

    Reads configuration from environment variables:
        SUPABASE_URL, SUPABASE_ANON_KEY
    """

    provider = PROVIDER

    def __init__(
        self,
        project_url: str | None = None,
        api_key: str | None = None,
        function_name: str = DEFAULT_FUNCTION_NAME,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.project_url = (
            project_url or os.environ.get("SUPABASE_URL", "")
        ).rstrip("/")
        self._api_key = api_key or os.environ.get("SUPABASE_ANON_KEY", "")
        if not self.project_url:
            raise ValueError("SUPABASE_URL is required")
        if not self._api_key:
            raise ValueError("SUPABASE_ANON_KEY is required")
        self.function_name = function_name
        self._client = client or httpx.AsyncClient(timeout=None)
        self._owns_client = client is None

    @property
    def function_url(self) -> str:
        return f"{self.project_url}/functions/v1/{self.function_name}"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def transcribe_chunk(
        self, data: bytes, mime_type: str, options: TranscriptionOptions
    ) -> Transcript:
        """Invoke the edge function with one chunk.

        Raises:
            RemoteServiceError: On transport failure, an error payload, or
                a response without a transcript.
        """
        encoded = base64.b64encode(data).decode("ascii")
        payload = {
            "audioData": f"data:{mime_type};base64,{encoded}",
            # The function forwards scalar options only; list options are dropped.
            "options": {
                key: value
                for key, value in options.to_query_params()
                if key not in _LIST_PARAMS
            },
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "apikey": self._api_key,
        }

        try:
            response = await self._client.post(
                self.function_url, headers=headers, json=payload
            )
        except httpx.HTTPError as exc:
            raise RemoteServiceError(
                f"Edge function request failed: {exc}", provider=self.provider
            ) from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            detail = body.get("error") if isinstance(body, dict) else response.text
            raise RemoteServiceError(
                f"{self.function_name} failed: {response.status_code} - {detail}",
                status_code=response.status_code,
                provider=self.provider,
            )
        if isinstance(body, dict) and body.get("error"):
            raise RemoteServiceError(
                f"{self.function_name} failed: {body['error']}",
                status_code=response.status_code,
                provider=self.provider,
            )

        return parse_deepgram_response(body, self.provider)
