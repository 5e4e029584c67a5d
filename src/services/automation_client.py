"""Client for the n8n automation webhooks.

Two triggers exist: submitting a new episode (multipart form with the
episode name and source PDF) and starting audio generation for approved
scripts (JSON). Failures surface as `TriggerError`; callers decide whether
they are fatal.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Dict, Optional

import httpx

from src.errors import TriggerError

logger = logging.getLogger(__name__)

# Bound on response text kept for diagnostics
_MAX_ERROR_BODY = 500


class AutomationClient:
    """Sends trigger requests to the automation webhooks.

    Example:
        client = AutomationClient(
            submit_url=config.SUBMIT_WEBHOOK_URL,
            audio_url=config.AUDIO_WEBHOOK_URL,
        )
        body = await client.submit_episode("Ep-100", pdf_bytes, "ep100.pdf")
    """

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        submit_url: str,
        audio_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            submit_url: Webhook receiving new episode submissions
            audio_url: Webhook that starts audio generation
            timeout: Default request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.submit_url = submit_url
        self.audio_url = audio_url
        self.timeout = timeout
        self._transport = transport

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout if timeout is not None else self.timeout,
            transport=self._transport,
        )

    async def submit_episode(
        self,
        episode_name: str,
        pdf_content: bytes,
        filename: str,
        content_type: str = "application/pdf",
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Enqueue script generation for a new episode.

        Parameters:
            episode_name (str): Episode name sent as `episodeName`.
            pdf_content (bytes): Source document sent as `pdfFile`.
            filename (str): File name reported for the upload.
            content_type (str): MIME type reported for the upload.
            timeout (Optional[float]): Request timeout; defaults to the client timeout.

        Returns:
            The decoded JSON body, or None when the response is not JSON.

        Raises:
            TriggerError: The webhook is not configured, timed out, was unreachable or returned an error status.
        """
        if not self.submit_url:
            raise TriggerError("Submit webhook URL is not configured")

        logger.info(f"Submitting episode {episode_name!r} ({len(pdf_content)} bytes)")
        response = await self._post(
            self.submit_url,
            timeout=timeout,
            data={"episodeName": episode_name},
            files={"pdfFile": (filename, pdf_content, content_type)},
        )

        try:
            return response.json()
        except ValueError:
            logger.debug(f"Submit webhook returned non-JSON body for {episode_name!r}")
            return None

    async def generate_audio(
        self,
        episode_id: str,
        episode_name: str,
        script_links: Dict[str, Optional[str]],
        timeout: Optional[float] = None,
    ) -> None:
        """
        Start audio generation for approved scripts.

        Raises:
            TriggerError: The webhook is not configured, timed out, was unreachable or returned a non-2xx status.
        """
        if not self.audio_url:
            raise TriggerError("Audio webhook URL is not configured")

        payload = {
            "episodeId": episode_id,
            "episodeName": episode_name,
            "scriptLinks": script_links,
            "timestamp": datetime.now(UTC).isoformat(),
            "action": "generate_audio",
        }
        logger.info(f"Requesting audio generation for {episode_name!r} ({episode_id})")
        await self._post(
            self.audio_url,
            timeout=timeout,
            json=payload,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Cache-Control": "no-cache",
            },
        )

    async def _post(self, url: str, timeout: Optional[float] = None, **kwargs) -> httpx.Response:
        try:
            async with self._client(timeout) as client:
                response = await client.post(url, **kwargs)
                response.raise_for_status()
                return response
        except httpx.TimeoutException as e:
            logger.warning(f"Webhook request timed out: {url}")
            raise TriggerError("Webhook request timed out") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Webhook returned HTTP {status}: {url}")
            raise TriggerError(
                f"Webhook request failed with status {status}",
                status_code=status,
                detail=e.response.text[:_MAX_ERROR_BODY],
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Webhook request failed: {e}")
            raise TriggerError(f"Webhook request failed: {e}", detail=repr(e)) from e
