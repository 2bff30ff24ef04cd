"""
OptSolv Backend — OCR Gateway
===============================

What:  Turns an image URL into the text written on it.
How:   Downloads the image (httpx, or straight from the storage gateway when
       the URL points at one of our own blobs), then sends a fixed
       instruction plus the inline image bytes to the vision model.
Who:   The pipeline orchestrator (ocr stage) and POST /api/ocr.

Failure modes:
    Gemini key missing              → ConfigurationError (checked before fetching)
    URL unreachable / non-2xx       → FetchError
    Own blob missing or unreadable  → FetchError
    Model call failed               → ServiceError / CircuitBreakerOpenError
    Empty or whitespace-only result → EmptyResultError

One attempt per call. The result is trimmed.
"""

import logging
from typing import Callable, Optional, Tuple

import httpx

from optsolv.config import settings
from optsolv.exceptions import (
    ConfigurationError,
    EmptyResultError,
    FetchError,
    NotFoundError,
    StorageError,
)
from optsolv.services.gemini_client import gemini_client
from optsolv.services.llm_base import LLMService
from optsolv.services.storage_gateway import StorageGateway, storage_gateway

logger = logging.getLogger(__name__)

OCR_PROMPT = (
    "Extract all text from this image. If the text is handwritten, do your best "
    "to read it accurately. Return only the extracted text, without any additional "
    "comments or formatting."
)

OCR_GENERATION_CONFIG = {
    "temperature": 0.4,
    "top_p": 0.95,
    "top_k": 40,
}

DEFAULT_IMAGE_TYPE = "image/jpeg"


def default_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.http_fetch_timeout, follow_redirects=True)


class OcrGateway:
    def __init__(
        self,
        llm: LLMService,
        storage: Optional[StorageGateway] = None,
        http_client_factory: Callable[[], httpx.AsyncClient] = default_http_client,
        model_name: Optional[str] = None,
    ):
        self.llm = llm
        self.storage = storage
        self.http_client_factory = http_client_factory
        self.model_name = model_name or settings.gemini_ocr_model

    async def fetch_image(self, image_url: str) -> Tuple[bytes, str]:
        """
        Returns:
            (image bytes, content type). The content type comes from the
            response header and falls back to image/jpeg.

        Raises:
            FetchError: Network failure or a non-2xx response.
        """
        if self.storage is not None:
            key = self.storage.key_from_url(image_url)
            if key is not None:
                try:
                    content = await self.storage.read_blob(key)
                except (NotFoundError, StorageError) as e:
                    logger.warning("Stored image %s could not be read: %s", key, e.message)
                    raise FetchError(context={"key": key})
                return content, self.storage.media_type_for(key)

        try:
            async with self.http_client_factory() as client:
                response = await client.get(image_url)
        except httpx.HTTPError as e:
            logger.warning("Image fetch failed for %s: %s", image_url, str(e))
            raise FetchError(context={"reason": type(e).__name__})

        if not response.is_success:
            logger.warning("Image fetch for %s returned HTTP %d", image_url, response.status_code)
            raise FetchError(context={"status": response.status_code})

        content_type = response.headers.get("content-type", DEFAULT_IMAGE_TYPE)
        content_type = content_type.split(";")[0].strip() or DEFAULT_IMAGE_TYPE
        return response.content, content_type

    async def extract_text(self, image_url: str) -> str:
        if not self.llm.is_configured:
            raise ConfigurationError("OCR service not configured")

        content, content_type = await self.fetch_image(image_url)
        logger.info("Running OCR on %d bytes (%s)", len(content), content_type)

        raw = await self.llm.generate(
            self.model_name,
            [OCR_PROMPT, {"mime_type": content_type, "data": content}],
            OCR_GENERATION_CONFIG,
        )
        text = raw.strip()
        if not text:
            raise EmptyResultError()

        logger.info("OCR extracted %d chars", len(text))
        return text


ocr_gateway = OcrGateway(llm=gemini_client, storage=storage_gateway)
