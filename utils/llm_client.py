"""
LLM Client for the hosted Gemini models (prompt completion and image OCR)
"""
import time
from typing import Optional, Dict, Any

from google import genai
from google.genai import types
from google.genai import errors as genai_errors

from config import settings
from utils.exceptions import RemoteError
from utils.logger import logger


class LLMClient:
    """
    Thin client over the google-genai SDK

    Exposes the two remote capabilities the chain needs:
    - generate: prompt completion with model, temperature and top-p
    - extract_image_text: OCR of an inline image through the OCR model

    Every failure is raised as RemoteError. There is no retry, timeout
    or cancellation; callers await the single outstanding request.
    """

    PROVIDER = "gemini"

    def __init__(self, api_key: Optional[str] = None):
        self.client = None
        self._initialize_gemini(api_key or settings.GEMINI_API_KEY)

    def _initialize_gemini(self, api_key: Optional[str]) -> None:
        """Initialize Gemini API client"""
        if not api_key:
            logger.info("GEMINI_API_KEY not configured, skipping Gemini initialization")
            self.client = None
            return

        try:
            self.client = genai.Client(api_key=api_key)
            logger.info("Gemini API client initialized")
        except Exception as e:
            logger.warning(f"Failed to initialize Gemini client: {e}")
            self.client = None

    def is_available(self) -> bool:
        """Check if the Gemini client is configured"""
        return self.client is not None

    def _invoke(self, model: str, contents: Any, config: Optional[types.GenerateContentConfig] = None) -> Dict[str, Any]:
        """
        Invoke generate_content and normalize the response

        Returns:
            Response dict with content and metadata

        Raises:
            RemoteError on any failure or an empty response
        """
        if not self.client:
            raise RemoteError("Gemini client not initialized. Set GEMINI_API_KEY.")

        start_time = time.time()

        try:
            response = self.client.models.generate_content(
                model=model,
                contents=contents,
                config=config
            )
        except genai_errors.APIError as e:
            logger.error(f"Gemini API error: {e.code}", model=model, error=str(e))
            raise RemoteError(f"Gemini API error ({e.code}): {e.message}") from e
        except Exception as e:
            logger.error(f"Unexpected Gemini error: {e}", model=model)
            raise RemoteError(f"Gemini request failed: {e}") from e

        latency = time.time() - start_time
        content = response.text
        if not content:
            logger.error("Gemini returned an empty response", model=model)
            raise RemoteError("Gemini returned an empty response")

        tokens_in = 0
        tokens_out = 0
        usage = getattr(response, "usage_metadata", None)
        if usage:
            tokens_in = usage.prompt_token_count or 0
            tokens_out = usage.candidates_token_count or 0

        return {
            "content": content,
            "provider": self.PROVIDER,
            "model": model,
            "latency": latency,
            "tokens": {
                "input": tokens_in,
                "output": tokens_out
            }
        }

    def generate(
        self,
        prompt: str,
        model: str,
        temperature: float,
        top_p: float
    ) -> Dict[str, Any]:
        """
        Generate a completion for a text prompt

        Args:
            prompt: Full prompt text
            model: Gemini model id
            temperature: Sampling temperature
            top_p: Nucleus sampling probability

        Returns:
            Response dict with content and metadata
        """
        logger.info(f"Using Gemini model={model}", temperature=temperature, top_p=top_p)
        config = types.GenerateContentConfig(temperature=temperature, top_p=top_p)
        return self._invoke(model, prompt, config)

    def extract_image_text(self, image_bytes: bytes, mime_type: str, prompt: str) -> Dict[str, Any]:
        """
        Run OCR on an image with the configured OCR model

        Args:
            image_bytes: Raw image bytes
            mime_type: Image MIME type (image/png, image/jpeg, image/webp)
            prompt: Extraction instruction

        Returns:
            Response dict with the extracted text as content
        """
        logger.info(f"Using Gemini OCR model={settings.OCR_MODEL}", mime_type=mime_type, size=len(image_bytes))
        image_part = types.Part.from_bytes(data=image_bytes, mime_type=mime_type)
        return self._invoke(settings.OCR_MODEL, [image_part, prompt])


# Global LLM client instance
llm_client = LLMClient()
