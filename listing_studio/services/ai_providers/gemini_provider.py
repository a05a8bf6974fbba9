"""
Google Gemini generator: image generation and Veo video operations over REST
"""
import asyncio
import base64
import binascii
import io
from typing import Any, Dict, Optional

import aiohttp
import structlog
from PIL import Image

from .base import AssetGenerator, ImageGenerationResult, VideoOperation, VideoParams
from .exceptions import AuthenticationError, GeneratorError, GeneratorTimeout, RateLimitError

logger = structlog.get_logger()

STYLE_SUFFIX = (
    "Style: Professional product photography, clean composition, "
    "high resolution, Amazon listing quality."
)


class GeminiProvider(AssetGenerator):
    """Gemini image model plus Veo long-running video generation"""

    def __init__(
        self,
        api_key: str,
        image_model: str = "gemini-2.5-flash-image",
        video_model: str = "veo-3.1-generate-preview",
        **kwargs,
    ):
        super().__init__(api_key, **kwargs)
        self.image_model = image_model
        self.video_model = video_model
        self.base_url = kwargs.get("base_url", "https://generativelanguage.googleapis.com/v1beta")
        self.timeout = kwargs.get("timeout", 120)

    @property
    def provider_name(self) -> str:
        return "gemini"

    async def generate_image(self, prompt: str, source_image: Optional[bytes] = None) -> ImageGenerationResult:
        """Generate an image with the Gemini image model"""
        logger.info(
            "Starting Gemini image generation",
            provider="gemini",
            model=self.image_model,
            has_source_image=source_image is not None,
            prompt_length=len(prompt),
        )

        parts = []
        if source_image:
            parts.append({
                "inline_data": {
                    "mime_type": self._detect_mime_type(source_image),
                    "data": base64.b64encode(source_image).decode("utf-8"),
                }
            })
        parts.append({"text": f"{prompt}\n\n{STYLE_SUFFIX}"})

        payload = {
            "contents": [{"parts": parts}],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }
        url = f"{self.base_url}/models/{self.image_model}:generateContent"
        result = await self._post(url, payload)
        return self._parse_image_response(result)

    async def start_video(self, prompt: str, params: VideoParams) -> VideoOperation:
        """Start a Veo generation; the returned operation name is polled elsewhere"""
        logger.info(
            "Starting Veo video generation",
            provider="gemini",
            model=self.video_model,
            aspect_ratio=params.aspect_ratio,
            duration_seconds=params.duration_seconds,
            resolution=params.resolution,
        )
        payload = {
            "instances": [{"prompt": prompt}],
            "parameters": {
                "aspectRatio": params.aspect_ratio,
                "durationSeconds": params.duration_seconds,
                "resolution": params.resolution,
            },
        }
        url = f"{self.base_url}/models/{self.video_model}:predictLongRunning"
        result = await self._post(url, payload)

        operation_name = result.get("name")
        if not operation_name:
            raise GeneratorError("No operation name returned from video API")

        logger.info("Veo video generation started", provider="gemini", operation_name=operation_name)
        return VideoOperation(operation_name=operation_name, model=self.video_model, raw=result)

    async def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.post(url, headers=headers, json=payload) as response:
                    logger.info(
                        "Gemini API response received",
                        provider="gemini",
                        status_code=response.status,
                    )
                    await self._handle_response_errors(response)
                    return await response.json()
        except asyncio.TimeoutError:
            logger.error("Gemini API request timed out", provider="gemini", timeout=self.timeout)
            raise GeneratorTimeout(f"Gemini API did not answer within {self.timeout}s")
        except (aiohttp.ClientError, ValueError) as e:
            logger.error(
                "Gemini API request failed",
                provider="gemini",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise GeneratorError(f"Gemini API request failed: {e}")

    async def _handle_response_errors(self, response: aiohttp.ClientResponse):
        """Handle Gemini API response errors"""
        if response.status == 200:
            return

        try:
            error_data = await response.json()
            error_message = error_data.get("error", {}).get("message", "Unknown error")
        except (aiohttp.ContentTypeError, ValueError):
            error_message = f"HTTP {response.status}"

        if response.status in (401, 403):
            logger.error("Gemini authentication failed", provider="gemini", status_code=response.status)
            raise AuthenticationError(f"Gemini authentication failed: {error_message}")
        if response.status == 429:
            retry_after = response.headers.get("retry-after")
            retry_after = int(retry_after) if retry_after and retry_after.isdigit() else None
            logger.warning("Gemini rate limit exceeded", provider="gemini", retry_after_seconds=retry_after)
            raise RateLimitError(f"Gemini rate limit exceeded: {error_message}", retry_after)

        logger.error(
            "Gemini API error",
            provider="gemini",
            status_code=response.status,
            error_message=error_message,
        )
        raise GeneratorError(f"Gemini API error {response.status}: {error_message}")

    def _parse_image_response(self, response: Dict[str, Any]) -> ImageGenerationResult:
        candidates = response.get("candidates") or []
        if not candidates:
            feedback = response.get("promptFeedback", {})
            reason = feedback.get("blockReason", "no candidates returned")
            return ImageGenerationResult(success=False, error=f"Gemini returned no image: {reason}")

        text_parts = []
        for part in candidates[0].get("content", {}).get("parts", []):
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                try:
                    data = base64.b64decode(inline["data"])
                except binascii.Error as e:
                    logger.error("Gemini returned undecodable image data", provider="gemini", error=str(e))
                    return ImageGenerationResult(success=False, error=f"Gemini returned invalid image data: {e}")
                width, height = self._image_size(data)
                return ImageGenerationResult(
                    success=True,
                    data=data,
                    width=width,
                    height=height,
                    file_size_bytes=len(data),
                    mime_type=inline.get("mimeType") or inline.get("mime_type") or "image/png",
                )
            if part.get("text"):
                text_parts.append(part["text"])

        reason = candidates[0].get("finishReason") or " ".join(text_parts) or "no image part in response"
        return ImageGenerationResult(success=False, error=f"Gemini returned no image: {reason}")

    @staticmethod
    def _image_size(data: bytes):
        try:
            with Image.open(io.BytesIO(data)) as img:
                return img.width, img.height
        except (OSError, ValueError) as e:
            logger.warning("Could not read generated image dimensions", error=str(e))
            return None, None

    @staticmethod
    def _detect_mime_type(data: bytes) -> str:
        try:
            with Image.open(io.BytesIO(data)) as img:
                return Image.MIME.get(img.format, "image/png")
        except (OSError, ValueError):
            return "image/png"
