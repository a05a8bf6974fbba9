"""
Base generator interface and result models
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ImageGenerationResult:
    """Outcome of a single image generation call"""
    success: bool
    data: Optional[bytes] = None
    width: Optional[int] = None
    height: Optional[int] = None
    file_size_bytes: Optional[int] = None
    mime_type: str = "image/png"
    error: Optional[str] = None


@dataclass
class VideoParams:
    aspect_ratio: str = "16:9"  # 16:9, 9:16, 1:1
    duration_seconds: int = 4  # 4 - 8
    resolution: str = "720p"  # 720p, 1080p


@dataclass
class VideoOperation:
    """Handle of a long-running video generation"""
    operation_name: str
    model: str
    raw: Dict[str, Any] = field(default_factory=dict)


class AssetGenerator(ABC):
    """Abstract base class for image/video generators"""

    def __init__(self, api_key: str, **kwargs):
        self.api_key = api_key
        self.config = kwargs

    @abstractmethod
    async def generate_image(self, prompt: str, source_image: Optional[bytes] = None) -> ImageGenerationResult:
        """
        Generate one image from a prompt, optionally conditioned on a source image

        Returns:
            ImageGenerationResult; ``success`` is False when the provider
            answered but produced no image

        Raises:
            GeneratorTimeout: If the call exceeds the configured timeout
            GeneratorError: If the provider could not be reached
        """
        pass

    @abstractmethod
    async def start_video(self, prompt: str, params: VideoParams) -> VideoOperation:
        """
        Start an asynchronous video generation and return its operation handle

        Raises:
            GeneratorTimeout: If the call exceeds the configured timeout
            GeneratorError: If the provider rejected the request
        """
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this provider"""
        pass
