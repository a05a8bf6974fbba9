"""
Generator abstraction layer for product image and video synthesis
"""
from .base import AssetGenerator, ImageGenerationResult, VideoOperation, VideoParams
from .factory import GeneratorFactory
from .exceptions import GeneratorError, GeneratorTimeout, RateLimitError, AuthenticationError

from .gemini_provider import GeminiProvider

# Register providers
GeneratorFactory.register_provider("gemini", GeminiProvider)

__all__ = [
    "AssetGenerator",
    "ImageGenerationResult",
    "VideoOperation",
    "VideoParams",
    "GeneratorFactory",
    "GeneratorError",
    "GeneratorTimeout",
    "RateLimitError",
    "AuthenticationError",
    "GeminiProvider",
]
