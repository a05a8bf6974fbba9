"""
Generator factory for creating provider instances from settings
"""
from typing import Dict, Optional, Type

from listing_studio.core.config import settings
from listing_studio.core.exceptions import ConfigurationError
from .base import AssetGenerator
from .exceptions import GeneratorError


class GeneratorFactory:
    """Factory for creating and caching generator instances"""

    _providers: Dict[str, Type[AssetGenerator]] = {}
    _instances: Dict[str, AssetGenerator] = {}

    @classmethod
    def register_provider(cls, name: str, provider_class: Type[AssetGenerator]):
        """Register a new generator class"""
        cls._providers[name] = provider_class

    @classmethod
    def create_provider(cls, provider_type: str, config: Dict) -> AssetGenerator:
        if provider_type not in cls._providers:
            available = ", ".join(cls._providers.keys())
            raise GeneratorError(
                f"Unsupported provider type: {provider_type}. "
                f"Available providers: {available}"
            )
        return cls._providers[provider_type](**config)

    @classmethod
    def get_provider(cls, provider_type: Optional[str] = None) -> AssetGenerator:
        """Get or create the configured generator; fails fast without credentials"""
        provider_type = provider_type or settings.GENERATOR_PROVIDER
        if provider_type not in cls._instances:
            if not settings.GEMINI_API_KEY:
                raise ConfigurationError("GEMINI_API_KEY not configured")
            config = {
                "api_key": settings.GEMINI_API_KEY,
                "image_model": settings.GEMINI_IMAGE_MODEL,
                "video_model": settings.GEMINI_VIDEO_MODEL,
                "timeout": settings.GENERATOR_TIMEOUT_SECONDS,
            }
            cls._instances[provider_type] = cls.create_provider(provider_type, config)
        return cls._instances[provider_type]

    @classmethod
    def list_providers(cls) -> list:
        """List all registered provider types"""
        return list(cls._providers.keys())
