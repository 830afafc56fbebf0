from abc import ABC, abstractmethod
from typing import Dict, Any

class VisionProvider(ABC):
    """Abstract base class for vision providers."""

    @abstractmethod
    async def analyze_image(self, image_data: bytes, **kwargs) -> Dict[str, Any]:
        """Analyze image content. Returns ``analysis``, ``model`` and ``usage``."""
        pass

    async def describe_image(self, image_data: bytes, **kwargs) -> str:
        """Short textual description of a single video frame."""
        result = await self.analyze_image(image_data, **kwargs)
        return (result.get("analysis") or "").strip()

    @abstractmethod
    async def close(self):
        """Close the provider and cleanup resources."""
        pass
