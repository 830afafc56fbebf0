from abc import ABC, abstractmethod
from typing import List, Optional

from ...models import Asset, CaptionRef, RelatedItem


class CatalogProvider(ABC):
    """Abstract base class for the host platform's media catalog."""

    @abstractmethod
    async def get_asset(self, asset_id: str) -> Optional[Asset]:
        """Load an asset by id or uuid; ``None`` when the catalog does not know it."""
        pass

    @abstractmethod
    async def list_related(self, excluding_id: str, limit: int = 10) -> List[RelatedItem]:
        """Other recently published items, never including ``excluding_id``."""
        pass

    @abstractmethod
    async def fetch_caption(self, caption: CaptionRef) -> Optional[str]:
        """Raw timed-text content of a caption track, ``None`` when unavailable."""
        pass

    async def close(self):
        """Close the provider and cleanup resources."""
        pass
