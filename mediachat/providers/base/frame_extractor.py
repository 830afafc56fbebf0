from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Union


class FrameExtractor(ABC):
    """Abstract base class for still-frame extraction from a playable media URL."""

    @abstractmethod
    async def extract_frames(
        self,
        media_url: str,
        timestamps: List[float],
        output_dir: Union[str, Path],
    ) -> Dict[float, str]:
        """Extract one image per timestamp.

        Failures for individual timestamps are logged and left out of the
        result; they never abort the batch.
        """
        pass
