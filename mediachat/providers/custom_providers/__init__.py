from .peertube_catalog_provider import PeerTubeCatalogProvider
from .ffmpeg_frame_extractor import FFmpegFrameExtractor

__all__ = [
    "PeerTubeCatalogProvider",
    "FFmpegFrameExtractor",
]
