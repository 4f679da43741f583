# Application Interfaces (Protocols)
from src.application.interfaces.segment_downloader import SegmentDownloader
from src.application.interfaces.video_normalizer import VideoNormalizer

__all__ = [
    "SegmentDownloader",
    "VideoNormalizer",
]
