"""Per-site recipe extractors."""

from .aniagotuje import AniaGotujeExtractor
from .base import SourceExtractor
from .poprostupycha import PoprostuPychaExtractor
from .smaker import SmakerExtractor
from .zesmakiemnaty import ZeSmakiemNaTyExtractor

__all__ = [
    "AniaGotujeExtractor",
    "PoprostuPychaExtractor",
    "SmakerExtractor",
    "SourceExtractor",
    "ZeSmakiemNaTyExtractor",
]
