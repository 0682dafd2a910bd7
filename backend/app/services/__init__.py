from .festival_repository import FestivalRepository
from .duplicate_detector import DuplicateDetector
from .text_similarity import similarity, keywords, slugify
from .temporal_overlap import DateRange, overlap

__all__ = [
    "FestivalRepository",
    "DuplicateDetector",
    "similarity",
    "keywords",
    "slugify",
    "DateRange",
    "overlap",
]
