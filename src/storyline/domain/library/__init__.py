"""Library domain - audiobook records and their persistence.

This domain handles:
- The Title record and its position/finished/tag mutations
- The SQLite-backed catalog (create, query, save)
- Metadata extraction for new titles
"""

from .models import (
    Title,
    TitleFilter,
    TitleSort,
    FAVORITES_TAG,
)
from .catalog import Catalog
from .metadata import extract_title_metadata, is_supported_format

__all__ = [
    "Title",
    "TitleFilter",
    "TitleSort",
    "FAVORITES_TAG",
    "Catalog",
    "extract_title_metadata",
    "is_supported_format",
]
