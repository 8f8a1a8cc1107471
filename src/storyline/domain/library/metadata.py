"""
Audiobook metadata extraction.

A thin import adapter: reads title, author, narrator and duration from the
audio file's tags so `storyline add` can create a catalog record.
"""

import math
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger
from mutagen import File as MutagenFile
from mutagen import MutagenError


def get_tag_value(audio_file: Any, tag_names: List[str]) -> Optional[str]:
    """Get tag value, trying multiple possible tag names."""
    for tag_name in tag_names:
        value = audio_file.get(tag_name)
        if value:
            if isinstance(value, list) and value:
                return str(value[0])
            return str(value)
    return None


def extract_metadata_from_filename(file_path: str) -> Dict[str, Any]:
    """Extract basic info from filename as fallback.

    Understands the common "Author - Title" naming.
    """
    title = Path(file_path).stem
    author = None

    if " - " in title:
        author, title = (part.strip() for part in title.split(" - ", 1))

    return {"title": title, "author": author}


def read_duration(audio_file: Any) -> Optional[float]:
    """Duration in seconds, or None when the stream does not report a usable one."""
    info = getattr(audio_file, "info", None)
    length = getattr(info, "length", None)
    if length is None:
        return None
    try:
        length = float(length)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(length) or length <= 0:
        return None
    return length


def extract_title_metadata(file_path: str) -> Dict[str, Any]:
    """Extract audiobook metadata from an audio file using mutagen.

    Returns:
        Dict with title, author, narrator and duration (0.0 if unknown)
    """
    fallback = extract_metadata_from_filename(file_path)
    metadata: Dict[str, Any] = {
        "title": fallback["title"],
        "author": fallback["author"] or "Unknown Author",
        "narrator": None,
        "duration": 0.0,
    }

    try:
        audio_file = MutagenFile(file_path)
    except (MutagenError, OSError) as e:
        logger.warning(f"Could not read metadata from {file_path}: {e}")
        return metadata

    if audio_file is None:
        logger.debug(f"Unrecognised audio format, using filename: {file_path}")
        return metadata

    title = get_tag_value(audio_file, ["TIT2", "\xa9nam", "TITLE", "ALBUM", "\xa9alb"])
    author = get_tag_value(audio_file, ["TPE1", "\xa9ART", "ARTIST", "AUTHOR", "aART"])
    # Narrators are usually stored as composer on m4b files
    narrator = get_tag_value(audio_file, ["TCOM", "\xa9wrt", "COMPOSER", "NARRATOR"])

    if title:
        metadata["title"] = title
    if author:
        metadata["author"] = author
    metadata["narrator"] = narrator
    metadata["duration"] = read_duration(audio_file) or 0.0

    return metadata


def is_supported_format(file_path: Path, supported_formats: List[str]) -> bool:
    """Check if file format is supported."""
    return file_path.suffix.lower() in supported_formats
