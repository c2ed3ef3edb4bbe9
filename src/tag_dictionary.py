"""
tag_dictionary.py - Known DICOM attribute tags, taken from pydicom.

The AT (attribute tag) rule needs to know whether a referenced tag is one
the standard defines.  pydicom ships the full PS3.6 data dictionary, so
the set is built from it once and reused.
"""

import logging
from functools import lru_cache

from pydicom.datadict import DicomDictionary, keyword_for_tag
from pydicom.tag import Tag

logger = logging.getLogger(__name__)


def format_tag(tag: int) -> str:
    """Render a tag as the 8-digit upper-case hex key used in records."""
    return f"{int(tag):08X}"


@lru_cache(maxsize=1)
def known_tags() -> frozenset:
    """
    Return every tag in pydicom's data dictionary as ``"GGGGEEEE"`` strings.

    Repeating-group tags (e.g. overlay groups ``60xx``) are not expanded.
    """
    tags = frozenset(format_tag(tag) for tag in DicomDictionary)
    logger.debug("Loaded %d known tags from the pydicom dictionary.", len(tags))
    return tags


def tag_keyword(tag: str) -> str:
    """Keyword for a record key such as ``"00100010"``; empty if unknown."""
    try:
        return keyword_for_tag(Tag(int(tag, 16)))
    except ValueError:
        return ""
