"""
File Utilities
==============
Folder name sanitizing, remote path joining, subgroup grouping, byte
range planning and content type detection.
"""

import io
import mimetypes
import os
import re
import zipfile
from collections import OrderedDict
from typing import Any, Callable, Container, Dict, Iterable, List, Optional, Tuple

from ..config.constants import CONTENT_TYPE_MAPPING, PHOTOS_MEDIA_PREFIXES


def sanitize_folder_name(name: str, fallback: Optional[str] = None) -> str:
    """
    Make a folder or album name safe on every provider.

    - Replaces <>:"|?* and path separators with underscores
    - Strips leading/trailing spaces and dots
    - Collapses runs of whitespace into one space
    - Limits length to 255 characters

    Args:
        name: Raw folder name
        fallback: Returned when nothing usable remains

    Returns:
        Sanitized name (or fallback)
    """
    if not name or not isinstance(name, str):
        return fallback or ""

    sanitized = re.sub(r'[<>:"|?*/\\]', '_', name)
    sanitized = sanitized.strip(' .')
    sanitized = re.sub(r'\s+', ' ', sanitized)
    sanitized = sanitized[:255]

    return sanitized or (fallback or "")


def join_remote_path(*parts: str) -> str:
    """
    Join path segments into an absolute remote path.

    Empty segments are skipped and duplicate slashes removed:
        join_remote_path('Mazeloot', 'Wedding/', '/a.jpg') -> '/Mazeloot/Wedding/a.jpg'
    """
    segments = []
    for part in parts:
        if not part:
            continue
        segments.extend(s for s in part.replace('\\', '/').split('/') if s)
    return '/' + '/'.join(segments)


def group_by_subgroup(
    items: Iterable,
    default: str,
    key: Optional[Callable[[Any], Optional[str]]] = None,
) -> "OrderedDict[str, List]":
    """
    Group items by subgroup, preserving first-seen order.

    Args:
        items: File descriptors (or anything ``key`` understands)
        default: Subgroup used when an item has none
        key: Extracts the subgroup (defaults to the ``subgroup`` attribute)

    Returns:
        Ordered mapping of subgroup name to its items (in request order)
    """
    get_subgroup = key or (lambda item: item.subgroup)
    groups: "OrderedDict[str, List]" = OrderedDict()
    for item in items:
        groups.setdefault(get_subgroup(item) or default, []).append(item)
    return groups


def chunk_ranges(total_size: int, chunk_size: int) -> List[Tuple[int, int]]:
    """
    Plan contiguous inclusive byte ranges covering ``[0, total_size - 1]``.

    The last range may be short. An empty file yields no ranges.

    Raises:
        ValueError: If chunk_size is not positive
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    ranges = []
    start = 0
    while start < total_size:
        end = min(start + chunk_size, total_size) - 1
        ranges.append((start, end))
        start = end + 1
    return ranges


def get_file_extension(filename: str) -> str:
    """Lowercase extension without the dot ('' if none)."""
    if not filename:
        return ''
    _, ext = os.path.splitext(filename)
    return ext.lower().lstrip('.')


def guess_content_type(filename: str, declared: Optional[str] = None) -> str:
    """
    Resolve the MIME type for an upload.

    A declared type wins; otherwise the extension map, then mimetypes,
    then application/octet-stream.
    """
    if declared:
        return declared

    ext = get_file_extension(filename)
    if ext in CONTENT_TYPE_MAPPING:
        return CONTENT_TYPE_MAPPING[ext]

    guessed, _ = mimetypes.guess_type(filename)
    return guessed or 'application/octet-stream'


def is_photos_media(content_type: str) -> bool:
    """True for MIME types Google Photos accepts (images and videos)."""
    return bool(content_type) and content_type.lower().startswith(PHOTOS_MEDIA_PREFIXES)


def build_archive(entries: Dict[str, bytes]) -> bytes:
    """
    Build an in-memory zip archive.

    Args:
        entries: Mapping of archive path ('Set 1/a.jpg') to file bytes

    Returns:
        Zip file content
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
        for arcname, content in entries.items():
            archive.writestr(arcname, content)
    return buffer.getvalue()


def unique_archive_path(path: str, taken: Container[str]) -> str:
    """
    Return ``path``, or 'name (1).ext', 'name (2).ext', ... when already taken.

    Example:
        unique_archive_path('Set 1/a.jpg', {'Set 1/a.jpg'}) -> 'Set 1/a (1).jpg'
    """
    if path not in taken:
        return path

    stem, ext = os.path.splitext(path)
    counter = 1
    while f"{stem} ({counter}){ext}" in taken:
        counter += 1
    return f"{stem} ({counter}){ext}"
