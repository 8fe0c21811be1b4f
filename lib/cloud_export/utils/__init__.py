"""
Utilities module - Folder naming, path and byte range helpers.
"""

from .file_utils import (
    sanitize_folder_name,
    join_remote_path,
    group_by_subgroup,
    chunk_ranges,
    get_file_extension,
    guess_content_type,
    is_photos_media,
    build_archive,
    unique_archive_path,
)

__all__ = [
    "sanitize_folder_name",
    "join_remote_path",
    "group_by_subgroup",
    "chunk_ranges",
    "get_file_extension",
    "guess_content_type",
    "is_photos_media",
    "build_archive",
    "unique_archive_path",
]
