"""
Upload validation for shared files.

Layers, cheapest first:
- size against the configured MB limit
- extension allow-list
- declared MIME type allow-list
- suspicious filename patterns (double extensions, bidi overrides, markup)
- MIME / extension agreement
- magic bytes for common binary formats
"""

from __future__ import annotations

import re
from typing import Optional

from feedback_hub_shared.schemas.files import FileShareSettings

MB = 1024 * 1024

DANGEROUS_EXTENSIONS = {".exe", ".bat", ".cmd", ".sh", ".ps1", ".app", ".js", ".vbs"}

MIME_EXTENSIONS: dict[str, tuple[str, ...]] = {
    "application/pdf": (".pdf",),
    "image/jpeg": (".jpg", ".jpeg"),
    "image/png": (".png",),
    "image/gif": (".gif",),
    "image/webp": (".webp",),
    "text/plain": (".txt",),
    "text/csv": (".csv",),
    "application/zip": (".zip",),
}

# Leading signatures; OOXML documents are zip containers
MAGIC_BYTES: dict[str, tuple[bytes, ...]] = {
    ".pdf": (b"%PDF",),
    ".png": (b"\x89PNG\r\n\x1a\n",),
    ".jpg": (b"\xff\xd8\xff",),
    ".jpeg": (b"\xff\xd8\xff",),
    ".gif": (b"GIF87a", b"GIF89a"),
    ".webp": (b"RIFF",),
    ".zip": (b"PK\x03\x04", b"PK\x05\x06"),
    ".docx": (b"PK\x03\x04",),
    ".xlsx": (b"PK\x03\x04",),
    ".pptx": (b"PK\x03\x04",),
    ".7z": (b"7z\xbc\xaf\x27\x1c",),
    ".rar": (b"Rar!\x1a\x07",),
}

_UNSAFE_CHARS = re.compile(r"[^\w\s.-]")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_MARKUP = re.compile(r"<script|javascript:|onerror=", re.IGNORECASE)


def sanitize_filename(filename: str) -> str:
    name = _UNSAFE_CHARS.sub("", filename)
    name = re.sub(r"\s+", "_", name)
    name = re.sub(r"\.{2,}", ".", name)
    name = _CONTROL_CHARS.sub("", name)
    return name[:255] or "file"


def get_file_extension(filename: str) -> str:
    parts = filename.rsplit(".", 1)
    if len(parts) < 2 or not parts[1]:
        return ""
    return "." + parts[1].lower()


def detect_suspicious_patterns(filename: str) -> Optional[str]:
    extensions = re.findall(r"\.[^.]+", filename)
    if len(extensions) > 1 and extensions[-1].lower() in DANGEROUS_EXTENSIONS:
        return "Suspicious double extension"
    if "\u202e" in filename:
        return "Filename contains hidden characters"
    if _MARKUP.search(filename):
        return "Filename contains markup"
    if "\x00" in filename:
        return "Invalid filename"
    return None


def magic_bytes_match(extension: str, head: bytes) -> bool:
    signatures = MAGIC_BYTES.get(extension)
    if not signatures:
        return True
    return any(head.startswith(sig) for sig in signatures)


def validate_file(
    filename: str,
    content_type: str,
    data: bytes,
    settings: FileShareSettings,
) -> Optional[str]:
    """Return an error message, or None when the upload is acceptable."""
    if len(data) > settings.max_file_size * MB:
        return f"File exceeds the {settings.max_file_size} MB limit"

    ext = get_file_extension(filename)
    if not ext or ext not in settings.allowed_extensions:
        return f"File extension {ext or '(none)'} is not allowed"

    if content_type not in settings.allowed_file_types:
        return f"File type {content_type} is not allowed"

    suspicious = detect_suspicious_patterns(filename)
    if suspicious:
        return suspicious

    expected = MIME_EXTENSIONS.get(content_type)
    if expected and ext not in expected:
        return "File type does not match its extension"

    if not magic_bytes_match(ext, data[:16]):
        return "File content does not match its extension"

    return None


def quota_error(current_bytes: int, additional_bytes: int, settings: FileShareSettings) -> Optional[str]:
    """Per-user storage quota check (0 disables the quota)."""
    limit = settings.max_total_storage_per_user
    if not limit:
        return None
    if (current_bytes + additional_bytes) / MB > limit:
        return f"Storage quota of {limit} MB exceeded"
    return None
