"""
Input sanitization helpers for uploads and ids.
"""

import re
import uuid
from pathlib import PurePosixPath
from typing import Optional

MAX_FILENAME_LENGTH = 200


def sanitize_filename(filename: Optional[str]) -> str:
    """
    Reduce a user-supplied filename to a safe single path component.

    Directory parts and control characters are dropped, anything outside
    [word . - space] becomes an underscore, and leading dots are stripped so the
    result is never hidden. Long names are cut down keeping the extension.
    """
    if not filename:
        return f"unnamed_{uuid.uuid4().hex[:8]}"

    name = PurePosixPath(filename.replace("\\", "/")).name
    name = re.sub(r"[\x00-\x1f\x7f]", "", name)
    name = re.sub(r"[^\w.\-\s]", "_", name)
    name = re.sub(r"[_\s]+", "_", name).lstrip(".")

    if not name or name == "_":
        return f"unnamed_{uuid.uuid4().hex[:8]}"

    if len(name) > MAX_FILENAME_LENGTH:
        stem, _, ext = name.rpartition(".")
        if stem and ext and len(ext) < 10:
            name = stem[:MAX_FILENAME_LENGTH - len(ext) - 1] + "." + ext
        else:
            name = name[:MAX_FILENAME_LENGTH]
    return name


def file_extension(filename: Optional[str], default: str = "bin") -> str:
    """Lower-cased extension without the dot."""
    _, dot, ext = sanitize_filename(filename).rpartition(".")
    if not dot or not ext:
        return default
    return ext.lower()


def validate_uuid(value: Optional[str]) -> Optional[str]:
    """The value when it parses as a UUID, otherwise None."""
    try:
        uuid.UUID(str(value))
        return value
    except (ValueError, TypeError):
        return None

