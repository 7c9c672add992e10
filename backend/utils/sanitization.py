"""Helpers for handling the filenames of uploaded claim documents."""

import re

UNKNOWN_FILENAME = "unknown"

# C0/C1 control characters, including CR and LF
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")


def upload_basename(filename: str | None) -> str:
    """Last path component of an uploaded filename, with control characters removed.

    Browsers and mobile clients may send a full client-side path
    (``C:\\scans\\bill.pdf``); only the final component is kept. A bare
    ``.`` or ``..`` component counts as no name.
    """
    if not filename:
        return ""
    name = _CONTROL_CHARS.sub("", filename)
    name = name.replace("\\", "/").rsplit("/", 1)[-1].strip()
    if name in (".", ".."):
        return ""
    return name


def sanitize_filename(filename: str | None, max_length: int = 120) -> str:
    """Filename safe to echo back in document problems and logs.

    Long names are shortened in the middle so the extension stays visible.
    """
    name = upload_basename(filename)
    if not name:
        return UNKNOWN_FILENAME
    if len(name) <= max_length:
        return name

    stem, dot, extension = name.rpartition(".")
    if not dot or not stem or len(extension) > 10:
        return name[:max_length]
    keep = max_length - len(extension) - 2
    return f"{stem[:keep]}~.{extension}"


def file_extension(filename: str | None) -> str:
    """Lower-cased extension of an uploaded file, without the dot.

    Returns an empty string when the name has no extension, including
    dotfiles such as ``.pdf`` and names ending in a dot.
    """
    stem, dot, extension = upload_basename(filename).rpartition(".")
    if not dot or not stem.strip(".") or not extension:
        return ""
    return extension.lower()
