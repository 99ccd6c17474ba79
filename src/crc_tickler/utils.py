import os
import re

from crc_tickler.checksum import ChecksumValue, ContentDecodeError, MASK_32

BACKUP_SUFFIX = ".old"

_TRAILING_NEWLINES = re.compile(r"\n+\Z")


def load_content(file_path: str) -> str:
    """Read a migration file as strict UTF-8 text."""
    with open(file_path, "rb") as f:
        data = f.read()
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ContentDecodeError(f"{file_path} is not valid UTF-8: {e}") from e


def append_comment(content: str, comment: str) -> str:
    """Drop trailing newlines, then add the comment as the last line."""
    trimmed = _TRAILING_NEWLINES.sub("", content)
    return f"{trimmed}\n{comment}\n"


def backup_and_write(file_path: str, content: str) -> str:
    """Move the original aside to <file>.old and write the new content. Returns the backup path."""
    backup_path = f"{file_path}{BACKUP_SUFFIX}"
    if os.path.exists(backup_path):
        raise FileExistsError(f"Backup already exists: {backup_path}")

    os.rename(file_path, backup_path)
    with open(file_path, "wb") as f:
        f.write(content.encode("utf-8"))
    return backup_path


def parse_checksum(text: str) -> ChecksumValue:
    """
    Parse a checksum as signed decimal (flyway_schema_history), unsigned
    decimal, or 0x-prefixed hex. Returns the unsigned 32-bit value.
    """
    raw = text.strip()
    try:
        if raw.lower().startswith(("0x", "-0x")):
            value = int(raw, 16)
        else:
            value = int(raw, 10)
    except ValueError:
        raise ValueError(f"Invalid checksum: {text!r}") from None

    if not -(1 << 31) <= value <= MASK_32:
        raise ValueError(f"Checksum out of 32-bit range: {text!r}")
    return value & MASK_32
