"""
age ciphertext framing — ASCII armor, raw binary, or base64 of the binary envelope.

Armor follows the age format: a header line, base64 body wrapped at 64
columns (only the last line may be shorter), a footer line. Leading and
trailing whitespace around the block is ignored, nothing else is.
"""

from __future__ import annotations

import base64
from enum import StrEnum

from sealedage.constants import AGE_MAGIC, ARMOR_COLUMNS, ARMOR_FOOTER, ARMOR_HEADER
from sealedage.errors import ArmorError


class Framing(StrEnum):
    ARMORED = "armored"
    BINARY = "binary"
    BASE64 = "base64"


def is_armored(ciphertext: str) -> bool:
    """True if the text starts with the armor header once leading whitespace is dropped."""
    return ciphertext.lstrip(" \t\r\n").startswith(ARMOR_HEADER)


def detect(ciphertext: str) -> Framing:
    if is_armored(ciphertext):
        return Framing.ARMORED
    if ciphertext.startswith(AGE_MAGIC):
        return Framing.BINARY
    # non-ASCII text raises ValueError rather than binascii.Error
    try:
        decoded = base64.b64decode("".join(ciphertext.split()), validate=True)
    except ValueError:
        return Framing.BINARY
    if decoded.startswith(AGE_MAGIC.encode("ascii")):
        return Framing.BASE64
    return Framing.BINARY


def decode_armor(text: str) -> bytes:
    """Strip armor and return the binary age envelope. Raises ArmorError."""
    lines = text.strip(" \t\r\n").replace("\r\n", "\n").split("\n")
    if lines[0] != ARMOR_HEADER:
        raise ArmorError("invalid armor header")
    if len(lines) < 2 or lines[-1].rstrip(" \t") != ARMOR_FOOTER:
        raise ArmorError("missing armor footer")

    body = lines[1:-1]
    if not body:
        raise ArmorError("empty armor body")
    for i, line in enumerate(body):
        if len(line) > ARMOR_COLUMNS:
            raise ArmorError(f"armor line {i + 1} exceeds {ARMOR_COLUMNS} columns")
        if len(line) < ARMOR_COLUMNS and i != len(body) - 1:
            raise ArmorError(f"short armor line {i + 1} before end of body")

    joined = "".join(body)
    try:
        data = base64.b64decode(joined, validate=True)
    except ValueError as e:
        raise ArmorError(f"invalid base64 in armor: {e}") from e
    if base64.b64encode(data).decode("ascii") != joined:
        raise ArmorError("non-canonical base64 in armor")
    return data


def unframe(ciphertext: str) -> tuple[bytes, Framing]:
    """Return the binary age envelope for any supported framing."""
    framing = detect(ciphertext)
    if framing == Framing.ARMORED:
        return decode_armor(ciphertext), framing
    if framing == Framing.BASE64:
        return base64.b64decode("".join(ciphertext.split())), framing
    return ciphertext.encode("utf-8", "surrogateescape"), framing
