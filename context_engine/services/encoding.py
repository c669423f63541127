"""Multi-encoding text decoding for indexed files.

Repositories mix authoring tools and locales, so a single mis-encoded file
must not abort indexing. Candidates are tried in order and the first clean
decode wins; if none is clean, lossy UTF-8 is returned.

The Windows-1252 stage follows the WHATWG mapping: the five bytes Python's
cp1252 codec leaves undefined (0x81, 0x8D, 0x8F, 0x90, 0x9D) decode to the
matching C1 control characters, so that stage accepts any byte string.
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import Sequence
from pathlib import Path

__all__ = [
    'FALLBACK_ENCODINGS',
    'decode_bytes',
    'read_text_file',
]

logger = logging.getLogger(__name__)

# Strict candidates, in order. GBK is a superset of GB2312 (Simplified Chinese);
# cp1252 is the Windows superset of Latin-1.
FALLBACK_ENCODINGS: Sequence[str] = ('utf-8', 'gbk', 'cp1252')

_C1_PASSTHROUGH = 'context-engine-c1-passthrough'


def _decode_c1_passthrough(exc: UnicodeError) -> tuple[str, int]:
    if not isinstance(exc, UnicodeDecodeError):
        raise exc
    undefined = exc.object[exc.start : exc.end]
    return ''.join(chr(byte) for byte in undefined), exc.end


codecs.register_error(_C1_PASSTHROUGH, _decode_c1_passthrough)


def decode_bytes(data: bytes, *, label: str = '<bytes>') -> str:
    """Decode raw bytes to text. Never raises.

    Args:
        data: Raw file content.
        label: Name used in debug logs (usually the file path).

    Returns:
        Text from the first encoding that decodes without errors, or UTF-8
        with invalid sequences replaced.
    """
    for encoding in FALLBACK_ENCODINGS:
        errors = _C1_PASSTHROUGH if encoding == 'cp1252' else 'strict'
        try:
            text = data.decode(encoding, errors=errors)
        except UnicodeDecodeError:
            continue
        if encoding != 'utf-8':
            logger.debug(f'[DECODE] {label} decoded as {encoding}')
        return text

    logger.debug(f'[DECODE] {label} decoded as lossy utf-8, some characters replaced')
    return data.decode('utf-8', errors='replace')


def read_text_file(path: Path) -> str | None:
    """Read and decode a file. Returns None if it cannot be opened or read."""
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.debug(f'[DECODE] Cannot read {path}: {e}')
        return None
    return decode_bytes(data, label=str(path))
