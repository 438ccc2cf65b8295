from __future__ import annotations

"""
Binary Content Sniffing Service.

Classifies files with no extension hint as binary or text by inspecting
their leading bytes. Used by the unpack planner to decide whether an
extensionless dependency file is an executable that must stay outside the
archive.
"""

import os
import stat as stat_mod

SAMPLE_SIZE = 512
SUSPICIOUS_RATIO_PERCENT = 10
_MIN_SAMPLE_FOR_EARLY_EXIT = 32

_TEXT_BOMS = (
    b"\xef\xbb\xbf",          # UTF-8
    b"\x00\x00\xfe\xff",      # UTF-32 BE
    b"\xff\xfe\x00\x00",      # UTF-32 LE
    b"\xfe\xff",              # UTF-16 BE
    b"\xff\xfe",              # UTF-16 LE
)
_PDF_MAGIC = b"%PDF-"


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def is_binary_file(path: str, sample_size: int = SAMPLE_SIZE) -> bool:
    """
    Decide whether a file holds binary content.

    Only regular files are opened; anything else (a FIFO would block the
    read) is reported as not binary.

    Args:
        path: Absolute path of the file to inspect.
        sample_size: Number of leading bytes to inspect.

    Returns:
        bool: True if the sample looks binary.

    Raises:
        OSError: If the file cannot be stat'ed or read.
    """
    if not stat_mod.S_ISREG(os.stat(path).st_mode):
        return False

    with open(path, "rb") as f:
        sample = f.read(sample_size)

    return is_binary_content(sample)


def is_binary_content(sample: bytes) -> bool:
    """
    Classify a byte sample.

    Empty samples and samples starting with a Unicode BOM are text. A PDF
    header or any NUL byte means binary. Otherwise the sample is binary when
    more than 10% of it is control bytes outside of valid UTF-8 sequences.

    Args:
        sample: Leading bytes of a file.

    Returns:
        bool: True if the sample looks binary.
    """
    total = len(sample)
    if total == 0:
        return False

    if sample.startswith(_TEXT_BOMS):
        return False

    if sample.startswith(_PDF_MAGIC):
        return True

    suspicious = 0
    i = 0
    while i < total:
        byte = sample[i]
        if byte == 0:
            return True

        if _is_plain_text_byte(byte):
            i += 1
            continue

        seq_len = _utf8_sequence_length(sample, i)
        if seq_len:
            i += seq_len
            continue

        suspicious += 1
        if i >= _MIN_SAMPLE_FOR_EARLY_EXIT and suspicious * 100 / total > SUSPICIOUS_RATIO_PERCENT:
            return True
        i += 1

    return suspicious * 100 / total > SUSPICIOUS_RATIO_PERCENT


# -----------------------------------------------------------------------------
# PRIVATE HELPERS
# -----------------------------------------------------------------------------

def _is_plain_text_byte(byte: int) -> bool:
    """TAB through CR, printable ASCII, and DEL."""
    return 7 <= byte <= 14 or 32 <= byte <= 127


def _utf8_sequence_length(sample: bytes, i: int) -> int:
    """Length of a well-formed UTF-8 multi-byte sequence at 'i', or 0."""
    lead = sample[i]
    if 0xC2 <= lead <= 0xDF:
        length = 2
    elif 0xE0 <= lead <= 0xEF:
        length = 3
    elif 0xF0 <= lead <= 0xF4:
        length = 4
    else:
        return 0

    # A sequence cut off by the sample boundary still counts as text
    end = min(i + length, len(sample))
    for j in range(i + 1, end):
        if not 0x80 <= sample[j] <= 0xBF:
            return 0
    return end - i
