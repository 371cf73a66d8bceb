"""
Idempotent splice of a generated section into a human-authored file.

Everything above the sentinel marker belongs to the author and is never
touched. Everything from the marker to the end of the file is regenerated.
Running the splice twice with the same block yields the same bytes.
"""

import logging
from typing import List, Optional

from ..constants import Splice
from ..exceptions import SpliceError


logger = logging.getLogger(__name__)

SEPARATOR = "\n\n\n"


def find_marker(lines: List[str], file_path: Optional[str] = None) -> Optional[int]:
    """
    Locate the marker line.

    Args:
        lines: File lines, with or without line endings
        file_path: Used in error reports

    Returns:
        Zero-based index of the marker line, or None when the file has none

    Raises:
        SpliceError: On duplicated markers, or a line carrying the marker tag
            that is not the exact marker
    """
    found: List[int] = []
    for index, line in enumerate(lines):
        if Splice.MARKER_TAG not in line:
            continue
        if line.strip() != Splice.MARKER:
            raise SpliceError(
                "Corrupted generated-section marker",
                file_path=file_path,
                line=index + 1,
            )
        found.append(index)

    if len(found) > 1:
        raise SpliceError(
            f"Generated-section marker appears {len(found)} times "
            f"(lines {', '.join(str(i + 1) for i in found)})",
            file_path=file_path,
            line=found[1] + 1,
        )
    return found[0] if found else None


def splice_generated_block(original: str, block: str, file_path: Optional[str] = None) -> str:
    """
    Return ``original`` with its generated section replaced by ``block``.

    ``block`` must start with the marker line. When the file has no marker
    yet, the block is appended after a separator.

    Raises:
        SpliceError: If the marker is ambiguous; the caller must then leave
            the file untouched
    """
    if not block.startswith(Splice.MARKER):
        raise ValueError("Generated block must start with the marker line")

    lines = original.splitlines(keepends=True)
    marker_index = find_marker(lines, file_path)

    if marker_index is not None:
        head = "".join(lines[:marker_index])
        logger.debug(f"Replacing generated section of {file_path} at line {marker_index + 1}")
    else:
        # The author's text is kept byte for byte; only the separator is added
        if not original:
            head = ""
        elif original.endswith("\n"):
            head = original + SEPARATOR[1:]
        else:
            head = original + SEPARATOR
        logger.debug(f"Appending generated section to {file_path}")

    return head + block
