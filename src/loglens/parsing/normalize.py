"""Input normalization applied before detection and parsing."""

from typing import List, Union

BOM = "\ufeff"


def decode_content(data: Union[bytes, str]) -> str:
    """Treat arbitrary bytes as UTF-8 text; undecodable bytes are replaced."""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def normalize_content(content: Union[bytes, str]) -> str:
    """Strip a leading byte-order mark and convert CRLF / CR line endings to LF."""
    text = decode_content(content)
    if text.startswith(BOM):
        text = text[len(BOM):]
    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_lines(content: str) -> List[str]:
    """Split normalized content into physical lines.

    A trailing newline yields a final empty line, so ``len()`` of the result
    is the physical line count reported in summaries.
    """
    return content.split("\n")
