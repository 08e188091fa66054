"""Turn raw process output into ordered text lines."""

from collections.abc import Iterable


def decode_output(data: bytes | str | None) -> str:
    """Decode process output, replacing undecodable bytes."""
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def normalize_lines(lines: Iterable[str], drop_blank: bool = True) -> list[str]:
    """Strip line terminators and optionally drop blank lines.

    Args:
        lines: Lines in stream order
        drop_blank: Remove empty and whitespace-only lines

    Returns:
        Lines in their original order
    """
    result = [line.rstrip("\r\n") for line in lines]
    if drop_blank:
        result = [line for line in result if line.strip()]
    return result


def normalize_output(data: bytes | str | None, drop_blank: bool = True) -> list[str]:
    """Split raw output into an ordered list of lines.

    Examples:
        >>> normalize_output(b"A\\n\\nB\\n")
        ['A', 'B']
        >>> normalize_output(b"A\\n\\nB\\n", drop_blank=False)
        ['A', '', 'B']
    """
    return normalize_lines(decode_output(data).splitlines(), drop_blank=drop_blank)
