"""Text helpers for extracted documentation."""


def convert_dos_line_endings(text: str) -> str:
    """Turn ``\\r\\n`` into ``\\n`` and drop one trailing ``\\r``.

    Example:
        >>> convert_dos_line_endings("foo\\r\\nbar\\r")
        'foo\\nbar'
    """
    text = text.replace("\r\n", "\n")
    if text.endswith("\r"):
        text = text[:-1]
    return text
