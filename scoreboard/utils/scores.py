"""Score text normalization shared by the cabinet client and score capture."""
from typing import Optional

# separators the cabinet and OCR output put inside numbers
_SEPARATORS = (" ", ",", ".")


def _strip_separators(text: str) -> str:
    for separator in _SEPARATORS:
        text = text.replace(separator, "")
    return text


def parse_score_text(text: Optional[str]) -> int:
    """
    Convert cabinet score text to an integer.

    Malformed text normalizes to 0 rather than failing.

    Examples:
        >>> parse_score_text("48,104,320")
        48104320
        >>> parse_score_text("n/a")
        0
    """
    if not text:
        return 0
    try:
        return int(_strip_separators(text))
    except ValueError:
        return 0


def normalize_ocr_score(text: Optional[str]) -> Optional[int]:
    """
    Convert recognized text to a candidate score.

    Leading zeros are dropped; anything that is not a number returns None.
    """
    if not text:
        return None
    digits = _strip_separators(text.strip()).lstrip("0")
    if not (digits.isascii() and digits.isdigit()):
        return None
    return int(digits)
