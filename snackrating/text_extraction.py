"""
Text Extraction Helpers

Whitespace tokenisation of the scraped free-text fields and the
keyword-proximity lookup used to pull numbers out of the full nutrition table.
Text is expected to be case-folded already (see data_loader.load_records).
"""

import logging
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)


def tokenize(text: Optional[str]) -> List[str]:
    """Split text on runs of whitespace. Missing or empty text gives no tokens."""
    if not text or not isinstance(text, str):
        return []
    return text.split()


def extract_after_keyword(tokens: Sequence[str], keyword: str) -> Optional[str]:
    """
    Return the token right after the first token that contains `keyword`.

    Only the first mention counts, so a legend or header that repeats the
    keyword later never changes the result. The follower may well be
    non-numeric; callers parse it and treat garbage as missing.

    Args:
        tokens: Token sequence from `tokenize`
        keyword: Keyword to look for (matched case-insensitively as a substring)

    Returns:
        The following token, or None if the keyword is absent or is the last token
    """
    keyword = keyword.lower()
    for idx, token in enumerate(tokens):
        if keyword in token.lower():
            if idx + 1 < len(tokens):
                return tokens[idx + 1]
            return None
    return None
