"""
Percentage Context Module

Finds percentage literals in ingredient text and the handful of tokens that
precede each one. The windows drive both the fruit/vegetable aggregation and
the offline vocabulary mining that produces the category lookup table.
"""

import re
import string
import logging
from collections import Counter
from typing import Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .config import CONTEXT_WINDOW_SIZE, LOOKUP_TERM_COLUMN
from .text_extraction import tokenize

logger = logging.getLogger(__name__)

PERCENTAGE_PATTERN = re.compile(r'(\d+(?:\.\d+)?)\s*%')

ContextWindow = Tuple[int, List[str]]


def is_percentage_literal(token: str) -> bool:
    return bool(PERCENTAGE_PATTERN.search(token))


def percentage_value(token: str) -> Optional[float]:
    """
    Numeric value of a percentage literal such as '65%' or '(12.5%),'.

    Only a decimal point is recognised; with a decimal comma ('12,5%') the
    value is the part after the comma.
    """
    match = PERCENTAGE_PATTERN.search(token)
    if match is None:
        return None
    return float(match.group(1))


def context_term(token: str) -> str:
    """Strip surrounding punctuation so 'apple,' and '(apple' look up as 'apple'."""
    return token.strip(string.punctuation)


def percentage_contexts(tokens: Sequence[str], window_size: int = CONTEXT_WINDOW_SIZE) -> List[ContextWindow]:
    """
    Collect the preceding-token window for every percentage literal.

    The window for a literal at index i is tokens[i - window_size:i], clipped at
    the start of the sequence. It never includes the literal itself and never
    looks ahead; an earlier literal may sit inside a later window.

    Returns:
        List of (index, window) pairs in left-to-right order
    """
    contexts = []
    for idx, token in enumerate(tokens):
        if is_percentage_literal(token):
            start = max(0, idx - window_size)
            contexts.append((idx, list(tokens[start:idx])))
    return contexts


def mine_context_terms(texts: Iterable[Optional[str]], top_n: Optional[int] = None) -> pd.DataFrame:
    """
    Rank the words that appear in front of percentages across many ingredient lists.

    This is the offline step behind the category lookup: the ranked terms are
    handed to a person who flags which ones denote (concentrated) fruit or
    vegetable content.

    Args:
        texts: Ingredient texts (missing entries are skipped)
        top_n: Keep only the most frequent terms if given

    Returns:
        DataFrame with 'term' and 'count' columns, most frequent first
    """
    counts: Counter = Counter()
    n_texts = 0
    for text in texts:
        tokens = tokenize(text)
        if not tokens:
            continue
        n_texts += 1
        for _, window in percentage_contexts(tokens):
            for token in window:
                if is_percentage_literal(token):
                    continue
                term = context_term(token)
                if term:
                    counts[term] += 1

    logger.info(f"Mined {len(counts)} distinct context terms from {n_texts} ingredient texts")

    terms_df = pd.DataFrame(list(counts.items()), columns=[LOOKUP_TERM_COLUMN, 'count'])
    if terms_df.empty:
        return terms_df
    terms_df = terms_df.sort_values(['count', LOOKUP_TERM_COLUMN], ascending=[False, True]).reset_index(drop=True)
    if top_n is not None:
        terms_df = terms_df.head(top_n)
    return terms_df
