"""
Similarity signals between two normalized person names.

- bigram_similarity: Dice coefficient over character-bigram SETS
- abbreviation_match: do the words line up, allowing initials such as
  "m." for "muhammad" and extra alumni-side (middle/maiden) names?

Both are pure; callers normalize first.
"""
from __future__ import annotations

from typing import Set


def bigrams(text: str) -> Set[str]:
    """Distinct overlapping 2-character substrings."""
    return {text[i:i + 2] for i in range(len(text) - 1)}


def bigram_similarity(a: str, b: str) -> float:
    """
    Dice coefficient of the bigram sets of a and b, in [0, 1].

    Sets, not multisets: repeated letters do not inflate the score.

    >>> bigram_similarity("budi", "budi")
    1.0
    >>> bigram_similarity("", "budi")
    0.0
    """
    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    grams_a = bigrams(a)
    grams_b = bigrams(b)
    shared = len(grams_a & grams_b)
    return (2 * shared) / (len(grams_a) + len(grams_b))


def _is_initial_of(short: str, word: str) -> bool:
    """'m.' / 'm' / 'mu' abbreviate 'muhammad'."""
    if len(short) > 2:
        return False
    stem = short[:-1] if short.endswith(".") else short
    return word.startswith(stem)


def abbreviation_match(member_name: str, alumni_name: str) -> bool:
    """
    True when the member's words line up with the alumni's words.

    Walks both word lists with separate cursors. Identical words and
    initials (either side) count as a match and advance both; anything
    else skips the alumni word only, so extra alumni names are tolerated
    while member words never are.

    Needs >= 2 matched words covering all but one word of the shorter name.

    >>> abbreviation_match("m. arief", "muhammad arief")
    True
    >>> abbreviation_match("arief", "muhammad arief")
    False
    """
    member_parts = member_name.split()
    alumni_parts = alumni_name.split()

    m_idx = 0
    a_idx = 0
    matched = 0

    while m_idx < len(member_parts) and a_idx < len(alumni_parts):
        mp = member_parts[m_idx]
        ap = alumni_parts[a_idx]

        if mp == ap or _is_initial_of(mp, ap) or _is_initial_of(ap, mp):
            matched += 1
            m_idx += 1
            a_idx += 1
        else:
            a_idx += 1

    shorter = min(len(member_parts), len(alumni_parts))
    return matched >= 2 and matched >= shorter - 1
