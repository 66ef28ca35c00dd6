"""
Canonical person-name normalization for member <-> alumni linking.

This is the SINGLE SOURCE OF TRUTH for name normalization.
The matcher, the exact auto-linker and the CLI all import from here.

Steps, in order:
- lowercase, trim, collapse whitespace runs
- strip ONE leading honorific (dr., ir., h., hj., prof., drs., m.)
- strip ONE trailing academic degree (s.h., s.e., m.m., m.b.a.)

Stripping is single-pass: "Dr. H. Budi" keeps the "h." so abbreviation
matching can still use it.
"""
from __future__ import annotations

import re
from typing import Optional


# ============================================================================
# Constants
# ============================================================================

HONORIFIC_PREFIXES = ("dr", "ir", "h", "hj", "prof", "drs", "m")

DEGREE_SUFFIXES = ("s.h.", "s.e.", "m.m.", "m.b.a.")


def _dotted(token: str) -> str:
    """Regex for a token whose dots are optional: 's.h.' -> 's\\.?h\\.?'."""
    letters = token.replace(".", "")
    return "".join(re.escape(ch) + r"\.?" for ch in letters)


_PREFIX_RE = re.compile(
    r"^(?:" + "|".join(re.escape(p) + r"\.?" for p in HONORIFIC_PREFIXES) + r")\s+",
    re.IGNORECASE,
)

_SUFFIX_RE = re.compile(
    r"\s+(?:" + "|".join(_dotted(s) for s in DEGREE_SUFFIXES) + r")$",
    re.IGNORECASE,
)

_WS_RE = re.compile(r"\s+")


# ============================================================================
# Normalization
# ============================================================================

def normalize_person_name(name: Optional[str]) -> str:
    """
    Canonical comparison form of a person's name. Never raises.

    >>> normalize_person_name("  Dr.  Budi   Santoso S.H. ")
    'budi santoso'
    >>> normalize_person_name("Dr. M. Arief")
    'm. arief'
    """
    s = _WS_RE.sub(" ", (name or "").lower().strip())
    s = _PREFIX_RE.sub("", s, count=1)
    s = _SUFFIX_RE.sub("", s, count=1)
    return s


def exact_key(name: Optional[str]) -> str:
    """Trimmed, case-folded name used by the exact auto-linker."""
    return (name or "").strip().lower()
