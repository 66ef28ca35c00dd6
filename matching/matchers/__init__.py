"""
Matcher implementations for member -> alumni linking.
"""

from .base import BestMatch, Challenger, MatchCandidate, SelectionPolicy
from .cohort import CohortMatcher

__all__ = [
    'BestMatch',
    'Challenger',
    'MatchCandidate',
    'SelectionPolicy',
    'CohortMatcher',
]
