"""
Entry point for running the linkage module as a script.

Usage:
    python -m matching preview
    python -m matching merge WINNER_ID LOSER_ID
"""

from .cli import main

if __name__ == '__main__':
    main()
