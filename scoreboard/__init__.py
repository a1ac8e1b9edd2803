"""
Pinball cabinet scoreboard service.

Tracks high scores across the tables installed on a virtual pinball cabinet,
reconciles tables that share a physical high-score store, and merges local,
cabinet and global leaderboard scores into one document.
"""
__version__ = "1.0.0"
