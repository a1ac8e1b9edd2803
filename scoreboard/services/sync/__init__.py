"""
Cabinet Scan Service

Merges what the cabinet and the online leaderboard report into the score model.

Key components:
- Orchestrator: fan out per-table fetches, apply results one at a time
- Progress: throttled processed/total reporting
"""
