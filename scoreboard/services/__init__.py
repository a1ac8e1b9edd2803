"""
Services module for cabinet integration and scan orchestration.

This module organizes services into:
- clients: HTTP collaborators (cabinet, frontend, leaderboard, catalog)
- sync: scan orchestrator merging fetched data into the score model
- capture: OCR score capture normalization
"""
