from scoreboard.storage.document import DocumentError, DocumentStore, ScoreboardDocument

__all__ = ["DocumentError", "DocumentStore", "ScoreboardDocument"]
