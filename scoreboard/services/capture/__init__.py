from scoreboard.services.capture.consensus import ScoreConsensus, capture_score, settle_frames

__all__ = ["ScoreConsensus", "capture_score", "settle_frames"]
