from decision_game.db.tables.scores import SCORES_TABLE, ScoreRow

__all__ = ["SCORES_TABLE", "ScoreRow"]
