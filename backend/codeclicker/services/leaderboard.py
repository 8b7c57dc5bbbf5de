from flask import current_app
from sqlalchemy.orm import contains_eager

from codeclicker import db
from codeclicker.models import LeaderboardEntry, User

DEFAULT_LIMIT = 50


def resolve_limit(raw) -> int:
    """Cap a requested page size at LEADERBOARD_LIMIT; missing, junk or non-positive means the max."""
    max_limit = int(current_app.config.get('LEADERBOARD_LIMIT', DEFAULT_LIMIT))
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        return max_limit
    if limit < 1:
        return max_limit
    return min(limit, max_limit)


def top_entries(limit: int = DEFAULT_LIMIT) -> list:
    # Ties on total_loc fall back to the older account first
    rows = (
        db.session.query(LeaderboardEntry)
        .join(User, LeaderboardEntry.user_id == User.id)
        .options(contains_eager(LeaderboardEntry.user))
        .order_by(LeaderboardEntry.total_loc.desc(), LeaderboardEntry.user_id.asc())
        .limit(limit)
        .all()
    )
    return [row.to_dict() for row in rows]
