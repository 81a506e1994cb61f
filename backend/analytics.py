import logging

import pandas as pd
from sqlalchemy import func, or_
from sqlmodel import Session, select

from models import Analytics, Match, Name, Swipe, SwipeDecision

logger = logging.getLogger("name_picker.analytics")

POPULAR_NAMES_LIMIT = 3


def user_analytics(session: Session, user_id: int) -> Analytics:
    """
    Swipe statistics for one user.
    Counts come from the user's own swipes; 'most popular' looks at likes from
    every account so both users see the same leaderboard.
    """
    rows = session.exec(
        select(Swipe.action, Swipe.timestamp).where(Swipe.user_id == user_id)
    ).all()
    match_count = session.exec(
        select(func.count(Match.id)).where(or_(Match.user1_id == user_id, Match.user2_id == user_id))
    ).one()

    analytics = Analytics(matches=match_count, most_popular_names=most_popular_names(session))
    if not rows:
        return analytics

    df = pd.DataFrame(rows, columns=["action", "timestamp"])
    df["action"] = df["action"].map(lambda a: SwipeDecision(a).value)
    counts = df["action"].value_counts()
    analytics.likes = int(counts.get(SwipeDecision.like.value, 0))
    analytics.dislikes = int(counts.get(SwipeDecision.dislike.value, 0))
    analytics.total_swipes = len(df)

    times = pd.to_datetime(df["timestamp"], utc=True).sort_values()
    gaps = times.diff().dropna().dt.total_seconds()
    if not gaps.empty:
        analytics.average_swipe_time = round(float(gaps.mean()), 2)
    analytics.session_duration = round((times.iloc[-1] - times.iloc[0]).total_seconds(), 2)
    return analytics


def most_popular_names(session: Session, limit: int = POPULAR_NAMES_LIMIT) -> list:
    liked = session.exec(
        select(Name.name).join(Swipe, Swipe.name_id == Name.id).where(Swipe.action == SwipeDecision.like)
    ).all()
    if not liked:
        return []
    counts = pd.Series(liked, dtype="object").value_counts(sort=True)
    return counts.head(limit).index.tolist()
