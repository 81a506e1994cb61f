"""
Data-service functions behind the swipe flow.

These run inside a single database session each. Match detection happens in
the same transaction as the swipe insert: a 'like' checks for a 'like' on the
same name by the other account, and records one match per (name, user pair).
"""
import logging
from datetime import timezone
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import case, func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from models import (
    Match, MatchRead, Name, NameCreate, NameRead, Swipe, SwipeCreate,
    SwipeDecision, SwipeResult, UserProfile, utcnow,
)

logger = logging.getLogger("name_picker.matching")


def _require_profile(session: Session, user_id: int) -> UserProfile:
    profile = session.get(UserProfile, user_id)
    if not profile:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return profile


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def match_read(match: Match, name_text: str) -> MatchRead:
    return MatchRead(
        id=match.id,
        name_id=match.name_id,
        name=name_text,
        users=[match.user1_id, match.user2_id],
        matched_at=match.created_at,
    )


def next_unseen_name(session: Session, user_id: int) -> Optional[Name]:
    """
    One name the user has not swiped yet, or None.
    Uploaded names come first (newest upload first), then the seeded list by
    popularity.
    """
    swiped = select(Swipe.name_id).where(Swipe.user_id == user_id)
    newest_upload = case((Name.is_user_uploaded == True, Name.id), else_=0)  # noqa: E712
    query = (
        select(Name)
        .where(Name.id.not_in(swiped))
        .order_by(
            Name.is_user_uploaded.desc(),
            newest_upload.desc(),
            Name.popularity.desc().nulls_last(),
            Name.id,
        )
        .limit(1)
    )
    return session.exec(query).first()


def record_swipe(session: Session, data: SwipeCreate) -> SwipeResult:
    name = session.get(Name, data.name_id)
    if not name:
        raise HTTPException(status_code=404, detail=f"Name {data.name_id} not found")
    _require_profile(session, data.user_id)

    timestamp = data.timestamp or utcnow()
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    swipe = Swipe(user_id=data.user_id, name_id=data.name_id, action=data.action, timestamp=timestamp)
    session.add(swipe)
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Name already swiped by this user")

    match = None
    if data.action == SwipeDecision.like:
        partner_ids = session.exec(
            select(Swipe.user_id).where(
                Swipe.name_id == data.name_id,
                Swipe.action == SwipeDecision.like,
                Swipe.user_id != data.user_id,
            )
        ).all()
        for partner_id in partner_ids:
            match = _record_match(session, data.name_id, data.user_id, partner_id)

    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Conflicting swipe")

    if match:
        session.refresh(match)
        logger.info("Match on %s between users %s and %s", name.name, match.user1_id, match.user2_id)
    session.refresh(name)
    return SwipeResult(
        is_match=match is not None,
        name=NameRead.model_validate(name),
        match=match_read(match, name.name) if match else None,
    )


def _record_match(session: Session, name_id: int, user_id: int, partner_id: int) -> Match:
    """Insert the match for this pair in a savepoint; an existing row is reused."""
    low, high = sorted((user_id, partner_id))
    try:
        with session.begin_nested():
            match = Match(name_id=name_id, user1_id=low, user2_id=high)
            session.add(match)
    except IntegrityError:
        # Already recorded, the swipe itself still commits
        match = session.exec(
            select(Match).where(Match.name_id == name_id, Match.user1_id == low, Match.user2_id == high)
        ).one()
    return match


def user_matches(session: Session, user_id: int) -> List[MatchRead]:
    query = (
        select(Match, Name.name)
        .join(Name, Match.name_id == Name.id)
        .where(or_(Match.user1_id == user_id, Match.user2_id == user_id))
        .order_by(Match.created_at.desc(), Match.id.desc())
    )
    return [match_read(match, name_text) for match, name_text in session.exec(query).all()]


def all_matches(session: Session) -> List[MatchRead]:
    query = select(Match, Name.name).join(Name, Match.name_id == Name.id).order_by(Match.id)
    return [match_read(match, name_text) for match, name_text in session.exec(query).all()]


def add_user_name(session: Session, data: NameCreate) -> Name:
    name_text = _clean(data.name_text)
    if not name_text:
        raise HTTPException(status_code=422, detail="Name cannot be empty")
    _require_profile(session, data.user_id)

    existing = session.exec(select(Name).where(func.lower(Name.name) == name_text.lower())).first()
    if existing:
        raise HTTPException(status_code=409, detail=f"Name {name_text!r} already exists")

    name = Name(
        name=name_text,
        origin=_clean(data.origin_text),
        meaning=_clean(data.meaning_text),
        gender=data.gender_text,
        is_user_uploaded=True,
        uploaded_by=data.user_id,
    )
    session.add(name)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail=f"Name {name_text!r} already exists")
    session.refresh(name)
    logger.info("User %s added name %s", data.user_id, name.name)
    return name
