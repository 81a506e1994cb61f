from datetime import datetime, timezone
from typing import Optional, List
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship
from enum import Enum

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class SwipeDecision(str, Enum):
    like = "like"
    dislike = "dislike"

class Gender(str, Enum):
    masculine = "masculine"
    feminine = "feminine"
    neutral = "neutral"

class UserProfile(SQLModel, table=True):
    __tablename__ = "user_profiles"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    display_name: str
    email: str = Field(index=True, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=utcnow)

    swipes: List["Swipe"] = Relationship(back_populates="user")

class Name(SQLModel, table=True):
    __tablename__ = "names"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    origin: Optional[str] = None
    meaning: Optional[str] = None
    popularity: Optional[int] = None
    gender: Optional[Gender] = None
    is_user_uploaded: bool = Field(default=False, index=True)
    uploaded_by: Optional[int] = Field(default=None, foreign_key="user_profiles.id")
    created_at: datetime = Field(default_factory=utcnow)

    swipes: List["Swipe"] = Relationship(back_populates="name_obj")

class Swipe(SQLModel, table=True):
    __tablename__ = "swipes"
    # One swipe per user per name
    __table_args__ = (UniqueConstraint("user_id", "name_id", name="uq_swipe_user_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user_profiles.id", index=True)
    name_id: int = Field(foreign_key="names.id", index=True)
    action: SwipeDecision
    timestamp: datetime = Field(default_factory=utcnow)

    user: UserProfile = Relationship(back_populates="swipes")
    name_obj: Name = Relationship(back_populates="swipes")

class Match(SQLModel, table=True):
    __tablename__ = "matches"
    # user1_id < user2_id, so a pair has a single spelling
    __table_args__ = (UniqueConstraint("name_id", "user1_id", "user2_id", name="uq_match_name_pair"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name_id: int = Field(foreign_key="names.id", index=True)
    user1_id: int = Field(foreign_key="user_profiles.id")
    user2_id: int = Field(foreign_key="user_profiles.id")
    created_at: datetime = Field(default_factory=utcnow)

class AuthSession(SQLModel, table=True):
    __tablename__ = "auth_sessions"

    token: str = Field(primary_key=True)
    user_id: int = Field(foreign_key="user_profiles.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)


# Request / response shapes shared by the service and the API client

class NameRead(SQLModel):
    id: int
    name: str
    origin: Optional[str] = None
    meaning: Optional[str] = None
    popularity: Optional[int] = None
    gender: Optional[Gender] = None
    is_user_uploaded: bool = False

class NameCreate(SQLModel):
    name_text: str
    user_id: int
    origin_text: Optional[str] = None
    meaning_text: Optional[str] = None
    gender_text: Optional[Gender] = None

class NameCreated(SQLModel):
    id: int

class SwipeCreate(SQLModel):
    name_id: int
    user_id: int
    action: SwipeDecision
    timestamp: Optional[datetime] = None

class MatchRead(SQLModel):
    id: int
    name_id: int
    name: str
    users: List[int]
    matched_at: datetime

class SwipeResult(SQLModel):
    is_match: bool
    name: NameRead
    match: Optional[MatchRead] = None

class ProfileRead(SQLModel):
    id: int
    username: str
    display_name: str
    email: str
    created_at: datetime

class Analytics(SQLModel):
    total_swipes: int = 0
    likes: int = 0
    dislikes: int = 0
    matches: int = 0
    average_swipe_time: float = 0.0
    session_duration: float = 0.0
    most_popular_names: List[str] = Field(default_factory=list)

class LoginRequest(SQLModel):
    email: str
    password: str

class SessionRead(SQLModel):
    token: str
    user: ProfileRead
