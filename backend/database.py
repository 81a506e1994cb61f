import logging

from sqlalchemy import event
from sqlmodel import SQLModel, Session, create_engine, select

import config
from auth import hash_password
from models import UserProfile

logger = logging.getLogger("name_picker.database")

# The fixed two-account deployment
SEED_PROFILES = [
    {"username": "joe", "display_name": "Joe", "email": "joe@example.com"},
    {"username": "sam", "display_name": "Sam", "email": "sam@example.com"},
]


def make_engine(url: str = None, **kwargs):
    url = url or config.database_url()
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(url, **kwargs)
    if url.startswith("sqlite"):
        # SQLite ignores foreign keys unless asked
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return engine


engine = make_engine()


def create_db_and_tables(bind=None):
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    with Session(engine) as session:
        yield session


def seed_profiles(session: Session) -> list:
    """Create the joe/sam profiles if they are missing. Returns all seeded rows."""
    profiles = []
    for seed in SEED_PROFILES:
        profile = session.exec(select(UserProfile).where(UserProfile.username == seed["username"])).first()
        if not profile:
            profile = UserProfile(
                password_hash=hash_password(config.seed_password(seed["username"])),
                **seed,
            )
            session.add(profile)
            logger.info("Seeded profile %s", seed["username"])
        profiles.append(profile)
    session.commit()
    for profile in profiles:
        session.refresh(profile)
    return profiles
