from fastapi import APIRouter, FastAPI, Depends, HTTPException, Response
from sqlmodel import Session, select
from typing import List, Optional
import logging

from fastapi.middleware.cors import CORSMiddleware

import analytics
import auth
import config
import database
import matching
from database import create_db_and_tables, get_session, seed_profiles
from import_names import seed_default_names
from models import (
    Analytics, LoginRequest, MatchRead, Name, NameCreate, NameCreated, NameRead,
    ProfileRead, SessionRead, SwipeCreate, SwipeResult, UserProfile,
)

logger = logging.getLogger("name_picker.api")

app = FastAPI(title="Name Picker")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Everything that touches names, swipes or matches needs the public key
data = APIRouter(dependencies=[Depends(auth.require_api_key)])


@app.on_event("startup")
def on_startup():
    config.setup_logging()
    create_db_and_tables()
    with Session(database.engine) as session:
        seed_profiles(session)
        seed_default_names(session)


@app.get("/")
def read_root():
    return {"message": "Name Picker API is running"}


@data.get("/users", response_model=List[ProfileRead])
def get_users(session: Session = Depends(get_session)):
    return session.exec(select(UserProfile).order_by(UserProfile.id)).all()


@data.get("/users/{user_id}", response_model=ProfileRead)
def get_user_profile(user_id: int, session: Session = Depends(get_session)):
    profile = session.get(UserProfile, user_id)
    if not profile:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return profile


@data.get("/names", response_model=List[NameRead])
def get_names(session: Session = Depends(get_session)):
    return session.exec(select(Name).order_by(Name.id)).all()


@data.post("/names", response_model=NameCreated, status_code=201)
def add_user_name(payload: NameCreate, session: Session = Depends(get_session)):
    name = matching.add_user_name(session, payload)
    return NameCreated(id=name.id)


@data.get("/names/next/{user_id}", response_model=Optional[NameRead])
def get_next_unseen_name(user_id: int, session: Session = Depends(get_session)):
    """
    One name the user has not swiped yet, or null once every name is swiped.
    """
    return matching.next_unseen_name(session, user_id)


@data.post("/swipe", response_model=SwipeResult)
def create_swipe(swipe: SwipeCreate, session: Session = Depends(get_session)):
    return matching.record_swipe(session, swipe)


@data.get("/matches", response_model=List[MatchRead])
def get_matches(session: Session = Depends(get_session)):
    return matching.all_matches(session)


@data.get("/matches/{user_id}", response_model=List[MatchRead])
def get_user_matches(user_id: int, session: Session = Depends(get_session)):
    return matching.user_matches(session, user_id)


@data.get("/analytics/{target_user_id}", response_model=Analytics)
def get_user_analytics(target_user_id: int, session: Session = Depends(get_session)):
    return analytics.user_analytics(session, target_user_id)


def _session_read(session: Session, auth_session) -> SessionRead:
    profile = session.get(UserProfile, auth_session.user_id)
    return SessionRead(token=auth_session.token, user=ProfileRead.model_validate(profile))


@app.post("/auth/login", response_model=SessionRead)
def login(credentials: LoginRequest, session: Session = Depends(get_session)):
    auth_session = auth.sign_in(session, credentials.email, credentials.password)
    if not auth_session:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return _session_read(session, auth_session)


@app.post("/auth/logout", status_code=204)
def logout(token: str = Depends(auth.bearer_token), session: Session = Depends(get_session)):
    auth.sign_out(session, token)
    return Response(status_code=204)


@app.get("/auth/session", response_model=SessionRead)
def get_auth_session(token: str = Depends(auth.bearer_token), session: Session = Depends(get_session)):
    auth_session = auth.lookup(session, token)
    if not auth_session:
        raise HTTPException(status_code=401, detail="Session expired")
    return _session_read(session, auth_session)


app.include_router(data)
