import uuid

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field, validator
from sqlalchemy.exc import IntegrityError

from core.database import SessionLocal
from core.badges import CATEGORIES
from core.repository import (
    create_user,
    get_category_leaderboard,
    get_leaderboard,
    get_user,
    list_notifications,
    list_user_badges,
    mark_notification_read,
)

router = APIRouter()


class UserCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: str
    role: str = "USER"

    @validator("email")
    def ensure_email(cls, v):
        if "@" not in v:
            raise ValueError("invalid email")
        return v.lower()

    @validator("role")
    def ensure_role(cls, v):
        v = v.upper()
        if v not in ("USER", "ADMIN"):
            raise ValueError("role must be USER or ADMIN")
        return v


@router.post("/users", status_code=201)
def create_user_endpoint(body: UserCreateRequest):
    user_id = str(uuid.uuid4())
    with SessionLocal() as session:
        create_user(session, user_id, body.name, body.email, body.role)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise HTTPException(status_code=409, detail="Email already registered")
    return {"id": user_id, "name": body.name, "email": body.email, "role": body.role}


@router.get("/notifications")
def notifications_endpoint(user_id: str, unread_only: bool = False):
    with SessionLocal() as session:
        if not get_user(session, user_id):
            raise HTTPException(status_code=404, detail="User not found")
        return list_notifications(session, user_id, unread_only=unread_only)


@router.post("/notifications/{notification_id}/read")
def read_notification_endpoint(notification_id: int):
    with SessionLocal() as session:
        notification = mark_notification_read(session, notification_id)
        if not notification:
            raise HTTPException(status_code=404, detail="Notification not found")
        session.commit()
    return {"id": notification_id, "read": True}


@router.get("/leaderboard")
def leaderboard_endpoint(limit: int = 10):
    with SessionLocal() as session:
        return get_leaderboard(session, limit=max(1, min(limit, 50)))


@router.get("/leaderboard/{category}")
def category_leaderboard_endpoint(category: str, limit: int = 10):
    key = category.upper()
    if key not in CATEGORIES:
        raise HTTPException(status_code=400, detail="Invalid leaderboard category")
    with SessionLocal() as session:
        entries = get_category_leaderboard(session, key, limit=max(1, min(limit, 50)))
    return {"entries": entries, "category": key, "categoryInfo": CATEGORIES[key].info()}


@router.get("/user/badges")
def user_badges_endpoint(user_id: str):
    with SessionLocal() as session:
        if not get_user(session, user_id):
            raise HTTPException(status_code=404, detail="User not found")
        return {"badges": list_user_badges(session, user_id)}
