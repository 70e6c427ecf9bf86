import logging

from bson import ObjectId
from fastapi import APIRouter, Depends, Request
from mongoengine.errors import NotUniqueError

from auth import create_access_token, get_current_user, identity_user_id
from config import Config
from errors import NotFoundError
from logging_config import log_auth_event
from models import User
from rate_limiter import api_limit, auth_limit

logger = logging.getLogger(__name__)

router = APIRouter()

DEMO_USER = {
    "name": "Talia",
    "email": Config.DEMO_USER_EMAIL,
    "avatar": "https://picsum.photos/200",
    "role": "student",
}


def find_or_create_demo_user() -> User:
    user = User.objects(email=DEMO_USER["email"]).first()
    if user:
        return user
    try:
        user = User(**DEMO_USER)
        user.save()
        logger.info(f"Created demo user {user.email}")
    except NotUniqueError:
        # another first login got there before us
        user = User.objects(email=DEMO_USER["email"]).first()
    return user


@router.post("/login")
@auth_limit
@api_limit
def login(request: Request):
    # Demo login: no credentials are checked.
    user = find_or_create_demo_user()
    token = create_access_token(str(user.id))
    log_auth_event("login", email=user.email)
    return {
        "success": True,
        "data": {"user": user.profile(), "token": token},
        "message": "Login successful",
    }


@router.post("/logout")
@auth_limit
@api_limit
def logout(request: Request, current_user: dict = Depends(get_current_user)):
    log_auth_event("logout", email=current_user.get("email"))
    return {"success": True, "message": "Logout successful"}


@router.get("/me")
@api_limit
def me(request: Request, current_user: dict = Depends(get_current_user)):
    user_id = identity_user_id(current_user)
    user = User.objects(id=user_id).first() if ObjectId.is_valid(user_id) else None
    if not user:
        raise NotFoundError("User")
    return {"success": True, "data": {"user": user.profile()}}
