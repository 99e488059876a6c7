import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import APIRouter, HTTPException

from school_office.config import settings
from school_office.models.schemas import LoginRequest

router = APIRouter(tags=["Auth"])
logger = logging.getLogger(__name__)


def issue_token(username: str) -> str:
    payload = {
        "user": username,
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.jwt_expires_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


@router.post("/login")
async def login(req: LoginRequest):
    """
    Checks the single office administrator credential and issues a signed token.

    The token is returned for the front-end to keep; other routes do not
    verify it.
    """
    if req.username != settings.admin_user or req.password != settings.admin_pass:
        logger.warning("Failed login attempt for %r", req.username)
        raise HTTPException(status_code=400, detail="Invalid Username or Password")

    return {
        "message": "Login successful",
        "token": issue_token(req.username),
        "user": {"username": req.username, "role": "admin"},
    }
