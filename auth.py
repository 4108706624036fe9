import os
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.responses import Response

from database import get_db

logger = logging.getLogger(__name__)

ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", "plantnet-dev-secret")
JWT_ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(days=365)
COOKIE_NAME = "token"


def is_production() -> bool:
    return os.getenv("NODE_ENV") == "production"


def cookie_options() -> Dict[str, Any]:
    # cross-site cookies are only accepted by browsers over https
    if is_production():
        return {"httponly": True, "secure": True, "samesite": "none"}
    return {"httponly": True, "secure": False, "samesite": "strict"}


def create_token(payload: Dict[str, Any]) -> str:
    claims = dict(payload)
    claims["exp"] = datetime.now(timezone.utc) + TOKEN_LIFETIME
    return jwt.encode(claims, ACCESS_TOKEN_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    return jwt.decode(token, ACCESS_TOKEN_SECRET, algorithms=[JWT_ALGORITHM])


def set_token_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=int(TOKEN_LIFETIME.total_seconds()),
        **cookie_options(),
    )


def clear_token_cookie(response: Response) -> None:
    response.delete_cookie(COOKIE_NAME, **cookie_options())


def verify_token(request: Request) -> Dict[str, Any]:
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="unauthorized access")
    try:
        return decode_token(token)
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise HTTPException(status_code=401, detail="unauthorized access")
    except jwt.InvalidTokenError as exc:
        logger.warning("Rejected invalid token: %s", exc)
        raise HTTPException(status_code=401, detail="unauthorized access")


def _require_role(role: str, message: str):
    def checker(user: Dict[str, Any] = Depends(verify_token), db=Depends(get_db)) -> Dict[str, Any]:
        stored = db["users"].find_one({"email": user.get("email")})
        if not stored or stored.get("role") != role:
            raise HTTPException(status_code=403, detail=message)
        return user

    return checker


verify_admin = _require_role("admin", "forbidden access ! admin only action")
verify_seller = _require_role("seller", "forbidden access ! Seller only action")
