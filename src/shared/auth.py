"""Bearer-token authentication for the HTTP layer.

Tokens are issued by the accounts service; this service only verifies them.
A token carries the caller's ``id`` and ``type`` (``farmer`` or ``consumer``)
and is read from the ``Authorization: Bearer`` header, falling back to the
``token`` cookie set by the web client.
"""

import os
from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from protean.exceptions import ConfigurationError

FARMER = "farmer"
CONSUMER = "consumer"

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Caller:
    id: str
    type: str


def jwt_secret() -> str:
    secret = os.environ.get("AUTH_JWT_SECRET")
    if not secret:
        raise ConfigurationError("AUTH_JWT_SECRET must be set")
    return secret


def jwt_algorithm() -> str:
    return os.environ.get("AUTH_JWT_ALGORITHM", "HS256")


def issue_token(caller_id: str, caller_type: str) -> str:
    """Sign a token the way the accounts service does (dev tooling and tests)."""
    return jwt.encode({"id": str(caller_id), "type": caller_type}, jwt_secret(), algorithm=jwt_algorithm())


def get_current_caller(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(security),
) -> Caller:
    token = creds.credentials if creds else request.cookies.get("token")
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = jwt.decode(token, jwt_secret(), algorithms=[jwt_algorithm()])
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token") from None

    caller_id, caller_type = payload.get("id"), payload.get("type")
    if not caller_id or caller_type not in (FARMER, CONSUMER):
        raise HTTPException(status_code=401, detail="Invalid token")
    return Caller(id=str(caller_id), type=caller_type)


def farmer_only(caller: Caller = Depends(get_current_caller)) -> Caller:
    if caller.type != FARMER:
        raise HTTPException(status_code=403, detail="Access denied. Farmers only.")
    return caller


def consumer_only(caller: Caller = Depends(get_current_caller)) -> Caller:
    if caller.type != CONSUMER:
        raise HTTPException(status_code=403, detail="Access denied. Consumers only.")
    return caller
