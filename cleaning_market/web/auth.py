"""Authentication routes: client and cleaner signup and login."""

from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import APIRouter, Depends, HTTPException, Request
from jose import jwt
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from cleaning_market.booking.directory import check_services
from cleaning_market.config import AuthConfig
from cleaning_market.models import Cleaner, Client

from .dependencies import get_db
from .schemas import CleanerSignup, ClientSignup, LoginBody

router = APIRouter(prefix="/api")


def _hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def _verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode(), hashed.encode())


def create_access_token(user_id: int, role: str, username: str, auth: AuthConfig) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "username": username,
        "iat": now,
        "exp": now + timedelta(hours=auth.token_expire_hours),
    }
    return jwt.encode(payload, auth.jwt_secret, algorithm=auth.jwt_algorithm)


def _ensure_unique(db: Session, model, username: str, email: str) -> None:
    existing = db.scalar(
        select(model.id).where(or_(model.username == username, model.email == email))
    )
    if existing is not None:
        raise HTTPException(status_code=400, detail="Username or email already registered")


@router.post("/clients", status_code=201)
def signup_client(body: ClientSignup, db: Session = Depends(get_db)):
    username = body.username.strip()
    email = body.email.strip().lower()
    _ensure_unique(db, Client, username, email)

    client = Client(
        username=username,
        password_hash=_hash_password(body.password),
        name=body.name.strip(),
        email=email,
        phone_number=body.phone_number.strip(),
        address=body.address.strip(),
    )
    db.add(client)
    db.commit()
    return client.to_dict()


@router.post("/cleaners", status_code=201)
def signup_cleaner(body: CleanerSignup, db: Session = Depends(get_db)):
    username = body.username.strip()
    email = body.email.strip().lower()
    _ensure_unique(db, Cleaner, username, email)

    services = check_services(body.services)

    cleaner = Cleaner(
        username=username,
        password_hash=_hash_password(body.password),
        name=body.name.strip(),
        email=email,
        phone_number=body.phone_number.strip(),
        hourly_price=body.hourly_price,
        services=services,
    )
    db.add(cleaner)
    db.commit()
    return cleaner.to_dict()


def _login(request: Request, db: Session, model, role: str, body: LoginBody) -> dict:
    account = db.scalar(select(model).where(model.username == body.username.strip()))
    if account is None or not _verify_password(body.password, account.password_hash):
        raise HTTPException(status_code=400, detail="Invalid credentials")

    token = create_access_token(account.id, role, account.username, request.app.state.config.auth)
    return {"token": token, role: account.to_dict()}


@router.post("/clients/login")
def login_client(body: LoginBody, request: Request, db: Session = Depends(get_db)):
    return _login(request, db, Client, "client", body)


@router.post("/cleaners/login")
def login_cleaner(body: LoginBody, request: Request, db: Session = Depends(get_db)):
    return _login(request, db, Cleaner, "cleaner", body)
