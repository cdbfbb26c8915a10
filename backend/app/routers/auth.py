"""Auth router — registration, login, model signup and actor info."""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.exceptions import ServiceError, to_http_exception
from app.middleware.auth import (
    hash_password,
    verify_password,
    create_access_token,
    get_current_actor,
)
from app.middleware.rate_limit import limiter
from app.models.actor import Actor
from app.schemas.auth import RegisterRequest, LoginRequest, TokenResponse, ActorResponse
from app.schemas.signup import ModelSignupRequest, ModelSignupResponse
from app.services import signup_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


def actor_to_response(actor: Actor) -> ActorResponse:
    profile = actor.profile
    return ActorResponse(
        id=actor.id,
        email=actor.email,
        type=actor.type,
        display_name=actor.display_name,
        coin_balance=profile.coin_balance if profile is not None else None,
        created_at=actor.created_at.isoformat(),
    )


@router.post("/register", response_model=ActorResponse, status_code=201)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
    """Register a fan, brand or model account."""
    try:
        actor = signup_service.register_account(
            db,
            email=req.email,
            password_hash=hash_password(req.password),
            account_type=req.account_type,
            display_name=req.display_name,
            username=req.username,
        )
    except ServiceError as e:
        raise to_http_exception(e)
    return actor_to_response(actor)


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    """Log in and receive a bearer token."""
    actor = db.query(Actor).filter(Actor.email == req.email.strip().lower()).first()
    if not actor or not verify_password(req.password, actor.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return TokenResponse(access_token=create_access_token(actor))


@router.get("/me", response_model=ActorResponse)
def me(current_actor: Actor = Depends(get_current_actor)):
    """Get the authenticated actor and its balance."""
    return actor_to_response(current_actor)


@router.post("/model-signup", response_model=ModelSignupResponse)
@limiter.limit(settings.SIGNUP_RATE_LIMIT)
def model_signup(request: Request, req: ModelSignupRequest, db: Session = Depends(get_db)):
    """Apply to become a model. Creates a fan account with a pending application."""
    try:
        result = signup_service.submit_model_application(
            db,
            name=req.name,
            email=req.email,
            password_hash=hash_password(req.password),
            instagram_username=req.instagram_username,
            tiktok_username=req.tiktok_username,
            phone=req.phone,
            date_of_birth=req.date_of_birth,
            height=req.height,
        )
    except ServiceError as e:
        raise to_http_exception(e)
    return ModelSignupResponse(**result)
