"""Signup service — account registration, model applications and review."""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import ConflictError, InvalidStateError, NotFoundError
from app.models.actor import Actor
from app.models.model_application import ModelApplication
from app.models.profile import ModelProfile, Fan, Brand
from app.services import ledger
from app.validators import extract_instagram_username, extract_tiktok_username

logger = logging.getLogger(__name__)

ACCOUNT_TYPES = ("fan", "brand", "model")


def _admin_emails() -> set[str]:
    return {e.strip().lower() for e in settings.ADMIN_EMAILS.split(",") if e.strip()}


def _grant_signup_bonus(db: Session, actor_id: str) -> None:
    if settings.SIGNUP_BONUS_COINS > 0:
        ledger.post_transaction(db, actor_id, settings.SIGNUP_BONUS_COINS, "signup_bonus", {
            "reason": "Welcome bonus for new signup",
        })


def register_account(
    db: Session,
    email: str,
    password_hash: str,
    account_type: str,
    display_name: str,
    username: Optional[str] = None,
) -> Actor:
    """Create an actor with its balance-holding profile and signup bonus.

    Emails listed in ADMIN_EMAILS become admin actors without a profile.
    """
    email = email.strip().lower()
    if db.query(Actor).filter(Actor.email == email).first():
        raise ConflictError("Email already registered")

    if email in _admin_emails():
        account_type = "admin"
    elif account_type not in ACCOUNT_TYPES:
        raise InvalidStateError("Account type must be 'fan', 'brand' or 'model'")

    if account_type == "model":
        username = (username or "").strip().lower()
        if not username:
            raise InvalidStateError("Username is required for model accounts")
        if db.query(ModelProfile).filter(ModelProfile.username == username).first():
            raise ConflictError("Username already taken")

    try:
        actor = Actor(email=email, password_hash=password_hash, type=account_type)
        db.add(actor)
        db.flush()

        if account_type == "fan":
            db.add(Fan(id=actor.id, display_name=display_name))
        elif account_type == "brand":
            db.add(Brand(id=actor.id, company_name=display_name, contact_name=display_name))
        elif account_type == "model":
            first, _, last = display_name.partition(" ")
            db.add(ModelProfile(
                id=actor.id,
                username=username,
                first_name=first or None,
                last_name=last or None,
                is_approved=False,
            ))
        db.flush()

        if account_type != "admin":
            _grant_signup_bonus(db, actor.id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(actor)
    logger.info("registered %s account %s", account_type, actor.id)
    return actor


def _check_instagram_conflicts(db: Session, instagram: str, email: str) -> None:
    claimed = (
        db.query(ModelProfile, Actor.email)
        .join(Actor, Actor.id == ModelProfile.id)
        .filter(func.lower(ModelProfile.instagram_handle) == instagram)
        .first()
    )
    if claimed and claimed[1].lower() != email:
        raise InvalidStateError(
            "This Instagram handle is already registered with a different email. "
            "Please use the email associated with your Instagram, or contact support."
        )

    pending = (
        db.query(ModelApplication)
        .filter(
            func.lower(ModelApplication.instagram_username) == instagram,
            ModelApplication.status == "pending",
        )
        .first()
    )
    if pending and pending.email.lower() != email:
        raise InvalidStateError("This Instagram handle already has a pending application with a different email.")


def submit_model_application(
    db: Session,
    name: str,
    email: str,
    password_hash: str,
    instagram_username: Optional[str] = None,
    tiktok_username: Optional[str] = None,
    phone: Optional[str] = None,
    date_of_birth=None,
    height: Optional[str] = None,
) -> dict:
    """Create a fan account plus a pending model application.

    Field-level checks (age, handles present, lengths) are done by the
    request schema; this enforces the cross-record rules.
    """
    email = email.strip().lower()
    instagram = extract_instagram_username(instagram_username)
    tiktok = extract_tiktok_username(tiktok_username)

    if instagram:
        _check_instagram_conflicts(db, instagram, email)

    existing = db.query(Actor).filter(Actor.email == email).first()
    if existing:
        open_app = (
            db.query(ModelApplication)
            .filter(ModelApplication.actor_id == existing.id, ModelApplication.status != "rejected")
            .first()
        )
        if open_app:
            return {"success": True, "message": "Application already submitted", "existing": True}
        if existing.type == "model":
            raise ConflictError("This email is already registered as a model. Please sign in.")
        raise ConflictError("This email may already be registered. Try signing in instead.")

    try:
        actor = Actor(email=email, password_hash=password_hash, type="fan")
        db.add(actor)
        db.flush()
        db.add(Fan(id=actor.id, display_name=name))
        db.flush()
        _grant_signup_bonus(db, actor.id)

        application = ModelApplication(
            actor_id=actor.id,
            display_name=name,
            email=email,
            instagram_username=instagram,
            tiktok_username=tiktok,
            phone=(phone or "").strip() or None,
            date_of_birth=date_of_birth,
            height=height or None,
            status="pending",
        )
        db.add(application)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("model application %s submitted by %s", application.id, actor.id)
    return {
        "success": True,
        "message": "Application submitted!",
        "existing": False,
        "application_id": application.id,
    }


def _unique_username(db: Session, base: str, actor_id: str) -> str:
    candidate = base
    if db.query(ModelProfile).filter(ModelProfile.username == candidate).first():
        candidate = f"{base}-{actor_id[:6]}"
    return candidate


def review_application(db: Session, application_id: str, approve: bool) -> ModelApplication:
    """Approve or reject a pending model application.

    Approval turns the applicant's fan profile into an approved model profile.
    The actor keeps its id, so its balance carries over and its ledger stays
    consistent.
    """
    application = db.query(ModelApplication).filter(ModelApplication.id == application_id).first()
    if not application:
        raise NotFoundError("Application not found")
    if application.status != "pending":
        raise InvalidStateError(f"Application already {application.status}")

    now = datetime.now(timezone.utc)
    try:
        if approve:
            actor = db.query(Actor).filter(Actor.id == application.actor_id).first()
            if actor.type != "fan":
                raise InvalidStateError("Applicant is not a fan account")
            fan = ledger.lock_holder(db, actor.id)

            base = application.instagram_username or application.tiktok_username or actor.id[:8]
            first, _, last = application.display_name.partition(" ")
            profile = ModelProfile(
                id=actor.id,
                username=_unique_username(db, base, actor.id),
                first_name=first or None,
                last_name=last or None,
                instagram_handle=application.instagram_username,
                is_approved=True,
                coin_balance=fan.coin_balance,
            )
            db.delete(fan)
            db.flush()
            db.add(profile)
            actor.type = "model"
            application.status = "approved"
        else:
            application.status = "rejected"
        application.reviewed_at = now
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(application)
    logger.info("model application %s %s", application.id, application.status)
    return application


def approve_model(db: Session, model_id: str) -> ModelProfile:
    model = db.query(ModelProfile).filter(ModelProfile.id == model_id).first()
    if not model:
        raise NotFoundError("Model not found")
    model.is_approved = True
    db.commit()
    db.refresh(model)
    return model


def list_applications(db: Session, status: Optional[str] = "pending") -> list[ModelApplication]:
    query = db.query(ModelApplication)
    if status:
        query = query.filter(ModelApplication.status == status)
    return query.order_by(ModelApplication.created_at.asc()).all()
