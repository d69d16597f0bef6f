"""Authentication endpoints: login, applicant signup and current user."""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from ..audit.service import log_from_request
from ..database import get_db
from ..models.user import User
from .dependencies import CurrentUser
from .jwt import create_access_token, get_jwt_expiry_minutes
from .password import hash_password, validate_password_strength, verify_password
from .roles import UserRole
from .schemas import AuthResponse, LoginRequest, SignupRequest, user_response


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _issue_token(user: User) -> str:
    return create_access_token(user_id=user.id, role=user.role, email=user.email)


@router.post("/login", response_model=AuthResponse, response_model_by_alias=True)
def login(
    credentials: LoginRequest,
    request: Request,
    db: Annotated[Session, Depends(get_db)],
):
    """Authenticate a user and return a JWT access token.

    Failed attempts are written to the audit log. The error message is the
    same for unknown emails and wrong passwords.

    Raises:
        HTTPException: 401 if credentials are invalid or account is disabled
    """
    email = credentials.email.lower()
    user = db.query(User).filter(User.email == email).first()

    if not user or not verify_password(credentials.password, user.password_hash):
        log_from_request(
            db=db,
            request=request,
            action="LOGIN_FAILED",
            actor_id=user.id if user else None,
            metadata={"email": email, "reason": "invalid_credentials"},
        )
        db.commit()
        logger.info("Login failed", extra={"user_id": str(user.id) if user else None})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    if user.status == "DISABLED":
        log_from_request(
            db=db,
            request=request,
            action="LOGIN_FAILED",
            actor_id=user.id,
            metadata={"email": email, "reason": "account_disabled"},
        )
        db.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is disabled",
        )

    user.last_login_at = datetime.now(timezone.utc)
    log_from_request(
        db=db,
        request=request,
        action="LOGIN_SUCCESS",
        actor_id=user.id,
        metadata={"email": email},
    )
    db.commit()
    db.refresh(user)

    return AuthResponse(
        message="Login successful",
        token=_issue_token(user),
        expires_in=get_jwt_expiry_minutes() * 60,
        user=user_response(user),
    )


@router.post(
    "/signup",
    response_model=AuthResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
def signup(
    data: SignupRequest,
    request: Request,
    db: Annotated[Session, Depends(get_db)],
):
    """Register an applicant account and log it in.

    Raises:
        HTTPException: 400 if the email is taken or the password is weak
    """
    email = data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists",
        )

    is_valid, error = validate_password_strength(data.password)
    if not is_valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    user = User(
        email=email,
        username=data.username.strip(),
        role=UserRole.USER.value,
        password_hash=hash_password(data.password),
        status="ACTIVE",
    )
    db.add(user)
    db.flush()

    log_from_request(
        db=db,
        request=request,
        action="USER_CREATED",
        actor_id=user.id,
        entity_type="user",
        entity_id=user.id,
        metadata={"email": email, "role": user.role},
    )
    db.commit()
    db.refresh(user)

    logger.info("User signed up", extra={"user_id": str(user.id)})

    return AuthResponse(
        message="User registered successfully",
        token=_issue_token(user),
        expires_in=get_jwt_expiry_minutes() * 60,
        user=user_response(user),
    )


@router.get("/me")
def get_me(current_user: CurrentUser):
    """Profile of the authenticated user."""
    return {
        "success": True,
        "message": "Current user",
        "user": user_response(current_user).model_dump(by_alias=True),
    }
