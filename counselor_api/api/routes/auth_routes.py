# counselor_api/api/routes/auth_routes.py
import logging

from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response, status
from jose import JWTError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from counselor_api.core.dependencies import get_notifier, register_rate_limiter
from counselor_api.data.database import get_db
from counselor_api.models.auth_models import (
    LoginRequest,
    PasswordValidationError,
    UserCreate,
    ValidationError,
    VerifyEmailRequest,
)
from counselor_api.models.database_models.user import User
from counselor_api.services.auth_services import (
    authenticate_user,
    build_verification_url,
    create_email_verification_token,
    get_current_user_from_cookie,
    hash_password,
    set_auth_cookies,
    validate_password,
    verify_email_token,
)
from counselor_api.services.database.user_database_services import create_user
from counselor_api.services.notification_services import ShareNotifier, deliver_verification_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])


def queue_verification_email(background_tasks: BackgroundTasks, notifier: ShareNotifier, user: User) -> None:
    background_tasks.add_task(
        deliver_verification_email,
        notifier,
        recipient_email=user.email,
        name=user.display_name,
        verification_url=build_verification_url(create_email_verification_token(user)),
    )


@router.post("/register", dependencies=[Depends(register_rate_limiter)])
async def register(
    user_data: UserCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    notifier: ShareNotifier = Depends(get_notifier),
):
    """Register a new user."""
    try:
        validate_password(user_data.password)
    except PasswordValidationError as e:
        errors = []
        for error_message in e.messages:
            errors.append(ValidationError(loc=["password"], msg=error_message, type="value_error.password"))
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[error.model_dump() for error in errors]
        )

    try:
        validate_email(user_data.email, check_deliverability=False)
    except EmailNotValidError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        hashed_password = hash_password(user_data.password)
        user = await create_user(
            db, user_data.username, user_data.email, hashed_password, user_data.first_name, user_data.last_name
        )
        queue_verification_email(background_tasks, notifier, user)
        return {"success": True, "message": "User registered successfully", "user_id": user.id}
    except ValueError as e:
        if "Username already taken" in str(e):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already taken")
        elif "Email already registered" in str(e):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
        raise HTTPException(status_code=500, detail=f"Database error: {e}")
    except SQLAlchemyError as e:
        logger.exception(f"Failed to register user: {e}")
        raise HTTPException(status_code=500, detail="Database error")


@router.post("/login")
async def login(login_data: LoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    """Login a user and set access and refresh tokens as HTTP-only cookies."""
    user = await authenticate_user(db, login_data.username, login_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
        )
    set_auth_cookies(response, user.username)
    return {"success": True, "message": "Logged in successfully"}


@router.post("/logout")
async def logout(response: Response):
    """Logout a user (delete the cookies)."""
    response.delete_cookie("access_token", path="/")
    response.delete_cookie("refresh_token", path="/")
    return {"message": "Successfully logged out", "success": True}


@router.get("/check-auth")
async def check_auth(user: User = Depends(get_current_user_from_cookie)):
    """Check if the user is authenticated."""
    return {"username": user.username, "email": user.email, "success": True}


@router.post("/verify-email")
async def verify_email(request: VerifyEmailRequest, db: AsyncSession = Depends(get_db)):
    """Confirm ownership of the e-mail address from the link sent at registration."""
    try:
        user = await verify_email_token(db, request.token)
    except JWTError as e:
        logger.debug(f"E-mail verification token error: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired verification link")
    except SQLAlchemyError as e:
        logger.exception(f"Failed to verify e-mail: {e}")
        raise HTTPException(status_code=500, detail="Database error")
    return {"success": True, "message": "E-mail address verified", "email": user.email}


@router.post("/resend-verification", dependencies=[Depends(register_rate_limiter)])
async def resend_verification(
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user_from_cookie),
    notifier: ShareNotifier = Depends(get_notifier),
):
    if user.email_verified:
        return {"success": True, "message": "E-mail address already verified"}
    queue_verification_email(background_tasks, notifier, user)
    return {"success": True, "message": "Verification e-mail sent"}
