from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from datetime import datetime, timedelta, timezone
import jwt
import structlog

from config import Settings
from database import get_db, User
from schemas import (
    MAX_RECORD_ID,
    UserCreate,
    UserLogin,
    UserOut,
    UserResponse,
    Token,
)

logger = structlog.get_logger(__name__)

user_router = APIRouter()
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="user/signin")
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(user_id: int, settings: Settings) -> str:
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=settings.access_token_expire_minutes
    )
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
) -> User:
    credentials_exception = _unauthorized("Could not validate credentials")
    try:
        payload = jwt.decode(
            token, settings.secret_key, algorithms=[settings.jwt_algorithm]
        )
        user_id = int(payload["sub"])
        if not 1 <= user_id <= MAX_RECORD_ID:
            raise ValueError(user_id)
    except jwt.ExpiredSignatureError:
        logger.info("token_rejected", reason="expired")
        raise _unauthorized("Token has expired")
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
        logger.info("token_rejected", reason="invalid")
        raise credentials_exception

    user = db.get(User, user_id)
    if user is None:
        logger.info("token_rejected", reason="unknown_user", user_id=user_id)
        raise credentials_exception
    return user


@user_router.post(
    "/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED
)
async def signup(user: UserCreate, db: Session = Depends(get_db)):
    email = user.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    new_user = User(
        email=email, password_hash=hash_password(user.password), name=user.name
    )
    db.add(new_user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same address
        db.rollback()
        raise HTTPException(status_code=400, detail="Email already registered")
    db.refresh(new_user)

    logger.info("user_registered", user_id=new_user.id)
    return UserResponse(
        message="User created successfully", user=UserOut.model_validate(new_user)
    )


@user_router.post("/signin", response_model=Token)
async def signin(
    user: UserLogin,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    db_user = db.query(User).filter(User.email == user.email.lower()).first()
    if not db_user or not verify_password(user.password, db_user.password_hash):
        logger.info("signin_failed")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return Token(token=create_access_token(db_user.id, settings))


@user_router.get("/me", response_model=UserResponse, response_model_exclude_none=True)
async def me(current_user: User = Depends(get_current_user)):
    return UserResponse(user=UserOut.model_validate(current_user))
