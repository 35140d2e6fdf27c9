from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from rifaria.config import get_settings
from rifaria.database import get_db
from rifaria.limiter import limiter
from rifaria.schemas.user import Token, UserCreate, UserLogin, UserResponse
from rifaria.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.auth_rate_limit)
async def register(
    request: Request,
    payload: UserCreate,
    db: Session = Depends(get_db)
):
    user, token = AuthService.register(db, payload.email, payload.password)
    return Token(token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=Token)
@limiter.limit(settings.auth_rate_limit)
async def login(
    request: Request,
    payload: UserLogin,
    db: Session = Depends(get_db)
):
    user, token = AuthService.login(db, payload.email, payload.password)
    return Token(token=token, user=UserResponse.model_validate(user))
