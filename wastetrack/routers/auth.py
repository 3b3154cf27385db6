# wastetrack/routers/auth.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from wastetrack.database import get_db
from wastetrack.dependencies import require_user
from wastetrack.models.user import User
from wastetrack.schemas.auth import LoginRequest, RefreshRequest, RegisterRequest, TokenPair, UserOut
from wastetrack.services import auth_service

router = APIRouter(prefix="/auth")


@router.post("/register", status_code=201)
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    user = auth_service.register_user(db, body.email, body.password, body.role)
    return {"message": "User created", "user": UserOut.model_validate(user).model_dump(by_alias=True)}


@router.post("/login", response_model=TokenPair)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user, access_token, refresh_token = auth_service.login(db, body.email, body.password)
    return TokenPair(access_token=access_token, refresh_token=refresh_token, user=UserOut.model_validate(user))


@router.post("/refresh")
def refresh(body: RefreshRequest, db: Session = Depends(get_db)):
    return {"accessToken": auth_service.refresh_access_token(db, body.refresh_token)}


@router.post("/logout", summary="Stateless: the client drops its tokens")
def logout(user: User = Depends(require_user)):
    return {"message": "Logged out"}


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(require_user)):
    return user
