from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlalchemy.orm import Session
from ...core import auth, security
from ...db.session import get_db
from ...db import models, schemas
from .. import deps


router = APIRouter(prefix="/auth", tags=["auth"])


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: dict


@router.post("/login", response_model=TokenResponse)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    user = auth.authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")
    token = security.create_access_token(user.id, user.role.value)
    return TokenResponse(
        access_token=token,
        user={"id": user.id, "email": user.email, "role": user.role.value},
    )


@router.get("/me", response_model=schemas.User)
def me(
    current: deps.SessionContext = Depends(deps.get_current_user),
    db: Session = Depends(get_db),
):
    return db.get(models.User, current.id)
