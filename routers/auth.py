"""Authentication router."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from dependencies import get_users
from schemas import Token, UserLogin, UserRegister, UserSummary
from security import create_access_token
from stores import UserStore

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _token(message: str, user: dict) -> Token:
    return Token(
        message=message,
        token=create_access_token(user),
        user=UserSummary(id=user["id"], email=user["email"], name=user["name"], role=user["role"]),
    )


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register(data: UserRegister, users: Annotated[UserStore, Depends(get_users)]):
    """Register a new user and log them in."""
    user = users.create(data.model_dump())
    return _token("User registered", user)


@router.post("/login", response_model=Token)
def login(data: UserLogin, users: Annotated[UserStore, Depends(get_users)]):
    """Authenticate a user and return an access token."""
    user = users.verify_credentials(data.email, data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )
    return _token("Login successful", user)
