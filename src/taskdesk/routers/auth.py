from __future__ import annotations

from fastapi import APIRouter, Depends, status

from .. import auth
from ..models import UserEntity
from ..schemas import AuthResponse, LoginRequest, SignupRequest, UserOut
from ..users import UserRepository, get_user_repository

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
)


# PUBLIC_INTERFACE
@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Sign Up",
    description="Create an account and return a bearer token for it.",
    responses={
        201: {"description": "User created successfully"},
        422: {"description": "Validation error or email already registered"},
    },
)
def signup(payload: SignupRequest, users: UserRepository = Depends(get_user_repository)) -> AuthResponse:
    token, user = auth.signup(users, payload)
    return AuthResponse(message="User created successfully", token=token, user=UserOut.from_entity(user))


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Log In",
    description="Exchange email and password for a bearer token.",
    responses={
        200: {"description": "Login successful"},
        401: {"description": "Invalid email or password"},
    },
)
def login(payload: LoginRequest, users: UserRepository = Depends(get_user_repository)) -> AuthResponse:
    token, user = auth.login(users, payload)
    return AuthResponse(message="Login successful", token=token, user=UserOut.from_entity(user))


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=UserOut,
    summary="Current User",
    description="Return the user the bearer token was issued for.",
    responses={401: {"description": "Missing or invalid bearer token"}},
)
def me(user: UserEntity = Depends(auth.get_current_user)) -> UserOut:
    return UserOut.from_entity(user)
