"""Registration, login and current-user endpoints."""

from fastapi import APIRouter
from pydantic import BaseModel

from deaftube.api.deps import CurrentUserDep, SessionDep
from deaftube.api.routes.users import UserResponse
from deaftube.db.models import UserModel
from deaftube.services import accounts

router = APIRouter(prefix="/auth", tags=["Auth"])


class RegisterRequest(BaseModel):
    """Request to create an account."""

    username: str | None = None
    email: str | None = None
    password: str | None = None
    sign_language: str | None = None


class LoginRequest(BaseModel):
    """Request to sign in."""

    email: str | None = None
    password: str | None = None


class AccountResponse(UserResponse):
    """The caller's own profile, including private fields."""

    email: str

    @classmethod
    def from_model(cls, user: UserModel) -> "AccountResponse":
        return cls(email=user.email, **UserResponse.from_model(user).model_dump())


class TokenResponse(BaseModel):
    """Bearer token and the signed-in account."""

    token: str
    user: AccountResponse


@router.post("/register", response_model=TokenResponse, summary="Register")
def register(request: RegisterRequest, session: SessionDep) -> TokenResponse:
    """Create an account and return a bearer token for it."""
    token, user = accounts.register(
        session,
        request.username,
        request.email,
        request.password,
        request.sign_language,
    )
    return TokenResponse(token=token, user=AccountResponse.from_model(user))


@router.post("/login", response_model=TokenResponse, summary="Login")
def login(request: LoginRequest, session: SessionDep) -> TokenResponse:
    """Exchange email and password for a bearer token."""
    token, user = accounts.login(session, request.email, request.password)
    return TokenResponse(token=token, user=AccountResponse.from_model(user))


@router.get("/me", response_model=AccountResponse, summary="Current user")
def me(user: CurrentUserDep, session: SessionDep) -> AccountResponse:
    """Profile of the account the bearer token belongs to."""
    return AccountResponse.from_model(accounts.get_user(session, user.user_id))
