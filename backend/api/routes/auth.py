"""Account registration and login routes."""

from fastapi import APIRouter, Depends

from api.deps import get_account_service, get_current_account
from api.schemas import AccountResponse, AuthResponse, Credentials
from auth.accounts import AccountService
from models import Account

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    credentials: Credentials,
    accounts: AccountService = Depends(get_account_service),
) -> AuthResponse:
    """Create an account and sign it in."""
    account, token = await accounts.register(credentials.username, credentials.password)
    return AuthResponse(token=token, account=AccountResponse.model_validate(account))


@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: Credentials,
    accounts: AccountService = Depends(get_account_service),
) -> AuthResponse:
    """Exchange username and password for a session token."""
    account, token = await accounts.login(credentials.username, credentials.password)
    return AuthResponse(token=token, account=AccountResponse.model_validate(account))


@router.get("/me", response_model=AccountResponse)
async def me(account: Account = Depends(get_current_account)) -> AccountResponse:
    """Get the signed-in account."""
    return AccountResponse.model_validate(account)
