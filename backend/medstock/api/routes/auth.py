"""Auth: email-only login against the Users sheet, logout, current user."""
from fastapi import APIRouter, Depends

from medstock.api.deps import get_auth_service, get_current_user
from medstock.core.exceptions import BusinessError, NotFoundError
from medstock.schemas.user import Token, User, UserLogin
from medstock.services.auth_service import AuthService

router = APIRouter()


@router.post("/login", response_model=Token)
def login(data: UserLogin, auth: AuthService = Depends(get_auth_service)):
    """
    Log in by email. There is no password; users are provisioned in the sheet.

    Unknown email gets the same 401 as a bad token.
    """
    try:
        token, user = auth.login(data.email)
    except NotFoundError:
        raise BusinessError.unauthorized("unknown email")
    return Token(access_token=token, user=user)


@router.post("/logout")
def logout(
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    auth.logout()
    return {"status": "logged_out"}


@router.get("/me", response_model=User)
def me(current_user: User = Depends(get_current_user)):
    return current_user
