"""CSRF token endpoint for the double-submit cookie scheme."""

from fastapi import APIRouter, Response

from app.core.csrf import generate_csrf_token, set_csrf_cookie
from app.schemas.common import CamelModel

router = APIRouter()


class CsrfTokenResponse(CamelModel):
    csrf_token: str


@router.get("", response_model=CsrfTokenResponse)
def get_csrf_token(response: Response) -> CsrfTokenResponse:
    """
    Issue a CSRF token and set the matching HTTP-only cookie.
    Send the token back in the x-csrf-token header on every POST/PUT/PATCH/DELETE.
    """
    token, cookie_value = generate_csrf_token()
    set_csrf_cookie(response, cookie_value)
    return CsrfTokenResponse(csrf_token=token)
