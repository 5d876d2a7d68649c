"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Request, Response

from src.api.middleware.error_handler import NotFoundError
from src.core.config import get_settings
from src.services.email_service import EmailService, get_email_service
from src.services.lead_store_service import LeadStoreService, get_lead_store_service
from src.services.quote_session_service import QuoteSessionService, get_quote_session_service
from src.services.quote_wizard import QuoteWizard

QUOTE_SESSION_HEADER = "x-quote-session"


def get_quote_session_cookie_config() -> dict:
    """Get wizard session cookie configuration from settings."""
    settings = get_settings()
    # SameSite=None is rejected by browsers unless the cookie is also Secure
    samesite = "none" if settings.session_cookie_secure else "lax"
    return {
        "key": settings.quote_session_cookie_name,
        "max_age": settings.quote_session_cookie_max_age,
        "httponly": True,
        "secure": settings.session_cookie_secure,
        "samesite": samesite,
        "path": "/",
    }


def get_quote_session_token(request: Request) -> str | None:
    """Extract the wizard token from the X-Quote-Session header or cookie.

    The header wins so that clients with third-party cookies blocked can
    still resume their quote.

    Args:
        request: FastAPI request object.

    Returns:
        str | None: The session token or None if not present.
    """
    header_token = request.headers.get(QUOTE_SESSION_HEADER)
    if header_token:
        return header_token

    config = get_quote_session_cookie_config()
    return request.cookies.get(config["key"])


def set_quote_session_cookie(response: Response, token: str) -> None:
    """Set the wizard session cookie and mirror the token in a header."""
    config = get_quote_session_cookie_config()
    response.set_cookie(
        key=config["key"],
        value=token,
        max_age=config["max_age"],
        httponly=config["httponly"],
        secure=config["secure"],
        samesite=config["samesite"],
        path=config["path"],
    )
    response.headers[QUOTE_SESSION_HEADER] = token


def clear_quote_session_cookie(response: Response) -> None:
    """Clear the wizard session cookie from the response."""
    config = get_quote_session_cookie_config()
    response.delete_cookie(key=config["key"], path=config["path"])


QuoteSessions = Annotated[QuoteSessionService, Depends(get_quote_session_service)]


async def get_current_wizard(request: Request, sessions: QuoteSessions) -> QuoteWizard:
    """Resolve the caller's wizard from their session token.

    Args:
        request: FastAPI request object.
        sessions: Wizard session registry.

    Returns:
        QuoteWizard: The caller's wizard.

    Raises:
        NotFoundError: If there is no token or it matches no session or draft.
    """
    wizard = sessions.get_wizard(get_quote_session_token(request))
    if wizard is None:
        raise NotFoundError("No quote in progress. Start a new quote to continue.")
    return wizard


CurrentWizard = Annotated[QuoteWizard, Depends(get_current_wizard)]
LeadStore = Annotated[LeadStoreService, Depends(get_lead_store_service)]
Mailer = Annotated[EmailService, Depends(get_email_service)]
