"""Google Identity Services ID-token verification."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from chathub.config import settings

logger = logging.getLogger(__name__)


class GoogleAuthError(Exception):
    """The credential could not be verified or Google sign-in is not configured."""


@dataclass(frozen=True)
class GoogleIdentity:
    sub: str
    email: str
    name: str | None = None
    picture: str | None = None


def _verify_sync(credential: str, client_id: str) -> dict:
    # Fetches Google's signing certs over HTTP, so keep it off the event loop
    return id_token.verify_oauth2_token(credential, google_requests.Request(), client_id)


async def verify_google_credential(credential: str, client_id: str | None = None) -> GoogleIdentity:
    """
    Verify a Google ID token and extract the identity claims.

    Args:
        credential: The ID token posted by the browser
        client_id: Expected audience; defaults to GOOGLE_CLIENT_ID

    Raises:
        GoogleAuthError: not configured, invalid, expired, wrong audience,
            or the email is not verified by Google
    """
    client_id = client_id or settings.GOOGLE_CLIENT_ID
    if not client_id:
        raise GoogleAuthError("Google OAuth not configured")

    try:
        payload = await asyncio.to_thread(_verify_sync, credential, client_id)
    except ValueError as e:
        logger.info("Google token verification failed: %s", e)
        raise GoogleAuthError("Invalid or expired Google credential") from e

    if payload.get("aud") != client_id or not payload.get("sub") or not payload.get("email"):
        raise GoogleAuthError("Invalid Google token")

    # Sign-in links by email, so an unverified address could claim someone else's account
    if payload.get("email_verified") not in (True, "true"):
        raise GoogleAuthError("Google email not verified")

    return GoogleIdentity(
        sub=payload["sub"],
        email=payload["email"],
        name=payload.get("name"),
        picture=payload.get("picture"),
    )
