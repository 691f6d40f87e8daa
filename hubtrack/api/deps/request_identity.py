from __future__ import annotations

from fastapi import Request

from hubtrack.core.config import settings
from hubtrack.schemas.request_identity import RequestIdentity


def _identity_from_legacy_header(request: Request) -> RequestIdentity:
    email = request.headers.get("X-User-Email") or request.headers.get("X-User") or ""
    email = email.strip().lower()
    if not email:
        return RequestIdentity(email=settings.DEFAULT_ACTING_USER, auth_source="default")
    return RequestIdentity(email=email, auth_source="legacy_header")


def get_request_identity(request: Request) -> RequestIdentity:
    return _identity_from_legacy_header(request)


def get_request_email(request: Request) -> str:
    return get_request_identity(request).email
