"""Supabase clients: identity (auth) and blob storage.

Both wrap the synchronous ``supabase`` client and push its calls onto a worker
thread. Instances are built once by the app lifespan and handed to routes via
dependencies, never created at import time.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from supabase import Client, create_client

from libs.common.config import Settings
from libs.common.errors import UpstreamError, ValidationError
from libs.common.logging import get_logger

logger = get_logger(__name__)


def get_supabase_client(settings: Settings) -> Client:
    """Client with the anon key (user-level operations such as sign-in)."""
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)


def get_supabase_admin_client(settings: Settings) -> Client:
    """Client with the service role key. Never expose to callers."""
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


def _is_already_registered_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return (
        "already registered" in message
        or "user already registered" in message
        or "already exists" in message
    )


def _is_invalid_credentials_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return "invalid login credentials" in message or "invalid credentials" in message


@dataclass
class AuthSession:
    """Result of a successful sign-in."""

    user_id: str
    email: str
    access_token: str


class IdentityGateway:
    """Supabase Auth: account lifecycle and password sign-in."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._admin = get_supabase_admin_client(settings)

    async def create_user(self, email: str, password: str) -> str:
        """Create a confirmed account and return its identity id."""
        try:
            response = await asyncio.to_thread(
                self._admin.auth.admin.create_user,
                {"email": email, "password": password, "email_confirm": True},
            )
        except Exception as e:
            if _is_already_registered_error(e):
                raise ValidationError(
                    "Email already registered. Please log in instead."
                ) from e
            raise UpstreamError(f"Supabase create_user failed for {email}", cause=e)

        user = getattr(response, "user", None)
        user_id = getattr(user, "id", None)
        if not user_id:
            raise UpstreamError(f"Supabase create_user returned no user for {email}")
        logger.info(
            "Created identity account",
            extra={"extra_fields": {"user_id": user_id}},
        )
        return str(user_id)

    async def delete_user(self, user_id: str) -> None:
        try:
            await asyncio.to_thread(self._admin.auth.admin.delete_user, user_id)
        except Exception as e:
            raise UpstreamError(f"Supabase delete_user failed for {user_id}", cause=e)
        logger.info(
            "Deleted identity account",
            extra={"extra_fields": {"user_id": user_id}},
        )

    async def sign_in(self, email: str, password: str) -> Optional[AuthSession]:
        """Password sign-in. Returns None on bad credentials."""
        # A fresh anon client per sign-in keeps user sessions from leaking
        # between requests.
        client = get_supabase_client(self._settings)
        try:
            response = await asyncio.to_thread(
                client.auth.sign_in_with_password,
                {"email": email, "password": password},
            )
        except Exception as e:
            if _is_invalid_credentials_error(e):
                return None
            raise UpstreamError(f"Supabase sign-in failed for {email}", cause=e)

        session = getattr(response, "session", None)
        user = getattr(response, "user", None)
        if session is None or user is None:
            return None
        return AuthSession(
            user_id=str(user.id),
            email=user.email or email,
            access_token=session.access_token,
        )

    async def update_password(self, user_id: str, new_password: str) -> None:
        try:
            await asyncio.to_thread(
                self._admin.auth.admin.update_user_by_id,
                user_id,
                {"password": new_password},
            )
        except Exception as e:
            raise UpstreamError(
                f"Supabase password update failed for {user_id}", cause=e
            )


class StorageService:
    """Supabase Storage bucket for uploaded images."""

    def __init__(self, settings: Settings):
        self.supabase: Client = get_supabase_admin_client(settings)
        self.bucket = settings.SUPABASE_STORAGE_BUCKET

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Upload (overwriting) ``data`` at ``path`` and return its public URL."""
        bucket = self.supabase.storage.from_(self.bucket)
        try:
            await asyncio.to_thread(
                bucket.upload,
                path=path,
                file=data,
                file_options={"content-type": content_type, "upsert": "true"},
            )
        except Exception as e:
            raise UpstreamError(f"Storage upload failed for {path}", cause=e)
        return bucket.get_public_url(path)
