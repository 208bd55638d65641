"""Auth identity creation for the users import.

The identity store is a separate system from the catalog: identities are
committed on their own, so a later failure on the same row does not undo them.
"""
from __future__ import annotations

from typing import Any, Callable, Protocol

import httpx
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ventory_imports.core.config import Settings, settings as default_settings
from ventory_imports.core.logging import logger
from ventory_imports.crud.users import create_identity, delete_identity, get_user_by_email


class IdentityError(Exception):
    pass


class IdentityProvider(Protocol):
    def create_identity(self, email: str, password: str, email_confirmed: bool = True, metadata: dict[str, Any] | None = None) -> str: ...

    def delete_identity(self, user_id: str) -> None: ...


class LocalIdentityProvider:
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def create_identity(self, email: str, password: str, email_confirmed: bool = True, metadata: dict[str, Any] | None = None) -> str:
        db = self.session_factory()
        try:
            if get_user_by_email(db, email):
                raise IdentityError("Error creando usuario: el email ya está registrado")
            try:
                user = create_identity(db, email, password, email_confirmed=email_confirmed, metadata=metadata)
            except IntegrityError as e:
                db.rollback()
                raise IdentityError("Error creando usuario: el email ya está registrado") from e
            return user.id
        finally:
            db.close()

    def delete_identity(self, user_id: str) -> None:
        db = self.session_factory()
        try:
            delete_identity(db, user_id)
        finally:
            db.close()


class HttpIdentityProvider:
    """Auth admin REST endpoint (``POST /admin/users``, ``DELETE /admin/users/{id}``)."""

    def __init__(self, base_url: str, service_key: str, timeout: float = 20.0, transport: httpx.BaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={
                "Authorization": f"Bearer {self.service_key}",
                "apikey": self.service_key,
                "Content-Type": "application/json",
            },
            transport=self.transport,
        )

    def create_identity(self, email: str, password: str, email_confirmed: bool = True, metadata: dict[str, Any] | None = None) -> str:
        body = {
            "email": email,
            "password": password,
            "email_confirm": email_confirmed,
            "user_metadata": metadata or {},
        }
        try:
            with self._client() as client:
                resp = client.post("/admin/users", json=body)
        except httpx.TimeoutException as e:
            raise IdentityError(f"Error creando usuario: sin respuesta tras {self.timeout:g}s") from e
        except httpx.RequestError as e:
            raise IdentityError(f"Error creando usuario: {e}") from e

        if resp.status_code >= 400:
            raise IdentityError(f"Error creando usuario: {_error_text(resp)}")
        payload = resp.json()
        uid = payload.get("id") or (payload.get("user") or {}).get("id")
        if not uid:
            raise IdentityError("No se recibió ID de usuario")
        return str(uid)

    def delete_identity(self, user_id: str) -> None:
        try:
            with self._client() as client:
                resp = client.delete(f"/admin/users/{user_id}")
        except httpx.RequestError as e:
            raise IdentityError(f"Error eliminando usuario: {e}") from e
        if resp.status_code >= 400 and resp.status_code != 404:
            raise IdentityError(f"Error eliminando usuario: {_error_text(resp)}")


def _error_text(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return f"HTTP {resp.status_code}: {resp.text[:200]}"
    return str(data.get("msg") or data.get("message") or data.get("error") or f"HTTP {resp.status_code}")


def build_identity_provider(session_factory: Callable[[], Session], s: Settings = default_settings) -> IdentityProvider:
    if s.IDENTITY_PROVIDER.strip().lower() == "http":
        logger.info("identity_provider", kind="http", url=s.AUTH_ADMIN_URL)
        return HttpIdentityProvider(s.AUTH_ADMIN_URL, s.AUTH_SERVICE_KEY, timeout=s.ENTITY_CALL_TIMEOUT_SEC)
    return LocalIdentityProvider(session_factory)
