"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from chillin.config import Settings, get_settings
from chillin.sync.accumulator import AccumulatorRegistry
from chillin.sync.engine import SyncEngine
from chillin.sync.keys import account_key_from_email


@dataclass(frozen=True)
class AuthContext:
    """Authenticated principal extracted from the bearer token."""

    subject: str
    email: str | None = None

    @property
    def account_key(self) -> str | None:
        return account_key_from_email(self.email)


async def get_account_key(request: Request) -> str | None:
    """Return the caller's account key, or None when no identity is attached.

    The identity middleware sets ``request.state.auth`` before routes run.
    """
    auth: AuthContext | None = getattr(request.state, "auth", None)
    return auth.account_key if auth else None


def get_engine(request: Request) -> SyncEngine:
    return request.app.state.engine


def get_accumulators(request: Request) -> AccumulatorRegistry:
    return request.app.state.accumulators


# Annotated shortcuts for route signatures
AccountKey = Annotated[str | None, Depends(get_account_key)]
Engine = Annotated[SyncEngine, Depends(get_engine)]
Accumulators = Annotated[AccumulatorRegistry, Depends(get_accumulators)]
AppSettings = Annotated[Settings, Depends(get_settings)]
