from __future__ import annotations
# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of Lodestone, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Authentication data models for Lodestone."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from lodestone.time_utils import expires_after, now_utc


class Account(BaseModel):
    """A launcher account, either Microsoft-authenticated or offline."""

    username: str = Field(min_length=1)
    uuid: str | None = None
    is_logged_in: bool = False
    session_token: str | None = None

    @model_validator(mode="after")
    def _logged_in_needs_uuid(self) -> "Account":
        if self.is_logged_in and not self.uuid:
            raise ValueError("a logged-in account requires a uuid")
        return self

    @classmethod
    def offline(cls, username: str) -> "Account":
        return cls(username=username)

    @property
    def account_type(self) -> Literal["microsoft", "offline"]:
        return "microsoft" if self.is_logged_in else "offline"

    def logged_out(self) -> "Account":
        """Return an offline copy that keeps the username only."""
        return Account(username=self.username)


class DeviceCodeGrant(BaseModel):
    """Identity provider response to a device authorization request."""

    device_code: str
    user_code: str
    verification_uri: str
    interval: int | None = None
    expires_in: int = 900
    message: str = ""


class DeviceCodeState(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    EXPIRED = "expired"
    DENIED = "denied"
    ERROR = "error"


class AuthenticatorState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    POLLING = "polling"
    COMPLETED = "completed"
    EXPIRED = "expired"
    DENIED = "denied"
    FAILED = "failed"


class DeviceCodeSession(BaseModel):
    """A device-code login in progress, shown to the user as code + URL."""

    device_code: str
    user_code: str
    verification_uri: str
    poll_interval_seconds: int
    expires_at: datetime
    state: DeviceCodeState = DeviceCodeState.PENDING

    @classmethod
    def from_grant(
        cls,
        grant: DeviceCodeGrant,
        *,
        default_interval: int = 5,
        max_lifetime: float | None = None,
    ) -> "DeviceCodeSession":
        """Build a session from *grant*; lifetime is capped at *max_lifetime*."""
        lifetime = float(grant.expires_in)
        if max_lifetime is not None:
            lifetime = min(lifetime, max_lifetime)
        return cls(
            device_code=grant.device_code,
            user_code=grant.user_code,
            verification_uri=grant.verification_uri,
            poll_interval_seconds=grant.interval or default_interval,
            expires_at=expires_after(lifetime),
        )

    @property
    def is_terminal(self) -> bool:
        return self.state is not DeviceCodeState.PENDING

    def is_expired(self, at: datetime | None = None) -> bool:
        return (at or now_utc()) >= self.expires_at
