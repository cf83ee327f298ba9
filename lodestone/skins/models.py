from __future__ import annotations
# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0

"""Skin data models: remote profile, library items and preview states."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from pydantic import BaseModel, Field, field_validator

from lodestone.time_utils import now_utc


class SkinVariant(str, Enum):
    CLASSIC = "classic"
    SLIM = "slim"

    @classmethod
    def parse(cls, value: "str | SkinVariant | None") -> "SkinVariant":
        """Accept ``"classic"``, ``"SLIM"`` etc.; ``None`` means classic."""
        if isinstance(value, SkinVariant):
            return value
        if not value:
            return cls.CLASSIC
        return cls(str(value).lower())


class ProfileSkin(BaseModel):
    id: str
    url: str
    state: str = "INACTIVE"
    variant: SkinVariant = SkinVariant.CLASSIC

    @field_validator("variant", mode="before")
    @classmethod
    def _lower_variant(cls, value: object) -> object:
        return SkinVariant.parse(value) if isinstance(value, str) or value is None else value

    @property
    def is_active(self) -> bool:
        return self.state.upper() == "ACTIVE"


class Profile(BaseModel):
    """Authoritative profile as reported by the profile service."""

    id: str
    name: str
    skins: list[ProfileSkin] = []

    @property
    def active_skin(self) -> ProfileSkin | None:
        for skin in self.skins:
            if skin.is_active:
                return skin
        return None


class LibraryItem(BaseModel):
    """A user-curated skin saved locally, independent of any account."""

    id: str
    name: str
    variant: SkinVariant = SkinVariant.CLASSIC
    stored_file: str
    created_at: datetime = Field(default_factory=now_utc)


# ── Preview state ─────────────────────────────────────────────


@dataclass(frozen=True)
class AuthoritativePreview:
    """Display state confirmed by the profile service.

    ``url`` is the display URL (cache-busted), ``source_url`` the remote
    skin URL it was built from.  Both are ``None`` when the profile has no
    active custom skin.
    """

    url: str | None
    variant: SkinVariant = SkinVariant.CLASSIC
    source_url: str | None = None

    @property
    def optimistic(self) -> bool:
        return False


@dataclass(frozen=True)
class OptimisticPreview:
    """Locally chosen skin shown before the remote write is confirmed."""

    url: str
    variant: SkinVariant
    since: datetime

    @property
    def optimistic(self) -> bool:
        return True


PreviewState = Union[AuthoritativePreview, OptimisticPreview]
