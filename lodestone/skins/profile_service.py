from __future__ import annotations
# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0

"""Remote profile service clients.

Writes are accepted immediately but become visible in ``fetch_profile``
only after the service has propagated them, often several seconds later.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from lodestone.auth.models import Account
from lodestone.exceptions import AuthRequiredError, RefreshFailedError, UploadFailedError
from lodestone.skins.models import Profile, SkinVariant

logger = logging.getLogger("lodestone.skins.profile_service")


class ProfileService(ABC):
    """Contract for reading and writing a player's skin."""

    @abstractmethod
    async def fetch_profile(self, account: Account) -> Profile:
        """Return the authoritative profile.  Raises ``RefreshFailedError``."""

    @abstractmethod
    async def upload_resource(self, account: Account, data: bytes, variant: SkinVariant) -> None:
        """Upload a skin PNG.  Raises ``UploadFailedError``."""

    @abstractmethod
    async def reset_resource(self, account: Account) -> None:
        """Reset the skin to the default.  Raises ``UploadFailedError``."""


class MinecraftProfileService(ProfileService):
    """``api.minecraftservices.com`` profile endpoints."""

    def __init__(
        self,
        *,
        api_base_url: str = "https://api.minecraftservices.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base = api_base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self, account: Account) -> httpx.AsyncClient:
        if not account.is_logged_in or not account.session_token:
            raise AuthRequiredError(f"Account '{account.username}' is not logged in")
        return httpx.AsyncClient(
            base_url=self._base,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Authorization": f"Bearer {account.session_token}"},
        )

    async def fetch_profile(self, account: Account) -> Profile:
        try:
            async with self._client(account) as client:
                resp = await client.get("/minecraft/profile")
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RefreshFailedError(f"Profile fetch failed: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise RefreshFailedError(f"Profile fetch failed: {e}") from e
        try:
            return Profile.model_validate(resp.json())
        except ValueError as e:
            raise RefreshFailedError(f"Malformed profile response: {e}") from e

    async def upload_resource(self, account: Account, data: bytes, variant: SkinVariant) -> None:
        try:
            async with self._client(account) as client:
                resp = await client.post(
                    "/minecraft/profile/skins",
                    data={"variant": SkinVariant.parse(variant).value},
                    files={"file": ("skin.png", data, "image/png")},
                )
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UploadFailedError(f"Skin upload failed: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UploadFailedError(f"Skin upload failed: {e}") from e
        logger.info(
            "Uploaded %s skin for %s (%d bytes)",
            SkinVariant.parse(variant).value, account.username, len(data),
        )

    async def reset_resource(self, account: Account) -> None:
        try:
            async with self._client(account) as client:
                resp = await client.delete("/minecraft/profile/skins/active")
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UploadFailedError(f"Skin reset failed: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UploadFailedError(f"Skin reset failed: {e}") from e
        logger.info("Reset skin for %s", account.username)
