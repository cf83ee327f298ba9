from __future__ import annotations
# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of Lodestone, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Identity provider clients.

``IdentityProvider`` is the contract the device-code authenticator drives.
``MicrosoftIdentityProvider`` implements it against Microsoft's OAuth2
device authorization endpoints and exchanges the resulting token through
Xbox Live and XSTS for a Minecraft services session.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from lodestone.auth.models import Account, DeviceCodeGrant
from lodestone.exceptions import (
    ConfigError,
    ProviderDeniedError,
    ProviderError,
    ProviderExpiredError,
    ProviderPendingError,
    ProviderSlowDownError,
)

logger = logging.getLogger("lodestone.auth.provider")

DEVICE_CODE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"

_MS_LOGIN_BASE = "https://login.microsoftonline.com"
_XBL_AUTH_URL = "https://user.auth.xboxlive.com/user/authenticate"
_XSTS_AUTH_URL = "https://xsts.auth.xboxlive.com/xsts/authorize"

# OAuth error codes (RFC 8628 plus Microsoft's variants) → exception class
_POLL_ERRORS: dict[str, type[ProviderError]] = {
    "authorization_pending": ProviderPendingError,
    "slow_down": ProviderSlowDownError,
    "expired_token": ProviderExpiredError,
    "code_expired": ProviderExpiredError,
    "access_denied": ProviderDeniedError,
    "authorization_declined": ProviderDeniedError,
}

# XSTS XErr codes worth a readable message
_XSTS_ERRORS: dict[int, str] = {
    2148916233: "This Microsoft account has no Xbox profile",
    2148916235: "Xbox Live is not available in this account's region",
    2148916238: "Child accounts must be added to a family by an adult",
}


def classify_oauth_error(payload: dict[str, Any]) -> ProviderError:
    """Map an OAuth error payload to the matching ``ProviderError`` subclass."""
    code = str(payload.get("error", "") or "")
    description = str(payload.get("error_description", "") or code or "unknown error")
    exc_cls = _POLL_ERRORS.get(code, ProviderError)
    return exc_cls(description.splitlines()[0], code=code)


class IdentityProvider(ABC):
    """Device authorization contract."""

    @abstractmethod
    async def request_device_code(self) -> DeviceCodeGrant:
        """Start a device authorization request."""

    @abstractmethod
    async def poll_token(self, device_code: str) -> Account:
        """Return the authenticated account or raise a ``ProviderError``.

        ``ProviderPendingError`` means the user has not finished yet.
        """


class MicrosoftIdentityProvider(IdentityProvider):
    """Microsoft → Xbox Live → Minecraft services login chain."""

    def __init__(
        self,
        client_id: str,
        *,
        tenant: str = "consumers",
        scope: str = "XboxLive.signin offline_access",
        api_base_url: str = "https://api.minecraftservices.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client_id = client_id
        self._scope = scope
        self._oauth_base = f"{_MS_LOGIN_BASE}/{tenant}/oauth2/v2.0"
        self._api_base = api_base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def request_device_code(self) -> DeviceCodeGrant:
        if not self._client_id:
            raise ConfigError(
                "Microsoft client id is not configured. "
                "Set LODESTONE_MS_CLIENT_ID or auth.client_id in config.json."
            )
        try:
            async with self._client() as client:
                resp = await client.post(
                    f"{self._oauth_base}/devicecode",
                    data={"client_id": self._client_id, "scope": self._scope},
                )
        except httpx.HTTPError as exc:
            raise ProviderError(f"Device code request failed: {exc}") from exc
        payload = _json_or_empty(resp)
        if resp.is_error:
            raise classify_oauth_error(payload)
        grant = DeviceCodeGrant.model_validate(payload)
        logger.info("Device code issued (expires in %ss)", grant.expires_in)
        return grant

    async def poll_token(self, device_code: str) -> Account:
        try:
            async with self._client() as client:
                resp = await client.post(
                    f"{self._oauth_base}/token",
                    data={
                        "grant_type": DEVICE_CODE_GRANT_TYPE,
                        "client_id": self._client_id,
                        "device_code": device_code,
                    },
                )
                payload = _json_or_empty(resp)
                if resp.is_error or "access_token" not in payload:
                    raise classify_oauth_error(payload)
                return await self._minecraft_login(client, payload["access_token"])
        except httpx.HTTPError as exc:
            raise ProviderError(f"Token poll failed: {exc}") from exc

    # ── Xbox Live / Minecraft exchange ───────────────────────

    async def _minecraft_login(self, client: httpx.AsyncClient, ms_token: str) -> Account:
        xbl = await _post_json(client, _XBL_AUTH_URL, {
            "Properties": {
                "AuthMethod": "RPS",
                "SiteName": "user.auth.xboxlive.com",
                "RpsTicket": f"d={ms_token}",
            },
            "RelyingParty": "http://auth.xboxlive.com",
            "TokenType": "JWT",
        }, step="Xbox Live")
        try:
            user_hash = xbl["DisplayClaims"]["xui"][0]["uhs"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError("Xbox Live response has no user hash") from exc

        xsts = await _post_json(client, _XSTS_AUTH_URL, {
            "Properties": {"SandboxId": "RETAIL", "UserTokens": [xbl["Token"]]},
            "RelyingParty": "rp://api.minecraftservices.com/",
            "TokenType": "JWT",
        }, step="XSTS")

        mc = await _post_json(
            client,
            f"{self._api_base}/authentication/login_with_xbox",
            {"identityToken": f"XBL3.0 x={user_hash};{xsts['Token']}"},
            step="Minecraft services",
        )
        access_token = mc.get("access_token")
        if not access_token:
            raise ProviderError("Minecraft services returned no access token")

        resp = await client.get(
            f"{self._api_base}/minecraft/profile",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if resp.status_code == 404:
            raise ProviderError("This account does not own Minecraft")
        if resp.is_error:
            raise ProviderError(f"Profile lookup failed: HTTP {resp.status_code}")
        profile = resp.json()
        logger.info("Minecraft login complete for %s", profile.get("name"))
        return Account(
            username=profile["name"],
            uuid=format_uuid(profile["id"]),
            is_logged_in=True,
            session_token=access_token,
        )


# ── Helpers ──────────────────────────────────────────────────


def format_uuid(raw: str) -> str:
    """Return *raw* in dashed 8-4-4-4-12 form (accepts dashed or plain hex)."""
    hex_id = raw.replace("-", "").lower()
    if len(hex_id) != 32:
        return raw
    return f"{hex_id[:8]}-{hex_id[8:12]}-{hex_id[12:16]}-{hex_id[16:20]}-{hex_id[20:]}"


def _json_or_empty(resp: httpx.Response) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


async def _post_json(
    client: httpx.AsyncClient,
    url: str,
    body: dict[str, Any],
    *,
    step: str,
) -> dict[str, Any]:
    resp = await client.post(url, json=body, headers={"Accept": "application/json"})
    payload = _json_or_empty(resp)
    if resp.is_error:
        xerr = payload.get("XErr")
        if isinstance(xerr, int) and xerr in _XSTS_ERRORS:
            raise ProviderError(_XSTS_ERRORS[xerr], code=str(xerr))
        raise ProviderError(f"{step} authentication failed: HTTP {resp.status_code}")
    return payload
