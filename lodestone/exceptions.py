from __future__ import annotations
# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of Lodestone, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Unified exception hierarchy for Lodestone.

All domain-specific exceptions derive from :class:`LodestoneError`,
enabling callers to catch the entire family with a single clause::

    try:
        ...
    except LodestoneError as e:
        logger.error("Domain error: %s", e)
"""


class LodestoneError(Exception):
    """Base exception for all Lodestone errors."""


# ── Auth ─────────────────────────────────────────────────────


class AuthError(LodestoneError):
    """Session and login errors."""


class AuthRequiredError(AuthError):
    """Operation needs an account logged in with the identity provider."""


class LoginCancelledError(AuthError):
    """A pending device-code login was cancelled or superseded."""


# ── Identity provider ────────────────────────────────────────


class ProviderError(LodestoneError):
    """Identity provider returned an error or could not be reached.

    ``code`` carries the provider's OAuth error code when one is known
    (e.g. ``invalid_client``).
    """

    def __init__(self, message: str = "Identity provider error", *, code: str = "") -> None:
        super().__init__(message)
        self.code = code


class ProviderPendingError(ProviderError):
    """The user has not finished authorizing yet (``authorization_pending``)."""


class ProviderSlowDownError(ProviderPendingError):
    """Still pending, and the provider asks for a longer poll interval."""


class ProviderExpiredError(ProviderError):
    """The device code expired before the user completed the login."""


class ProviderDeniedError(ProviderError):
    """The user declined the authorization request."""


# ── Accounts / library ───────────────────────────────────────


class DuplicateUsernameError(LodestoneError):
    """An account with the same username is already stored."""


class NotFoundError(LodestoneError):
    """Referenced entity does not exist."""


class AccountNotFoundError(NotFoundError):
    """No account with the given username."""


class LibraryItemNotFoundError(NotFoundError):
    """No skin library item with the given id."""


class ValidationError(LodestoneError):
    """A required input field is empty or malformed."""


# ── Skin sync ────────────────────────────────────────────────


class SyncError(LodestoneError):
    """Remote profile synchronisation errors."""


class UploadFailedError(SyncError):
    """The profile service rejected or failed a skin upload or reset."""


class RefreshFailedError(SyncError):
    """Fetching the authoritative profile failed."""


# ── Storage ──────────────────────────────────────────────────


class StorageFailedError(LodestoneError):
    """The storage collaborator could not persist or load a value."""


# ── Configuration ────────────────────────────────────────────


class ConfigError(LodestoneError):
    """Configuration errors (missing client id, unreadable config.json)."""
