from __future__ import annotations
# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of Lodestone, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Multi-account store with an active-account pointer.

Every mutation computes the resulting account list and active pointer,
persists them through the storage collaborator, and only then swaps them
in.  A ``StorageFailedError`` therefore leaves the store exactly as it was.
"""

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from lodestone import events as ev
from lodestone.auth.models import Account
from lodestone.events import EventBus
from lodestone.exceptions import (
    AccountNotFoundError,
    DuplicateUsernameError,
    StorageFailedError,
)
from lodestone.storage import KeyValueStore

logger = logging.getLogger("lodestone.accounts")

STORAGE_KEY = "accounts"


class AccountStore:
    """Ordered set of accounts keyed by username."""

    def __init__(
        self,
        storage: KeyValueStore,
        *,
        events: EventBus | None = None,
        accounts: list[Account] | None = None,
        active_username: str | None = None,
    ) -> None:
        self._storage = storage
        self._events = events
        self._accounts: list[Account] = list(accounts or [])
        names = {a.username for a in self._accounts}
        self._active = active_username if active_username in names else None
        self._previous_active = self._active

    @classmethod
    def load(cls, storage: KeyValueStore, *, events: EventBus | None = None) -> "AccountStore":
        """Restore the store from *storage*.

        Malformed records and duplicate usernames are skipped with a warning.
        An active pointer naming a missing account is dropped.
        """
        raw = storage.load(STORAGE_KEY) or {}
        accounts: list[Account] = []
        seen: set[str] = set()
        for item in raw.get("accounts", []):
            try:
                account = Account.model_validate(item)
            except PydanticValidationError as exc:
                logger.warning("Skipping malformed stored account: %s", exc)
                continue
            if account.username in seen:
                logger.warning("Skipping duplicate stored account '%s'", account.username)
                continue
            seen.add(account.username)
            accounts.append(account)
        store = cls(
            storage,
            events=events,
            accounts=accounts,
            active_username=raw.get("active"),
        )
        logger.debug("Loaded %d account(s), active=%s", len(accounts), store.active_username)
        return store

    # ── Queries ──────────────────────────────────────────────

    def list(self) -> list[Account]:
        return list(self._accounts)

    def get(self, username: str) -> Account | None:
        for account in self._accounts:
            if account.username == username:
                return account
        return None

    @property
    def active_username(self) -> str | None:
        return self._active

    @property
    def active_account(self) -> Account | None:
        return self.get(self._active) if self._active else None

    def __len__(self) -> int:
        return len(self._accounts)

    def __contains__(self, username: object) -> bool:
        return any(a.username == username for a in self._accounts)

    # ── Mutations ────────────────────────────────────────────

    def add_account(self, account: Account) -> None:
        """Append *account*; it becomes active when no account is active.

        Raises:
            DuplicateUsernameError: The username is already stored.
            StorageFailedError: Persisting failed; nothing changed.
        """
        if account.username in self:
            raise DuplicateUsernameError(f"Account '{account.username}' already exists")
        accounts = [*self._accounts, account]
        active = self._active or account.username
        self._commit(accounts, active)
        logger.info("Added %s account '%s'", account.account_type, account.username)
        if active != self._previous_active:
            self._emit_active_changed()

    def update_account(self, account: Account) -> None:
        """Replace the stored record that has *account*'s username."""
        if account.username not in self:
            raise AccountNotFoundError(f"Account '{account.username}' not found")
        accounts = [account if a.username == account.username else a for a in self._accounts]
        self._commit(accounts, self._active)
        logger.info("Updated account '%s'", account.username)
        if account.username == self._active:
            self._emit_active_changed()

    def remove_account(self, username: str) -> None:
        """Remove *username*.  Removing the active account empties the pointer."""
        if username not in self:
            raise AccountNotFoundError(f"Account '{username}' not found")
        accounts = [a for a in self._accounts if a.username != username]
        active = None if self._active == username else self._active
        self._commit(accounts, active)
        logger.info("Removed account '%s'", username)
        if active != self._previous_active:
            self._emit_active_changed()

    def switch_active(self, username: str) -> Account:
        """Point the active pointer at *username* and notify dependents."""
        account = self.get(username)
        if account is None:
            raise AccountNotFoundError(f"Account '{username}' not found")
        self._commit(self._accounts, username)
        logger.info("Switched active account to '%s'", username)
        self._emit_active_changed()
        return account

    # ── Internals ────────────────────────────────────────────

    def _commit(self, accounts: list[Account], active: str | None) -> None:
        payload: dict[str, Any] = {
            "accounts": [a.model_dump(mode="json") for a in accounts],
            "active": active,
        }
        try:
            self._storage.persist(STORAGE_KEY, payload)
        except StorageFailedError:
            logger.error("Failed to persist accounts; change discarded")
            raise
        self._previous_active = self._active
        self._accounts = list(accounts)
        self._active = active

    def _emit_active_changed(self) -> None:
        if self._events is None:
            return
        self._events.emit(ev.ACTIVE_ACCOUNT_CHANGED, {
            "username": self._active,
            "account": self.active_account,
            "previous": self._previous_active,
        })
