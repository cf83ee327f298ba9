from __future__ import annotations
# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of Lodestone, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""OAuth2 device-code login driver.

``DeviceCodeAuthenticator`` requests a device code, shows it to the user
through the returned :class:`DeviceCodeSession`, and polls the identity
provider in a task it owns until one of:

- the provider returns a session (``completed``),
- the provider reports the code expired or the user declined,
- the hard ceiling (``timeout_seconds``, 5 minutes by default) passes,
- the caller cancels or starts another login.

State machine::

    idle → requesting → polling → completed | expired | denied | failed
"""

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from lodestone import events as ev
from lodestone.auth.models import (
    Account,
    AuthenticatorState,
    DeviceCodeSession,
    DeviceCodeState,
)
from lodestone.auth.provider import IdentityProvider
from lodestone.events import EventBus
from lodestone.exceptions import (
    LoginCancelledError,
    ProviderDeniedError,
    ProviderError,
    ProviderExpiredError,
    ProviderPendingError,
    ProviderSlowDownError,
)

logger = logging.getLogger("lodestone.auth.device_code")

DEFAULT_LOGIN_TIMEOUT = 300.0
DEFAULT_POLL_INTERVAL = 5
SLOW_DOWN_STEP = 5

SleepFn = Callable[[float], Awaitable[None]]
ClockFn = Callable[[], float]


@dataclass
class _LoginAttempt:
    session: DeviceCodeSession
    done: asyncio.Event = field(default_factory=asyncio.Event)
    task: asyncio.Task | None = None
    account: Account | None = None
    error: BaseException | None = None


class DeviceCodeAuthenticator:
    """Drives one device-code login at a time against an ``IdentityProvider``."""

    def __init__(
        self,
        provider: IdentityProvider,
        *,
        events: EventBus | None = None,
        timeout_seconds: float = DEFAULT_LOGIN_TIMEOUT,
        default_interval: int = DEFAULT_POLL_INTERVAL,
        sleep: SleepFn = asyncio.sleep,
        clock: ClockFn = time.monotonic,
    ) -> None:
        self._provider = provider
        self._events = events
        self._timeout = timeout_seconds
        self._default_interval = default_interval
        self._sleep = sleep
        self._clock = clock
        self._state = AuthenticatorState.IDLE
        self._attempt: _LoginAttempt | None = None
        self._request_id = 0
        self.poll_attempts = 0

    @property
    def state(self) -> AuthenticatorState:
        return self._state

    @property
    def session(self) -> DeviceCodeSession | None:
        return self._attempt.session if self._attempt else None

    # ── Public API ───────────────────────────────────────────

    async def start_login(self) -> DeviceCodeSession:
        """Request a device code and start polling in the background.

        A login already in progress is cancelled first, including one still
        waiting for its device code.

        Raises:
            ProviderError: The device code request failed (state ``failed``).
            LoginCancelledError: Another ``start_login`` or ``cancel`` ran
                while the device code was being requested.
        """
        await self.cancel()
        self._request_id += 1
        request_id = self._request_id
        self._state = AuthenticatorState.REQUESTING
        try:
            grant = await self._provider.request_device_code()
        except Exception:
            if request_id == self._request_id:
                self._state = AuthenticatorState.FAILED
            logger.warning("Device code request failed", exc_info=True)
            raise
        if request_id != self._request_id:
            logger.info("Discarding device code %s from a superseded login", grant.user_code)
            raise LoginCancelledError("Login superseded")

        session = DeviceCodeSession.from_grant(
            grant,
            default_interval=self._default_interval,
            max_lifetime=self._timeout,
        )
        ceiling = min(self._timeout, float(grant.expires_in))
        attempt = _LoginAttempt(session=session)
        self._attempt = attempt
        self.poll_attempts = 0
        self._state = AuthenticatorState.POLLING
        attempt.task = asyncio.create_task(
            self._poll_loop(attempt, ceiling),
            name=f"device-code-poll-{session.user_code}",
        )
        logger.info(
            "Login started: enter code %s at %s",
            session.user_code,
            session.verification_uri,
        )
        return session

    async def wait_for_completion(self) -> Account:
        """Wait for the current login to finish and return its account.

        Raises:
            ProviderExpiredError: The code expired or the ceiling passed.
            ProviderDeniedError: The user declined.
            LoginCancelledError: No login in progress, or it was cancelled.
        """
        attempt = self._attempt
        if attempt is None:
            raise LoginCancelledError("No login in progress")
        await attempt.done.wait()
        if attempt.error is not None:
            raise attempt.error
        if attempt.account is None:
            raise LoginCancelledError("Login finished without an account")
        return attempt.account

    async def login(self) -> Account:
        await self.start_login()
        return await self.wait_for_completion()

    async def cancel(self) -> None:
        """Stop polling and discard the session.

        Returns once the poll task has finished, so no poll request is in
        flight afterwards.  A device code request still in flight is
        discarded when it returns.
        """
        self._request_id += 1
        attempt = self._attempt
        self._attempt = None
        if attempt is not None:
            await self._stop(attempt)
        if self._state in (AuthenticatorState.REQUESTING, AuthenticatorState.POLLING):
            self._state = AuthenticatorState.IDLE

    async def aclose(self) -> None:
        await self.cancel()

    async def _stop(self, attempt: _LoginAttempt) -> None:
        task = attempt.task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if not attempt.done.is_set():
            attempt.session.state = DeviceCodeState.ERROR
            attempt.error = LoginCancelledError("Login cancelled")
            attempt.done.set()
            logger.info("Login cancelled (code %s)", attempt.session.user_code)

    # ── Poll loop ────────────────────────────────────────────

    async def _poll_loop(self, attempt: _LoginAttempt, ceiling: float) -> None:
        session = attempt.session
        deadline = self._clock() + ceiling
        interval = float(session.poll_interval_seconds)
        try:
            while True:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    logger.warning("Login timed out after %.0fs", ceiling)
                    self._finish(
                        attempt,
                        DeviceCodeState.EXPIRED,
                        error=ProviderExpiredError("Login timed out", code="timeout"),
                    )
                    return
                await self._sleep(min(interval, remaining))
                if self._clock() >= deadline:
                    continue

                self.poll_attempts += 1
                try:
                    account = await self._provider.poll_token(session.device_code)
                except ProviderSlowDownError:
                    interval += SLOW_DOWN_STEP
                    session.poll_interval_seconds = int(interval)
                    logger.debug("Provider asked to slow down; interval now %.0fs", interval)
                    continue
                except ProviderPendingError:
                    continue
                except ProviderExpiredError as exc:
                    self._finish(attempt, DeviceCodeState.EXPIRED, error=exc)
                    return
                except ProviderDeniedError as exc:
                    self._finish(attempt, DeviceCodeState.DENIED, error=exc)
                    return
                except ProviderError as exc:
                    logger.warning("Login poll failed, retrying: %s", exc)
                    continue

                self._finish(attempt, DeviceCodeState.COMPLETED, account=account)
                return
        except Exception as exc:
            logger.exception("Login polling crashed")
            self._finish(attempt, DeviceCodeState.ERROR, error=exc)

    def _finish(
        self,
        attempt: _LoginAttempt,
        state: DeviceCodeState,
        *,
        account: Account | None = None,
        error: BaseException | None = None,
    ) -> None:
        attempt.session.state = state
        attempt.account = account
        attempt.error = error
        attempt.done.set()
        if attempt is not self._attempt:
            return

        self._state = {
            DeviceCodeState.COMPLETED: AuthenticatorState.COMPLETED,
            DeviceCodeState.EXPIRED: AuthenticatorState.EXPIRED,
            DeviceCodeState.DENIED: AuthenticatorState.DENIED,
        }.get(state, AuthenticatorState.FAILED)
        logger.info("Login finished: %s after %d poll(s)", state.value, self.poll_attempts)

        if self._events is None:
            return
        if account is not None:
            self._events.emit(ev.SESSION_ESTABLISHED, {"account": account})
        elif error is not None:
            self._events.emit_error(error, context="Login failed")
