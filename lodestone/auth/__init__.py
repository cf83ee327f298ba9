# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from lodestone.auth.device_code import DeviceCodeAuthenticator
from lodestone.auth.models import (
    Account,
    AuthenticatorState,
    DeviceCodeGrant,
    DeviceCodeSession,
    DeviceCodeState,
)
from lodestone.auth.provider import IdentityProvider, MicrosoftIdentityProvider
