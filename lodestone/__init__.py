# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0

__version__ = "0.3.0"
