"""
Centralized test credentials and secrets.

All test-only credentials are loaded from environment variables when available,
with clearly non-production placeholders as fallbacks.
"""

from __future__ import annotations

import os

# Passwords: registration requires at least 8 characters
TEST_PASSWORD = os.environ.get("TEST_PASSWORD") or "placeholder-pw-1"
TEST_PASSWORD_WRONG = os.environ.get("TEST_PASSWORD_WRONG") or "placeholder-pw-2"

# Emails for test fixtures
TEST_EMAIL = "owner@example.com"
TEST_EMAIL_MEMBER = "member@example.com"

# Tokens: load from env; fallback is obviously a placeholder
TEST_ACCESS_TOKEN_PLACEHOLDER = os.environ.get("TEST_ACCESS_TOKEN") or "a.b.c"

# App config used by conftest
TEST_SECRET_KEY = os.environ.get("TEST_SECRET_KEY") or "test-secret-key"
