"""Shared test configuration: deterministic settings environment."""

from __future__ import annotations

import os

# Importing asset_proxy.main builds the app from environment settings.
os.environ.setdefault("APP__ENVIRONMENT", "development")
os.environ.setdefault("CONTENTFUL__ACCESS_TOKEN", "test-access-token")
os.environ.setdefault("CONTENTFUL__SPACE_ID", "sp1")
os.environ.setdefault("CONTENTFUL__API_HOST", "cdn.example.com")
