"""Shared fixtures for the live smoke test."""
import os
import pytest


@pytest.fixture(scope="session")
def base_url():
    url = os.environ.get("TAIHUA_URL")
    if not url:
        pytest.skip("TAIHUA_URL not set; live smoke test needs a running server")
    return url.rstrip("/")


@pytest.fixture(scope="session")
def headers():
    return {"Content-Type": "application/json"}
