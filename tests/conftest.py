"""Pytest configuration and fixtures."""

import os

import pytest

from tests.fakes import DEST_URL, SOURCE_URL, InMemoryEndpoint


@pytest.fixture
def source_endpoint() -> InMemoryEndpoint:
    """Provide an empty in-memory source endpoint."""
    return InMemoryEndpoint(SOURCE_URL)


@pytest.fixture
def dest_endpoint() -> InMemoryEndpoint:
    """Provide an empty in-memory destination endpoint."""
    return InMemoryEndpoint(DEST_URL)


@pytest.fixture
def endpoint_factory(source_endpoint: InMemoryEndpoint, dest_endpoint: InMemoryEndpoint):
    """Map the two test URLs onto the in-memory endpoints."""
    endpoints = {SOURCE_URL: source_endpoint, DEST_URL: dest_endpoint}

    def factory(url: str) -> InMemoryEndpoint:
        return endpoints[url]

    return factory


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep VANDELAY_* variables from the host out of tests."""
    for key in list(os.environ):
        if key.startswith("VANDELAY_"):
            monkeypatch.delenv(key, raising=False)
