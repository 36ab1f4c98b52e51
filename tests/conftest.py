"""Fixtures for chebi2gene tests."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from chebi2gene.config import Config, TestConfig


@pytest.fixture()
def test_config(monkeypatch):
    """Point the library configuration at the test settings."""
    for name in ("SPARQL_ENDPOINT", "SPARQL_TIMEOUT", "SPARQL_USE_POST", "DEBUG"):
        monkeypatch.setattr(Config, name, getattr(TestConfig, name))
    return TestConfig


@pytest.fixture()
def mock_session(test_config):
    """The requests session created by every SparqlHelper."""
    with patch("chebi2gene.sparql_helper.requests.Session") as mock_session_cls:
        session = MagicMock()
        mock_session_cls.return_value = session
        yield session
