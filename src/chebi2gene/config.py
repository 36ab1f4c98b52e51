"""Library configuration loaded from environment variables."""

from __future__ import annotations

import os

DEFAULT_ENDPOINT = "http://sparql.plantbreeding.nl:8080/sparql/"


class Config:
    """Default configuration for SPARQL access."""

    # SPARQL endpoint queried when no URL is given to a helper
    SPARQL_ENDPOINT = os.getenv("CHEBI2GENE_ENDPOINT", DEFAULT_ENDPOINT)

    # Request timeout in seconds, handed to requests
    SPARQL_TIMEOUT = float(os.getenv("CHEBI2GENE_TIMEOUT", "60"))

    # Send queries as form-encoded POST instead of GET
    SPARQL_USE_POST = os.getenv("CHEBI2GENE_USE_POST", "0") == "1"

    # Log service URL, query text and solution counts at INFO
    DEBUG = os.getenv("CHEBI2GENE_DEBUG", "0") == "1"

    # Mirrors tried by the live test-suite when SPARQL_ENDPOINT is down
    FALLBACK_ENDPOINTS = [
        url for url in os.getenv(
            "CHEBI2GENE_FALLBACK_ENDPOINTS", "http://sparql-r:8890/sparql/",
        ).split(",") if url
    ]


class TestConfig(Config):
    """Configuration overrides for testing."""

    SPARQL_ENDPOINT = "http://example.org/sparql/"
    SPARQL_TIMEOUT = 5.0
    SPARQL_USE_POST = False
    DEBUG = True
