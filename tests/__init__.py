"""
sudolog test suite.

Tests are organized by layer:
    tests/unit/         Unit tests (no network; git replaced by fakes)
    tests/integration/  Integration tests (real git against a local bare repo, CLI)

Run all tests:
    pytest

Run unit tests only:
    pytest tests/unit/
"""
