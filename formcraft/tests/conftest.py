"""
Shared test fixtures and helpers for the FormCraft test suite.

Provides a sectioned field list and an `api_client` fixture that wires
the routes to a fresh session store and registry.
"""

from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from formcraft.api.routes import configure_routes, router
from formcraft.core.schema import FormField
from formcraft.core.session import FormRegistry, SessionStore


def _field(field_id: str, field_type: str = "text", **attrs: Any) -> FormField:
    """Build a FormField with a fixed id; extra attributes may be camelCase."""
    return FormField.model_validate({"id": field_id, "type": field_type, **attrs})


@pytest.fixture
def sectioned_fields() -> list[FormField]:
    """[a, S1, b, c, S2, d]: one preamble field and two sections."""
    return [
        _field("a"),
        _field("S1", "section", label="First", colSpan=2),
        _field("b"),
        _field("c"),
        _field("S2", "section", label="Second", colSpan=2),
        _field("d"),
    ]


@pytest.fixture
def api_client():
    """A TestClient over a fresh store and registry.

    Yields (client, session_store, registry).
    """
    app = FastAPI()
    session_store = SessionStore(timeout_seconds=3600)
    registry = FormRegistry()
    configure_routes(session_store, registry)
    app.include_router(router, prefix="/api")
    yield TestClient(app), session_store, registry
