"""Web test fixtures: TestClient against the app, backed by tmp_path storage."""

from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def web_upload_service(upload_service):
    """Point the app at the tmp_path-backed upload service."""
    from web.app import app

    app.state.upload_service = upload_service
    yield upload_service
    app.state.upload_service = None


@pytest.fixture()
def client():
    from starlette.testclient import TestClient

    from web.app import app

    return TestClient(app)


def png(name="cat.png", data=b"\x89PNG-fake", content_type="image/png"):
    return (name, data, content_type)
