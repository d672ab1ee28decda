from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from reelcast.web.server import create_app


@pytest.fixture
def client(SessionTest, handler):
    """API client sharing the per-test database and poll handler."""
    app = create_app(poll_handler=handler)
    return TestClient(app)
