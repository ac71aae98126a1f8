"""
Tests for the health endpoint.
"""

import sqlite3
from unittest.mock import patch

from wakenet import __version__


def test_health_ok(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["db"] == "ok"
    assert body["version"] == __version__
    assert body["scheduler"] is False
    assert body["timestamp"].endswith("+00:00")


def test_health_db_error(client, test_db):
    with patch.object(test_db, "ping", side_effect=sqlite3.OperationalError("disk I/O error")):
        response = client.get("/health")
    assert response.status_code == 503
    assert response.json()["db"] == "error"
