"""Tests for the container healthcheck probe."""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import requests

from node_annotator.utils import healthcheck


def test_healthy_when_endpoint_answers_ok():
    with patch("node_annotator.utils.healthcheck.requests.get", return_value=MagicMock(status_code=200)) as get:
        assert healthcheck.check("http://localhost:6060/healthz")
    get.assert_called_once_with("http://localhost:6060/healthz", timeout=2)


def test_unhealthy_on_error_status():
    with patch("node_annotator.utils.healthcheck.requests.get", return_value=MagicMock(status_code=500)):
        assert not healthcheck.check()


def test_unhealthy_when_unreachable():
    with patch("node_annotator.utils.healthcheck.requests.get",
               side_effect=requests.ConnectionError("refused")):
        assert not healthcheck.check()
