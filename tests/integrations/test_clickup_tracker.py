import json
from unittest.mock import patch

import httpx
import pytest

import dispute_triage.integrations.clickup as clickup
from dispute_triage.core.errors import TrackerError
from dispute_triage.settings import settings


def _wire(handler):
    def make():
        return httpx.Client(base_url="https://clickup.test/api/v2", transport=httpx.MockTransport(handler))
    return make


@pytest.fixture(autouse=True)
def configured():
    with patch.object(settings, "CLICKUP_API_TOKEN", "pk_test"), patch.object(settings, "CLICKUP_LIST_ID", "L1"):
        yield


def test_find_by_control_number_pages_through_list():
    pages = {
        "0": {"tasks": [{"id": "t1", "name": "Doe, John - CTRL000"}], "last_page": False},
        "1": {"tasks": [{"id": "t2", "name": "Smith, Jane - CTRL123"}], "last_page": True},
    }

    def handler(request):
        assert request.url.path == "/api/v2/list/L1/task"
        return httpx.Response(200, json=pages[request.url.params["page"]])

    with patch.object(clickup, "_client", _wire(handler)):
        assert clickup.find_by_control_number("CTRL123") == "t2"


def test_find_by_control_number_none():
    handler = lambda request: httpx.Response(200, json={"tasks": [], "last_page": True})
    with patch.object(clickup, "_client", _wire(handler)):
        assert clickup.find_by_control_number("CTRL123") is None


def test_find_requires_list_id():
    with patch.object(settings, "CLICKUP_LIST_ID", ""):
        with pytest.raises(TrackerError):
            clickup.find_by_control_number("CTRL123")


def test_comment_and_status():
    seen = []

    def handler(request):
        seen.append((request.method, request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={})

    with patch.object(clickup, "_client", _wire(handler)):
        clickup.comment("t1", "This dispute has been categorized as FRIVOLOUS")
        clickup.set_status("t1", "CLOSED")

    assert seen == [
        ("POST", "/api/v2/task/t1/comment", {"comment_text": "This dispute has been categorized as FRIVOLOUS"}),
        ("PUT", "/api/v2/task/t1", {"status": "CLOSED"}),
    ]


def test_non_2xx_raises():
    handler = lambda request: httpx.Response(404, json={"err": "Task not found"})
    with patch.object(clickup, "_client", _wire(handler)):
        with pytest.raises(TrackerError) as exc:
            clickup.comment("missing", "x")
    assert "404" in str(exc.value)


def test_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with patch.object(clickup, "_client", _wire(handler)):
        with pytest.raises(TrackerError):
            clickup.set_status("t1", "CLOSED")


def test_unconfigured_token():
    with patch.object(settings, "CLICKUP_API_TOKEN", ""):
        with pytest.raises(TrackerError) as exc:
            clickup.comment("t1", "x")
    assert exc.value.reason == "not_configured"
