from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from dispute_triage.core.errors import AuthError
from dispute_triage.store import credentials
from dispute_triage.store.models import Credential


def _in_days(n):
    return (datetime.now(timezone.utc) + timedelta(days=n)).isoformat()


@pytest.fixture
def r():
    mock = MagicMock()
    with patch("dispute_triage.store.credentials.get_redis", return_value=mock):
        yield mock


def test_get_credential(r):
    r.hgetall.return_value = {"username": "u", "secret": "s", "expires_at": _in_days(30), "active": "true"}
    cred = credentials.get_credential("ACME")
    r.hgetall.assert_called_once_with("credentials:ACME")
    assert cred.username == "u"
    assert cred.secret == "s"


@pytest.mark.parametrize("data", [
    {},
    {"username": "u", "secret": "s", "active": "false"},
    {"username": "u", "secret": "s", "expires_at": "2001-01-01"},
    {"username": "u", "secret": ""},
])
def test_no_active_credential(r, data):
    r.hgetall.return_value = data
    with pytest.raises(AuthError) as exc:
        credentials.get_credential("ACME")
    assert exc.value.reason == "no_credentials"


def test_secret_not_in_repr():
    assert "hunter2" not in repr(Credential(client_id="A", username="u", secret="hunter2"))


def test_put_credential_indexes_client(r):
    credentials.put_credential(Credential(client_id="ACME", username="u", secret="s"))
    r.hset.assert_called_once()
    assert r.hset.call_args.kwargs["mapping"]["active"] == "true"
    r.sadd.assert_called_once_with("credentials:clients", "ACME")


def test_list_expiring(r):
    r.smembers.return_value = {"A", "B", "C"}
    docs = {
        "credentials:A": {"username": "a", "secret": "s", "expires_at": _in_days(3)},
        "credentials:B": {"username": "b", "secret": "s", "expires_at": _in_days(30)},
        "credentials:C": {"username": "c", "secret": "s"},
    }
    r.hgetall.side_effect = docs.get

    out = credentials.list_expiring(days_threshold=7)

    assert [c["clientId"] for c in out] == ["A"]
    assert out[0]["daysLeft"] == 3
