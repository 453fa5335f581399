import json
from unittest.mock import patch

from dispute_triage.observability.logging import log
from dispute_triage.settings import settings


def test_sensitive_fields_are_redacted(capsys):
    with patch.object(settings, "ENABLE_PII_REDACTION", True):
        log("login_start", clientId="ACME", secret="hunter2", details={"first_name": "John", "stage": "x"})
    line = json.loads(capsys.readouterr().out)
    assert line["event"] == "login_start"
    assert line["clientId"] == "ACME"
    assert line["secret"] == "[REDACTED:7chars]"
    assert line["details"] == {"first_name": "[REDACTED:4chars]", "stage": "x"}


def test_redaction_can_be_disabled(capsys):
    with patch.object(settings, "ENABLE_PII_REDACTION", False):
        log("otp_attempt", code="123456")
    assert json.loads(capsys.readouterr().out)["code"] == "123456"


def test_unserializable_values_do_not_raise(capsys):
    log("odd", value=object())
    assert "odd" in capsys.readouterr().out
