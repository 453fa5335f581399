"""
Typed failures for the triage pipeline.

Scope of each failure:
  AuthError        -> aborts one client's group (nothing in it is attempted)
  NotFoundError    -> terminal Error for one dispute
  ExtractionError  -> terminal Error for one dispute
  ActionError      -> terminal Error for one dispute (after the one-shot recovery)
  PortalTimeout    -> terminal Error for one dispute, or AuthError during login
  PropagationError -> logged; remaining propagation steps still run
"""
from typing import Optional


class TriageError(Exception):
    reason = "triage_error"

    def __init__(self, message: str = "", reason: Optional[str] = None):
        super().__init__(message or (reason or self.reason))
        if reason:
            self.reason = reason


class AuthError(TriageError):
    reason = "auth_failed"


class NotFoundError(TriageError):
    reason = "not_found"


class ExtractionError(TriageError):
    reason = "extraction_failed"


class ActionError(TriageError):
    reason = "action_rejected"


class PortalTimeout(TriageError):
    reason = "portal_timeout"


class PropagationError(TriageError):
    reason = "propagation_failed"


class TrackerError(TriageError):
    reason = "tracker_failed"


class ChannelError(TriageError):
    reason = "channel_failed"
