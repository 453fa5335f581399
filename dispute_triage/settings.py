import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    API_KEY: str = os.getenv("API_KEY", "")

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    RQ_QUEUE_NAME: str = os.getenv("RQ_QUEUE_NAME", "triage")

    # Portal (case-management site)
    PORTAL_URL: str = os.getenv("PORTAL_URL", "https://www.e-oscar-web.net/")
    PORTAL_CASE_SEARCH_PATH: str = os.getenv("PORTAL_CASE_SEARCH_PATH", "/oscar/case/search")
    PORTAL_CASE_TYPE: str = os.getenv("PORTAL_CASE_TYPE", "ACDV")
    PORTAL_HEADLESS: bool = os.getenv("PORTAL_HEADLESS", "true").lower() == "true"
    PORTAL_RESPONSE_CODE: str = os.getenv("PORTAL_RESPONSE_CODE", "01")

    # Timeouts (ms) for every portal suspension point
    NAVIGATION_TIMEOUT_MS: int = int(os.getenv("NAVIGATION_TIMEOUT_MS", "30000"))
    ELEMENT_TIMEOUT_MS: int = int(os.getenv("ELEMENT_TIMEOUT_MS", "10000"))

    # One-time-passcode challenge
    OTP_MAX_ATTEMPTS: int = int(os.getenv("OTP_MAX_ATTEMPTS", "3"))
    OTP_RETRY_DELAY_SEC: float = float(os.getenv("OTP_RETRY_DELAY_SEC", "30"))
    OTP_WINDOW_SEC: int = int(os.getenv("OTP_WINDOW_SEC", "300"))

    # Pause between disputes sharing one portal session
    DISPUTE_DELAY_MS: int = int(os.getenv("DISPUTE_DELAY_MS", "1000"))

    # Single live portal session per client (Redis lock TTL)
    CLIENT_LOCK_TTL_MS: int = int(os.getenv("CLIENT_LOCK_TTL_MS", "1800000"))

    # Message channel (OTP delivery + run notifications)
    SLACK_TOKEN: str = os.getenv("SLACK_TOKEN", "")
    SLACK_BASE_URL: str = os.getenv("SLACK_BASE_URL", "https://slack.com/api")
    SLACK_OTP_CHANNEL: str = os.getenv("SLACK_OTP_CHANNEL", "otp-test")
    SLACK_ALERT_CHANNEL: str = os.getenv("SLACK_ALERT_CHANNEL", "")

    # Ticket tracker
    CLICKUP_API_TOKEN: str = os.getenv("CLICKUP_API_TOKEN", "")
    CLICKUP_LIST_ID: str = os.getenv("CLICKUP_LIST_ID", "")
    CLICKUP_BASE_URL: str = os.getenv("CLICKUP_BASE_URL", "https://api.clickup.com/api/v2")
    CLICKUP_STATUS_CLOSED: str = os.getenv("CLICKUP_STATUS_CLOSED", "CLOSED")
    CLICKUP_STATUS_ESCALATE: str = os.getenv("CLICKUP_STATUS_ESCALATE", "NEED TO ESCALATE")

    REQUEST_TIMEOUT_SEC: float = float(os.getenv("REQUEST_TIMEOUT_SEC", "30"))

    # Post a run summary to the alert channel after queued runs
    NOTIFY_ON_RUN: bool = os.getenv("NOTIFY_ON_RUN", "true").lower() == "true"

    # Security & Privacy
    ENABLE_PII_REDACTION: bool = os.getenv("ENABLE_PII_REDACTION", "true").lower() == "true"
    ADMIN_RBAC_ENABLED: bool = os.getenv("ADMIN_RBAC_ENABLED", "true").lower() == "true"
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")

settings = Settings()
