import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


DEFAULT_SIGNATURE_FONT = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "assets", "fonts", "Signature.ttf")
)


class Config:
    # Uploads
    MAX_UPLOAD_MB = _env_int("KOOVLO_MAX_UPLOAD_MB", 50)
    MAX_CONTENT_LENGTH = MAX_UPLOAD_MB * 1024 * 1024

    # Contact form / Resend
    RESEND_API_KEY = os.environ.get("RESEND_API_KEY", "")
    RESEND_API_URL = os.environ.get("RESEND_API_URL", "https://api.resend.com/emails")
    CONTACT_EMAIL = os.environ.get("CONTACT_EMAIL", "support@koovlo.com")
    CONTACT_FROM = os.environ.get("CONTACT_FROM", "Koovlo Contact Form <onboarding@resend.dev>")
    MAIL_TIMEOUT = _env_int("KOOVLO_MAIL_TIMEOUT", 10)

    # Signing
    SIGNATURE_FONT_PATH = os.environ.get("SIGNATURE_FONT_PATH", DEFAULT_SIGNATURE_FONT)

    # Logging
    LOG_LEVEL = os.environ.get("KOOVLO_LOG_LEVEL", "INFO")
    LOG_FILE = os.environ.get("KOOVLO_LOG_FILE") or None

    # Public site, used for robots.txt and sitemap.xml
    SITE_URL = os.environ.get("KOOVLO_SITE_URL", "https://www.koovlo.com").rstrip("/")


class TestingConfig(Config):
    TESTING = True
    RESEND_API_KEY = "test-key"
    LOG_LEVEL = "WARNING"
