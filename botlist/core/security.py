import base64
import hashlib
import hmac
from dataclasses import dataclass

from botlist.core.config import settings


@dataclass(frozen=True)
class Principal:
    """Authenticated Discord user acting on the listing workflow."""
    id: str


def _signature(user_id: str) -> str:
    key = settings.session_secret.get_secret_value().encode("utf-8")
    digest = hmac.new(key, user_id.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).decode("utf-8").rstrip("=")


def sign_session(user_id: str) -> str:
    # Example: 123456789012345678.<sig>
    return f"{user_id}.{_signature(user_id)}"


def verify_session(token: str) -> str | None:
    user_id, sep, sig = token.partition(".")
    if not sep or not user_id or not sig:
        return None
    if not hmac.compare_digest(sig, _signature(user_id)):
        return None
    return user_id
