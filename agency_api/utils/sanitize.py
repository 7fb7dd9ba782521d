"""Scrubbing of credentials and addresses before they reach a log sink.

Covers what this API actually handles: bearer JWTs, invite/reset tokens and
OAuth codes in query strings, passwords in request bodies, and user email
addresses in free text. Long values are cut to MAX_LOGGED_CHARS first so the
patterns never scan unbounded input.
"""

import re
import traceback
from typing import Any

MAX_LOGGED_CHARS: int = 2048
MAX_NESTING: int = 6

SECRET_FIELDS: frozenset[str] = frozenset({
    "authorization",
    "password",
    "new_password",
    "password_hash",
    "access_token",
    "token",
    "invite_token",
    "invite_token_hash",
    "reset_token",
    "reset_token_hash",
    "code",
    "client_secret",
    "email",
})

_JWT = re.compile(r"\beyJ[\w-]+\.[\w-]+\.[\w-]*")
_BEARER = re.compile(r"(Bearer\s+)\S+", re.IGNORECASE)
_SECRET_PARAM = re.compile(r"\b(token|code|client_secret|password)=[^&\s]+", re.IGNORECASE)
_EMAIL = re.compile(r"\b([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*@([A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)+)")


def is_secret_field(name: str) -> bool:
    return name.lower() in SECRET_FIELDS


def scrub_text(text: str) -> str:
    """Return text with tokens, secret parameters and addresses masked."""
    if len(text) > MAX_LOGGED_CHARS:
        text = f"{text[:MAX_LOGGED_CHARS]}...[truncated {len(text) - MAX_LOGGED_CHARS} chars]"
    text = _BEARER.sub(r"\1[REDACTED]", text)
    text = _JWT.sub("[JWT]", text)
    text = _SECRET_PARAM.sub(r"\1=[REDACTED]", text)
    return _EMAIL.sub(r"\1***@\2", text)


def scrub_value(value: Any, depth: int = 0) -> Any:
    """Scrub a value passed through logger extra={...}.

    Mappings lose the values of secret fields outright; strings anywhere in
    the structure go through scrub_text().
    """
    if depth >= MAX_NESTING:
        return "[NESTED]"
    if isinstance(value, str):
        return scrub_text(value)
    if isinstance(value, dict):
        return {
            key: "[REDACTED]" if isinstance(key, str) and is_secret_field(key) else scrub_value(item, depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [scrub_value(item, depth + 1) for item in value]
    return value


def format_exception(exc_info: tuple) -> str:
    """Traceback text without locals, scrubbed like any other message."""
    _type, exc, _tb = exc_info
    if exc is None:
        return ""
    return scrub_text("".join(traceback.format_exception(exc)))
