"""Request context management for observability.

Context variables carry per-request identifiers across the middleware stack
so every log record emitted while handling a request can be correlated.
"""

from contextvars import ContextVar

# Request ID - unique per HTTP request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Acting principal, set once the bearer credential is verified
user_id_var: ContextVar[str] = ContextVar("user_id", default="")
user_role_var: ContextVar[str] = ContextVar("user_role", default="")
