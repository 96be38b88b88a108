"""
Color Palette API Request IDs
Request ids tie together the log lines and the response of one request.
"""
import re
import uuid
from datetime import datetime, timezone
from typing import Optional

REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied ids are echoed back, so keep them short and printable
_CLIENT_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def generate_request_id(prefix: str = "pal") -> str:
    """Build an id like ``pal-20240101120000-1a2b3c4d``."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"{prefix}-{stamp}-{uuid.uuid4().hex[:8]}"


def resolve_request_id(header_value: Optional[str], prefix: str = "pal") -> str:
    """Reuse a well-formed incoming request id, otherwise mint a new one."""
    if header_value and _CLIENT_ID_RE.match(header_value):
        return header_value
    return generate_request_id(prefix)
