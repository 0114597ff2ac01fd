"""Request layers that set the user-agent header and the origin of the URI."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import urlsplit, urlunsplit

VOLO_USER_AGENT = "volo-user-agent"
USER_AGENT_HEADER = "user-agent"


@dataclass
class HttpRequest:
    """An HTTP request as seen by the layers: a URI, headers and a body."""

    uri: str
    headers: dict[str, str] = field(default_factory=dict)
    method: str = "POST"
    body: Any = None


def _with_header(headers: Mapping[str, str], name: str, value: str) -> dict[str, str]:
    updated = {k: v for k, v in headers.items() if k.lower() != name}
    updated[name] = value
    return updated


def _is_valid_header_value(value: str) -> bool:
    return all(ch == "\t" or (ord(ch) >= 32 and ord(ch) != 127) for ch in value)


class UserAgent:
    """Sets the user-agent header of every request.

    A custom user agent is placed in front of the default one.
    """

    def __init__(self, inner: Any, user_agent: str | None = None) -> None:
        if user_agent is None:
            value = VOLO_USER_AGENT
        else:
            value = f"{user_agent} {VOLO_USER_AGENT}"
            if not _is_valid_header_value(value):
                raise ValueError("user-agent should be valid")
        self.inner = inner
        self.user_agent = value

    def __repr__(self) -> str:
        return f"UserAgent(inner={self.inner!r}, user_agent={self.user_agent!r})"

    async def call(self, cx: Any, request: HttpRequest) -> Any:
        headers = _with_header(request.headers, USER_AGENT_HEADER, self.user_agent)
        return await self.inner.call(cx, replace(request, headers=headers))


class AddOrigin:
    """Replaces the scheme and authority of every request URI with the origin's."""

    def __init__(self, inner: Any, origin: str) -> None:
        parts = urlsplit(origin)
        if not parts.scheme:
            raise ValueError("expected scheme")
        if not parts.netloc:
            raise ValueError("expected authority")
        self.inner = inner
        self.origin = origin
        self._scheme = parts.scheme
        self._netloc = parts.netloc

    def __repr__(self) -> str:
        return f"AddOrigin(inner={self.inner!r}, origin={self.origin!r})"

    async def call(self, cx: Any, request: HttpRequest) -> Any:
        parts = urlsplit(request.uri)
        uri = urlunsplit((self._scheme, self._netloc, parts.path, parts.query, parts.fragment))
        return await self.inner.call(cx, replace(request, uri=uri))