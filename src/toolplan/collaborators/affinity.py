"""Reference API-affinity service and endpoint normalization."""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from toolplan.collaborators.interfaces import ToolStore
from toolplan.enums import ToolType

DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_base_url(base_url: str) -> str:
    """Canonical identity of an endpoint root.

    Scheme and host are lower-cased, default ports dropped, and trailing
    slashes, query strings and fragments removed, so that
    ``HTTPS://Api.Example.com:443/v1/`` and ``https://api.example.com/v1``
    share one key.
    """
    parts = urlsplit(base_url.strip())
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    port = parts.port
    netloc = host
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{host}:{port}"
    path = parts.path.rstrip("/")
    return urlunsplit((scheme, netloc, path, "", ""))


class StoreAffinityService:
    """Derives affinity keys from tool records.

    An explicit ``affinity_key`` always wins. Otherwise API tools are keyed
    by their normalized base URL; every other tool type has no affinity.
    """

    def __init__(self, store: ToolStore) -> None:
        self._store = store

    def get_affinity_key(self, tool_id: str) -> str | None:
        tool = self._store.get_tool(tool_id)
        if tool is None:
            return None
        if tool.affinity_key:
            return tool.affinity_key
        if tool.tool_type is ToolType.API_TOOL and tool.base_url:
            return normalize_base_url(tool.base_url)
        return None


__all__ = ["StoreAffinityService", "normalize_base_url"]
