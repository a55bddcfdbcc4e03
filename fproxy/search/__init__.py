"""Search package — asset-search backends that produce scan targets."""

from fproxy.search.fofa import (
    BODY_QUERY,
    HEADER_QUERY,
    FofaBackend,
    SearchBackend,
    SearchError,
)

__all__ = ["SearchBackend", "FofaBackend", "SearchError", "BODY_QUERY", "HEADER_QUERY"]
