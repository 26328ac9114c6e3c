"""Package metadata helpers used by the handshake and version commands."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from importlib.metadata import PackageNotFoundError, metadata, version
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from importlib.metadata import PackageMetadata

DISTRIBUTION_NAME = "aspose-mcp-preview"
DISPLAY_TITLE = "Aspose MCP Preview"
_FALLBACK_DESCRIPTION = "Live document preview companion for aspose-mcp-server"


@dataclass(frozen=True, slots=True)
class ServerIdentity:
    """Identity reported to the producer in ``initialize_response``."""

    name: str
    version: str
    title: str = DISPLAY_TITLE
    description: str = ""
    author: str = ""
    website_url: str = ""


@lru_cache(maxsize=1)
def get_package_version() -> str:
    """Return installed package version, or 'dev' when package metadata is unavailable."""
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return "dev"


def _author_from(meta: PackageMetadata) -> str:
    author = meta.get("Author")
    if author:
        return author
    # "Jane Doe <jane@example.com>" -> "Jane Doe"
    author_email = meta.get("Author-email") or ""
    return author_email.split("<", 1)[0].strip().strip('"')


def _website_from(meta: PackageMetadata) -> str:
    for entry in meta.get_all("Project-URL") or []:
        _, _, url = entry.partition(",")
        url = url.strip()
        if url:
            return url.removesuffix(".git")
    return meta.get("Home-page") or ""


@lru_cache(maxsize=1)
def get_server_identity() -> ServerIdentity:
    """Build the handshake identity from installed distribution metadata."""
    try:
        meta = metadata(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return ServerIdentity(
            name=DISTRIBUTION_NAME,
            version=get_package_version(),
            description=_FALLBACK_DESCRIPTION,
        )
    return ServerIdentity(
        name=meta.get("Name") or DISTRIBUTION_NAME,
        version=meta.get("Version") or get_package_version(),
        description=meta.get("Summary") or _FALLBACK_DESCRIPTION,
        author=_author_from(meta),
        website_url=_website_from(meta),
    )


__all__ = [
    "DISPLAY_TITLE",
    "DISTRIBUTION_NAME",
    "ServerIdentity",
    "get_package_version",
    "get_server_identity",
]
