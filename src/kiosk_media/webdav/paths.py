from __future__ import annotations

from urllib.parse import quote, unquote, urlsplit


def clean_host(host: str) -> str:
    return host.strip().rstrip("/")


def host_prefix(host: str) -> str:
    """Path part of the configured host (`/dav` for `https://nas/dav/`), without trailing slash."""
    return urlsplit(clean_host(host)).path.rstrip("/")


def normalize_request_path(path: str) -> str:
    """Return `path` with a leading slash; an empty path is the root."""
    raw = path.strip()
    if not raw:
        return "/"
    return raw if raw.startswith("/") else "/" + raw


def normalize_folder_path(path: str) -> str:
    """Leading slash, no trailing slash except for the root itself."""
    normalized = normalize_request_path(path)
    if len(normalized) > 1 and normalized.endswith("/"):
        normalized = normalized.rstrip("/") or "/"
    return normalized


def is_absolute_url(href: str) -> bool:
    return href.startswith(("http://", "https://"))


def href_to_path(href: str, base_path: str) -> str:
    """
    Resolve a PROPFIND href to an absolute path.

    Full URLs contribute only their path component; relative hrefs are joined to
    `base_path` (the folder that was listed).
    """
    if is_absolute_url(href):
        return urlsplit(href).path or "/"
    if href.startswith("/"):
        return href
    base = normalize_request_path(base_path).rstrip("/")
    return f"{base}/{href}"


def strip_host_prefix(path: str, prefix: str) -> str:
    """Turn a server path into a path relative to the configured host."""
    if not prefix or prefix == "/":
        return path
    for candidate in (prefix, quote(unquote(prefix))):
        if path == candidate or path.startswith(candidate + "/"):
            return path[len(candidate) :] or "/"
    return path


def same_path(a: str, b: str) -> bool:
    """Compare two paths ignoring percent-encoding and a trailing slash."""
    return unquote(a).rstrip("/") == unquote(b).rstrip("/")


def is_same_or_child(candidate: str, parent: str) -> bool:
    if parent == "/":
        return True
    return candidate == parent or candidate.startswith(parent + "/")
