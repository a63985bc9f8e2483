"""Repository identity: canonical URIs derived from clone URLs."""

import re
from urllib.parse import urlsplit

# user@host:path (scp-like git syntax), but not a Windows drive letter
_SCP_LIKE = re.compile(r"^(?:[^@/]+@)?(?P<host>[^:/]{2,}):(?P<path>(?!//).*)$")

_VCS_SUFFIXES = (".git", ".hg")


def make_uri(clone_url: str) -> str:
    """Return the canonical repository URI for a clone URL.

    The URI is host plus path with the scheme, credentials, port, query,
    fragment, VCS suffix and trailing slashes removed, so every spelling of
    the same remote maps to one identity:

        git://github.com/joyent/node.git   -> github.com/joyent/node
        https://GitHub.com/joyent/node/    -> github.com/joyent/node
        git@github.com:joyent/node.git     -> github.com/joyent/node
        git+ssh://git@github.com/joyent/node#v0.10 -> github.com/joyent/node
    """
    url = (clone_url or "").strip()
    if not url:
        raise ValueError("cannot make a repository URI from an empty clone URL")

    host = ""
    path = url
    if "://" in url:
        parts = urlsplit(url)
        host = (parts.hostname or "").lower()
        path = parts.path
    else:
        match = _SCP_LIKE.match(url)
        if match:
            host = match.group("host").lower()
            path = match.group("path")
        else:
            path = url.split("#", 1)[0].split("?", 1)[0]
            # host/path without a scheme: a dotted first segment is the host
            first, slash, rest = path.lstrip("/").partition("/")
            if slash and "." in first.strip("."):
                host = first.lower()
                path = rest

    path = path.strip("/")
    for suffix in _VCS_SUFFIXES:
        if path.endswith(suffix):
            path = path[: -len(suffix)]
            break
    path = path.rstrip("/")

    if host and path:
        return f"{host}/{path}"
    if host or path:
        return host or path
    raise ValueError(f"cannot make a repository URI from clone URL {clone_url!r}")
