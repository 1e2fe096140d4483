"""
Request classification: host + path -> lookup key.

Pure functions only. No database, no settings import, no I/O, so every
routing rule can be unit tested with plain strings.

Examples (root_domain = "qrurl.dev"):
    GET qrurl.dev/abc123        -> LookupKey("abc123", None)
    GET step.qrurl.dev/mysite   -> LookupKey("mysite", "step")
    GET qrurl.dev/dashboard     -> None (reserved path)
    GET app.qrurl.dev/anything  -> None (reserved partition)
    GET qrurl.dev/              -> None (landing page)
    GET otherdomain.com/abc     -> None (not our domain)
"""

from dataclasses import dataclass
from typing import AbstractSet, Optional

from shortlink_app.services.reserved import LOCAL_HOSTS, RESERVED_PARTITIONS, RESERVED_PATHS


@dataclass(frozen=True)
class LookupKey:
    """What the resolver needs. partition=None means the global namespace."""
    identifier: str
    partition: Optional[str] = None


def normalize_host(host: str) -> str:
    """Lowercase and drop a ":port" suffix ("Step.Example.com:8000" -> "step.example.com")."""
    host = (host or "").strip().lower()
    if host.startswith("["):
        # IPv6 literal, e.g. "[::1]:8000"
        return host.split("]", 1)[0] + "]"
    return host.split(":", 1)[0]


def first_path_segment(path: str) -> Optional[str]:
    """'/abc123/anything' -> 'abc123'; '/' or '' -> None"""
    path = (path or "").split("?", 1)[0]
    for segment in path.split("/"):
        if segment:
            return segment
    return None


def extract_partition(host: str, root_domain: str, local_hosts: AbstractSet[str] = LOCAL_HOSTS):
    """
    Work out which namespace a host addresses.

    Returns:
        (True, None)   host is the root domain or a local alias (global partition)
        (True, label)  host is <label>.<root_domain>
        (False, None)  host does not belong to us
    """
    if host == root_domain or host in local_hosts:
        return True, None

    suffix = f".{root_domain}"
    if root_domain and host.endswith(suffix):
        label = host[: -len(suffix)]
        # A partition is exactly one DNS label
        if label and "." not in label:
            return True, label

    return False, None


def classify_request(
    method: str,
    host: str,
    path: str,
    root_domain: str,
    local_hosts: AbstractSet[str] = LOCAL_HOSTS,
) -> Optional[LookupKey]:
    """
    Classify an inbound request as a shortcode lookup or "not a lookup" (None).

    Args:
        method: HTTP method; only GET is eligible
        host: Host header value (port is ignored)
        path: Request path
        root_domain: Configured root domain, e.g. "qrurl.dev"
        local_hosts: Hosts treated as the root domain in development

    Returns:
        LookupKey, or None when the request belongs to someone else
        (the application router, a landing page, a foreign domain)
    """
    if (method or "").upper() != "GET":
        return None

    identifier = first_path_segment(path)
    if identifier is None:
        return None

    # Checked before the host so internal navigation never costs a query
    if identifier.lower() in RESERVED_PATHS:
        return None

    ours, partition = extract_partition(
        normalize_host(host), (root_domain or "").lower(), local_hosts
    )
    if not ours:
        return None

    if partition is not None and partition in RESERVED_PARTITIONS:
        return None

    return LookupKey(identifier=identifier, partition=partition)
