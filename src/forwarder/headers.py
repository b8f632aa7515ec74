"""Header translation between the caller and the upstream.

Everything here is pure: no I/O, no configuration lookups. Headers travel as
ordered lists of ``(name, value)`` pairs so repeated headers such as
``Set-Cookie`` survive the trip intact.
"""

import re
from typing import Iterable, Optional, Tuple
from urllib.parse import unquote

from .models import DomainRewritePair, HeaderList

# Request headers rewritten from the proxy domain to the upstream domain.
REWRITTEN_REQUEST_HEADERS = ("Referer", "Origin")

# Response headers the local server must recompute or that would leak the
# upstream's redirect target.
DROPPED_RESPONSE_HEADERS = {
    "content-encoding",
    "content-length",
    "transfer-encoding",
    "location",
}


def mount_suffix(path: str, mount: str) -> Optional[str]:
    """Return the raw part of ``path`` after the ``mount`` segment.

    ``path`` is the undecoded request target; the mount is compared against
    its percent-decoded segments so ``/%66orward/x`` still sits under
    ``/forward``. ``None`` means the path is not under the mount.
    """
    if mount in ("", "/"):
        return path

    raw_path, query_sep, query = path.partition("?")
    segments = raw_path.split("/")
    for end in range(2, len(segments) + 1):
        prefix = "/".join(segments[:end])
        decoded = unquote(prefix)
        if decoded == mount:
            return raw_path[len(prefix):] + query_sep + query
        if not mount.startswith(decoded + "/"):
            break
    return None


def strip_mount(path: str, mount: str) -> str:
    """Return the part of ``path`` after the ``mount`` segment.

    A path outside the mount, or the bare mount itself, yields an empty suffix.
    """
    return mount_suffix(path, mount) or ""


def build_target_url(base_url: str, suffix: str) -> str:
    """Append ``suffix`` to ``base_url`` without re-encoding it.

    When the suffix repeats, segment for segment, the path the base URL already
    ends in, the repeat is not added a second time. A slash on both sides of
    the join is kept once.
    """
    if not suffix:
        return base_url

    scheme_sep = base_url.find("://")
    path_start = base_url.find("/", scheme_sep + 3 if scheme_sep >= 0 else 0)
    base_path = base_url[path_start:].rstrip("/") if path_start >= 0 else ""

    suffix_path, query_sep, query = suffix.partition("?")
    if base_path and (
        suffix_path == base_path or suffix_path.startswith(base_path + "/")
    ):
        suffix_path = suffix_path[len(base_path):]
    suffix = suffix_path + query_sep + query

    if base_url.endswith("/") and suffix.startswith("/"):
        suffix = suffix[1:]
    return base_url + suffix


def rewrite_outbound_value(value: str, pair: DomainRewritePair) -> str:
    """Swap every occurrence of the proxy domain for the upstream domain."""
    return value.replace(pair.proxy_domain, pair.upstream_domain)


def _cookie_domain_pattern(domain: str) -> "re.Pattern[str]":
    return re.compile(
        r"(domain=\s*\.?)" + re.escape(domain) + r"(?=\s*(?:;|$))",
        re.IGNORECASE,
    )


def rewrite_set_cookie(value: str, pair: DomainRewritePair) -> str:
    """Point a cookie's ``domain`` attribute at the proxy domain.

    Only ``domain=<upstream>`` is touched; name, value and every other
    attribute are kept as sent.
    """
    pattern = _cookie_domain_pattern(pair.upstream_domain)
    return pattern.sub(lambda m: m.group(1) + pair.proxy_domain, value)


def _joined(headers: Iterable[Tuple[str, str]], name: str) -> Optional[str]:
    values = [value for key, value in headers if key.lower() == name.lower()]
    if not values:
        return None
    return ", ".join(values)


def translate_request_headers(
    headers: Iterable[Tuple[str, str]], pair: DomainRewritePair
) -> HeaderList:
    """Build the outbound header set from an allow-list.

    Referer and Origin are domain-rewritten, Cookie is forwarded unchanged and
    nothing else ever leaves the proxy.
    """
    headers = list(headers)
    result: HeaderList = []

    for name in REWRITTEN_REQUEST_HEADERS:
        value = _joined(headers, name)
        if value is not None:
            result.append((name, rewrite_outbound_value(value, pair)))

    cookies = [value for key, value in headers if key.lower() == "cookie"]
    if cookies:
        result.append(("Cookie", "; ".join(cookies)))

    return result


def translate_response_headers(
    headers: Iterable[Tuple[str, str]], pair: DomainRewritePair
) -> HeaderList:
    """Filter and rewrite upstream response headers, keeping their order."""
    result: HeaderList = []
    for name, value in headers:
        lowered = name.strip().lower()
        if lowered in DROPPED_RESPONSE_HEADERS:
            continue
        if lowered == "set-cookie":
            value = rewrite_set_cookie(value, pair)
        result.append((name, value))
    return result
