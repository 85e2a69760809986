"""Campaign attribution parameters.

Landing-page links carry campaign-tracking parameters (utm_* plus the ad
platform identifiers). They are captured when the form loads, carried on every
tracking event, and stored on the project and the submission.

Usage:
    >>> parse_attribution("https://exemple.fr/devis?utm_source=facebook&utm_medium=cpc&page=2")
    {'utm_source': 'facebook', 'utm_medium': 'cpc'}
    >>> build_tracked_url("https://exemple.fr/devis", {"utm_source": " email ", "utm_medium": ""})
    'https://exemple.fr/devis?utm_source=email'
"""

from typing import Dict, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

ATTRIBUTION_KEYS = (
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
    "ad_id",
    "adset_id",
    "campaign_id",
)


def _query_part(url_or_query: str) -> str:
    # A URL has its scheme or "?" before the first "=" or "&"
    head = url_or_query.split("&", 1)[0].split("=", 1)[0]
    if "://" in head or "?" in head:
        return urlsplit(url_or_query).query
    return url_or_query


def parse_attribution(url_or_query: str) -> Dict[str, str]:
    """Extract known attribution parameters from a URL or a bare query string.

    Unknown keys and blank values are dropped; the first occurrence of a
    repeated key wins.
    """
    params: Dict[str, str] = {}
    for key, value in parse_qsl(_query_part(url_or_query), keep_blank_values=False):
        value = value.strip()
        if key in ATTRIBUTION_KEYS and value and key not in params:
            params[key] = value
    return params


def build_tracked_url(base_url: str, params: Mapping[str, Optional[str]]) -> str:
    """Append attribution parameters to a landing-page URL.

    Values are stripped and blank ones skipped. Existing query parameters
    are kept and a ``#fragment`` stays at the end of the URL.
    """
    kept = [(key, value.strip()) for key, value in params.items() if value and value.strip()]
    if not kept:
        return base_url
    parts = urlsplit(base_url)
    query = f"{parts.query}&{urlencode(kept)}" if parts.query else urlencode(kept)
    return urlunsplit(parts._replace(query=query))


__all__ = [
    "ATTRIBUTION_KEYS",
    "parse_attribution",
    "build_tracked_url",
]
