"""Input rules for new bookmarks.

The same checks run in the browser-side client before anything is sent and
again in the API before a row is written, so a client that skips them gains
nothing.
"""
from __future__ import annotations

import re
from urllib.parse import urlsplit

TITLE_MAX_LENGTH = 200
URL_MAX_LENGTH = 2000

ALLOWED_SCHEMES = {"http", "https"}

TITLE_REQUIRED = "Title is required."
URL_REQUIRED = "URL is required."
SCHEME_NOT_ALLOWED = "URL must use http:// or https://."
DOMAIN_REQUIRED = "Please enter a real URL with a domain (e.g. https://example.com)."
INVALID_URL = "Please enter a valid URL (e.g. https://example.com)."
INVALID_CHARACTERS = "URL contains invalid characters."
TITLE_TOO_LONG = f"Title must be at most {TITLE_MAX_LENGTH} characters."
URL_TOO_LONG = f"URL must be at most {URL_MAX_LENGTH} characters."

_SCHEME_PREFIX = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_TOP_LEVEL_LABEL = re.compile(r"^[a-zA-Z]{2,6}$")
_HOSTNAME_CHARS = re.compile(r"^[a-zA-Z0-9.-]+$")


def normalize_address(raw: str | None) -> str:
    text = (raw or "").strip()
    if _SCHEME_PREFIX.match(text):
        return text
    return f"https://{text}"


def validate_address(address: str) -> str | None:
    try:
        parsed = urlsplit(address)
        hostname = parsed.hostname
        # Accessing the port raises ValueError for a non-numeric port.
        parsed.port
    except ValueError:
        return INVALID_URL
    if not hostname:
        return INVALID_URL

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return SCHEME_NOT_ALLOWED
    if "." not in hostname:
        return DOMAIN_REQUIRED

    labels = hostname.split(".")
    if any(not label for label in labels):
        return INVALID_URL
    if not _TOP_LEVEL_LABEL.match(labels[-1]):
        return INVALID_URL
    if not labels[-2]:
        return INVALID_URL
    if not _HOSTNAME_CHARS.match(hostname):
        return INVALID_CHARACTERS
    return None


def validate_bookmark_input(title: str | None, address: str | None) -> str | None:
    if not (title or "").strip():
        return TITLE_REQUIRED
    if not (address or "").strip():
        return URL_REQUIRED
    return validate_address(normalize_address(address))


def validate_bookmark_lengths(title: str, url: str) -> str | None:
    if len(title) > TITLE_MAX_LENGTH:
        return TITLE_TOO_LONG
    if len(url) > URL_MAX_LENGTH:
        return URL_TOO_LONG
    return None
