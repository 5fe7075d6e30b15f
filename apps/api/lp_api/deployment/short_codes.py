"""Short, shareable URLs for deployed projects."""

import hashlib
import re
import time
from urllib.parse import quote

BASE62_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
MIN_CODE_LENGTH = 6
HASH_HEX_CHARS = 10  # 40 bits

_SHORT_URL_PATTERN = re.compile(r"/s/([A-Za-z0-9]+)$")


def to_base62(number: int) -> str:
    """Convert a non-negative integer to base62 (0-9, A-Z, a-z)."""
    if number < 0:
        raise ValueError(f"Cannot encode negative number: {number}")

    digits = []
    while number > 0:
        number, remainder = divmod(number, 62)
        digits.append(BASE62_ALPHABET[remainder])

    return "".join(reversed(digits)) or "0"


def generate_short_code(project_id: str, timestamp_ns: int | None = None) -> str:
    """Generate a short code for a project deployment.

    The issue timestamp is mixed into the hash so a redeployed project gets a
    fresh code.

    Args:
        project_id: Project identifier
        timestamp_ns: Issue time in nanoseconds (defaults to now)

    Returns:
        Base62 code of at least 6 characters
    """
    if timestamp_ns is None:
        timestamp_ns = time.time_ns()

    digest = hashlib.sha256(f"{project_id}-{timestamp_ns}".encode()).hexdigest()
    number = int(digest[:HASH_HEX_CHARS], 16)
    return to_base62(number).rjust(MIN_CODE_LENGTH, "0")


def build_short_url(short_code: str, base_url: str) -> str:
    """Build the full short URL for a code."""
    return f"{base_url.rstrip('/')}/s/{short_code}"


def extract_short_code(url: str) -> str | None:
    """Extract the short code from a short URL, or None if it is not one."""
    match = _SHORT_URL_PATTERN.search(url)
    return match.group(1) if match else None


def generate_qr_code_url(url: str) -> str:
    """QR code image URL for sharing (qrserver.com, no auth required)."""
    return f"https://api.qrserver.com/v1/create-qr-code/?size=256x256&data={quote(url, safe='')}"


def build_share_links(deployment_url: str, short_url: str) -> dict[str, str]:
    """Format URLs for display and social sharing."""
    share_text = f"Check out my linktree: {short_url}"
    return {
        "full": deployment_url,
        "short": short_url,
        "qr": generate_qr_code_url(short_url),
        "share_text": share_text,
        "twitter_share": f"https://twitter.com/intent/tweet?text={quote(share_text, safe='')}",
        "linkedin_share": (
            "https://www.linkedin.com/sharing/share-offsite/"
            f"?url={quote(short_url, safe='')}"
        ),
    }
