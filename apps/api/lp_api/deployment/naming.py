"""Naming rules for hosting projects and source repositories.

Cloudflare Pages project names must:
- be lowercase
- contain only letters, numbers and hyphens
- start with a letter
- be at most 63 characters long

Names that break these rules are accepted by some API calls and rejected by
others, which shows up much later as a "Project not found" error during
upload. Everything produced here is therefore checked against
``is_valid_slug``.
"""

import re
import secrets
import string

DEFAULT_PREFIX = "manit"
MAX_SLUG_LENGTH = 63
MAX_REPO_NAME_LENGTH = 100
SUFFIX_LENGTH = 6
REPO_PREFIX = "linktree"

# Suffix alphabet deliberately excludes "_" and "-".
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_INVALID_CHARS = re.compile(r"[^a-z0-9-]")
_DASH_RUNS = re.compile(r"-+")
_SLUG_PATTERN = re.compile(r"^[a-z][a-z0-9-]{0,62}$")
_STARTS_WITH_LETTER = re.compile(r"^[a-z]")


def sanitize_name(value: str) -> str:
    """Lowercase ``value`` and reduce it to ``[a-z0-9-]`` without edge dashes."""
    sanitized = _INVALID_CHARS.sub("-", value.lower())
    sanitized = _DASH_RUNS.sub("-", sanitized)
    return sanitized.strip("-")


def random_suffix(length: int = SUFFIX_LENGTH) -> str:
    """Random lowercase alphanumeric suffix."""
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def _join(*parts: str) -> str:
    return "-".join(part for part in parts if part)


def _ensure_letter_start(name: str) -> str:
    if not _STARTS_WITH_LETTER.match(name):
        return f"a{name}"
    return name


def generate_project_slug(title: str, prefix: str = DEFAULT_PREFIX) -> str:
    """Generate a unique Cloudflare Pages project name for ``title``.

    Args:
        title: Human readable project title
        prefix: Prefix shared by all projects of this deployment

    Returns:
        Name in the form ``<prefix>-<title>-<suffix>`` that satisfies
        ``is_valid_slug``
    """
    prefix = sanitize_name(prefix) or DEFAULT_PREFIX
    sanitized = sanitize_name(title)
    suffix = random_suffix()

    slug = _ensure_letter_start(_join(prefix, sanitized, suffix))

    if len(slug) > MAX_SLUG_LENGTH:
        # Keep prefix and suffix intact, shorten the title segment only
        filler = 0 if _STARTS_WITH_LETTER.match(prefix) else 1
        budget = MAX_SLUG_LENGTH - len(prefix) - len(suffix) - 2 - filler
        truncated = sanitized[: max(0, budget)].rstrip("-")
        slug = _ensure_letter_start(_join(prefix, truncated, suffix))

        if len(slug) > MAX_SLUG_LENGTH:
            # Prefix alone is too long
            prefix = prefix[: MAX_SLUG_LENGTH - len(suffix) - 2].rstrip("-")
            slug = _ensure_letter_start(_join(prefix, suffix))

    return slug


def is_valid_slug(name: str) -> bool:
    """Check a name against Cloudflare Pages project naming rules."""
    return (
        bool(_SLUG_PATTERN.match(name))
        and not name.endswith("-")
        and "_" not in name
    )


def generate_repo_name(project_title: str, project_id: str) -> str:
    """Generate a GitHub repository name: ``linktree-<title>-<short id>``."""
    short_id = sanitize_name(project_id[:8])
    repo_name = _join(REPO_PREFIX, sanitize_name(project_title), short_id)
    return repo_name[:MAX_REPO_NAME_LENGTH].rstrip("-")


def to_kebab_case(value: str) -> str:
    """Normalize free text (typically LLM output) into a kebab-case name."""
    cleaned = value.strip().strip("\"'`").lower()
    cleaned = re.sub(r"[\s_]+", "-", cleaned)
    cleaned = re.sub(r"[^a-z-]", "", cleaned)
    return _DASH_RUNS.sub("-", cleaned).strip("-")


_SLUG_ADJECTIVES = (
    "amber", "bold", "breezy", "bright", "calm", "cosmic", "crisp", "dreamy",
    "electric", "fuzzy", "gentle", "golden", "hidden", "lively", "lucky", "mellow",
    "misty", "neon", "quiet", "rapid", "rustic", "silver", "sunny", "velvet",
)
_SLUG_NOUNS = (
    "atlas", "beacon", "bloom", "canvas", "comet", "garden", "harbor", "horizon",
    "lantern", "links", "meadow", "orbit", "palette", "pixel", "prism", "ripple",
    "signal", "spark", "studio", "summit", "tide", "trail", "wave", "willow",
)


def random_word_slug() -> str:
    """Random human readable two word slug, e.g. ``misty-harbor``."""
    return f"{secrets.choice(_SLUG_ADJECTIVES)}-{secrets.choice(_SLUG_NOUNS)}"
