"""Secret redaction for command output before it is logged or persisted."""

import re
from dataclasses import dataclass

import structlog

logger = structlog.get_logger()


@dataclass
class SecretPattern:
    """Pattern for detecting and redacting secrets."""

    name: str
    pattern: re.Pattern


class Redactor:
    """Redacts credentials from wrangler, git and sandbox output."""

    DEFAULT_PATTERNS = [
        SecretPattern(
            name="GITHUB_TOKEN",
            pattern=re.compile(r"(?:gh[pousr]_[A-Za-z0-9]{36,}|github_pat_[A-Za-z0-9_]{22,})"),
        ),
        SecretPattern(
            name="OPENAI_API_KEY",
            pattern=re.compile(r"sk-(?:proj-)?[A-Za-z0-9\-_]{32,}"),
        ),
        SecretPattern(
            name="E2B_API_KEY",
            pattern=re.compile(r"e2b_[A-Za-z0-9]{32,}"),
        ),
        SecretPattern(
            name="CLOUDFLARE_API_TOKEN",
            pattern=re.compile(
                r"CLOUDFLARE_API_TOKEN\s*[=:]\s*['\"]?[A-Za-z0-9\-_]{20,}['\"]?",
                re.IGNORECASE,
            ),
        ),
        SecretPattern(
            name="BEARER_TOKEN",
            pattern=re.compile(r"Bearer\s+[a-zA-Z0-9\-_.+/=]{20,}", re.IGNORECASE),
        ),
    ]

    def __init__(
        self,
        patterns: list[SecretPattern] | None = None,
        secret_values: list[str] | None = None,
    ):
        """
        Initialize redactor.

        Args:
            patterns: Secret patterns to detect. Uses defaults if None.
            secret_values: Literal secret values (configured tokens) to mask
        """
        self.patterns = patterns or list(self.DEFAULT_PATTERNS)
        self.secret_values = [value for value in (secret_values or []) if value]

    def redact(self, text: str) -> str:
        """
        Redact secrets from text.

        Args:
            text: Text potentially containing secrets

        Returns:
            Text with secrets replaced by [REDACTED:{name}]
        """
        if not text:
            return text

        redacted_text = text
        redaction_count = 0

        for value in self.secret_values:
            if value in redacted_text:
                redaction_count += redacted_text.count(value)
                redacted_text = redacted_text.replace(value, "[REDACTED:SECRET]")

        for secret_pattern in self.patterns:
            redacted_text, count = secret_pattern.pattern.subn(
                f"[REDACTED:{secret_pattern.name}]", redacted_text
            )
            redaction_count += count

        if redaction_count > 0:
            logger.debug("Redacted secrets", count=redaction_count)

        return redacted_text
