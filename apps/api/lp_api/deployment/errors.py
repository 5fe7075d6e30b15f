"""Deployment errors and classification of raw tool output."""

from enum import Enum

from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    """Deployment error kind."""

    RATE_LIMIT = "RATE_LIMIT"
    AUTH_FAILED = "AUTH_FAILED"
    FILE_SIZE = "FILE_SIZE"
    NETWORK_ERROR = "NETWORK_ERROR"
    PROJECT_ERROR = "PROJECT_ERROR"
    COMMAND_ERROR = "COMMAND_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    UNKNOWN = "UNKNOWN"

    @property
    def retryable(self) -> bool:
        """Default retryability for this kind."""
        return self not in _NON_RETRYABLE


_NON_RETRYABLE = {ErrorKind.AUTH_FAILED, ErrorKind.FILE_SIZE, ErrorKind.PARSE_ERROR}


class ClassifiedError(BaseModel):
    """Result of classifying raw diagnostic output."""

    kind: ErrorKind = Field(description="Error category")
    message: str = Field(description="Human readable message")
    retryable: bool = Field(description="Whether retrying may succeed")


class DeploymentError(Exception):
    """Deployment failure with a kind and retry annotation."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        retryable: bool | None = None,
        output: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.retryable = kind.retryable if retryable is None else retryable
        self.output = output

    def __repr__(self) -> str:
        return (
            f"DeploymentError(kind={self.kind.value}, retryable={self.retryable}, "
            f"message={self.message!r})"
        )

    @classmethod
    def from_classified(
        cls, classified: ClassifiedError, output: str | None = None
    ) -> "DeploymentError":
        return cls(
            classified.message,
            kind=classified.kind,
            retryable=classified.retryable,
            output=output,
        )


# Ordered rules, first match wins. Matching is case-sensitive.
CLASSIFICATION_RULES: list[tuple[ErrorKind, tuple[str, ...], str]] = [
    (
        ErrorKind.RATE_LIMIT,
        ("rate limit", "Too Many Requests"),
        "Cloudflare rate limit exceeded",
    ),
    (
        ErrorKind.AUTH_FAILED,
        ("authentication", "unauthorized", "API token", "invalid token"),
        "Authentication failed: {output}",
    ),
    (
        ErrorKind.FILE_SIZE,
        ("file size", "too large"),
        "File size exceeds Cloudflare limit",
    ),
    (
        ErrorKind.NETWORK_ERROR,
        ("network", "timeout", "ECONNRESET", "ETIMEDOUT"),
        "Network error during deployment",
    ),
    (
        ErrorKind.PROJECT_ERROR,
        ("Project not found", "does not exist", "already exists", "name is already taken"),
        "Project configuration error: {output}",
    ),
    (
        ErrorKind.COMMAND_ERROR,
        ("Command failed", "Error:"),
        "Wrangler command failed: {output}",
    ),
]


def classify(raw_output: str) -> ClassifiedError:
    """Classify raw tool output into a typed, retry annotated error.

    Args:
        raw_output: Captured stderr/stdout of the failing command

    Returns:
        ClassifiedError; unknown failures are treated as retryable
    """
    raw_output = raw_output or ""

    for kind, phrases, template in CLASSIFICATION_RULES:
        if any(phrase in raw_output for phrase in phrases):
            return ClassifiedError(
                kind=kind,
                message=template.format(output=raw_output),
                retryable=kind.retryable,
            )

    return ClassifiedError(
        kind=ErrorKind.UNKNOWN,
        message=f"Deployment failed: {raw_output}",
        retryable=True,
    )


def classify_error(raw_output: str) -> DeploymentError:
    """Classify raw output and wrap it in a DeploymentError."""
    return DeploymentError.from_classified(classify(raw_output), output=raw_output)


def is_retryable(error: BaseException) -> bool:
    """True only for deployment errors marked retryable."""
    return isinstance(error, DeploymentError) and error.retryable


def get_error_kind(error: BaseException) -> ErrorKind | None:
    """Kind of a deployment error, None for anything else."""
    return error.kind if isinstance(error, DeploymentError) else None
