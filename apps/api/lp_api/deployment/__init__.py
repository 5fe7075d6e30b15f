"""Naming, short codes, error classification and retries for deployments."""

from lp_api.deployment.errors import (
    ClassifiedError,
    DeploymentError,
    ErrorKind,
    classify,
    classify_error,
    is_retryable,
)
from lp_api.deployment.naming import generate_project_slug, generate_repo_name, is_valid_slug
from lp_api.deployment.retry import calculate_backoff_delay, with_retry
from lp_api.deployment.short_codes import (
    build_short_url,
    extract_short_code,
    generate_short_code,
)

__all__ = [
    "ClassifiedError",
    "DeploymentError",
    "ErrorKind",
    "build_short_url",
    "calculate_backoff_delay",
    "classify",
    "classify_error",
    "extract_short_code",
    "generate_project_slug",
    "generate_repo_name",
    "generate_short_code",
    "is_retryable",
    "is_valid_slug",
    "with_retry",
]
