"""Secret redaction for command output and logs."""

from lp_api.safety.redaction import Redactor, SecretPattern

__all__ = [
    "Redactor",
    "SecretPattern",
]
