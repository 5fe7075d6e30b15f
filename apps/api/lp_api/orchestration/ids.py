"""Workflow run ID generation for stable, deterministic step log keys."""

import hashlib


def code_agent_run_id(project_id: str, message_id: str) -> str:
    """
    Generate the run ID for a generation-and-deploy workflow.

    One run exists per user message, so replaying the same message after a
    crash reuses completed steps.

    Args:
        project_id: Unique project identifier
        message_id: ID of the user message that triggered the run

    Returns:
        Run ID in format "code-agent-{project_id}-{message_id}"
    """
    return f"code-agent-{project_id}-{message_id}"


def code_agent_run_id_from_value(project_id: str, value: str) -> str:
    """
    Generate a run ID when no message ID is available.

    Args:
        project_id: Unique project identifier
        value: The user's request text

    Returns:
        Run ID in format "code-agent-{project_id}-{hash}"
    """
    value_hash = hashlib.sha256(value.encode()).hexdigest()[:16]
    return code_agent_run_id(project_id, value_hash)


def redeploy_run_id(project_id: str, request_id: str) -> str:
    """
    Generate the run ID for a manual redeploy request.

    Args:
        project_id: Unique project identifier
        request_id: Unique ID of the redeploy request

    Returns:
        Run ID in format "redeploy-{project_id}-{request_id}"
    """
    return f"redeploy-{project_id}-{request_id}"
