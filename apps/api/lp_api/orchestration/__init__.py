"""Orchestration layer for durable generation-and-deploy workflows."""

from lp_api.orchestration.factory import build_workflow
from lp_api.orchestration.ids import (
    code_agent_run_id,
    code_agent_run_id_from_value,
    redeploy_run_id,
)
from lp_api.orchestration.orchestrator import (
    CodeAgentWorkflow,
    DeploymentOutcome,
    GenerationEvent,
    InvalidTransitionError,
    ProjectNotFoundError,
    WorkflowOutcome,
)
from lp_api.orchestration.steps import InMemoryStepLog, RedisStepLog, StepLog, WorkflowRunner

__all__ = [
    "CodeAgentWorkflow",
    "DeploymentOutcome",
    "GenerationEvent",
    "InMemoryStepLog",
    "InvalidTransitionError",
    "ProjectNotFoundError",
    "RedisStepLog",
    "StepLog",
    "WorkflowOutcome",
    "WorkflowRunner",
    "build_workflow",
    "code_agent_run_id",
    "code_agent_run_id_from_value",
    "redeploy_run_id",
]
