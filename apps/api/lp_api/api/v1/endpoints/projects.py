"""Project API endpoints: generation requests, status and redeploys."""

from datetime import datetime
from typing import Annotated

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from lp_api.api.deps import UsageGate, check_usage, get_store, get_usage_gate, get_workflow
from lp_api.db.models import DeploymentStatus, MessageRole, MessageType, Project
from lp_api.db.store import ProjectStore
from lp_api.deployment.short_codes import build_share_links
from lp_api.orchestration import (
    CodeAgentWorkflow,
    DeploymentOutcome,
    GenerationEvent,
    InvalidTransitionError,
    ProjectNotFoundError,
)

logger = structlog.get_logger()
router = APIRouter()


class GenerationRequest(BaseModel):
    """Request to generate or update a linktree page."""

    value: str = Field(min_length=1, max_length=10000)
    user_id: str | None = None


class ShareLinks(BaseModel):
    """URLs for sharing a deployed page."""

    full: str
    short: str
    qr: str
    share_text: str
    twitter_share: str
    linkedin_share: str


class ProjectResponse(BaseModel):
    """Response model for a project."""

    id: str
    name: str
    deployment_status: DeploymentStatus
    deployment_url: str | None = None
    short_url: str | None = None
    github_repo: str | None = None
    cloudflare_project: str | None = None
    deployed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    share_links: ShareLinks | None = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_project(cls, project: Project) -> "ProjectResponse":
        response = cls.model_validate(project)
        if project.deployment_url and project.short_url:
            response.share_links = ShareLinks(
                **build_share_links(project.deployment_url, project.short_url)
            )
        return response


class MessageAccepted(BaseModel):
    """A user message was stored and a workflow run scheduled."""

    project_id: str
    message_id: str


async def run_workflow(workflow: CodeAgentWorkflow, event: GenerationEvent) -> None:
    """Background task body for one workflow run."""
    try:
        outcome = await workflow.run(event)
        logger.info(
            "Workflow finished",
            project_id=event.project_id,
            message_type=outcome.message_type,
        )
    except Exception as e:
        logger.error("Workflow failed", project_id=event.project_id, error=str(e))
        raise


@router.post("", response_model=MessageAccepted, status_code=status.HTTP_202_ACCEPTED)
async def create_project(
    request: GenerationRequest,
    background_tasks: BackgroundTasks,
    store: Annotated[ProjectStore, Depends(get_store)],
    workflow: Annotated[CodeAgentWorkflow, Depends(get_workflow)],
    gate: Annotated[UsageGate, Depends(get_usage_gate)],
) -> MessageAccepted:
    """Create a project from a first request and start generating it.

    Raises:
        HTTPException: 429 if the user is out of usage
    """
    await check_usage(gate, request.user_id)

    project = await store.create_project(user_id=request.user_id)
    message = await store.append_message(
        project.id, request.value, MessageRole.USER, MessageType.RESULT
    )
    background_tasks.add_task(
        run_workflow,
        workflow,
        GenerationEvent(project_id=project.id, value=request.value, message_id=message.id),
    )
    return MessageAccepted(project_id=project.id, message_id=message.id)


@router.post(
    "/{project_id}/messages",
    response_model=MessageAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def create_message(
    project_id: str,
    request: GenerationRequest,
    background_tasks: BackgroundTasks,
    store: Annotated[ProjectStore, Depends(get_store)],
    workflow: Annotated[CodeAgentWorkflow, Depends(get_workflow)],
    gate: Annotated[UsageGate, Depends(get_usage_gate)],
) -> MessageAccepted:
    """Add a follow-up request to a project and regenerate it.

    Raises:
        HTTPException: 404 if the project does not exist, 429 if out of usage
    """
    project = await store.load_project(project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")

    await check_usage(gate, request.user_id or project.user_id)

    message = await store.append_message(
        project_id, request.value, MessageRole.USER, MessageType.RESULT
    )
    background_tasks.add_task(
        run_workflow,
        workflow,
        GenerationEvent(project_id=project_id, value=request.value, message_id=message.id),
    )
    return MessageAccepted(project_id=project_id, message_id=message.id)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    store: Annotated[ProjectStore, Depends(get_store)],
) -> ProjectResponse:
    """Get a project's deployment state and share links."""
    project = await store.load_project(project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return ProjectResponse.from_project(project)


@router.post("/{project_id}/redeploy", response_model=DeploymentOutcome)
async def redeploy_project(
    project_id: str,
    workflow: Annotated[CodeAgentWorkflow, Depends(get_workflow)],
) -> DeploymentOutcome:
    """Deploy the latest generated page again.

    Raises:
        HTTPException: 404 if the project does not exist, 409 if it cannot
            be redeployed in its current state
    """
    try:
        return await workflow.redeploy(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
