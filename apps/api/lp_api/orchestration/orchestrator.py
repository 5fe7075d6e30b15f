"""Generation-and-deploy workflow for linktree projects.

The workflow runs as a sequence of durable steps (see ``steps.py``):

1. create a sandbox
2. load recent conversation
3. run the code agent inside the sandbox
4. derive a fragment title, a reply and (once) a project name
5. persist the result or error message
6. deploy the generated site and issue a short URL

Project deployment status moves PENDING -> DEPLOYING -> DEPLOYED | FAILED;
a manual redeploy moves FAILED or DEPLOYED back to DEPLOYING.
"""

from datetime import datetime, timezone
from uuid import uuid4

import structlog
from pydantic import BaseModel

from lp_api.agents.code_agent import AgentResult, CodeAgent, history_to_messages
from lp_api.agents.prompts import ERROR_MESSAGE
from lp_api.agents.summaries import SummaryWriter
from lp_api.db.models import DeploymentStatus, MessageRole, MessageType, Project
from lp_api.db.models.project import can_transition, is_placeholder_name
from lp_api.db.store import FragmentData, ProjectStore
from lp_api.deployment.short_codes import build_short_url, generate_short_code
from lp_api.orchestration.ids import (
    code_agent_run_id,
    code_agent_run_id_from_value,
    redeploy_run_id,
)
from lp_api.orchestration.locks import ProjectLocks
from lp_api.orchestration.steps import StepLog, WorkflowRunner
from lp_api.services.base import (
    INDEX_FILE,
    DeploymentTarget,
    SiteDeployer,
    SiteMetadata,
    is_deployable,
)
from lp_api.services.sandbox_service import SandboxService

logger = structlog.get_logger()


class InvalidTransitionError(ValueError):
    """Deployment status change not allowed from the current status."""


class ProjectNotFoundError(LookupError):
    """No project with the given ID."""


class GenerationEvent(BaseModel):
    """Trigger for a workflow run."""

    project_id: str
    value: str
    message_id: str | None = None


class DeploymentOutcome(BaseModel):
    """Project state after the deploy step."""

    deployment_status: DeploymentStatus
    deployment_url: str | None = None
    short_url: str | None = None
    error: str | None = None


class WorkflowOutcome(BaseModel):
    """Summary of a finished workflow run."""

    project_id: str
    message_type: MessageType
    summary: str = ""
    deployment: DeploymentOutcome | None = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def transition(project: Project, new_status: DeploymentStatus) -> None:
    """Move a project to ``new_status``; re-entering the same status is a no-op.

    Raises:
        InvalidTransitionError: If the transition is not allowed
    """
    current = DeploymentStatus(project.deployment_status)
    if current == new_status:
        return
    if not can_transition(current, new_status):
        raise InvalidTransitionError(
            f"Cannot move project {project.id} from {current.value} to {new_status.value}"
        )
    project.deployment_status = new_status.value


class CodeAgentWorkflow:
    """Generates a site for a user request and deploys it."""

    def __init__(
        self,
        store: ProjectStore,
        sandbox: SandboxService,
        agent: CodeAgent,
        summaries: SummaryWriter,
        deployer: SiteDeployer,
        step_log: StepLog,
        base_url: str,
        locks: ProjectLocks | None = None,
        history_limit: int = 5,
    ):
        """Initialize the workflow.

        Args:
            store: Project persistence
            sandbox: Sandbox service
            agent: Code generation agent
            summaries: Title/reply/name completions
            deployer: Deployer used by the deploy step
            step_log: Log of completed steps
            base_url: Public base URL for short links
            locks: Per-project locks serializing runs
            history_limit: Earlier messages given to the agent
        """
        self.store = store
        self.sandbox = sandbox
        self.agent = agent
        self.summaries = summaries
        self.deployer = deployer
        self.step_log = step_log
        self.base_url = base_url
        self.locks = locks or ProjectLocks()
        self.history_limit = history_limit

    async def run(self, event: GenerationEvent) -> WorkflowOutcome:
        """Run the whole workflow for one user request."""
        run_id = (
            code_agent_run_id(event.project_id, event.message_id)
            if event.message_id
            else code_agent_run_id_from_value(event.project_id, event.value)
        )
        log = logger.bind(run_id=run_id, project_id=event.project_id)

        async with self.locks.hold(event.project_id):
            runner = WorkflowRunner(run_id, self.step_log)

            sandbox_id = await runner.run_step("get-sandbox-id", self.sandbox.create)

            history = await runner.run_step(
                "get-previous-messages",
                lambda: self._previous_messages(event.project_id, event.message_id),
            )

            agent_output = await runner.run_step(
                "run-code-agent",
                lambda: self._run_agent(event.value, sandbox_id, history),
            )
            result = AgentResult.model_validate(agent_output)

            if not result.summary or not result.files:
                log.warning(
                    "Generation produced no result",
                    has_summary=bool(result.summary),
                    file_count=len(result.files),
                )
                await runner.run_step("save-result", self._save_error(event.project_id))
                return WorkflowOutcome(
                    project_id=event.project_id,
                    message_type=MessageType.ERROR,
                )

            fragment_title = await runner.run_step(
                "generate-fragment-title",
                lambda: self.summaries.fragment_title(result.summary),
            )
            response = await runner.run_step(
                "generate-response",
                lambda: self.summaries.response_message(result.summary),
            )
            await runner.run_step(
                "generate-project-name",
                lambda: self._name_project(event.project_id, result.summary),
            )

            sandbox_url = await runner.run_step(
                "get-sandbox-url",
                lambda: self.sandbox.get_host_url(sandbox_id),
            )

            await runner.run_step(
                "save-result",
                self._save_result(
                    event.project_id,
                    response,
                    FragmentData(sandbox_url=sandbox_url, title=fragment_title, files=result.files),
                ),
            )

            deployment = None
            if is_deployable(result.files):
                deployment_output = await runner.run_step(
                    "deploy-site",
                    lambda: self._deploy_step(event.project_id, result.files),
                )
                deployment = DeploymentOutcome.model_validate(deployment_output)
            else:
                log.info("No index.html generated, skipping deployment")

        return WorkflowOutcome(
            project_id=event.project_id,
            message_type=MessageType.RESULT,
            summary=result.summary,
            deployment=deployment,
        )

    async def redeploy(self, project_id: str) -> DeploymentOutcome:
        """Deploy the latest fragment again after a failure or for an update.

        Raises:
            ProjectNotFoundError: If the project does not exist
            InvalidTransitionError: If the project is pending or deploying,
                or has nothing to deploy
        """
        async with self.locks.hold(project_id):
            project = await self.store.load_project(project_id)
            if project is None:
                raise ProjectNotFoundError(f"Project not found: {project_id}")

            status = DeploymentStatus(project.deployment_status)
            if status not in (DeploymentStatus.FAILED, DeploymentStatus.DEPLOYED):
                raise InvalidTransitionError(
                    f"Project {project_id} cannot be redeployed while {status.value}"
                )

            fragment = await self.store.latest_fragment(project_id)
            if fragment is None or not is_deployable(fragment.files):
                raise InvalidTransitionError(f"Project {project_id} has no {INDEX_FILE} to deploy")

            runner = WorkflowRunner(redeploy_run_id(project_id, uuid4().hex), self.step_log)
            output = await runner.run_step(
                "deploy-site",
                lambda: self._deploy_step(project_id, fragment.files),
            )
            return DeploymentOutcome.model_validate(output)

    async def _previous_messages(
        self, project_id: str, exclude_message_id: str | None
    ) -> list[dict[str, str]]:
        messages = await self.store.list_messages(
            project_id, limit=self.history_limit + 1, newest_first=True
        )
        records = [
            {"role": MessageRole(m.role).value, "content": m.content}
            for m in messages
            if m.id != exclude_message_id
        ][: self.history_limit]
        records.reverse()
        return records

    async def _run_agent(
        self, value: str, sandbox_id: str, history: list[dict[str, str]]
    ) -> dict:
        result = await self.agent.run(value, sandbox_id, history_to_messages(history))
        return result.model_dump()

    async def _name_project(self, project_id: str, summary: str) -> str | None:
        project = await self.store.load_project(project_id)
        if project is None or not is_placeholder_name(project.name):
            return None

        project.name = await self.summaries.project_name(summary)
        await self.store.save_project(project)
        logger.info("Project named", project_id=project_id, name=project.name)
        return project.name

    def _save_error(self, project_id: str):
        async def save() -> str:
            message = await self.store.append_message(
                project_id, ERROR_MESSAGE, MessageRole.ASSISTANT, MessageType.ERROR
            )
            return message.id

        return save

    def _save_result(self, project_id: str, response: str, fragment: FragmentData):
        async def save() -> str:
            message = await self.store.append_message(
                project_id, response, MessageRole.ASSISTANT, MessageType.RESULT, fragment
            )
            return message.id

        return save

    async def _deploy_step(self, project_id: str, files: dict[str, str]) -> dict:
        return (await self.deploy_project(project_id, files)).model_dump(mode="json")

    async def deploy_project(self, project_id: str, files: dict[str, str]) -> DeploymentOutcome:
        """Deploy ``files`` for a project and record the outcome on it.

        Deployment failures and bookkeeping errors leave the project FAILED,
        never DEPLOYING.
        """
        project = await self.store.load_project(project_id)
        if project is None:
            raise ProjectNotFoundError(f"Project not found: {project_id}")

        log = logger.bind(project_id=project_id, target=self.deployer.target.value)

        try:
            transition(project, DeploymentStatus.DEPLOYING)
            project = await self.store.save_project(project)

            result = await self.deployer.deploy_site(
                files,
                SiteMetadata(
                    project_id=project.id,
                    project_title=project.name,
                    remote_name=self._remote_name(project),
                ),
            )

            if not result.success or not result.public_url:
                log.error("Deployment failed", error=result.error)
                transition(project, DeploymentStatus.FAILED)
                await self.store.save_project(project)
                return DeploymentOutcome(
                    deployment_status=DeploymentStatus.FAILED,
                    error=result.error or "Deployment returned no URL",
                )

            if self.deployer.target == DeploymentTarget.GITHUB_PAGES:
                project.github_repo = result.remote_name
            else:
                project.cloudflare_project = result.remote_name

            short_code = generate_short_code(project.id)
            project.deployment_url = result.public_url
            project.short_url = build_short_url(short_code, self.base_url)
            transition(project, DeploymentStatus.DEPLOYED)
            if project.deployed_at is None:
                project.deployed_at = utcnow()
            await self.store.save_project(project)

            log.info(
                "Project deployed",
                deployment_url=project.deployment_url,
                short_url=project.short_url,
            )
            return DeploymentOutcome(
                deployment_status=DeploymentStatus.DEPLOYED,
                deployment_url=project.deployment_url,
                short_url=project.short_url,
            )
        except Exception as e:
            log.error("Deployment bookkeeping failed", error=str(e))
            await self._force_failed(project_id)
            return DeploymentOutcome(deployment_status=DeploymentStatus.FAILED, error=str(e))

    def _remote_name(self, project: Project) -> str | None:
        if self.deployer.target == DeploymentTarget.GITHUB_PAGES:
            return project.github_repo
        return project.cloudflare_project

    async def _force_failed(self, project_id: str) -> None:
        try:
            project = await self.store.load_project(project_id)
            if project is not None:
                project.deployment_status = DeploymentStatus.FAILED.value
                await self.store.save_project(project)
        except Exception as e:
            logger.error("Could not mark project failed", project_id=project_id, error=str(e))
