"""Wiring of the workflow from settings."""

from langchain_openai import ChatOpenAI
from redis.asyncio import Redis

from lp_api.agents import CodeAgent, SummaryWriter
from lp_api.config import Settings
from lp_api.db.store import ProjectStore
from lp_api.orchestration.locks import ProjectLocks, RedisProjectLocks
from lp_api.orchestration.orchestrator import CodeAgentWorkflow
from lp_api.orchestration.steps import InMemoryStepLog, RedisStepLog, StepLog
from lp_api.services.base import DeploymentTarget, SiteDeployer
from lp_api.services.cloudflare_service import CloudflarePagesService
from lp_api.services.github_pages_service import GitHubPagesService
from lp_api.services.sandbox_service import SandboxService


def create_redis(settings: Settings) -> Redis:
    """Redis client for the step log and project locks."""
    return Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        password=settings.redis_password.get_secret_value() if settings.redis_password else None,
        decode_responses=True,
        socket_connect_timeout=5,
    )


def create_deployer(settings: Settings) -> SiteDeployer:
    """Deployer for the configured target."""
    if settings.deployment_target == DeploymentTarget.CLOUDFLARE.value:
        return CloudflarePagesService.from_settings(settings)
    return GitHubPagesService.from_settings(settings)


def create_chat_model(settings: Settings, model: str, temperature: float) -> ChatOpenAI:
    return ChatOpenAI(
        model=model,
        temperature=temperature,
        api_key=settings.openai_api_key.get_secret_value() if settings.openai_api_key else None,
    )


def build_workflow(
    settings: Settings,
    store: ProjectStore,
    redis_client: Redis | None = None,
) -> CodeAgentWorkflow:
    """Build a workflow with its production collaborators.

    Args:
        settings: Application settings
        store: Project store
        redis_client: Shared client, required for the redis step log backend

    Returns:
        Configured CodeAgentWorkflow
    """
    step_log: StepLog
    locks: ProjectLocks
    if settings.step_log_backend == "redis":
        redis_client = redis_client or create_redis(settings)
        step_log = RedisStepLog(redis_client)
        locks = RedisProjectLocks(redis_client)
    else:
        step_log = InMemoryStepLog()
        locks = ProjectLocks()

    sandbox = SandboxService.from_settings(settings)
    agent = CodeAgent(
        llm=create_chat_model(settings, settings.agent_model, temperature=0.1),
        sandbox=sandbox,
        max_iterations=settings.agent_max_iterations,
    )
    summaries = SummaryWriter(create_chat_model(settings, settings.summary_model, temperature=0.3))

    return CodeAgentWorkflow(
        store=store,
        sandbox=sandbox,
        agent=agent,
        summaries=summaries,
        deployer=create_deployer(settings),
        step_log=step_log,
        base_url=settings.app_url,
        locks=locks,
        history_limit=settings.agent_history_limit,
    )
