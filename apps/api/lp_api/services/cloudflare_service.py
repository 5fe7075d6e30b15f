"""Cloudflare Pages deployment service (wrangler CLI)."""

import asyncio
import contextlib
import os
import re
import shlex
import shutil
from collections.abc import Awaitable, Callable
from pathlib import Path

import structlog
from pydantic import BaseModel

from lp_api.config import Settings
from lp_api.deployment.errors import (
    DeploymentError,
    ErrorKind,
    classify,
    classify_error,
)
from lp_api.deployment.naming import generate_project_slug
from lp_api.deployment.retry import with_retry
from lp_api.safety.redaction import Redactor
from lp_api.services.base import (
    DeploymentResult,
    DeploymentTarget,
    SiteDeployer,
    SiteMetadata,
)

logger = structlog.get_logger()

# Wrangler prints e.g. "Deployment complete! https://1a2b3c4d.my-project.pages.dev"
DEPLOYMENT_URL_PATTERN = re.compile(r"https://[\w-]+\.[\w-]+\.pages\.dev")
PROJECT_MISSING_MARKERS = ("Project not found", "does not exist")


class CommandResult(BaseModel):
    """Captured result of an external command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


CommandRunner = Callable[[list[str], dict[str, str], float], Awaitable[CommandResult]]


async def run_command(args: list[str], env: dict[str, str], timeout: float) -> CommandResult:
    """Run a command and capture its output.

    Raises:
        DeploymentError: If the command cannot be started or times out
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
    except FileNotFoundError as e:
        raise DeploymentError(
            f"Command failed: {args[0]} not found",
            kind=ErrorKind.COMMAND_ERROR,
            retryable=False,
        ) from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()
        raise DeploymentError(
            f"Command timeout after {timeout} seconds: {' '.join(args[:4])}",
            kind=ErrorKind.NETWORK_ERROR,
        ) from e

    return CommandResult(
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


class CloudflarePagesService(SiteDeployer):
    """Service for deploying static files to Cloudflare Pages."""

    target = DeploymentTarget.CLOUDFLARE

    def __init__(
        self,
        account_id: str | None,
        api_token: str | None,
        project_prefix: str = "manit",
        max_file_size: int = 25 * 1024 * 1024,
        timeout: float = 120.0,
        max_retries: int = 3,
        retry_base_delay_ms: int = 2000,
        temp_base_path: str = "/tmp/manit-deployments",
        cleanup_delay: float = 5.0,
        wrangler_command: str = "npx wrangler",
        runner: CommandRunner = run_command,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize Cloudflare Pages service.

        Args:
            account_id: Cloudflare account ID
            api_token: Cloudflare API token
            project_prefix: Prefix for generated project names
            max_file_size: Ceiling for the total size of a deployment in bytes
            timeout: Wall clock timeout for a single wrangler invocation
            max_retries: Retries after the first upload attempt
            retry_base_delay_ms: Backoff base delay
            temp_base_path: Root directory for staged files
            cleanup_delay: Seconds to wait before removing staged files
            wrangler_command: Command used to invoke wrangler
            runner: Command runner, replaceable in tests
            sleep: Backoff sleep, replaceable in tests
        """
        self.account_id = account_id
        self.api_token = api_token
        self.project_prefix = project_prefix
        self.max_file_size = max_file_size
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay_ms = retry_base_delay_ms
        self.temp_base_path = Path(temp_base_path)
        self.cleanup_delay = cleanup_delay
        self.wrangler_command = shlex.split(wrangler_command)
        self._runner = runner
        self._sleep = sleep
        self._redactor = Redactor(secret_values=[api_token])
        self._cleanup_tasks: dict[Path, asyncio.Task] = {}
        self._removing: set[Path] = set()
        logger.info("Cloudflare Pages service initialized")

    @classmethod
    def from_settings(cls, settings: Settings) -> "CloudflarePagesService":
        api_token = settings.cloudflare_api_token
        return cls(
            account_id=settings.cloudflare_account_id,
            api_token=api_token.get_secret_value() if api_token else None,
            project_prefix=settings.cloudflare_project_prefix,
            max_file_size=settings.max_file_size,
            timeout=settings.deploy_timeout,
            max_retries=settings.max_retries,
            retry_base_delay_ms=settings.retry_base_delay_ms,
            temp_base_path=settings.temp_base_path,
            cleanup_delay=settings.cleanup_delay,
            wrangler_command=settings.wrangler_command,
        )

    def staging_dir(self, project_id: str) -> Path:
        """Staging directory for a project."""
        return self.temp_base_path / Path(project_id).name

    def prepare_files(self, files: dict[str, str], project_id: str) -> Path:
        """Write files into the project's staging directory.

        Existing files are overwritten, so staging again for a retry is safe.

        Args:
            files: Mapping of relative path to content
            project_id: Project identifier, used to namespace the directory

        Returns:
            Path to the staging directory

        Raises:
            DeploymentError: If the total size exceeds the limit, a path
                escapes the staging directory or the filesystem rejects a write
        """
        temp_dir = self.staging_dir(project_id)
        root = temp_dir.resolve()

        try:
            temp_dir.mkdir(parents=True, exist_ok=True)
            total_size = 0

            for file_path, content in files.items():
                total_size += len(content.encode("utf-8"))
                if total_size > self.max_file_size:
                    raise DeploymentError(
                        f"Total file size ({total_size} bytes) exceeds limit of "
                        f"{self.max_file_size} bytes",
                        kind=ErrorKind.FILE_SIZE,
                    )

                full_path = (temp_dir / file_path).resolve()
                if not full_path.is_relative_to(root):
                    raise DeploymentError(
                        f"File path escapes staging directory: {file_path}",
                        kind=ErrorKind.COMMAND_ERROR,
                        retryable=False,
                    )

                full_path.parent.mkdir(parents=True, exist_ok=True)
                full_path.write_text(content, encoding="utf-8")
        except DeploymentError:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise
        except OSError as e:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise DeploymentError(
                f"Failed to stage files: {e}",
                kind=ErrorKind.COMMAND_ERROR,
                retryable=False,
            ) from e

        logger.info("Prepared files for deployment", count=len(files), path=str(temp_dir))
        return temp_dir

    async def ensure_project(self, project_slug: str) -> None:
        """Create the Pages project if it does not exist yet.

        Only authentication failures are fatal; anything else is logged and
        left for the upload step to report.

        Raises:
            DeploymentError: On authentication failure
        """
        try:
            result = await self._wrangler(
                "pages", "project", "create", project_slug, "--production-branch=main"
            )
        except DeploymentError as e:
            logger.warning(
                "Could not create Cloudflare Pages project",
                project_slug=project_slug,
                error=e.message,
            )
            return

        if result.returncode == 0:
            logger.info("Cloudflare Pages project created", project_slug=project_slug)
            return

        output = result.output
        if "already exists" in output:
            logger.info("Using existing Cloudflare Pages project", project_slug=project_slug)
            return

        classified = classify(output)
        if classified.kind == ErrorKind.AUTH_FAILED:
            raise DeploymentError.from_classified(classified, output=output)

        logger.warning(
            "Could not create Cloudflare Pages project",
            project_slug=project_slug,
            error=classified.message,
        )

    async def upload(self, project_slug: str, directory: Path) -> str:
        """Upload a staged directory and return the deployment URL.

        Raises:
            DeploymentError: Classified from wrangler output, or PARSE_ERROR
                when the URL cannot be found
        """
        result = await self._wrangler(
            "pages", "deploy", str(directory), f"--project-name={project_slug}"
        )
        output = result.output

        if result.returncode != 0:
            raise classify_error(output)

        match = DEPLOYMENT_URL_PATTERN.search(result.stdout)
        if not match:
            raise DeploymentError(
                f"Could not parse deployment URL from Wrangler output: {output}",
                kind=ErrorKind.PARSE_ERROR,
                output=output,
            )

        return match.group(0)

    async def deploy(
        self, files: dict[str, str], project_slug: str, project_id: str
    ) -> str:
        """Stage, upload and return the public URL.

        Args:
            files: Mapping of relative path to content
            project_slug: Cloudflare Pages project name
            project_id: Project identifier for the staging directory

        Returns:
            Public deployment URL

        Raises:
            DeploymentError: If staging fails or retries are exhausted
        """
        directory: Path | None = None
        await self._cancel_cleanup(self.staging_dir(project_id))
        try:
            directory = await asyncio.to_thread(self.prepare_files, files, project_id)
            url = await with_retry(
                lambda: self._deploy_attempt(project_slug, directory),
                max_attempts=self.max_retries,
                base_delay_ms=self.retry_base_delay_ms,
                sleep=self._sleep,
            )
            logger.info("Deployment created", project_slug=project_slug, url=url)
            return url
        except DeploymentError as e:
            logger.error(
                "Failed to deploy to Cloudflare Pages",
                project_slug=project_slug,
                kind=e.kind.value,
                error=self._redactor.redact(e.message),
            )
            raise
        finally:
            if directory is not None:
                self.schedule_cleanup(directory)

    async def deploy_site(
        self, files: dict[str, str], metadata: SiteMetadata
    ) -> DeploymentResult:
        project_slug = metadata.remote_name or generate_project_slug(
            metadata.project_title, self.project_prefix
        )
        if not self.account_id or not self.api_token:
            logger.error("Cloudflare credentials not configured", project_slug=project_slug)
            return DeploymentResult(
                success=False,
                target=self.target,
                remote_name=project_slug,
                error="CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN must be configured",
                error_kind=ErrorKind.AUTH_FAILED,
            )

        try:
            url = await self.deploy(files, project_slug, metadata.project_id)
        except DeploymentError as e:
            return DeploymentResult(
                success=False,
                target=self.target,
                remote_name=project_slug,
                error=self._redactor.redact(e.message),
                error_kind=e.kind,
            )

        return DeploymentResult(
            success=True,
            target=self.target,
            remote_name=project_slug,
            public_url=url,
        )

    async def delete_project(self, project_slug: str) -> bool:
        """Delete a Pages project. Returns False if wrangler reports failure."""
        try:
            result = await self._wrangler("pages", "project", "delete", project_slug, "--yes")
        except DeploymentError as e:
            logger.error("Failed to delete project", project_slug=project_slug, error=e.message)
            return False

        if result.returncode != 0:
            logger.error(
                "Failed to delete project",
                project_slug=project_slug,
                error=self._redactor.redact(result.output),
            )
            return False

        logger.info("Project deleted", project_slug=project_slug)
        return True

    def schedule_cleanup(self, directory: Path) -> asyncio.Task:
        """Remove ``directory`` after the cleanup delay without blocking.

        A later deploy that restages the same directory cancels the pending
        removal, see ``_cancel_cleanup``.
        """
        previous = self._cleanup_tasks.get(directory)
        if previous is not None and directory not in self._removing:
            previous.cancel()

        task = asyncio.create_task(self._cleanup_later(directory))
        self._cleanup_tasks[directory] = task
        task.add_done_callback(lambda done: self._forget_cleanup(directory, done))
        return task

    async def wait_for_cleanup(self) -> None:
        """Wait for all scheduled cleanups to finish."""
        if self._cleanup_tasks:
            await asyncio.gather(*self._cleanup_tasks.values())

    async def cleanup_temp_files(self, directory: Path) -> None:
        """Remove a staging directory. Failures are logged, never raised."""
        try:
            await asyncio.to_thread(shutil.rmtree, directory)
            logger.info("Cleaned up temp files", path=str(directory))
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error("Failed to cleanup temp files", path=str(directory), error=str(e))

    async def _cleanup_later(self, directory: Path) -> None:
        await asyncio.sleep(self.cleanup_delay)
        self._removing.add(directory)
        try:
            await self.cleanup_temp_files(directory)
        finally:
            self._removing.discard(directory)

    async def _cancel_cleanup(self, directory: Path) -> None:
        """Stop a pending removal of ``directory`` before it is restaged.

        A removal that has already started is awaited instead, since the
        rmtree thread cannot be interrupted.
        """
        task = self._cleanup_tasks.pop(directory, None)
        if task is None or task.done():
            return

        if directory in self._removing:
            await task
            return

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("Cancelled pending cleanup", path=str(directory))

    def _forget_cleanup(self, directory: Path, task: asyncio.Task) -> None:
        if self._cleanup_tasks.get(directory) is task:
            del self._cleanup_tasks[directory]

    async def _deploy_attempt(self, project_slug: str, directory: Path) -> str:
        await self.ensure_project(project_slug)
        try:
            return await self.upload(project_slug, directory)
        except DeploymentError as e:
            text = e.output or e.message
            if not any(marker in text for marker in PROJECT_MISSING_MARKERS):
                raise

        logger.warning(
            "Project missing during upload, recreating", project_slug=project_slug
        )
        await self.ensure_project(project_slug)
        return await self.upload(project_slug, directory)

    async def _wrangler(self, *args: str) -> CommandResult:
        env = {
            **os.environ,
            "CLOUDFLARE_ACCOUNT_ID": self.account_id or "",
            "CLOUDFLARE_API_TOKEN": self.api_token or "",
        }
        command = [*self.wrangler_command, *args]
        result = await self._runner(command, env, self.timeout)
        logger.debug(
            "Wrangler finished",
            command=" ".join(args[:3]),
            returncode=result.returncode,
            output=self._redactor.redact(result.output),
        )
        return result
