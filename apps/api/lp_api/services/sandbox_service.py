"""E2B sandbox access for the code generation agent."""

import httpx
import structlog
from e2b_code_interpreter import AsyncSandbox, CommandExitException, TimeoutException
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from lp_api.config import Settings

logger = structlog.get_logger()

# Only transient sandbox I/O is retried at the tool level.
transient_retry = retry(
    retry=retry_if_exception_type((TimeoutException, httpx.TransportError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(min=1, max=10),
    reraise=True,
)


class SandboxService:
    """Creates sandboxes and runs tool calls inside them."""

    def __init__(
        self,
        api_key: str | None,
        template: str,
        timeout: int = 1800,
        port: int = 3000,
    ) -> None:
        """Initialize sandbox service.

        Args:
            api_key: E2B API key
            template: Sandbox template with the site preview server
            timeout: Absolute sandbox lifetime in seconds
            port: Port the preview server listens on
        """
        self.api_key = api_key
        self.template = template
        self.timeout = timeout
        self.port = port

    @classmethod
    def from_settings(cls, settings: Settings) -> "SandboxService":
        return cls(
            api_key=settings.e2b_api_key.get_secret_value() if settings.e2b_api_key else None,
            template=settings.sandbox_template,
            timeout=settings.sandbox_timeout,
            port=settings.sandbox_port,
        )

    @transient_retry
    async def create(self) -> str:
        """Create a sandbox and return its id."""
        sandbox = await AsyncSandbox.create(
            template=self.template,
            timeout=self.timeout,
            api_key=self.api_key,
        )
        await sandbox.set_timeout(self.timeout)
        logger.info("Sandbox created", sandbox_id=sandbox.sandbox_id, timeout=self.timeout)
        return sandbox.sandbox_id

    async def connect(self, sandbox_id: str) -> AsyncSandbox:
        return await AsyncSandbox.connect(sandbox_id, api_key=self.api_key)

    @transient_retry
    async def run_command(self, sandbox_id: str, command: str) -> str:
        """Run a shell command; failures are returned as text for the agent."""
        sandbox = await self.connect(sandbox_id)
        try:
            result = await sandbox.commands.run(command)
        except CommandExitException as e:
            logger.warning("Sandbox command failed", sandbox_id=sandbox_id, exit_code=e.exit_code)
            return f"Command failed: {e}\nstdout: {e.stdout}\nstderr: {e.stderr}"
        return result.stdout

    @transient_retry
    async def write_files(self, sandbox_id: str, files: dict[str, str]) -> None:
        sandbox = await self.connect(sandbox_id)
        for path, content in files.items():
            await sandbox.files.write(path, content)

    @transient_retry
    async def read_file(self, sandbox_id: str, path: str) -> str:
        sandbox = await self.connect(sandbox_id)
        return await sandbox.files.read(path)

    async def get_host_url(self, sandbox_id: str) -> str:
        """Public preview URL of the sandbox."""
        sandbox = await self.connect(sandbox_id)
        return f"https://{sandbox.get_host(self.port)}"
