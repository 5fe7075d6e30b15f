"""Tool-using code generation agent that runs inside an E2B sandbox."""

from typing import Any

import structlog
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langchain_core.tools import BaseTool, StructuredTool
from pydantic import BaseModel, Field

from lp_api.agents.prompts import AGENT_PROMPT, TASK_SUMMARY_CLOSE, TASK_SUMMARY_OPEN
from lp_api.services.sandbox_service import SandboxService

logger = structlog.get_logger()

CONTINUE_PROMPT = (
    f"Continue working. When index.html is complete, reply with {TASK_SUMMARY_OPEN}."
)


class AgentState(BaseModel):
    """Mutable state shared by the tools of one agent run."""

    files: dict[str, str] = Field(default_factory=dict)
    summary: str = ""


class AgentResult(BaseModel):
    """Outcome of an agent run."""

    summary: str = ""
    files: dict[str, str] = Field(default_factory=dict)
    iterations: int = 0

    @property
    def completed(self) -> bool:
        return bool(self.summary)


class FileInput(BaseModel):
    path: str = Field(description="Relative file path")
    content: str = Field(description="Full file content")


class CreateOrUpdateFilesInput(BaseModel):
    files: list[FileInput]


class ReadFilesInput(BaseModel):
    files: list[str] = Field(description="Relative file paths to read")


class TerminalInput(BaseModel):
    command: str = Field(description="Shell command to run")


def message_text(message: BaseMessage) -> str:
    """Plain text of a chat message, flattening content blocks."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def extract_task_summary(text: str) -> str | None:
    """Content of the task summary tag, or None when the marker is absent."""
    start = text.find(TASK_SUMMARY_OPEN)
    if start == -1:
        return None

    body = text[start + len(TASK_SUMMARY_OPEN):]
    end = body.find(TASK_SUMMARY_CLOSE)
    if end != -1:
        body = body[:end]
    return body.strip() or text.strip()


def history_to_messages(history: list[dict[str, str]]) -> list[BaseMessage]:
    """Convert stored ``{"role", "content"}`` records to chat messages."""
    messages: list[BaseMessage] = []
    for entry in history:
        if entry["role"] == "ASSISTANT":
            messages.append(AIMessage(content=entry["content"]))
        else:
            messages.append(HumanMessage(content=entry["content"]))
    return messages


class CodeAgent:
    """Runs the model in a tool loop until it emits a task summary."""

    def __init__(
        self,
        llm: BaseChatModel,
        sandbox: SandboxService,
        max_iterations: int = 15,
    ):
        """Initialize the code agent.

        Args:
            llm: Chat model that supports tool calling
            sandbox: Sandbox service the tools execute against
            max_iterations: Model turns before giving up
        """
        self.llm = llm
        self.sandbox = sandbox
        self.max_iterations = max_iterations

    def build_tools(self, sandbox_id: str, state: AgentState) -> list[BaseTool]:
        """Tools bound to one sandbox and one run's state."""

        async def terminal(command: str) -> str:
            try:
                return await self.sandbox.run_command(sandbox_id, command)
            except Exception as e:
                logger.warning("Terminal tool failed", sandbox_id=sandbox_id, error=str(e))
                return f"Command failed: {e}"

        async def create_or_update_files(files: list[dict[str, Any]]) -> str:
            updated = {
                (f["path"] if isinstance(f, dict) else f.path): (
                    f["content"] if isinstance(f, dict) else f.content
                )
                for f in files
            }
            try:
                await self.sandbox.write_files(sandbox_id, updated)
            except Exception as e:
                logger.warning("File write tool failed", sandbox_id=sandbox_id, error=str(e))
                return f"Error: {e}"
            state.files.update(updated)
            return f"Updated files: {', '.join(updated)}"

        async def read_files(files: list[str]) -> str:
            contents = []
            try:
                for path in files:
                    contents.append({"path": path, "content": await self.sandbox.read_file(sandbox_id, path)})
            except Exception as e:
                logger.warning("File read tool failed", sandbox_id=sandbox_id, error=str(e))
                return f"Error: {e}"
            return str(contents)

        return [
            StructuredTool.from_function(
                coroutine=terminal,
                name="terminal",
                description="Use the terminal to run commands",
                args_schema=TerminalInput,
            ),
            StructuredTool.from_function(
                coroutine=create_or_update_files,
                name="createOrUpdateFiles",
                description="Create or update files in the sandbox",
                args_schema=CreateOrUpdateFilesInput,
            ),
            StructuredTool.from_function(
                coroutine=read_files,
                name="readFiles",
                description="Read files from the sandbox",
                args_schema=ReadFilesInput,
            ),
        ]

    async def run(
        self,
        prompt: str,
        sandbox_id: str,
        history: list[BaseMessage] | None = None,
    ) -> AgentResult:
        """Run the agent.

        Args:
            prompt: User request
            sandbox_id: Sandbox the tools operate on
            history: Earlier conversation in chronological order

        Returns:
            AgentResult; ``summary`` is empty if the iteration cap was hit
        """
        state = AgentState()
        tools = self.build_tools(sandbox_id, state)
        tools_by_name = {tool.name: tool for tool in tools}
        llm = self.llm.bind_tools(tools)

        messages: list[BaseMessage] = [
            SystemMessage(content=AGENT_PROMPT),
            *(history or []),
            HumanMessage(content=prompt),
        ]

        iterations = 0
        while iterations < self.max_iterations:
            iterations += 1
            response = await llm.ainvoke(messages)
            messages.append(response)

            summary = extract_task_summary(message_text(response))
            if summary:
                state.summary = summary
                break

            tool_calls = getattr(response, "tool_calls", None) or []
            if not tool_calls:
                messages.append(HumanMessage(content=CONTINUE_PROMPT))
                continue

            for call in tool_calls:
                tool = tools_by_name.get(call["name"])
                if tool is None:
                    output = f"Unknown tool: {call['name']}"
                else:
                    output = await tool.ainvoke(call["args"])
                messages.append(ToolMessage(content=str(output), tool_call_id=call["id"]))

        if not state.summary:
            logger.warning(
                "Agent stopped without task summary",
                sandbox_id=sandbox_id,
                iterations=iterations,
            )
        else:
            logger.info(
                "Agent finished",
                sandbox_id=sandbox_id,
                iterations=iterations,
                files=list(state.files),
            )

        return AgentResult(summary=state.summary, files=state.files, iterations=iterations)
