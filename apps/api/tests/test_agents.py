"""Tests for the code agent and summary completions."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, HumanMessage, ToolMessage

from lp_api.agents import CodeAgent, SummaryWriter
from lp_api.agents.code_agent import (
    extract_task_summary,
    history_to_messages,
    message_text,
)
from lp_api.agents.prompts import DEFAULT_FRAGMENT_TITLE, DEFAULT_RESPONSE


def scripted_llm(*responses):
    """Chat model stub whose tool-bound copy returns ``responses`` in order."""
    bound = MagicMock()
    bound.ainvoke = AsyncMock(side_effect=list(responses))
    llm = MagicMock()
    llm.bind_tools.return_value = bound
    return llm, bound


@pytest.fixture
def sandbox():
    sandbox = MagicMock()
    sandbox.run_command = AsyncMock(return_value="ok")
    sandbox.write_files = AsyncMock()
    sandbox.read_file = AsyncMock(return_value="<h1>old</h1>")
    return sandbox


class TestHelpers:
    """Test message helpers."""

    def test_extract_task_summary(self):
        text = "Done!\n<task_summary>\nCreated a neon page with 4 links\n</task_summary>"
        assert extract_task_summary(text) == "Created a neon page with 4 links"

    def test_extract_without_closing_tag(self):
        assert extract_task_summary("<task_summary> Built it") == "Built it"

    def test_extract_without_marker(self):
        assert extract_task_summary("still working") is None

    def test_message_text_flattens_blocks(self):
        message = AIMessage(content=[{"type": "text", "text": "a"}, "b", {"type": "image"}])
        assert message_text(message) == "ab"

    def test_history_to_messages(self):
        messages = history_to_messages(
            [{"role": "USER", "content": "hi"}, {"role": "ASSISTANT", "content": "hello"}]
        )
        assert isinstance(messages[0], HumanMessage)
        assert isinstance(messages[1], AIMessage)


class TestCodeAgent:
    """Test the agent tool loop."""

    @pytest.mark.asyncio
    async def test_writes_files_and_stops_at_summary(self, sandbox):
        llm, bound = scripted_llm(
            AIMessage(
                content="",
                tool_calls=[
                    {
                        "name": "createOrUpdateFiles",
                        "args": {"files": [{"path": "index.html", "content": "<h1>Hi</h1>"}]},
                        "id": "call-1",
                    }
                ],
            ),
            AIMessage(content="<task_summary>Created a page</task_summary>"),
        )
        agent = CodeAgent(llm, sandbox, max_iterations=5)

        result = await agent.run("make a page", "sbx-1")

        assert result.completed
        assert result.summary == "Created a page"
        assert result.files == {"index.html": "<h1>Hi</h1>"}
        assert result.iterations == 2
        sandbox.write_files.assert_awaited_once_with("sbx-1", {"index.html": "<h1>Hi</h1>"})

        tool_messages = [
            m for m in bound.ainvoke.call_args_list[1].args[0] if isinstance(m, ToolMessage)
        ]
        assert [m.tool_call_id for m in tool_messages] == ["call-1"]

    @pytest.mark.asyncio
    async def test_terminal_and_read_tools(self, sandbox):
        llm, bound = scripted_llm(
            AIMessage(
                content="",
                tool_calls=[
                    {"name": "terminal", "args": {"command": "ls"}, "id": "c1"},
                    {"name": "readFiles", "args": {"files": ["index.html"]}, "id": "c2"},
                    {"name": "nope", "args": {}, "id": "c3"},
                ],
            ),
            AIMessage(content="<task_summary>Checked</task_summary>"),
        )
        agent = CodeAgent(llm, sandbox)

        await agent.run("check", "sbx-1")

        sandbox.run_command.assert_awaited_once_with("sbx-1", "ls")
        sandbox.read_file.assert_awaited_once_with("sbx-1", "index.html")
        tool_messages = [
            m for m in bound.ainvoke.call_args_list[1].args[0] if isinstance(m, ToolMessage)
        ]
        assert [m.tool_call_id for m in tool_messages] == ["c1", "c2", "c3"]
        assert "Unknown tool" in tool_messages[2].content

    @pytest.mark.asyncio
    async def test_tool_errors_are_returned_to_model(self, sandbox):
        sandbox.write_files.side_effect = RuntimeError("disk full")
        llm, bound = scripted_llm(
            AIMessage(
                content="",
                tool_calls=[
                    {
                        "name": "createOrUpdateFiles",
                        "args": {"files": [{"path": "index.html", "content": "x"}]},
                        "id": "c1",
                    }
                ],
            ),
            AIMessage(content="<task_summary>Tried</task_summary>"),
        )
        agent = CodeAgent(llm, sandbox)

        result = await agent.run("make", "sbx-1")

        assert result.files == {}
        tool_message = next(
            m for m in bound.ainvoke.call_args_list[1].args[0] if isinstance(m, ToolMessage)
        )
        assert "disk full" in tool_message.content

    @pytest.mark.asyncio
    async def test_iteration_cap_without_summary(self, sandbox):
        llm, bound = scripted_llm(*[AIMessage(content="thinking...") for _ in range(3)])
        agent = CodeAgent(llm, sandbox, max_iterations=3)

        result = await agent.run("make", "sbx-1")

        assert not result.completed
        assert result.iterations == 3
        assert bound.ainvoke.await_count == 3

    @pytest.mark.asyncio
    async def test_history_precedes_prompt(self, sandbox):
        llm, bound = scripted_llm(AIMessage(content="<task_summary>ok</task_summary>"))
        agent = CodeAgent(llm, sandbox)

        await agent.run("now blue", "sbx-1", [HumanMessage(content="first")])

        messages = bound.ainvoke.call_args.args[0]
        assert [m.content for m in messages[1:3]] == ["first", "now blue"]


class TestSummaryWriter:
    """Test the small follow-up completions."""

    @staticmethod
    def writer(*contents):
        llm = MagicMock()
        llm.ainvoke = AsyncMock(side_effect=[AIMessage(content=c) for c in contents])
        return SummaryWriter(llm)

    @pytest.mark.asyncio
    async def test_fragment_title(self):
        assert await self.writer('"Neon Links"').fragment_title("s") == "Neon Links"
        assert await self.writer("  ").fragment_title("s") == DEFAULT_FRAGMENT_TITLE

    @pytest.mark.asyncio
    async def test_response_message(self):
        assert await self.writer("Your page is live").response_message("s") == "Your page is live"
        assert await self.writer("").response_message("s") == DEFAULT_RESPONSE

    @pytest.mark.asyncio
    async def test_project_name(self):
        assert await self.writer("Chef Anna Links").project_name("s") == "chef-anna-links"

    @pytest.mark.asyncio
    async def test_degenerate_project_name_falls_back(self):
        with patch("lp_api.agents.summaries.random_word_slug", return_value="misty-harbor"):
            assert await self.writer("!!").project_name("s") == "misty-harbor"
            assert await self.writer("untitled page").project_name("s") == "misty-harbor"
