"""Small completions derived from the agent's task summary."""

import structlog
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from lp_api.agents.code_agent import message_text
from lp_api.agents.prompts import (
    DEFAULT_FRAGMENT_TITLE,
    DEFAULT_RESPONSE,
    FRAGMENT_TITLE_PROMPT,
    PROJECT_NAME_PROMPT,
    RESPONSE_PROMPT,
)
from lp_api.db.models.project import PLACEHOLDER_NAME_PREFIX
from lp_api.deployment.naming import random_word_slug, to_kebab_case

logger = structlog.get_logger()

MIN_PROJECT_NAME_LENGTH = 3


class SummaryWriter:
    """Turns a task summary into a title, a reply and a project name."""

    def __init__(self, llm: BaseChatModel):
        self.llm = llm

    async def _complete(self, system_prompt: str, summary: str) -> str:
        response = await self.llm.ainvoke(
            [SystemMessage(content=system_prompt), HumanMessage(content=summary)]
        )
        return message_text(response).strip()

    async def fragment_title(self, summary: str) -> str:
        title = await self._complete(FRAGMENT_TITLE_PROMPT, summary)
        return title.strip("\"'") or DEFAULT_FRAGMENT_TITLE

    async def response_message(self, summary: str) -> str:
        return await self._complete(RESPONSE_PROMPT, summary) or DEFAULT_RESPONSE

    async def project_name(self, summary: str) -> str:
        """Kebab-case project name, falling back to a random slug."""
        name = to_kebab_case(await self._complete(PROJECT_NAME_PROMPT, summary))
        if len(name) < MIN_PROJECT_NAME_LENGTH or name.startswith(PLACEHOLDER_NAME_PREFIX.rstrip("-")):
            fallback = random_word_slug()
            logger.info("Degenerate project name, using random slug", name=name, fallback=fallback)
            return fallback
        return name
