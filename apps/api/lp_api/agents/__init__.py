"""Code generation agent and its follow-up completions."""

from lp_api.agents.code_agent import AgentResult, CodeAgent
from lp_api.agents.summaries import SummaryWriter

__all__ = ["AgentResult", "CodeAgent", "SummaryWriter"]
