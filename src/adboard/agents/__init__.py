"""AI agents for analysis and prompt writing."""

from .base import BaseAgent
from .analyst import AnalysisInput, ProductAnalyst
from .prompt_writer import PromptFormatter, PromptRequest

__all__ = ["BaseAgent", "AnalysisInput", "ProductAnalyst", "PromptFormatter", "PromptRequest"]
