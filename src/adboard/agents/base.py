"""Base agent abstraction."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, Sequence, TypeVar

from ..services.gemini import GeminiClient

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseAgent(ABC, Generic[InputT, OutputT]):
    """Abstract base class for AI agents.

    Provides shared functionality for agents that use Gemini for generation.
    Subclasses must implement the `run` method and define their prompts.
    """

    def __init__(self, client: Optional[GeminiClient] = None) -> None:
        """Initialize the agent.

        Args:
            client: GeminiClient instance. Created if not provided.
        """
        self._client = client or GeminiClient()
        self._logger = logging.getLogger(f"{__name__}.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the agent's name."""
        ...

    @property
    @abstractmethod
    def system_prompt(self) -> str:
        """Return the system prompt for this agent."""
        ...

    @abstractmethod
    async def run(self, input_data: InputT) -> OutputT:
        """Execute the agent's main task.

        Args:
            input_data: Input data for the agent.

        Returns:
            Structured output from the agent.
        """
        ...

    async def _create_message(
        self,
        contents: Sequence[Any],
        system_prompt: Optional[str] = None,
        response_mime_type: Optional[str] = None,
        response_schema: Optional[Any] = None,
    ) -> str:
        """Create a message using the agent's client and system prompt.

        Args:
            contents: Content parts to send.
            system_prompt: Overrides the agent's system prompt for this call.
            response_mime_type: Optional response MIME type.
            response_schema: Optional structured-output schema.

        Returns:
            The text content of the model's response.
        """
        self._logger.debug(f"Creating message with {len(contents)} content parts")

        try:
            response = await self._client.generate_text(
                contents=contents,
                system_instruction=system_prompt or self.system_prompt,
                response_mime_type=response_mime_type,
                response_schema=response_schema,
            )
            self._logger.debug(f"Received response of length: {len(response)}")
            return response

        except Exception as e:
            self._logger.error(f"Error creating message: {e}")
            raise
