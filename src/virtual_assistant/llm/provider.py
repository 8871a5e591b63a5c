"""Language model provider interface."""

from abc import ABC, abstractmethod


class LLMProviderError(Exception):
    """Raised when the model could not be reached or answered with an error."""


class LLMProvider(ABC):
    """Abstract base class for assistant language model providers."""

    name: str = "base"

    @abstractmethod
    def generate(self, command: str, assistant_name: str, user_name: str) -> str | None:
        """Ask the model to classify and answer a user command.

        Args:
            command: The user's command text
            assistant_name: Persona name the assistant answers as
            user_name: Name of the user (used in the prompt)

        Returns:
            The model's raw reply text, or None if it produced none

        Raises:
            LLMProviderError: On transport failure, timeout or an error status
        """
        pass
