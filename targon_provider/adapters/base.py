"""
ProviderAdapter Protocol - defines the contract for chat provider adapters.

This is the WHAT (interface), not the HOW (implementation).
See targon.py for the concrete implementation.
"""

from typing import AsyncIterator, Protocol, Sequence, Union

from targon_provider.adapters.schema import Message, ModelDescriptor, StreamFragment


class ProviderAdapter(Protocol):
    """
    Contract for chat provider adapters.

    Implementations must provide:
    - Model resolution (get_model)
    - Streaming message creation (create_message)
    """

    def get_model(self) -> ModelDescriptor:
        """
        Return the model this adapter will send requests to.

        Resolution never fails: unknown or missing ids fall back to the
        provider's default model.
        """
        ...

    def create_message(
        self,
        system_prompt: str,
        messages: Sequence[Union[Message, dict]],
    ) -> AsyncIterator[StreamFragment]:
        """
        Stream a response for a conversation.

        Args:
            system_prompt: System prompt prepended to the conversation
            messages: Ordered conversation messages (role + content)

        Yields:
            Text fragments as they arrive, then one final summary fragment

        Raises:
            Exception on provider error (partial output is not retracted)
        """
        ...
