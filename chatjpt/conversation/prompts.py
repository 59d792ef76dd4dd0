"""
Prompt construction for reply generation.

The generator receives one plain-text prompt: the system instruction, a
blank line, the rendered history one message per line, and a trailing
"Assistant:" cue.
"""

from typing import Iterable, List, Sequence

from ..models import Message, MessageRole


class PromptBuilder:
    """
    Renders a message window into the single prompt string a reply
    generator expects.

    Example::

        builder = PromptBuilder("You are helpful.")
        builder.build_prompt([Message(id="1-0", role="user", text="Hi", ts=1)])
        # "You are helpful.\\n\\nUser: Hi\\nAssistant:"
    """

    ASSISTANT_LABEL = "Assistant"
    USER_LABEL = "User"

    def __init__(self, default_system_prompt: str):
        self.default_system_prompt = default_system_prompt

    def select_system_instruction(self, messages: Iterable[Message]) -> str:
        """First system message in the window, else the default instruction."""
        for message in messages:
            if message.role == MessageRole.SYSTEM.value:
                return message.text
        return self.default_system_prompt

    def render_line(self, message: Message) -> str:
        label = (
            self.ASSISTANT_LABEL
            if message.role == MessageRole.ASSISTANT.value
            else self.USER_LABEL
        )
        return f"{label}: {message.text}"

    def render_history(self, messages: Iterable[Message]) -> str:
        return "\n".join(
            self.render_line(m) for m in messages if m.role != MessageRole.SYSTEM.value
        )

    def build_prompt(self, messages: Sequence[Message]) -> str:
        """
        Build the generator input for a context window.

        Args:
            messages: Context window, oldest first

        Returns:
            "{system}\\n\\n{history}\\n{Assistant}:"
        """
        system = self.select_system_instruction(messages)
        history = self.render_history(messages)
        return f"{system}\n\n{history}\n{self.ASSISTANT_LABEL}:"


def prepare_context(window: Sequence[Message], triggering: Message) -> List[Message]:
    """
    Clean a history window and make sure it ends with the triggering message.

    Entries with neither role nor text are dropped. If the freshly appended
    user message is absent from the window (a read that did not observe
    the write yet), it is appended at the end.
    """
    context = [m for m in window if m.role or m.text]
    if not any(m.id == triggering.id for m in context):
        context.append(triggering)
    return context
