"""
Chain Tutor - System Prompts
Conversation and interpretation instructions for the model.
"""

from typing import Optional

from capabilities.registry import get_function_instructions
from conversation.topics import DEFAULT_TOPIC, TopicContext

WELCOME_MESSAGE = "Welcome to Chain Tutor! What would you like to learn about DeFi today?"

FUNCTION_HINT = (
    "If the user asks about blockchain data or operations that require Web3 functions, "
    "inform them that you'll use functions to help answer their question."
)


def build_conversation_prompt(topic: Optional[TopicContext] = None) -> str:
    """
    System prompt for an ordinary conversation turn.

    Args:
        topic: Current lesson topic (defaults to the introduction)

    Returns:
        Prompt text ending with the function-call instructions
    """
    topic = topic or DEFAULT_TOPIC
    parts = [
        f"You are a helpful Web3 educator specializing in DeFi topics. "
        f"You're currently teaching about {topic.name}.",
        topic.context_line(),
    ]
    if topic.focus:
        parts.append(topic.focus)
    if topic.guidance:
        bullets = "\n".join(f"- {line}" for line in topic.guidance)
        parts.append(f"When explaining:\n{bullets}")
    parts.append(
        "When you receive function results, interpret them and respond in a natural, "
        f"conversational way that relates the data back to the {topic.name} concepts being taught."
    )
    parts.append(FUNCTION_HINT)
    parts.append(get_function_instructions())
    return "\n\n".join(parts)


def build_interpretation_prompt(function_name: str, topic: Optional[TopicContext] = None) -> str:
    """System instruction sent with a function result for interpretation."""
    topic = topic or DEFAULT_TOPIC
    return (
        f"You are a helpful Web3 educator specializing in {topic.name} topics.\n\n"
        f"You've just received the result of a {function_name} function call. Interpret this "
        f"data and explain it to the user in the context of {topic.name}.\n\n"
        f"{topic.context_line()}\n\n"
        "Respond in a natural, conversational way that:\n"
        "1. Explains what the data means in plain language\n"
        f"2. Relates it back to the {topic.name} concepts being taught\n"
        "3. Provides educational context about why this information is important\n\n"
        "Be concise but informative. Don't just repeat the raw data - explain its "
        "significance in the context of the current lesson."
    )
