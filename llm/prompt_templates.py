"""
Prompt Templates for the sales assistant.

Manages the system prompt, the per-turn user prompt and the fixed
replies used when no generation call is made.
"""

from enum import Enum
from typing import Optional


class PromptType(Enum):
    """Types of prompts."""
    SALES_FLOW = "sales_flow"
    KNOWLEDGE = "knowledge"


class CannedReply:
    """Fixed replies. The reply language is Roman Urdu with light English."""

    CLARIFICATION = "Maaf kijiye, yeh clear nahi hua. Aap kis cheez ke bare mein baat kar rahe hain?"
    NO_KNOWLEDGE = (
        "Is info ke liye thori clarity chahiye hogi. "
        "Aap kis policy ya company detail ke bare mein pooch rahe hain?"
    )
    NEXT_STEP = "Samajh gaya. Aapka next step kya hona chahiye?"
    APOLOGY = "Sorry, something went wrong. Please try again."
    VOICE_NOTE = (
        "Voice message receive ho gaya hai, please apna message text mein likh dein "
        "taake main theek se help kar sakun."
    )
    UNSUPPORTED_CONTENT = "Yeh message type abhi support nahi hai, please apna sawal text mein likh dein."


class PromptTemplates:
    """
    Manages prompt templates for the assistant.

    Templates are designed for an IT consulting sales desk selling
    websites, WhatsApp bots and automation.
    """

    BASE_PROMPT = """You are a human customer service rep for {brand_name}, an IT consulting company.
You provide software, websites, WhatsApp bots, and automation solutions.

Guidelines:
- Be calm, helpful, and direct; never pushy
- Language must be Roman Urdu with light English only
- Default reply is 1-2 short lines. Longer only if truly needed
- Ask only one focused question at a time, on its own line
- Never repeat a question if its answer is already in slots
- Use lastQuestionType to interpret short replies
- Acknowledge topic shifts in one line, then continue
- Before confirming any booking, make sure name, phone number, timeline and budget are known
- Never mention sources, tools, or internal state
- Always respond with plain text"""

    SALES_FLOW_RULES = """Continue the sales conversation. Do not answer policy or company-info facts in this turn."""

    KNOWLEDGE_RULES = """Answer ONLY from the KNOWLEDGE block below.
- Put each fact on its own line
- End every factual line with the marker of the fragment it came from, e.g. [chunk:policies]
- If the knowledge does not answer the question, say you need more detail"""

    USER_PROMPTS = {
        "sales_flow": """Customer message: {message}""",
        "knowledge": """KNOWLEDGE:
{context}

Customer message: {message}""",
    }

    @classmethod
    def build_system_prompt(
        cls,
        state_summary: str,
        history: str,
        history_window: int = 15,
        prompt_type: PromptType = PromptType.SALES_FLOW,
        brand_name: str = "Consulting Desk",
        next_question: Optional[str] = None,
    ) -> str:
        """
        Build the per-turn system prompt.

        Args:
            state_summary: One-line conversation state summary
            history: Rolling transcript
            history_window: Number of turns in the transcript
            prompt_type: Sales flow or knowledge turn
            brand_name: Company name for the persona
            next_question: Planner's pending question, if any

        Returns:
            System prompt text
        """
        rules = cls.KNOWLEDGE_RULES if prompt_type == PromptType.KNOWLEDGE else cls.SALES_FLOW_RULES
        parts = [
            cls.BASE_PROMPT.format(brand_name=brand_name),
            rules,
            f"STATE: {state_summary}",
        ]
        if next_question:
            parts.append(f"NEXT QUESTION (ask only if it fits): {next_question}")
        parts.append(f"HISTORY (last {history_window}):\n{history}")
        return "\n\n".join(parts)

    @classmethod
    def build_user_prompt(cls, message: str, context: Optional[str] = None) -> str:
        """Build the user prompt, with knowledge when context is given."""
        if context:
            return cls.USER_PROMPTS["knowledge"].format(message=message, context=context)
        return cls.USER_PROMPTS["sales_flow"].format(message=message)
