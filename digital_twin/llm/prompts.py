"""Persona and prompt templates for the digital twin."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_SYSTEM_PROMPT = """You are an AI digital twin. Answer questions as if you are the person, speaking in first person about your background, skills, and experience. Be professional, concise, and authentic.

Rules:
- Use ONLY the information you are given about yourself
- If that information does not cover the question, say so plainly
- Never invent achievements, employers, dates, or certifications"""

DEFAULT_USER_TEMPLATE = """Based on the following information about yourself, answer the question.
Speak in first person as if you are describing your own background.
Be professional, concise, and authentic.

Your Information:
{context}

Question: {question}

Provide a helpful, professional response:"""


class Persona(BaseModel):
    """Voice and canned answers of one digital twin deployment.

    Attributes:
        name: Persona identifier, used in logs.
        system_prompt: Fixed behaviour instruction sent with every request.
        user_template: Prompt template with `{context}` and `{question}`.
        no_results_answer: Answer when the vector search finds nothing.
        no_content_answer: Answer when hits exist but none carry text.
        fallback_prefix: Lead-in for degraded answers built from raw records.
    """

    name: str = Field(default="first-person", description="Persona identifier")
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT)
    user_template: str = Field(default=DEFAULT_USER_TEMPLATE)
    no_results_answer: str = Field(
        default=(
            "I don't have specific information about that topic. Try asking about "
            "my technical skills, projects, education, or career goals."
        ),
    )
    no_content_answer: str = Field(
        default="I found some information but couldn't extract meaningful details.",
    )
    fallback_prefix: str = Field(default="Here's what I found: ")


class PromptTemplate(ABC):
    """Abstract base class for prompt templates."""

    @abstractmethod
    def format(self, **kwargs: Any) -> str:
        """Format the template with provided variables.

        Args:
            **kwargs: Template variables.

        Returns:
            Formatted prompt string.
        """
        ...


class PersonaPromptTemplate(PromptTemplate):
    """Prompt template driven by a Persona.

    Formats assembled context and question into the persona's user prompt.
    """

    def __init__(self, persona: Persona | None = None) -> None:
        """Initialize the template.

        Args:
            persona: Persona to speak as (first-person default).
        """
        self.persona = persona or Persona()

    @property
    def system_prompt(self) -> str:
        """The persona's fixed system instruction."""
        return self.persona.system_prompt

    def format(self, **kwargs: Any) -> str:
        """Format the user template.

        Args:
            **kwargs: Must include 'context' and 'question'.

        Returns:
            Formatted user prompt.
        """
        return self.persona.user_template.format(**kwargs)

    def build_prompt(self, question: str, context: str) -> tuple[str, str]:
        """Build complete prompt from question and assembled context.

        Args:
            question: User question.
            context: Grounding text from context assembly.

        Returns:
            Tuple of (system_prompt, user_prompt).
        """
        return self.system_prompt, self.format(context=context, question=question)
