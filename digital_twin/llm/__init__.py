"""LLM client module."""

from digital_twin.llm.client import LLMClient, OpenAICompatibleClient
from digital_twin.llm.models import GenerationResult, Message, Role
from digital_twin.llm.prompts import Persona, PersonaPromptTemplate, PromptTemplate

__all__ = [
    "GenerationResult",
    "LLMClient",
    "Message",
    "OpenAICompatibleClient",
    "Persona",
    "PersonaPromptTemplate",
    "PromptTemplate",
    "Role",
]
