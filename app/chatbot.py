"""Portfolio question answering backed by an LLM."""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol

from app.config import Settings
from app.store import PortfolioStore

LOGGER = logging.getLogger(__name__)

TRUNCATION_MARKER = "...[truncated]"
NO_CHOICES_REPLY = "I'm sorry, I couldn't generate a response. Please try again."
DISABLED_REPLY = (
    "Sorry, the chatbot is currently unavailable. "
    "Please ensure OPENAI_API_KEY is configured."
)

PROMPT_TEMPLATE = """You are {assistant}, a professional portfolio assistant for {owner}. \
You have access to {owner}'s portfolio data as MongoDB documents covering projects, \
work experience, education, skills, resume and hobbies.

CURRENT DATE: {current_date}

AUTHORS: name, job title, email, LinkedIn URL, GitHub URL and hobbies.
PROJECTS: names, descriptions, technologies used and repository links when available.
EDUCATION: university name, field of study, start and end dates.
RESUMES: contact information, work experience, skills and education.

PORTFOLIO DATA:
{context}

USER QUESTION: {question}

Instructions:
- Answer questions about {owner}'s professional background, projects, skills and experience
- Be conversational but professional
- Do not assume knowledge of languages or technologies not referenced in the portfolio
- For specific projects, include the technologies used
- For skills or experience, reference concrete examples from the work history, using bullet points where it helps
- If the question is unrelated to the portfolio, politely redirect to professional topics
- Never invent information
- Keep responses concise but informative

Separate your response with newline characters where appropriate.
"""


class CompletionClient(Protocol):
    model: str

    def complete(self, prompt: str) -> Optional[str]: ...


def build_context(results: Dict[str, List[Dict[str, Any]]], max_chars: int) -> str:
    """Serialize search results, truncating to ``max_chars`` characters."""

    context = json.dumps(results, indent=2, default=str)
    if len(context) > max_chars:
        LOGGER.info("context truncated", extra={"detail": {"max_chars": max_chars}})
        return context[:max_chars] + TRUNCATION_MARKER
    return context


class ChatbotService:
    """Answers free-text questions using matching portfolio documents as context."""

    def __init__(
        self,
        store: PortfolioStore,
        llm: CompletionClient,
        settings: Settings,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._llm = llm
        self._settings = settings
        self._now = now

    @property
    def model(self) -> str:
        return self._llm.model

    def build_prompt(self, query: str) -> str:
        results = self._store.search_all(query)
        for collection, documents in results.items():
            LOGGER.info(
                "search results",
                extra={"detail": {"collection": collection, "count": len(documents)}},
            )
        context = build_context(results, self._settings.context_max_chars)
        return PROMPT_TEMPLATE.format(
            assistant=self._settings.assistant_name,
            owner=self._settings.portfolio_owner,
            current_date=self._now().strftime("%Y-%m-%d %H:%M:%S"),
            context=context,
            question=query,
        )

    def answer(self, query: str) -> str:
        prompt = self.build_prompt(query)
        reply = self._llm.complete(prompt)
        if reply is None:
            LOGGER.warning("no choices returned", extra={"model": self.model})
            return NO_CHOICES_REPLY
        LOGGER.info("chat completion received", extra={"detail": {"characters": len(reply)}})
        return reply
