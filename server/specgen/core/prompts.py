# specgen/core/prompts.py
"""
Prompts used by the specification pipeline.

Goals:
- Keep the (long) system prompt in a markdown file so it can be edited without code changes.
- Strip the markdown noise from it once and cache the result for the process lifetime.
- Build a short, stable user prompt from the validated request.
"""

import logging
import re
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from specgen.core.errors import PromptUnavailable
from specgen.models import GenerateRequest
from specgen.utils.config import DEFAULT_PROMPTS_PATH

logger = logging.getLogger(__name__)

MIN_PROMPT_LENGTH = 100
MAX_PROMPT_LENGTH = 50000
REQUIRED_SECTIONS = ("technical specification", "json", "requirements", "architecture")
DEFAULT_LANGUAGE = "it"


def process_prompt_content(content: str) -> str:
    """
    Turn the markdown prompt into plain instructions:
    headings and fenced code blocks removed, list markers as bullets,
    bold markers dropped, runs of blank lines collapsed.
    """
    text = re.sub(r"^#{1,3} .*$", "", content, flags=re.MULTILINE)
    text = re.sub(r"```[\s\S]*?```", "", text)
    text = re.sub(r"^\s*[-*] ", "• ", text, flags=re.MULTILINE)
    text = re.sub(r"\*\*(.*?)\*\*", r"\1", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def validate_prompt(prompt: Any) -> str:
    if not isinstance(prompt, str) or not prompt:
        raise PromptUnavailable("Invalid prompt content")
    if len(prompt) < MIN_PROMPT_LENGTH:
        raise PromptUnavailable("Prompt too short")
    if len(prompt) > MAX_PROMPT_LENGTH:
        raise PromptUnavailable("Prompt too long")
    lower = prompt.lower()
    missing = [s for s in REQUIRED_SECTIONS if s not in lower]
    if missing:
        raise PromptUnavailable(f"Prompt missing required sections: {', '.join(missing)}")
    return prompt


def load_system_prompt_text(path: Optional[str] = None) -> str:
    """Raw markdown of the system prompt (defaults to the packaged prompt file)."""
    return Path(path or DEFAULT_PROMPTS_PATH).read_text(encoding="utf-8")


class SystemPromptLoader:
    """
    Reads the system prompt through `load_text` on first use and keeps the
    processed text until the process restarts.
    """

    def __init__(self, load_text: Callable[[], str]):
        self._load_text = load_text
        self._cached: Optional[str] = None

    @classmethod
    def from_path(cls, path: str) -> "SystemPromptLoader":
        return cls(lambda: load_system_prompt_text(path))

    def get_system_prompt(self) -> str:
        if self._cached is not None:
            return self._cached
        try:
            raw = self._load_text()
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to load system prompt: %s", e)
            raise PromptUnavailable("System prompt not available") from e

        prompt = validate_prompt(process_prompt_content(raw) if isinstance(raw, str) else raw)
        self._cached = prompt
        logger.info("System prompt loaded and cached (length=%d)", len(prompt))
        return prompt

    def clear(self):
        self._cached = None


def build_user_prompt(request: GenerateRequest, template: Optional[Dict[str, Any]] = None) -> str:
    prompt = "Please analyze this feature description and generate a complete technical specification:\n\n"
    prompt += f"Description: {request.description}\n\n"

    if request.language and request.language != DEFAULT_LANGUAGE:
        prompt += f"Language: {request.language}\n\n"

    if request.template and template:
        common = ", ".join(template.get("commonRequirements") or [])
        prompt += f"Template Context: This is a {template.get('name')} feature\n"
        prompt += f"Template Description: {template.get('description')}\n"
        prompt += f"Common Requirements: {common}\n\n"

    if request.complexity:
        prompt += f"Expected Complexity: {request.complexity}\n\n"

    if request.include_tests:
        prompt += "Testing: Include comprehensive test cases and edge case scenarios\n\n"

    prompt += "Please return a valid JSON response following the exact schema specified in your instructions."
    return prompt
