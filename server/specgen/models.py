import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from specgen.utils.config import MAX_DESCRIPTION_LENGTH, MIN_DESCRIPTION_LENGTH

Language = Literal["it", "en"]
Complexity = Literal["simple", "medium", "complex"]
TemplateId = Literal["crud", "auth", "ecommerce", "api", "dashboard", "notification", "file-upload"]

_UNSAFE_CHARS = re.compile(r"[^\w\s.,!?;:()\\-]")


def clean_description(text: str) -> str:
    # collapse whitespace, drop anything outside basic punctuation
    text = re.sub(r"\s+", " ", text.strip())
    return _UNSAFE_CHARS.sub("", text).strip()


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    description: str
    language: Language = "it"
    template: Optional[TemplateId] = None
    complexity: Complexity = "medium"
    include_tests: bool = Field(False, alias="includeTests")

    @field_validator("description")
    @classmethod
    def _description_bounds(cls, v: str, info: ValidationInfo) -> str:
        ctx = info.context or {}
        min_len = ctx.get("min_description_length", MIN_DESCRIPTION_LENGTH)
        max_len = ctx.get("max_description_length", MAX_DESCRIPTION_LENGTH)
        stripped = v.strip()
        if len(stripped) < min_len:
            raise ValueError(f"Description must be at least {min_len} characters long")
        if len(stripped) > max_len:
            raise ValueError(f"Description must not exceed {max_len} characters")
        cleaned = clean_description(stripped)
        if not re.search(r"[A-Za-z]", cleaned):
            raise ValueError("Description must contain at least one letter")
        return cleaned


class GenerationMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tokens_used: int = Field(0, alias="tokensUsed")
    model: str
    attempts: int = 0
    fallback: bool = False
    request_id: str = Field(..., alias="requestId")
    processing_time_ms: int = Field(0, alias="processingTime")
    warnings: List[str] = Field(default_factory=list)


class GenerationResult(BaseModel):
    specification: Dict[str, Any]
    meta: GenerationMeta

    def to_response(self) -> Dict[str, Any]:
        return {
            "specification": self.specification,
            "meta": self.meta.model_dump(by_alias=True),
        }
