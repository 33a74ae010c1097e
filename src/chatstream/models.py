"""Structural models for decoded chat-completion stream chunks.

Only the fields the parser acts on are declared. Providers attach plenty
of extra keys (``id``, ``model``, ``system_fingerprint``...) which are
ignored. Every field is optional so a partially populated chunk still
validates.
"""

import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class Usage(BaseModel):
    """Token accounting reported by the provider, usually on the last chunk."""

    model_config = ConfigDict(frozen=True, extra="allow")

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class FunctionCallFragment(BaseModel):
    """Legacy ``delta.function_call`` piece."""

    name: str | None = None
    arguments: str | None = None


class ToolCallFunction(BaseModel):
    name: str | None = None
    arguments: str | None = None


class ToolCallFragment(BaseModel):
    """One entry of ``delta.tool_calls``.

    ``index`` identifies which tool call the fragment belongs to; the
    remaining fields arrive only on some fragments.
    """

    index: int | None = None
    id: str | None = None
    type: str | None = None
    function: ToolCallFunction | None = None


class Delta(BaseModel):
    role: str | None = None
    content: str | None = None
    function_call: FunctionCallFragment | None = None
    tool_calls: list[ToolCallFragment] | None = None


class Choice(BaseModel):
    index: int | None = None
    delta: Delta = Field(default_factory=Delta)
    finish_reason: str | None = None

    @field_validator("delta", mode="before")
    @classmethod
    def _null_delta(cls, value):
        return {} if value is None else value


class ChunkRecord(BaseModel):
    """A single decoded ``data:`` payload."""

    choices: list[Choice] = Field(default_factory=list)
    usage: Usage | None = None

    @field_validator("choices", mode="before")
    @classmethod
    def _null_choices(cls, value):
        return [] if value is None else value

    @field_validator("usage", mode="wrap")
    @classmethod
    def _drop_invalid_usage(cls, value, handler):
        # A bad usage object must not cost the choices on the same line.
        try:
            return handler(value)
        except ValidationError as e:
            logger.debug(f"Ignoring invalid usage: {e.error_count()} error(s) in {value!r}")
            return None
