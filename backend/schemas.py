"""
schemas.py — Pydantic shapes shared by the memory extraction job.
Chat message parts are validated into a closed set of variants when a conversation
is loaded, and the LLM extraction result is validated against MemoryExtractionOutput.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


EntityType = Literal["preference", "fact", "goal", "constraint", "style", "person"]
MemoryScope = Literal["user", "workspace"]


# ── Chat messages ─────────────────────────────────────────────────
def _none_to_empty(v):
    # Interrupted streams can leave a part with "text": null
    return "" if v is None else v


class TextPart(BaseModel):
    type: Literal["text"]
    text: str = ""

    @field_validator("text", mode="before")
    @classmethod
    def null_text_is_empty(cls, v):
        return _none_to_empty(v)


class ReasoningPart(BaseModel):
    type: Literal["reasoning"]
    text: str = ""

    @field_validator("text", mode="before")
    @classmethod
    def null_text_is_empty(cls, v):
        return _none_to_empty(v)


class FilePart(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["file"]
    media_type: Optional[str] = Field(default=None, alias="mediaType")
    url: Optional[str] = None
    filename: Optional[str] = None


class ToolCallPart(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["tool-call"]
    tool_name: Optional[str] = Field(default=None, alias="toolName")
    tool_call_id: Optional[str] = Field(default=None, alias="toolCallId")
    input: Any = None


class ToolResultPart(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["tool-result"]
    tool_name: Optional[str] = Field(default=None, alias="toolName")
    tool_call_id: Optional[str] = Field(default=None, alias="toolCallId")
    output: Any = None


class OtherPart(BaseModel):
    """Any part type the extraction job has no use for (step markers, sources, data parts)."""
    type: Literal["other"]
    original_type: str


MessagePart = Annotated[
    Union[TextPart, ReasoningPart, FilePart, ToolCallPart, ToolResultPart, OtherPart],
    Field(discriminator="type"),
]


class ChatMessage(BaseModel):
    id: Optional[str] = None
    role: str
    parts: list[MessagePart] = Field(default_factory=list)


_PASSTHROUGH_PART_TYPES = {"text", "reasoning", "file", "tool-call", "tool-result"}


def _normalize_part(raw: dict) -> dict:
    part_type = raw.get("type")
    if part_type in _PASSTHROUGH_PART_TYPES:
        return raw
    if isinstance(part_type, str) and (part_type.startswith("tool-") or part_type == "dynamic-tool"):
        # Typed tool parts carry both the call and, once finished, its output
        tool_name = raw.get("toolName") or (part_type[len("tool-"):] if part_type != "dynamic-tool" else None)
        normalized = {
            "toolName": tool_name,
            "toolCallId": raw.get("toolCallId"),
        }
        if "output" in raw or raw.get("state") == "output-available":
            return {"type": "tool-result", "output": raw.get("output"), **normalized}
        return {"type": "tool-call", "input": raw.get("input"), **normalized}
    return {"type": "other", "original_type": str(part_type)}


def parse_messages(raw_messages) -> list[ChatMessage]:
    """Validate a conversation's stored JSON messages.

    Raises ValueError (pydantic.ValidationError) on payloads that are not a list of
    messages.
    """
    if raw_messages is None:
        return []
    if not isinstance(raw_messages, list):
        raise ValueError(f"messages must be a list, got {type(raw_messages).__name__}")

    messages = []
    for raw in raw_messages:
        if not isinstance(raw, dict):
            raise ValueError(f"message must be an object, got {type(raw).__name__}")
        data = dict(raw)
        parts = data.get("parts")
        if parts is None and isinstance(data.get("content"), str):
            # Older rows stored plain {role, content}
            parts = [{"type": "text", "text": data["content"]}]
        data["parts"] = [_normalize_part(p) if isinstance(p, dict) else p for p in (parts or [])]
        messages.append(ChatMessage.model_validate(data))
    return messages


# ── Extraction output ─────────────────────────────────────────────
class NewMemory(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    entity_type: EntityType = Field(alias="entityType")
    entity_name: str = Field(alias="entityName")
    observation: str
    scope: MemoryScope


class MemoryUpdate(BaseModel):
    id: str
    observation: str


class MemoryExtractionOutput(BaseModel):
    new: list[NewMemory] = Field(default_factory=list)
    updates: list[MemoryUpdate] = Field(default_factory=list)
    deletes: list[str] = Field(default_factory=list)
