"""Response models returned by the tool handlers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class TextBlock(BaseModel):
    """One ``{"type": "text", "text": ...}`` content item."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["text"] = "text"
    text: str
    meta: Optional[dict[str, Any]] = Field(default=None, alias="_meta")


class ToolResponse(BaseModel):
    """Result of one tool call.

    Serializes with the MCP field names (``isError``, ``_meta``,
    ``_links``) via :meth:`to_dict`.
    """

    model_config = ConfigDict(populate_by_name=True)

    content: list[TextBlock]
    is_error: Optional[bool] = Field(default=None, alias="isError")
    meta: Optional[dict[str, Any]] = Field(default=None, alias="_meta")
    links: Optional[dict[str, Any]] = Field(default=None, alias="_links")

    @classmethod
    def from_text(
        cls,
        text: str,
        *,
        meta: Optional[dict[str, Any]] = None,
        links: Optional[dict[str, Any]] = None,
        is_error: Optional[bool] = None,
    ) -> "ToolResponse":
        return cls(content=[TextBlock(text=text, meta=meta)], links=links, is_error=is_error)

    @property
    def text(self) -> str:
        """All text blocks joined, for logging and tool errors."""
        return "\n\n".join(block.text for block in self.content)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
