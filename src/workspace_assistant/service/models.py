"""Data models for the service layer."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ChatRequest(BaseModel):
    """Body of ``POST /assistant/chat``.

    Fields are optional at the schema level so that missing values are
    reported as an ActionableError (400) by the endpoint rather than as a
    framework validation error.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    message: str | None = None
    workspace_id: str | None = None
    workspace_context: dict[str, Any] | None = None
    conversation_history: list[Any] | None = None
    member_id: str | None = None
    confirmation_token: str | None = None


class WorkspaceMember(BaseModel):
    """A user's membership in a workspace."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    member_id: str = Field(..., validation_alias="id")
    workspace_id: str
    user_id: str
    role: str | None = None
