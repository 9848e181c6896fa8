from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from jumbler.models.session_models import MemberAttributesModel


class ActionRequestModel(BaseModel):
    """One message received on the session WebSocket."""

    action: str
    data: Dict[str, Any] = Field(default_factory=dict)


class CodeRequestModel(BaseModel):
    code: str


class JoinRequestModel(CodeRequestModel):
    member: MemberAttributesModel = Field(default_factory=MemberAttributesModel)


class UpdateConfigRequestModel(CodeRequestModel):
    config: Dict[str, Any] = Field(default_factory=dict)


class ErrorModel(BaseModel):
    kind: str
    message: str


class ActionResponseModel(BaseModel):
    action: str
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[ErrorModel] = None
