"""Pydantic models for request and response bodies of the HTTP surface."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from dynaform.models.field_definition import FormSchema
from dynaform.models.field_kind import FieldKind


class AdminSessionRequest(BaseModel):
    api_key: str = Field(validation_alias=AliasChoices("api_key", "apiKey"))
    subject: str = "admin"


class AdminSessionOut(BaseModel):
    token: str
    subject: str
    issued_at: str
    expires_at: str


class EditorCreate(BaseModel):
    title: str = ""
    description: str = ""
    fields: List[Dict[str, Any]] = Field(default_factory=list)
    is_active: bool = Field(default=True, validation_alias=AliasChoices("isActive", "is_active"))


class FieldCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    kind: FieldKind = Field(default=FieldKind.TEXT, validation_alias=AliasChoices("type", "kind"))
    label: str = ""
    local_name: str = Field(default="", validation_alias=AliasChoices("name", "localName", "local_name"))
    required: bool = False
    options: List[str] = Field(default_factory=list)
    position: Optional[int] = None


class MoveRequest(BaseModel):
    position: int


class BranchRequest(BaseModel):
    fields: List[Dict[str, Any]] = Field(default_factory=list)


class CompileRequest(BaseModel):
    form_schema: FormSchema = Field(validation_alias=AliasChoices("schema", "form_schema"))
    selection: Dict[str, str] = Field(default_factory=dict)


class FillSessionCreate(BaseModel):
    form_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("formId", "form_id"))
    form_schema: FormSchema = Field(validation_alias=AliasChoices("schema", "form_schema"))


class SelectionRequest(BaseModel):
    name: str
    option: Optional[str] = None


class ValuesRequest(BaseModel):
    values: Dict[str, Any] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    valid: bool
    errors: Dict[str, str]


__all__ = [
    "AdminSessionRequest",
    "AdminSessionOut",
    "EditorCreate",
    "FieldCreate",
    "MoveRequest",
    "BranchRequest",
    "CompileRequest",
    "FillSessionCreate",
    "SelectionRequest",
    "ValuesRequest",
    "ValidationResult",
]
