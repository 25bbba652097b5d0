"""Pydantic models for declared form fields and form schemas.

Parses the persisted schema shape served by the forms collaborator:
``{title, description, fields: [...]}`` where each field carries ``name``,
``label``, ``type``, ``required``, ``options``, ``validation`` and
``conditionalFields`` (option -> nested fields). The descriptive names
(``localName``, ``kind``, ``constraints``, ``conditionalBranches``) are
accepted as well. Constraints are parsed into exactly one variant per kind
family so downstream code never sees keys that do not apply.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from dynaform.models.field_kind import FieldKind


class TextConstraints(BaseModel):
    """Length and pattern constraints for text, textarea and email fields."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    min_length: Optional[int] = Field(
        default=None, ge=0, validation_alias=AliasChoices("minLength", "min_length"), serialization_alias="minLength"
    )
    max_length: Optional[int] = Field(
        default=None, ge=0, validation_alias=AliasChoices("maxLength", "max_length"), serialization_alias="maxLength"
    )
    # Not compiled here: an unusable pattern must not reject the schema
    pattern: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("regex", "pattern"), serialization_alias="regex"
    )


class NumberConstraints(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    min: Optional[Union[int, float]] = None
    max: Optional[Union[int, float]] = None


class FileConstraints(BaseModel):
    """Accepted-type filter for file inputs (informational, never re-validated)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    accepted_types: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("accept", "acceptedTypes", "accepted_types"),
        serialization_alias="accept",
    )


Constraints = Union[TextConstraints, NumberConstraints, FileConstraints]

_CONSTRAINT_VARIANT: Dict[FieldKind, Optional[type]] = {
    FieldKind.TEXT: TextConstraints,
    FieldKind.TEXTAREA: TextConstraints,
    FieldKind.EMAIL: TextConstraints,
    FieldKind.NUMBER: NumberConstraints,
    FieldKind.FILE: FileConstraints,
    FieldKind.DATE: None,
    FieldKind.CHECKBOX: None,
    FieldKind.RADIO: None,
    FieldKind.SELECT: None,
}


def constraint_variant_for(kind: FieldKind) -> Optional[type]:
    """Return the constraint model for ``kind`` (None when the kind has none)."""
    return _CONSTRAINT_VARIANT[kind]


class FieldDefinition(BaseModel):
    """One declared input control.

    Instances are immutable; edits go through ``model_copy(update=...)`` so
    the editor can reason about identity explicitly.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    local_name: str = Field(
        default="", validation_alias=AliasChoices("name", "localName", "local_name"), serialization_alias="name"
    )
    label: str = ""
    kind: FieldKind = Field(validation_alias=AliasChoices("type", "kind"), serialization_alias="type")
    required: bool = False
    options: List[str] = Field(default_factory=list)
    constraints: Optional[Constraints] = Field(
        default=None, validation_alias=AliasChoices("validation", "constraints"), serialization_alias="validation"
    )
    conditional_branches: Dict[str, List["FieldDefinition"]] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("conditionalFields", "conditionalBranches", "conditional_branches"),
        serialization_alias="conditionalFields",
    )
    storage_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("_id", "storage_id", "storageId"), serialization_alias="_id"
    )
    order: Optional[int] = None
    # Editor-only token; never written back to the persisted schema
    identity: Optional[str] = Field(default=None, validation_alias=AliasChoices("identity", "_dragId"), exclude=True)

    @field_validator("local_name", "label", mode="before")
    @classmethod
    def _strip_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("storage_id", mode="before")
    @classmethod
    def _stringify_storage_id(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("options", mode="before")
    @classmethod
    def _clean_options(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split("\n")
        return [str(opt).strip() for opt in v if opt is not None and str(opt).strip()]

    @field_validator("constraints", mode="before")
    @classmethod
    def _pick_constraint_variant(cls, v: Any, info: ValidationInfo) -> Any:
        kind = info.data.get("kind")
        if kind is None or v is None:
            return None
        variant = constraint_variant_for(kind)
        if variant is None:
            return None
        if isinstance(v, BaseModel):
            v = v.model_dump(by_alias=True)
        if not isinstance(v, dict):
            return None
        # Editors send "" for cleared inputs
        cleaned = {k: val for k, val in v.items() if val is not None and val != ""}
        return variant.model_validate(cleaned)

    @field_validator("conditional_branches", mode="before")
    @classmethod
    def _coerce_branches(cls, v: Any) -> Dict[str, Any]:
        if not v:
            return {}
        if not isinstance(v, dict):
            return {}
        # Keys are matched against options, which are stripped too
        branches: Dict[str, List[Any]] = {}
        for opt, nested in v.items():
            branches.setdefault(str(opt).strip(), []).extend(nested if isinstance(nested, list) else [])
        return branches

    @property
    def is_selectable(self) -> bool:
        return self.kind.is_selectable

    def branch_for(self, option: Optional[str]) -> List["FieldDefinition"]:
        """Return the nested fields activated by ``option`` (empty when none)."""
        if option is None or not self.is_selectable:
            return []
        return list(self.conditional_branches.get(option) or [])

    def to_wire(self) -> Dict[str, Any]:
        """Serialise to the persisted schema shape (identity excluded)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


FieldDefinition.model_rebuild()


class FormSchema(BaseModel):
    """Ordered top-level fields plus form metadata."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    title: str = ""
    description: str = ""
    fields: List[FieldDefinition] = Field(default_factory=list)
    is_active: bool = Field(default=True, validation_alias=AliasChoices("isActive", "is_active"), serialization_alias="isActive")

    @field_validator("title", "description", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


__all__ = [
    "TextConstraints",
    "NumberConstraints",
    "FileConstraints",
    "Constraints",
    "constraint_variant_for",
    "FieldDefinition",
    "FormSchema",
]
