"""Answer and submission payload models.

Mirrors the wire contract with the submission collaborator: a JSON body
``{formId, answers}`` or, when files are attached, a multipart body with the
same ``formId``, the ``answers`` array serialised as a JSON string and one
binary part per file-valued field keyed by its qualified name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class FileRef:
    """A user-selected file held in memory until submission."""

    filename: str
    content: bytes = b""
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)


class AnswerRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: str


@dataclass(frozen=True)
class FilePayload:
    """Binary side-channel payload for one file-valued answer."""

    name: str
    file: FileRef


class Submission(BaseModel):
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    form_id: str = Field(serialization_alias="formId")
    answers: List[AnswerRecord] = Field(default_factory=list)
    files: List[FilePayload] = Field(default_factory=list, exclude=True)

    @property
    def is_multipart(self) -> bool:
        return bool(self.files)

    def json_body(self) -> dict:
        """Body for the ordinary (no files) submission request."""
        return {"formId": self.form_id, "answers": [a.model_dump() for a in self.answers]}


__all__ = ["FileRef", "AnswerRecord", "FilePayload", "Submission"]
