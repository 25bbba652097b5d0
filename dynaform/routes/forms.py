"""Stateless form compilation route.

Given a schema and a selection state, returns what a renderer needs: the
effective fields in order, a summary of the synthesised rules and the
initial values. Nothing is stored.
"""

from __future__ import annotations

from typing import Any, Dict
import logging

from fastapi import APIRouter

from dynaform.logic.field_expander import expand
from dynaform.logic.rule_synthesizer import synthesize
from dynaform.logic.schema_check import ensure_schema
from dynaform.models.api_types import CompileRequest

router = APIRouter(prefix="/forms")
logger = logging.getLogger(__name__)


@router.post("/compile")
def compile_form(body: CompileRequest) -> Dict[str, Any]:
    ensure_schema(body.form_schema)
    effective = expand(body.form_schema, body.selection)
    rules, initial = synthesize(effective)
    logger.info("forms_compile title=%s effective=%s", body.form_schema.title, len(effective))
    return {
        "title": body.form_schema.title,
        "description": body.form_schema.description,
        "fields": [
            {
                "name": ef.qualified_name,
                "label": ef.label,
                "kind": ef.kind.value,
                "required": ef.required,
                "options": list(ef.definition.options),
                "parent": ef.parent,
            }
            for ef in effective
        ],
        "rules": [rule.describe() for rule in rules.values()],
        "initial_values": initial,
    }


__all__ = ["router"]
