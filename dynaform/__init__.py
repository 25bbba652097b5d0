"""Dynamic form service.

Compiles declared forms with conditional sub-fields into the effective field
list, validation rules and answer payload for one fill-out, and exposes the
engine through a small FastAPI application. Business logic lives in
`dynaform/logic/` and route handlers in `dynaform/routes/`.
"""

from __future__ import annotations

from dynaform.main import create_app

__all__ = ["create_app"]
