"""Identifier, input, existence and ownership checks run before mutations."""
from __future__ import annotations

import uuid
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from ..errors import Forbidden, InvalidIdentifier, NotFound, ValidationFailed

ModelT = TypeVar("ModelT")
InputT = TypeVar("InputT", bound=BaseModel)


def parse_id(value: Optional[str], kind: str) -> str:
    try:
        return str(uuid.UUID(str(value).strip()))
    except (ValueError, AttributeError, TypeError):
        raise InvalidIdentifier(f"Invalid {kind} id") from None


def get_or_404(db: Session, model: Type[ModelT], resource_id: str, kind: str) -> ModelT:
    resource = db.get(model, resource_id)
    if resource is None:
        raise NotFound(f"{kind.capitalize()} not found")
    return resource


def require_owner(resource: Any, principal_id: str, kind: str) -> None:
    if resource.owner_id != principal_id:
        raise Forbidden(f"Only the {kind} owner can modify this {kind}")


def load_owned(db: Session, model: Type[ModelT], raw_id: str, principal_id: str, kind: str) -> ModelT:
    """Parse ``raw_id``, load the row and check that ``principal_id`` owns it."""
    resource = get_or_404(db, model, parse_id(raw_id, kind), kind)
    require_owner(resource, principal_id, kind)
    return resource


def validate_input(schema: Type[InputT], **fields: Any) -> InputT:
    try:
        return schema(**fields)
    except ValidationError as exc:
        raise ValidationFailed(
            errors=exc.errors(include_url=False, include_context=False, include_input=False)
        ) from exc
