"""
Dynamic attribute store.

Validates and shapes item attribute bags against a resolved schema, and
projects stored bags back into labelled, display-ordered values.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import CatalogValidationError, FieldError, FieldErrorKind
from marketplace.db.models.category import FieldType, SchemaVariant
from marketplace.schemas.field_schema import FieldSpec, ResolvedSchema
from marketplace.services.field_schema import FieldSchemaResolver

TRUE_VALUES = frozenset({"1", "true", "yes", "y", "on"})
FALSE_VALUES = frozenset({"0", "false", "no", "n", "off"})


class ProjectedAttributes(NamedTuple):
    """Detail view of an attribute bag."""

    title: Optional[str]
    fields: List[Tuple[FieldSpec, str]]


def is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_boolean(value: Any) -> Optional[bool]:
    """Truth value of a boolean attribute token, or ``None`` when it is not one."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return None


def normalize_value(spec: FieldSpec, value: Any) -> Tuple[Optional[str], Optional[str]]:
    """
    Convert ``value`` to its stored string form.

    Returns ``(normalized, None)`` on success and ``(None, reason)`` otherwise.
    Text and accepted boolean tokens keep their exact content; JSON booleans
    become ``"true"`` or ``"false"``.
    """
    if isinstance(value, (dict, list, tuple, set)):
        return None, "must be a single value"

    if spec.field_type == FieldType.NUMBER:
        if isinstance(value, bool):
            return None, "must be a number"
        text = str(value).strip()
        try:
            number = Decimal(text)
        except InvalidOperation:
            return None, "must be a number"
        if not number.is_finite():
            return None, "must be a number"
        return text, None

    if spec.field_type == FieldType.BOOLEAN:
        truth = parse_boolean(value)
        if truth is None:
            return None, "must be yes or no"
        if isinstance(value, bool):
            return ("true" if truth else "false"), None
        return str(value), None

    text = value if isinstance(value, str) else str(value)

    if spec.field_type == FieldType.SELECT and spec.options and text not in spec.options:
        return None, f"must be one of: {', '.join(spec.options)}"

    if spec.max_length and len(text) > spec.max_length:
        return None, f"must be at most {spec.max_length} characters"

    return text, None


def check_attributes(schema: ResolvedSchema, raw: Mapping[str, Any]) -> Tuple[Dict[str, str], List[FieldError]]:
    """
    Shape ``raw`` against ``schema`` and collect every problem found.

    Keys the schema does not know are dropped. Empty optional values are
    dropped too.
    """
    shaped: Dict[str, str] = {}
    errors: List[FieldError] = []

    for spec in schema.fields:
        value = raw.get(spec.name)
        if is_empty(value):
            if spec.is_required:
                errors.append(
                    FieldError(
                        kind=FieldErrorKind.MISSING_REQUIRED_FIELD,
                        field=spec.name,
                        message=f"{spec.label} is required",
                    )
                )
            continue

        normalized, reason = normalize_value(spec, value)
        if reason is not None:
            errors.append(
                FieldError(
                    kind=FieldErrorKind.INVALID_FIELD_VALUE,
                    field=spec.name,
                    message=f"{spec.label} {reason}",
                )
            )
            continue
        shaped[spec.name] = normalized  # type: ignore[assignment]

    dropped = sorted(set(raw) - set(schema.names))
    if dropped:
        logger.debug(f"Dropped attributes not in category {schema.category_id} schema: {dropped}")

    return shaped, errors


def shape_attributes(schema: ResolvedSchema, raw: Mapping[str, Any]) -> Dict[str, str]:
    """Shape ``raw``, raising ``CatalogValidationError`` with every problem found."""
    shaped, errors = check_attributes(schema, raw)
    if errors:
        raise CatalogValidationError(errors)
    return shaped


def format_title(spec: FieldSpec, value: str) -> str:
    if spec.prefix:
        return f"{spec.prefix} {value}"
    return value


def project_attributes(schema: ResolvedSchema, stored: Optional[Mapping[str, Any]]) -> ProjectedAttributes:
    """
    Display-ordered ``(field, value)`` pairs for a stored bag.

    Fields hidden from detail pages and fields without a stored value are left
    out. The title field is returned separately, not in the list.
    """
    stored = stored or {}
    title: Optional[str] = None
    fields: List[Tuple[FieldSpec, str]] = []

    for spec in schema.fields:
        value = stored.get(spec.name)
        if is_empty(value):
            continue
        value = str(value)
        if spec.mark_as_title:
            title = format_title(spec, value)
            continue
        if not spec.show_on_detail:
            continue
        fields.append((spec, value))

    return ProjectedAttributes(title=title, fields=fields)


def derive_title(schema: ResolvedSchema, attributes: Mapping[str, str]) -> Optional[str]:
    spec = schema.title_field
    if spec is None or is_empty(attributes.get(spec.name)):
        return None
    return format_title(spec, attributes[spec.name])


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9-]", "-", text.lower())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def build_slug(title: Optional[str], item_id: int) -> str:
    """URL slug for an item: its title, suffixed with the id to stay unique."""
    base = slugify(title or "")
    return f"{base}-{item_id}" if base else str(item_id)


def build_search_text(schema: ResolvedSchema, title: Optional[str], attributes: Mapping[str, str]) -> str:
    """Free-text index: title plus every text and select value."""
    parts = [title] if title else []
    for spec in schema.fields:
        if spec.field_type in (FieldType.TEXT, FieldType.SELECT) and attributes.get(spec.name):
            parts.append(attributes[spec.name])
    return " ".join(parts)


class AttributeStore:
    """Schema-aware access to item attribute bags."""

    def __init__(self, db: AsyncSession, resolver: Optional[FieldSchemaResolver] = None):
        self.db = db
        self.resolver = resolver or FieldSchemaResolver(db)

    async def validate_and_shape(
        self, category_id: int, variant: SchemaVariant, raw: Mapping[str, Any]
    ) -> Dict[str, str]:
        schema = await self.resolver.resolve(category_id, variant)
        return shape_attributes(schema, raw)

    async def project(
        self, category_id: int, variant: SchemaVariant, stored: Optional[Mapping[str, Any]]
    ) -> ProjectedAttributes:
        schema = await self.resolver.resolve(category_id, variant)
        return project_attributes(schema, stored)
