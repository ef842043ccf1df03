"""
Immutable description of a category's resolved attribute schema.
"""

from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from marketplace.db.models.category import FieldDefinition, FieldType, SchemaVariant


class FieldSpec(BaseModel):
    """
    Validation and display metadata for one dynamic field.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    label: str
    field_type: FieldType = FieldType.TEXT
    options: Optional[Tuple[str, ...]] = None
    max_length: Optional[int] = None
    prefix: Optional[str] = None
    is_required: bool = False
    priority: int = 0
    mark_as_title: bool = False
    show_on_detail: bool = True
    mark_for_popup: bool = False
    additional_information: Optional[str] = None

    @classmethod
    def from_definition(cls, definition: FieldDefinition) -> "FieldSpec":
        options = tuple(str(option) for option in definition.options) if definition.options else None
        return cls(
            name=definition.name,
            label=definition.label or definition.name.replace("_", " ").title(),
            field_type=FieldType(definition.field_type or FieldType.TEXT.value),
            options=options,
            max_length=definition.max_length,
            prefix=definition.prefix,
            is_required=bool(definition.is_required),
            priority=definition.priority or 0,
            mark_as_title=bool(definition.mark_as_title),
            show_on_detail=definition.show_on_detail is not False,
            mark_for_popup=bool(definition.mark_for_popup),
            additional_information=definition.additional_information,
        )


class ResolvedSchema(BaseModel):
    """
    Ordered fields that apply to one category and variant.
    """

    model_config = ConfigDict(frozen=True)

    category_id: int
    variant: SchemaVariant
    fields: Tuple[FieldSpec, ...] = ()

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)

    @property
    def by_name(self) -> Dict[str, FieldSpec]:
        return {spec.name: spec for spec in self.fields}

    @property
    def title_field(self) -> Optional[FieldSpec]:
        for spec in self.fields:
            if spec.mark_as_title:
                return spec
        return None

    def get(self, name: str) -> Optional[FieldSpec]:
        return self.by_name.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.by_name
