"""
TypeScript model mirror builder.

Emits a single module with one `export enum` per enum and one
`export interface` per model (resolved fields) and interface (own fields).
Fields hidden from the external representation (JsonIgnore,
ExcludeFromDto) are left out.
"""

from typing import Any, Dict, List

from pydantic import Field

from ..constants import DefaultConfig, MetadataKeys, TypeScriptTypes
from ..domain.enriched import EnrichedDocument, EnrichedField
from ..domain.models import GenerationResult
from .base import BaseBuilder, BuilderConfig, register_builder


class TypeScriptBuilderConfig(BuilderConfig):
    file_name: str = Field(DefaultConfig.TYPESCRIPT_FILE_NAME, min_length=1)
    include_interfaces: bool = True
    include_abstract_models: bool = True


def ts_type_for(item: EnrichedField, document: EnrichedDocument) -> str:
    type_name = item.type or ""
    if document.get_enum(type_name) or document.get_model(type_name) or document.get_interface(type_name):
        return type_name
    return TypeScriptTypes.MAPPING.get(type_name.lower(), TypeScriptTypes.FALLBACK)


def ts_enum_value(value: str) -> str:
    try:
        float(value)
        return value
    except ValueError:
        escaped = value.strip("\"'").replace("'", "\\'")
        return f"'{escaped}'"


@register_builder
class TypeScriptBuilder(BaseBuilder):
    builder_type = "typescript"
    config_class = TypeScriptBuilderConfig

    def generate(self, document: EnrichedDocument, config: TypeScriptBuilderConfig) -> List[GenerationResult]:
        declarations: List[Dict[str, Any]] = []
        if config.include_interfaces:
            for interface in document.interfaces:
                declarations.append(self.declaration(document, interface.name, interface.fields, interface.base.description))
        for model in document.models:
            if model.is_abstract and not config.include_abstract_models:
                continue
            declarations.append(
                self.declaration(document, model.name, document.fields_for(model.name), model.base.description)
            )

        enums = [
            {
                "name": enum.name,
                "description": enum.base.description,
                "values": [
                    {
                        "name": value.name,
                        "value": ts_enum_value(value.value) if value.value is not None else None,
                        "description": value.description,
                    }
                    for value in enum.values
                ],
            }
            for enum in document.enums
        ]

        code = self.render(
            "typescript_models.ts.j2",
            {"namespace": document.namespace, "enums": enums, "declarations": declarations},
        )
        return [GenerationResult(component_type=self.builder_type, file_path=config.file_name, code=code)]

    def declaration(self, document: EnrichedDocument, name: str, fields: List[EnrichedField], description) -> Dict[str, Any]:
        properties = []
        for item in fields:
            if item.has_flag(MetadataKeys.JSON_IGNORE) or item.has_flag(MetadataKeys.EXCLUDE_FROM_DTO):
                continue
            properties.append(
                {
                    "name": item.name,
                    "type": ts_type_for(item, document),
                    "optional": item.is_nullable,
                    "readonly": item.has_flag(MetadataKeys.READ_ONLY) or item.has_flag(MetadataKeys.COMPUTED),
                    "description": item.base.description,
                }
            )
        return {"name": name, "description": description, "properties": properties}
