"""
SQL Server DDL builder.

Writes one `CREATE TABLE` script per concrete model from its resolved
field list: primary key, unique constraints, foreign keys with the
cascade behaviour recorded by enrichment, and declared indexes.
"""

import re
from typing import Any, Dict, List, Optional

from pydantic import Field

from ..colored_logging import log_highlight
from ..constants import DefaultConfig, MetadataKeys, SqlTypes
from ..domain.enriched import EnrichedDocument, EnrichedField, EnrichedModel
from ..domain.models import GenerationResult
from ..domain.naming import table_name_for
from .base import BaseBuilder, BuilderConfig, register_builder

_NUMERIC_DEFAULT_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")


class SqlBuilderConfig(BuilderConfig):
    schema_name: str = Field(DefaultConfig.SQL_SCHEMA_NAME, min_length=1)
    use_namespace_as_schema: bool = False
    generate_foreign_keys: bool = True
    generate_indexes: bool = True
    pluralize_table_names: bool = False


def sql_type_for(item: EnrichedField, document: EnrichedDocument) -> str:
    """Column type for a field; enums are stored as INT."""
    type_name = (item.type or "").lower()
    if document.get_enum(item.type or "") is not None:
        return "INT"

    base = SqlTypes.MAPPING.get(type_name)
    if base is None:
        return SqlTypes.FALLBACK
    if base in SqlTypes.SIZED:
        if item.base.length:
            return f"{base}({item.base.length})"
        if base == "NVARCHAR":
            return f"{base}({SqlTypes.DEFAULT_STRING_LENGTH})"
        if base == "VARBINARY":
            return f"{base}(MAX)"
    return base


def sql_default_for(item: EnrichedField) -> Optional[str]:
    """DEFAULT clause value: an Insert directive wins over the declared default."""
    insert_value = item.get_metadata(MetadataKeys.INSERT_VALUE)
    if insert_value:
        return insert_value

    value = item.base.default_value
    if value is None:
        return None
    lowered = value.lower()
    if lowered in ("true", "false"):
        return "1" if lowered == "true" else "0"
    if _NUMERIC_DEFAULT_PATTERN.match(value) or "(" in value:
        return value
    escaped = value.replace("'", "''")
    return f"N'{escaped}'"


@register_builder
class SqlBuilder(BaseBuilder):
    """One `<Table>.sql` file per non-abstract model."""

    builder_type = "sql"
    config_class = SqlBuilderConfig

    def generate(self, document: EnrichedDocument, config: SqlBuilderConfig) -> List[GenerationResult]:
        schema = config.schema_name
        if config.use_namespace_as_schema and document.namespace:
            schema = document.namespace.replace(".", "_")

        results = []
        for model in document.concrete_models:
            context = self.table_context(document, model, schema, config)
            code = self.render("sql_table.sql.j2", context, model=model.name)
            results.append(
                GenerationResult(
                    component_type=self.builder_type,
                    file_path=f"{context['table']}.sql",
                    code=code,
                    model_name=model.name,
                    warnings=context["warnings"],
                )
            )
        return results

    def table_context(
        self,
        document: EnrichedDocument,
        model: EnrichedModel,
        schema: str,
        config: SqlBuilderConfig,
    ) -> Dict[str, Any]:
        table = table_name_for(model.name, config.pluralize_table_names)
        fields = []
        for item in document.fields_for(model.name):
            if item.has_flag(MetadataKeys.EXCLUDE_FROM_GENERATION) or item.has_flag(MetadataKeys.COMPUTED):
                log_highlight(self.logger, f"Skipping column '{model.name}.{item.name}'")
                continue
            fields.append(item)

        columns = [
            {
                "name": item.name,
                "sql_type": sql_type_for(item, document),
                "nullable": item.is_nullable,
                "default": sql_default_for(item),
                "description": item.base.description,
            }
            for item in fields
        ]

        constraints: List[str] = []
        warnings: List[str] = []
        primary_keys = [item.name for item in fields if item.is_primary_key]
        if primary_keys:
            constraints.append(f"CONSTRAINT [PK_{table}] PRIMARY KEY ({self._columns(primary_keys)})")
        else:
            warnings.append(f"Model '{model.name}' has no primary key")
            self.logger.warning(f"Model '{model.name}' has no primary key")

        for item in fields:
            if item.is_unique and not item.is_primary_key:
                constraints.append(f"CONSTRAINT [UK_{table}_{item.name}] UNIQUE ([{item.name}])")

        if config.generate_foreign_keys:
            for item in fields:
                if not item.is_reference:
                    continue
                foreign_key = self._foreign_key(document, table, schema, item, config)
                if foreign_key is None:
                    warnings.append(f"Reference target '{item.reference_target}' of '{item.name}' is not a model")
                    self.logger.warning(
                        f"Skipping foreign key for '{model.name}.{item.name}': "
                        f"'{item.reference_target}' is not a model"
                    )
                    continue
                constraints.append(foreign_key)

        indexes = []
        if config.generate_indexes:
            indexes = [
                {"name": index.name, "unique": index.is_unique, "columns": self._columns(index.fields)}
                for index in model.indexes
            ]

        return {
            "schema": schema,
            "table": table,
            "description": model.base.description,
            "columns": columns,
            "constraints": constraints,
            "indexes": indexes,
            "warnings": warnings,
        }

    @staticmethod
    def _columns(names: List[str]) -> str:
        return ", ".join(f"[{name}]" for name in names)

    def _foreign_key(
        self,
        document: EnrichedDocument,
        table: str,
        schema: str,
        item: EnrichedField,
        config: SqlBuilderConfig,
    ) -> Optional[str]:
        target = document.get_model(item.reference_target)
        if target is None:
            return None
        target_table = table_name_for(target.name, config.pluralize_table_names)
        target_keys = [key.name for key in document.fields_for(target.name) if key.is_primary_key]
        target_column = target_keys[0] if target_keys else "Id"

        name = item.get_metadata(MetadataKeys.FOREIGN_KEY_NAME) or f"FK_{table}_{target_table}_{item.name}"
        on_delete = item.get_metadata(MetadataKeys.ON_DELETE, DefaultConfig.ON_DELETE)
        return (
            f"CONSTRAINT [{name}] FOREIGN KEY ([{item.name}]) "
            f"REFERENCES [{schema}].[{target_table}] ([{target_column}]) ON DELETE {on_delete}"
        )
