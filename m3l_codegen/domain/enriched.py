"""
Enriched wrappers around the parsed document.

Each wrapper references its base record and owns the data that enrichment
adds: parsed framework attributes and the extended-metadata side table.
Wrappers are created once per pipeline run and owned by the
EnrichedDocument; they are never shared across runs.
"""

import copy
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, TYPE_CHECKING

from .models import Document, Model, Interface, Enum, Field, Relation, Index, EnumValue

if TYPE_CHECKING:
    from .inheritance import InheritanceResolver


@dataclass
class FrameworkAttribute:
    """A parsed bracketed directive: name, parameters and the original text."""

    name: str
    parameters: List[str] = field(default_factory=list)
    raw_text: str = ""

    @property
    def first_parameter(self) -> Optional[str]:
        return self.parameters[0] if self.parameters else None

    def matches(self, name: str) -> bool:
        """Case-insensitive name comparison."""
        return self.name.lower() == name.lower()


@dataclass
class EnrichedField:
    """A base Field plus its parsed directives and extended metadata."""

    base: Field
    framework_attributes: List[FrameworkAttribute] = field(default_factory=list)
    extended_metadata: Dict[str, Any] = field(default_factory=dict)
    raw_text: str = ""

    # Read-through accessors for the base field
    @property
    def name(self) -> str:
        return self.base.name

    @property
    def type(self) -> Optional[str]:
        return self.base.type

    @property
    def is_nullable(self) -> bool:
        return self.base.is_nullable

    @property
    def is_primary_key(self) -> bool:
        return self.base.is_primary_key

    @property
    def is_unique(self) -> bool:
        return self.base.is_unique

    @property
    def is_required(self) -> bool:
        return self.base.is_required

    @property
    def is_reference(self) -> bool:
        return self.base.is_reference

    @property
    def reference_target(self) -> Optional[str]:
        return self.base.reference_target

    def get_attribute(self, name: str) -> Optional[FrameworkAttribute]:
        """Last parsed directive with the given name (case-insensitive)."""
        found = None
        for attribute in self.framework_attributes:
            if attribute.matches(name):
                found = attribute
        return found

    def has_attribute(self, name: str) -> bool:
        return self.get_attribute(name) is not None

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self.extended_metadata.get(key, default)

    def has_flag(self, key: str) -> bool:
        """True when the metadata key is set to a truthy value."""
        return bool(self.extended_metadata.get(key))

    def with_provenance(self, key: str, source: str) -> "EnrichedField":
        """
        Return a copy tagged with a provenance key.

        The copy shares the base field and parsed attributes but owns its own
        metadata map, so the original wrapper stays untagged.
        """
        tagged = copy.copy(self)
        tagged.extended_metadata = dict(self.extended_metadata)
        tagged.extended_metadata[key] = source
        return tagged


@dataclass
class EnrichedInterface:
    base: Interface
    fields: List[EnrichedField] = field(default_factory=list)
    extended_metadata: Dict[str, Any] = field(default_factory=dict)
    raw_text: str = ""

    @property
    def name(self) -> str:
        return self.base.name

    @property
    def inherits(self) -> List[str]:
        return self.base.inherits

    def get_field(self, name: str) -> Optional[EnrichedField]:
        for item in self.fields:
            if item.name == name:
                return item
        return None


@dataclass
class EnrichedModel:
    base: Model
    fields: List[EnrichedField] = field(default_factory=list)
    extended_metadata: Dict[str, Any] = field(default_factory=dict)
    raw_text: str = ""

    @property
    def name(self) -> str:
        return self.base.name

    @property
    def inherits(self) -> List[str]:
        return self.base.inherits

    def get_field(self, name: str) -> Optional[EnrichedField]:
        for item in self.fields:
            if item.name == name:
                return item
        return None

    @property
    def is_abstract(self) -> bool:
        return self.base.is_abstract

    @property
    def is_default(self) -> bool:
        return self.base.is_default

    @property
    def relations(self) -> List[Relation]:
        return self.base.relations

    @property
    def indexes(self) -> List[Index]:
        return self.base.indexes


@dataclass
class EnrichedEnum:
    base: Enum
    raw_text: str = ""

    @property
    def name(self) -> str:
        return self.base.name

    @property
    def values(self) -> List[EnumValue]:
        return self.base.values


@dataclass
class EnrichedDocument:
    """
    The parsed document plus everything enrichment and resolution add.

    `resolved_fields` maps each model name to its effective field list and
    is filled by the pipeline once processors have run. `completed` is set
    after that; builders only accept completed documents.
    """

    base: Document
    models: List[EnrichedModel] = field(default_factory=list)
    interfaces: List[EnrichedInterface] = field(default_factory=list)
    enums: List[EnrichedEnum] = field(default_factory=list)
    raw_text: str = ""
    extended_metadata: Dict[str, Any] = field(default_factory=dict)
    resolved_fields: Dict[str, List[EnrichedField]] = field(default_factory=dict)
    resolver: Optional["InheritanceResolver"] = field(default=None, repr=False)
    completed: bool = False

    @property
    def namespace(self) -> Optional[str]:
        return self.base.namespace

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.base.metadata

    def get_model(self, name: str) -> Optional[EnrichedModel]:
        for model in self.models:
            if model.name == name:
                return model
        return None

    def get_interface(self, name: str) -> Optional[EnrichedInterface]:
        for interface in self.interfaces:
            if interface.name == name:
                return interface
        return None

    def get_enum(self, name: str) -> Optional[EnrichedEnum]:
        for enum in self.enums:
            if enum.name == name:
                return enum
        return None

    def iter_fields(self):
        """Yield every model and interface field wrapper."""
        for model in self.models:
            yield from model.fields
        for interface in self.interfaces:
            yield from interface.fields

    def fields_for(self, model_name: str) -> List[EnrichedField]:
        """
        Effective fields of a model.

        Falls back to the model's own fields when inheritance resolution
        was disabled for this run.
        """
        if model_name in self.resolved_fields:
            return self.resolved_fields[model_name]
        model = self.get_model(model_name)
        return list(model.fields) if model else []

    @property
    def concrete_models(self) -> List[EnrichedModel]:
        return [model for model in self.models if not model.is_abstract]
