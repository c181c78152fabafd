"""
Inheritance and interface resolution.

An InheritanceResolver is bound to one EnrichedDocument and owns its memo,
so resolutions over different documents never see each other's results.
Inherited names are resolved uniformly: a name that matches a model
contributes that model's complete (recursively resolved) field list, a
name that matches an interface contributes the interface's own fields.
"""

import logging
from typing import Dict, List, Optional, Set

from ..constants import MetadataKeys
from ..exceptions import InheritanceError
from .enriched import EnrichedDocument, EnrichedField, EnrichedModel


class InheritanceResolver:
    """
    Computes effective field lists and answers inheritance queries.

    Args:
        document: The enriched document to resolve against
        strict: Raise InheritanceError on cycles and unknown base names
            instead of tolerating them
        apply_default_inheritance: Models without a model base implicitly
            inherit from the document's `@default` model
        logger: Diagnostics sink
    """

    def __init__(
        self,
        document: EnrichedDocument,
        strict: bool = False,
        apply_default_inheritance: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.document = document
        self.strict = strict
        self.apply_default_inheritance = apply_default_inheritance
        self.logger = logger or logging.getLogger(__name__)

        self._memo: Dict[str, List[EnrichedField]] = {}
        self._in_progress: List[str] = []
        self._cycle_hits = 0
        self._warned_unknown: Set[str] = set()

    def reset(self) -> None:
        """Drop memoized results."""
        self._memo.clear()
        self._in_progress.clear()
        self._cycle_hits = 0

    # =========================================================================
    # BASE NAMES
    # =========================================================================

    def base_names(self, model: EnrichedModel) -> List[str]:
        """
        Inherited names of a model, including the implicit `@default` base.

        The default model is added only to non-abstract models that declare
        no model base, and never when the default model already inherits
        from the model (which would close a cycle).
        """
        names = list(model.inherits)
        if not self.apply_default_inheritance or model.is_abstract or model.is_default:
            return names

        default_model = next((item for item in self.document.models if item.is_default), None)
        if default_model is None or default_model.name in names:
            return names
        if any(self.document.get_model(name) is not None for name in names):
            return names
        if self._declared_inherits_from(default_model, model.name):
            return names
        return names + [default_model.name]

    def _declared_inherits_from(self, model: EnrichedModel, target_name: str) -> bool:
        stack = [model]
        visited: Set[str] = set()
        while stack:
            current = stack.pop()
            if current.name in visited:
                continue
            visited.add(current.name)
            for name in current.inherits:
                if name == target_name:
                    return True
                base = self.document.get_model(name)
                if base is not None:
                    stack.append(base)
        return False

    def _check_known(self, owner: str, name: str) -> bool:
        if self.document.get_model(name) is not None or self.document.get_interface(name) is not None:
            return True
        if self.strict:
            raise InheritanceError(
                f"'{owner}' inherits from unknown entity '{name}'", model=owner, target=name
            )
        if name not in self._warned_unknown:
            self._warned_unknown.add(name)
            self.logger.warning(f"'{owner}' inherits from unknown entity '{name}', ignored")
        return False

    # =========================================================================
    # FIELD RESOLUTION
    # =========================================================================

    def get_all_fields(self, model: EnrichedModel) -> List[EnrichedField]:
        """
        Effective fields of a model.

        Own fields first, then fields of base models in declaration order
        (tagged InheritedFromClass), then the directly declared fields of
        implemented interfaces (tagged ImplementedFromInterface). A name
        that is already present is skipped, so the most derived definition
        wins.
        """
        if model.name in self._memo:
            return list(self._memo[model.name])

        if model.name in self._in_progress:
            chain = self._in_progress[self._in_progress.index(model.name):] + [model.name]
            self._cycle_hits += 1
            if self.strict:
                raise InheritanceError(
                    f"Inheritance cycle through '{model.name}'", model=model.name, chain=chain
                )
            self.logger.warning(f"Inheritance cycle detected: {' -> '.join(chain)}")
            return list(model.fields)

        hits_before = self._cycle_hits
        self._in_progress.append(model.name)
        try:
            fields = self._collect_fields(model)
        finally:
            self._in_progress.pop()

        if self._cycle_hits == hits_before:
            self._memo[model.name] = fields
        return list(fields)

    def _collect_fields(self, model: EnrichedModel) -> List[EnrichedField]:
        fields: List[EnrichedField] = list(model.fields)
        seen: Set[str] = {item.name for item in fields}
        names = self.base_names(model)

        for name in names:
            base = self.document.get_model(name)
            if base is None:
                continue
            for item in self.get_all_fields(base):
                if item.name in seen:
                    continue
                fields.append(item.with_provenance(MetadataKeys.INHERITED_FROM_CLASS, base.name))
                seen.add(item.name)

        for name in names:
            interface = self.document.get_interface(name)
            if interface is None:
                if self.document.get_model(name) is None:
                    self._check_known(model.name, name)
                continue
            for item in interface.fields:
                if item.name in seen:
                    continue
                fields.append(item.with_provenance(MetadataKeys.IMPLEMENTED_FROM_INTERFACE, interface.name))
                seen.add(item.name)

        return fields

    def resolve_all(self) -> Dict[str, List[EnrichedField]]:
        """Effective field lists of every model, keyed by model name."""
        return {model.name: self.get_all_fields(model) for model in self.document.models}

    # =========================================================================
    # QUERIES
    # =========================================================================

    def inherits_from(self, model: EnrichedModel, target_name: str) -> bool:
        """
        True when `target_name` is reachable through the inheritance graph.

        A revisited model ends that branch with False; in strict mode a
        revisit along the current path raises InheritanceError.
        """
        visited: Set[str] = set()
        return self._inherits_from(model, target_name, visited, [])

    def _inherits_from(self, model: EnrichedModel, target_name: str, visited: Set[str], path: List[str]) -> bool:
        if model.name in visited:
            if self.strict and model.name in path:
                raise InheritanceError(
                    f"Inheritance cycle through '{model.name}'",
                    model=model.name,
                    chain=path[path.index(model.name):] + [model.name],
                )
            return False
        visited.add(model.name)
        path.append(model.name)
        try:
            for name in self.base_names(model):
                if name == target_name:
                    return True
                base = self.document.get_model(name)
                if base is not None and self._inherits_from(base, target_name, visited, path):
                    return True
            return False
        finally:
            path.pop()

    def implements_interface(self, model: EnrichedModel, interface_name: str) -> bool:
        """True when the model or one of its base models lists the interface directly."""
        visited: Set[str] = set()
        pending = [model]
        while pending:
            current = pending.pop(0)
            if current.name in visited:
                continue
            visited.add(current.name)
            names = self.base_names(current)
            if interface_name in names and self.document.get_interface(interface_name) is not None:
                return True
            pending.extend(
                base for base in (self.document.get_model(name) for name in names) if base is not None
            )
        return False

    def find_cycles(self) -> List[List[str]]:
        """Inheritance cycles among models, each as a closed name chain."""
        cycles: List[List[str]] = []
        reported: Set[frozenset] = set()

        def visit(model: EnrichedModel, path: List[str]) -> None:
            if model.name in path:
                chain = path[path.index(model.name):] + [model.name]
                key = frozenset(chain)
                if key not in reported:
                    reported.add(key)
                    cycles.append(chain)
                return
            path.append(model.name)
            for name in model.inherits:
                base = self.document.get_model(name)
                if base is not None:
                    visit(base, path)
            path.pop()

        for model in self.document.models:
            visit(model, [])
        return cycles
