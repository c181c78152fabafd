"""
Tests for inheritance and interface resolution

This module tests effective field lists, provenance tags, cycle handling
and the inheritance queries of InheritanceResolver.
"""

from unittest import TestCase

from m3l_codegen.config import ParserOptions
from m3l_codegen.constants import MetadataKeys
from m3l_codegen.domain.inheritance import InheritanceResolver
from m3l_codegen.exceptions import InheritanceError
from m3l_codegen.pipeline import M3LPipeline

RESOLVER_LOGGER = "m3l_codegen.domain.inheritance"


def enrich(text):
    return M3LPipeline(ParserOptions(resolve_inheritance=False), apply_default_inheritance=False).run(text)


def names(fields):
    return [item.name for item in fields]


class TestFieldResolution(TestCase):
    """Test cases for get_all_fields with models and interfaces"""

    def setUp(self):
        """Set up test fixtures."""
        self.document = enrich(
            "## I ::interface\n"
            "- code: string\n"
            "- shared: int\n"
            "\n"
            "## A\n"
            "- id: int @primary\n"
            "- shared: string\n"
            "\n"
            "## B : A, I\n"
            "- shared: bool\n"
            "- extra: int\n"
            "\n"
            "## C : B\n"
            "- more: int\n"
        )
        self.resolver = InheritanceResolver(self.document)

    def test_own_then_base_then_interface(self):
        """Test effective field order and the most derived definition winning"""
        fields = self.resolver.get_all_fields(self.document.get_model("B"))

        self.assertEqual(names(fields), ["shared", "extra", "id", "code"])
        self.assertEqual(fields[0].type, "bool")

    def test_provenance_tags(self):
        """Test inherited and implemented fields carry their source"""
        fields = {item.name: item for item in self.resolver.get_all_fields(self.document.get_model("B"))}

        self.assertEqual(fields["id"].get_metadata(MetadataKeys.INHERITED_FROM_CLASS), "A")
        self.assertEqual(fields["code"].get_metadata(MetadataKeys.IMPLEMENTED_FROM_INTERFACE), "I")
        self.assertIsNone(fields["extra"].get_metadata(MetadataKeys.INHERITED_FROM_CLASS))

    def test_declared_fields_stay_untagged(self):
        """Test tagging works on copies, not on the declaring model's wrappers"""
        self.resolver.get_all_fields(self.document.get_model("B"))
        own_id = self.document.get_model("A").get_field("id")
        self.assertIsNone(own_id.get_metadata(MetadataKeys.INHERITED_FROM_CLASS))

    def test_transitive_inheritance(self):
        """Test fields flow through a chain of bases"""
        fields = self.resolver.get_all_fields(self.document.get_model("C"))
        self.assertEqual(names(fields), ["more", "shared", "extra", "id", "code"])

    def test_resolve_all(self):
        """Test every model is resolved"""
        resolved = self.resolver.resolve_all()
        self.assertEqual(sorted(resolved), ["A", "B", "C"])
        self.assertEqual(names(resolved["A"]), ["id", "shared"])

    def test_results_are_stable(self):
        """Test repeated calls return equal lists"""
        model = self.document.get_model("C")
        self.assertEqual(
            names(self.resolver.get_all_fields(model)),
            names(self.resolver.get_all_fields(model)),
        )


class TestInheritanceQueries(TestCase):
    """Test cases for inherits_from and implements_interface"""

    def setUp(self):
        """Set up test fixtures."""
        self.document = enrich(
            "## I ::interface\n- code: string\n\n"
            "## A\n- id: int\n\n"
            "## B : A, I\n- b: int\n\n"
            "## C : B\n- c: int\n"
        )
        self.resolver = InheritanceResolver(self.document)

    def test_inherits_from(self):
        """Test direct and transitive inheritance"""
        c = self.document.get_model("C")
        self.assertTrue(self.resolver.inherits_from(c, "B"))
        self.assertTrue(self.resolver.inherits_from(c, "A"))
        self.assertFalse(self.resolver.inherits_from(self.document.get_model("A"), "C"))

    def test_implements_interface(self):
        """Test interfaces listed by the model or any of its bases"""
        self.assertTrue(self.resolver.implements_interface(self.document.get_model("B"), "I"))
        self.assertTrue(self.resolver.implements_interface(self.document.get_model("C"), "I"))
        self.assertFalse(self.resolver.implements_interface(self.document.get_model("A"), "I"))
        self.assertFalse(self.resolver.implements_interface(self.document.get_model("C"), "A"))


class TestCycles(TestCase):
    """Test cases for inheritance cycles"""

    def setUp(self):
        """Set up test fixtures."""
        self.document = enrich("## X : Y\n- x: int\n\n## Y : X\n- y: int\n")

    def test_cycle_is_tolerated(self):
        """Test a cycle terminates and yields every reachable field once"""
        resolver = InheritanceResolver(self.document)
        with self.assertLogs(RESOLVER_LOGGER, level="WARNING"):
            fields = resolver.get_all_fields(self.document.get_model("X"))
        self.assertEqual(names(fields), ["x", "y"])

    def test_cycle_raises_when_strict(self):
        """Test strict resolution reports the cycle"""
        resolver = InheritanceResolver(self.document, strict=True)
        with self.assertRaises(InheritanceError) as ctx:
            resolver.get_all_fields(self.document.get_model("X"))
        self.assertEqual(ctx.exception.error_code, "INHERITANCE_ERROR")

    def test_inherits_from_terminates(self):
        """Test queries over a cycle end"""
        resolver = InheritanceResolver(self.document)
        x = self.document.get_model("X")
        self.assertTrue(resolver.inherits_from(x, "Y"))
        self.assertFalse(resolver.inherits_from(x, "Z"))

        with self.assertRaises(InheritanceError):
            InheritanceResolver(self.document, strict=True).inherits_from(x, "Z")

    def test_find_cycles(self):
        """Test each cycle is reported once"""
        self.assertEqual(InheritanceResolver(self.document).find_cycles(), [["X", "Y", "X"]])


class TestUnknownAndDefaultBases(TestCase):
    """Test cases for unknown inherited names and the @default model"""

    def test_unknown_base_is_ignored(self):
        """Test an unknown base name contributes nothing"""
        document = enrich("## D : Missing\n- d: int\n")
        resolver = InheritanceResolver(document)
        with self.assertLogs(RESOLVER_LOGGER, level="WARNING"):
            fields = resolver.get_all_fields(document.get_model("D"))
        self.assertEqual(names(fields), ["d"])

    def test_unknown_base_raises_when_strict(self):
        """Test strict resolution rejects an unknown base"""
        document = enrich("## D : Missing\n- d: int\n")
        with self.assertRaises(InheritanceError):
            InheritanceResolver(document, strict=True).get_all_fields(document.get_model("D"))

    def test_default_model(self):
        """Test models without a model base inherit the @default model"""
        document = enrich(
            "## Base @default\n- id: int @primary\n- createdAt: datetime\n\n"
            "## Product\n- name: string\n\n"
            "## Widget : Product\n- size: int\n\n"
            "## Shape @abstract\n- sides: int\n"
        )
        resolver = InheritanceResolver(document, apply_default_inheritance=True)

        self.assertEqual(names(resolver.get_all_fields(document.get_model("Product"))), ["name", "id", "createdAt"])
        self.assertEqual(
            names(resolver.get_all_fields(document.get_model("Widget"))), ["size", "name", "id", "createdAt"]
        )
        self.assertEqual(names(resolver.get_all_fields(document.get_model("Shape"))), ["sides"])
        self.assertEqual(names(resolver.get_all_fields(document.get_model("Base"))), ["id", "createdAt"])
        self.assertTrue(resolver.inherits_from(document.get_model("Product"), "Base"))

    def test_default_model_off(self):
        """Test the default model is not applied unless asked for"""
        document = enrich("## Base @default\n- id: int\n\n## Product\n- name: string\n")
        resolver = InheritanceResolver(document)
        self.assertEqual(names(resolver.get_all_fields(document.get_model("Product"))), ["name"])


def test_audited_user_end_to_end(store_document):
    """A model implementing an interface and picking up the @default model"""
    user = store_document.fields_for("User")
    by_name = {item.name: item for item in user}

    assert [item.name for item in user] == [
        "name", "email", "password", "status", "secretNote", "id", "createdAt", "updatedAt",
    ]
    assert by_name["createdAt"].get_metadata(MetadataKeys.IMPLEMENTED_FROM_INTERFACE) == "IAudited"
    assert by_name["id"].get_metadata(MetadataKeys.INHERITED_FROM_CLASS) == "BaseEntity"
    assert by_name["id"].is_primary_key
    assert store_document.resolver.implements_interface(store_document.get_model("User"), "IAudited")


def test_self_inherits_from_in_cycle_is_defined():
    """inherits_from(X, "X") over a cycle returns a boolean"""
    document = enrich("## X : Y\n- x: int\n\n## Y : X\n- y: int\n")
    x = document.get_model("X")

    assert InheritanceResolver(document).inherits_from(x, "X") is True


def test_audited_user_with_manager_reference():
    """Interface fields, naming hints and reference cascade on one model"""
    document = M3LPipeline().run(
        "## IAudited ::interface\n"
        "- createdAt: DateTime\n"
        "\n"
        "## User : IAudited\n"
        "- id: int @primary\n"
        "- password: string\n"
        "- managerId: int? @reference(User)\n"
    )
    fields = document.fields_for("User")
    by_name = {item.name: item for item in fields}

    assert names(fields) == ["id", "password", "managerId", "createdAt"]
    assert by_name["id"].is_primary_key
    assert by_name["password"].get_metadata(MetadataKeys.DATA_TYPE) == "Password"
    assert by_name["password"].get_metadata(MetadataKeys.SENSITIVE) is True
    assert by_name["managerId"].get_metadata(MetadataKeys.ON_DELETE) == "CASCADE"
    assert by_name["managerId"].get_metadata(MetadataKeys.REFERENCE_TARGET) == "User"
    assert by_name["createdAt"].get_metadata(MetadataKeys.IMPLEMENTED_FROM_INTERFACE) == "IAudited"
    assert by_name["createdAt"].get_metadata(MetadataKeys.DATA_TYPE) == "DateTime"
