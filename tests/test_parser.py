"""
Tests for the M3L structural parser

This module covers headings, field lines, extended field syntax, enums,
sections, error policy, hooks and name normalization.
"""

from unittest import TestCase

from m3l_codegen.config import ParserOptions
from m3l_codegen.domain.models import Document
from m3l_codegen.exceptions import ParseError
from m3l_codegen.parsing import M3LParser, format_document


def parse(text, **options):
    return M3LParser(ParserOptions(**options)).parse(text)


class TestHeadings(TestCase):
    """Test cases for `##` heading lines"""

    def test_model_heading_with_label_inheritance_and_description(self):
        """Test name, label, inherited names and description are split out"""
        document = parse("## User(Customer account) : Base, IAudited # People who buy things\n- id: int")

        model = document.models[0]
        self.assertEqual(model.name, "User")
        self.assertEqual(model.label, "Customer account")
        self.assertEqual(model.inherits, ["Base", "IAudited"])
        self.assertEqual(model.description, "People who buy things")

    def test_kind_markers(self):
        """Test ::interface and ::enum blocks land in their own lists"""
        document = parse("## IAudited ::interface\n- createdAt: datetime\n\n## Color ::enum\n- Red\n")

        self.assertEqual([item.name for item in document.interfaces], ["IAudited"])
        self.assertEqual([item.name for item in document.enums], ["Color"])
        self.assertEqual(document.models, [])

    def test_heading_tags(self):
        """Test @abstract and @default tags on a heading"""
        document = parse("## BaseEntity @abstract @default\n- id: int @primary")

        model = document.models[0]
        self.assertTrue(model.is_abstract)
        self.assertTrue(model.is_default)
        self.assertEqual(document.default_model.name, "BaseEntity")

    def test_namespace_line(self):
        """Test `# Namespace:` sets the document namespace"""
        document = parse("# Namespace: Sample.Store\n\n## User\n- id: int")
        self.assertEqual(document.namespace, "Sample.Store")

    def test_empty_heading_raises_even_when_lenient(self):
        """Test a heading without a name is always fatal"""
        with self.assertRaises(ParseError) as ctx:
            parse("## \n- id: int")
        self.assertEqual(ctx.exception.line_number, 1)

    def test_unknown_kind_is_skipped_when_lenient(self):
        """Test an unknown ::kind drops the block and records a warning"""
        parser = M3LParser()
        document = parser.parse("## Thing ::widget\n- a: int\n\n## Ok\n- id: int")

        self.assertEqual([model.name for model in document.models], ["Ok"])
        self.assertEqual(len(parser.warnings), 1)

    def test_malformed_heading_is_skipped_when_lenient(self):
        """Test a named heading with a broken label drops only that block"""
        parser = M3LParser()
        document = parser.parse("## Order (draft\n- id: int\n\n## M(My (big) model)\n- id: int\n\n## User\n- id: int\n")

        self.assertEqual([model.name for model in document.models], ["User"])
        self.assertEqual(len(parser.warnings), 2)
        with self.assertRaises(ParseError) as ctx:
            parse("## Order (draft\n- id: int", strict_mode=True)
        self.assertEqual(ctx.exception.block, "Order")

    def test_unknown_kind_raises_when_strict(self):
        """Test strict mode rejects an unknown ::kind"""
        with self.assertRaises(ParseError):
            parse("## Thing ::widget\n- a: int", strict_mode=True)

    def test_whitespace_in_name(self):
        """Test an entity name with whitespace is rejected"""
        self.assertEqual(parse("## My Model\n- id: int").models, [])
        with self.assertRaises(ParseError):
            parse("## My Model\n- id: int", strict_mode=True)

    def test_duplicate_entity_name(self):
        """Test the first of two same-named blocks wins in lenient mode"""
        document = parse("## A\n- id: int\n\n## A\n- other: int")

        self.assertEqual(len(document.models), 1)
        self.assertEqual(document.models[0].fields[0].name, "id")
        with self.assertRaises(ParseError):
            parse("## A\n- id: int\n\n## A\n- other: int", strict_mode=True)


class TestFieldLines(TestCase):
    """Test cases for single-line field definitions"""

    def setUp(self):
        """Set up test fixtures."""
        self.document = parse(
            "## Product\n"
            "- id: int @primary\n"
            "- name(Display name): string(100) @unique\n"
            "- price: decimal(18,2) = 0\n"
            "- createdAt: datetime = now()\n"
            "- title: string = \"Hello world\" @searchable\n"
            "- note: text?\n"
            "- code: string?(20)\n"
            "- secret: string [JsonIgnore] @sensitive [DataType(DataType.Password)]\n"
        )
        self.model = self.document.models[0]

    def test_primary_and_unique_tags(self):
        """Test @primary and @unique attributes"""
        self.assertTrue(self.model.get_field("id").is_primary_key)
        self.assertTrue(self.model.get_field("name").is_unique)
        self.assertEqual(self.model.primary_key_fields, [self.model.get_field("id")])

    def test_label_type_and_length(self):
        """Test label, type and length parsing"""
        name = self.model.get_field("name")
        self.assertEqual(name.label, "Display name")
        self.assertEqual(name.type, "string")
        self.assertEqual(name.length, "100")
        self.assertEqual(self.model.get_field("price").length, "18,2")

    def test_generic_types(self):
        """Test generic arguments stay part of the type"""
        document = parse("## A\n- tags: List<string>\n- lookup: Dictionary<string,int>? @unique\n")
        model = document.models[0]

        self.assertEqual(model.get_field("tags").type, "List<string>")
        self.assertEqual(model.get_field("tags").attributes, [])
        self.assertEqual(model.get_field("lookup").type, "Dictionary<string,int>")
        self.assertTrue(model.get_field("lookup").is_nullable)
        self.assertTrue(model.get_field("lookup").is_unique)

    def test_default_values(self):
        """Test plain, function-call and quoted defaults"""
        self.assertEqual(self.model.get_field("price").default_value, "0")
        self.assertEqual(self.model.get_field("createdAt").default_value, "now()")

        title = self.model.get_field("title")
        self.assertEqual(title.default_value, "Hello world")
        self.assertEqual(title.attributes, ["@searchable"])

    def test_nullable_markers(self):
        """Test `?` before and after the length"""
        note = self.model.get_field("note")
        self.assertTrue(note.is_nullable)
        self.assertFalse(note.is_required)

        code = self.model.get_field("code")
        self.assertTrue(code.is_nullable)
        self.assertEqual(code.length, "20")
        self.assertTrue(self.model.get_field("id").is_required)

    def test_tags_in_any_order(self):
        """Test attributes and bracketed directives are collected in source order"""
        secret = self.model.get_field("secret")
        self.assertEqual(secret.attributes, ["@sensitive"])
        self.assertEqual(secret.framework_attributes, ["JsonIgnore", "DataType(DataType.Password)"])

    def test_field_spans(self):
        """Test each field records the line it came from"""
        self.assertEqual(self.model.get_field("id").line_number, 2)
        self.assertEqual(self.model.line_number, 1)

    def test_reference_target(self):
        """Test @reference(X) exposes its target"""
        document = parse("## Order\n- customerId: int @reference(Customer)")
        item = document.models[0].fields[0]
        self.assertTrue(item.is_reference)
        self.assertEqual(item.reference_target, "Customer")

    def test_description_lines(self):
        """Test `>` lines describe the preceding field"""
        document = parse("## User\n- bio: text?\n  > Free text\n  > shown on the profile\n- id: int")
        self.assertEqual(document.models[0].get_field("bio").description, "Free text shown on the profile")


class TestMalformedFields(TestCase):
    """Test cases for the strict / lenient error policy on fields"""

    def test_missing_type(self):
        """Test a bare name without sub-lines has no type"""
        parser = M3LParser()
        document = parser.parse("## User\n- id: int\n- orphan\n")
        self.assertEqual([item.name for item in document.models[0].fields], ["id"])
        self.assertEqual(len(parser.warnings), 1)

        with self.assertRaises(ParseError) as ctx:
            parse("## User\n- id: int\n- orphan\n", strict_mode=True)
        self.assertEqual(ctx.exception.line_number, 3)
        self.assertEqual(ctx.exception.block, "User")

    def test_duplicate_field(self):
        """Test a repeated field name keeps the first definition"""
        document = parse("## User\n- id: int\n- id: string")
        self.assertEqual(len(document.models[0].fields), 1)
        self.assertEqual(document.models[0].fields[0].type, "int")

    def test_malformed_field_line(self):
        """Test a field line without a name"""
        self.assertEqual(parse("## User\n- : int\n- id: int").models[0].fields[0].name, "id")
        with self.assertRaises(ParseError):
            parse("## User\n- : int", strict_mode=True)

    def test_unterminated_default(self):
        """Test an unclosed quoted default is dropped in lenient mode"""
        document = parse("## User\n- title: string = \"oops\n")
        title = document.models[0].get_field("title")
        self.assertIsNotNone(title)
        self.assertIsNone(title.default_value)

        with self.assertRaises(ParseError):
            parse("## User\n- title: string = \"oops\n", strict_mode=True)

    def test_unterminated_directive(self):
        """Test an unclosed bracketed directive"""
        with self.assertRaises(ParseError):
            parse("## User\n- name: string [Required", strict_mode=True)

        document = parse("## User\n- name: string [Required")
        self.assertEqual(document.models[0].get_field("name").framework_attributes, [])


class TestExtendedFields(TestCase):
    """Test cases for fields refined by more-indented sub-lines"""

    def test_extended_field_definition(self):
        """Test type, description and tags from sub-lines"""
        document = parse(
            "## Product\n"
            "- price\n"
            "  - type: decimal(10,2)\n"
            "  - description: Unit price\n"
            "  - [Range(0, 1000)]\n"
            "  - @unique\n"
            "- id: int @primary\n"
        )
        model = document.models[0]
        price = model.get_field("price")

        self.assertEqual(price.type, "decimal")
        self.assertEqual(price.length, "10,2")
        self.assertEqual(price.description, "Unit price")
        self.assertEqual(price.framework_attributes, ["Range(0, 1000)"])
        self.assertTrue(price.is_unique)
        self.assertEqual([item.name for item in model.fields], ["price", "id"])

    def test_extended_nullable_and_default(self):
        """Test nullable type and default from sub-lines"""
        document = parse("## User\n- nickname\n  - type: string?\n  - default: \"anon\"\n")
        nickname = document.models[0].get_field("nickname")
        self.assertTrue(nickname.is_nullable)
        self.assertEqual(nickname.default_value, "anon")


class TestEnums(TestCase):
    """Test cases for enum blocks"""

    def test_value_forms(self):
        """Test assigned, typed, described and bare values"""
        document = parse(
            "## Priority ::enum\n"
            "- Low: int = 1 \"Low priority\"\n"
            "- Medium = 2 (Normal)\n"
            "- High = 3\n"
            "- Pending: \"Waiting for review\"\n"
            "- Unknown\n"
        )
        values = {value.name: value for value in document.get_enum("Priority").values}

        self.assertEqual(values["Low"].type, "int")
        self.assertEqual(values["Low"].value, "1")
        self.assertEqual(values["Low"].description, "Low priority")
        self.assertEqual(values["Medium"].value, "2")
        self.assertEqual(values["Medium"].description, "Normal")
        self.assertIsNone(values["High"].description)
        self.assertEqual(values["Pending"].description, "Waiting for review")
        self.assertIsNone(values["Pending"].value)
        self.assertIsNone(values["Unknown"].value)

    def test_grouped_values(self):
        """Test a bare name followed by more-indented values opens a group"""
        document = parse(
            "## Color ::enum\n"
            "- Warm\n"
            "  - Red = 1\n"
            "  - Orange = 2\n"
            "- Cool\n"
            "  - Blue = 3\n"
            "- Other\n"
        )
        values = document.get_enum("Color").values

        self.assertEqual([value.name for value in values], ["Red", "Orange", "Blue", "Other"])
        self.assertEqual([value.group for value in values], ["Warm", "Warm", "Cool", None])

    def test_descriptions_with_quotes(self):
        """Test quotes inside a description stay part of it"""
        document = parse(
            "## S ::enum\n"
            "- A = 1 (the \"best\" one)\n"
            "- B = 2 \"say \"hi\"\"\n"
            "- C: \"a \"quoted\" word\"\n"
        )
        values = {value.name: value for value in document.get_enum("S").values}

        self.assertEqual(values["A"].description, "the \"best\" one")
        self.assertEqual(values["B"].description, "say \"hi\"")
        self.assertEqual(values["C"].description, "a \"quoted\" word")

    def test_duplicate_value(self):
        """Test a repeated enum value is reported"""
        self.assertEqual(len(parse("## S ::enum\n- A = 1\n- A = 2").get_enum("S").values), 1)
        with self.assertRaises(ParseError):
            parse("## S ::enum\n- A = 1\n- A = 2", strict_mode=True)


class TestSections(TestCase):
    """Test cases for Relations, Indexes and Metadata sections and directives"""

    def setUp(self):
        """Set up test fixtures."""
        self.document = parse(
            "- author: \"Store team\"\n"
            "\n"
            "## Order\n"
            "- id: int @primary\n"
            "- customerId: int @reference(Customer)\n"
            "- createdAt: datetime\n"
            "- email: string\n"
            "- @index(customerId, createdAt, name: \"IX_Customer_Date\")\n"
            "- @unique(email)\n"
            "- @relation(items, <- OrderItem, from: orderId) \"Line items\"\n"
            "\n"
            "### Relations\n"
            "- >customer \"Buyer\"\n"
            "  - target: Customer\n"
            "  - from: customerId\n"
            "  - on_delete: restrict\n"
            "\n"
            "### Indexes\n"
            "- IX_Created (by creation date)\n"
            "  - fields: [createdAt]\n"
            "  - unique: false\n"
            "\n"
            "### Metadata\n"
            "- table: \"orders\"\n"
            "- audited\n"
            "- version: 2\n"
        )
        self.model = self.document.get_model("Order")

    def test_document_metadata(self):
        """Test `-` lines before the first heading are document metadata"""
        self.assertEqual(self.document.metadata, {"author": "Store team"})

    def test_index_directives(self):
        """Test @index with an explicit name and @unique with a generated one"""
        by_name = {index.name: index for index in self.model.indexes}

        self.assertEqual(by_name["IX_Customer_Date"].fields, ["customerId", "createdAt"])
        self.assertFalse(by_name["IX_Customer_Date"].is_unique)
        self.assertEqual(by_name["UK_email"].fields, ["email"])
        self.assertTrue(by_name["UK_email"].is_unique)

    def test_index_section(self):
        """Test an index declared in the Indexes section"""
        index = [item for item in self.model.indexes if item.name == "IX_Created"][0]
        self.assertEqual(index.fields, ["createdAt"])
        self.assertEqual(index.description, "by creation date")
        self.assertFalse(index.is_unique)

    def test_relations(self):
        """Test relation directive and relation section entries"""
        relations = {relation.name: relation for relation in self.model.relations}

        items = relations["items"]
        self.assertEqual(items.target, "OrderItem")
        self.assertFalse(items.is_to_one)
        self.assertEqual(items.from_field, "orderId")
        self.assertEqual(items.description, "Line items")

        customer = relations["customer"]
        self.assertTrue(customer.is_to_one)
        self.assertEqual(customer.target, "Customer")
        self.assertEqual(customer.from_field, "customerId")
        self.assertEqual(customer.on_delete, "restrict")
        self.assertEqual(customer.description, "Buyer")

    def test_metadata_section(self):
        """Test metadata values are coerced"""
        self.assertEqual(self.model.metadata, {"table": "orders", "audited": True, "version": 2})


class TestCommentsAndHooks(TestCase):
    """Test cases for comments, pre/post processing and normalization"""

    def test_comments_are_ignored(self):
        """Test // and multi-line <!-- --> comments"""
        document = parse(
            "// top comment\n"
            "<!--\n"
            "## Hidden\n"
            "- x: int\n"
            "-->\n"
            "## Visible\n"
            "// inside\n"
            "- id: int\n"
        )
        self.assertEqual([model.name for model in document.models], ["Visible"])
        self.assertEqual(len(document.models[0].fields), 1)

    def test_pre_process_hook(self):
        """Test the pre-process hook rewrites the text before parsing"""
        document = parse("## Entity\n- id: int", pre_process=lambda text: text.replace("Entity", "Customer"))
        self.assertEqual(document.models[0].name, "Customer")

    def test_post_process_hook(self):
        """Test post-process may mutate the document or replace it"""
        document = parse("## User\n- id: int", post_process=lambda doc: doc.metadata.update({"checked": True}))
        self.assertEqual(document.metadata, {"checked": True})

        replaced = parse("## User\n- id: int", post_process=lambda doc: Document(namespace="Replaced"))
        self.assertEqual(replaced.namespace, "Replaced")
        self.assertEqual(replaced.models, [])

    def test_normalize_names(self):
        """Test PascalCase entities, camelCase fields and rewritten references"""
        document = parse(
            "## order_header\n- id: int @primary\n\n"
            "## order_item : order_header\n- unit_price: decimal\n- header_id: int @reference(order_header)\n",
            normalize_names=True,
        )
        item = document.get_model("OrderItem")

        self.assertIsNotNone(document.get_model("OrderHeader"))
        self.assertEqual(item.inherits, ["OrderHeader"])
        self.assertEqual([field.name for field in item.fields], ["unitPrice", "headerId"])
        self.assertEqual(item.get_field("headerId").reference_target, "OrderHeader")

    def test_normalize_names_rewrites_entity_types(self):
        """Test field types naming a renamed enum or model follow the rename"""
        document = parse(
            "## user_status ::enum\n- Active = 1\n\n"
            "## address\n- street: string\n\n"
            "## user\n- status: user_status\n- home: address?\n- name: string\n",
            normalize_names=True,
        )
        user = document.get_model("User")

        self.assertEqual([enum.name for enum in document.enums], ["UserStatus"])
        self.assertEqual(user.get_field("status").type, "UserStatus")
        self.assertEqual(user.get_field("home").type, "Address")
        self.assertEqual(user.get_field("name").type, "string")

    def test_parse_file_missing(self):
        """Test an unreadable file raises ParseError"""
        with self.assertRaises(ParseError):
            M3LParser().parse_file("/nonexistent/models.m3l")


def test_parse_is_deterministic(store_model_text):
    """Parsing the same text twice yields equal documents"""
    assert parse(store_model_text) == parse(store_model_text)


def test_writer_output_parses_back(store_model_text):
    """format_document output reads back as an equal document"""
    document = parse(store_model_text)
    written = format_document(document)

    assert parse(written) == document
    assert written.startswith("# Namespace: Sample.Store")


def test_writer_keeps_quoted_descriptions():
    """Descriptions containing double quotes survive a write and re-parse"""
    document = parse(
        "## Order\n"
        "- id: int @primary\n"
        "\n"
        "### Relations\n"
        "- >customer \"the \"main\" buyer\"\n"
        "  - target: Customer\n"
        "\n"
        "## S ::enum\n"
        "- A = 1 (the \"best\" one)\n"
        "- B: \"a \"quoted\" word\"\n"
    )
    reparsed = parse(format_document(document))

    assert reparsed == document
    assert [value.name for value in reparsed.get_enum("S").values] == ["A", "B"]
    assert reparsed.get_model("Order").relations[0].description == 'the "main" buyer'


def test_store_model_structure(store_model_text):
    """The sample store parses into the expected blocks"""
    document = parse(store_model_text, strict_mode=True)

    assert [model.name for model in document.models] == ["BaseEntity", "User", "Order"]
    assert [interface.name for interface in document.interfaces] == ["IAudited"]
    assert [enum.name for enum in document.enums] == ["UserStatus"]
    assert document.get_model("Order").get_field("note").description == "Free text note"
    assert document.get_model("User").get_field("status").default_value == "Active"
