"""Tests for the type_graph module."""

from apistub.type_graph import TypeGraphBuilder, name_from_pointer, schema_ref
from apistub.type_nodes import ArrayType, ObjectType, ReferenceHandle, UnionType


_SPEC: dict = {
    "components": {
        "schemas": {
            "Pet": {
                "type": "object",
                "description": "A <b>pet</b>.",
                "properties": {
                    "name": {"type": "string"},
                    "owner": {
                        "type": "object",
                        "properties": {"email": {"type": "string"}},
                    },
                    "tags": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {"label": {"type": "string"}},
                        },
                    },
                },
            },
            "PetOwner": {"type": "string"},
            "Shape": {
                "oneOf": [
                    {
                        "type": "object",
                        "properties": {
                            "kind": {"enum": ["circle"]},
                            "radius": {"type": "number"},
                        },
                    },
                    {
                        "type": "object",
                        "properties": {
                            "kind": {"enum": ["square"]},
                            "side": {"type": "number"},
                        },
                    },
                ],
            },
            "Tree": {
                "type": "object",
                "properties": {
                    "children": {
                        "type": "array",
                        "items": {"$ref": "#/components/schemas/Tree"},
                    },
                },
            },
        }
    }
}


def _build() -> TypeGraphBuilder:
    builder = TypeGraphBuilder(_SPEC)
    builder.add_components()
    return builder


class TestPointerNames:
    """Test names derived from reference strings."""

    def test_schema_ref(self):
        assert schema_ref("Pet") == "#/components/schemas/Pet"
        assert schema_ref("a/b") == "#/components/schemas/a~1b"

    def test_name_from_pointer(self):
        assert name_from_pointer("#/components/responses/NotFound") == "ResponsesNotFound"
        assert name_from_pointer("#/components/schemas/Pet/properties/owner") == "PetOwner"

    def test_name_from_empty_pointer(self):
        assert name_from_pointer("#") == "Model"


class TestComponents:
    """Component schemas keep their declared names and order."""

    def test_declared_names_first(self):
        graph = _build().build()
        names = [t.id for t in graph]
        assert names[:4] == ["Pet", "PetOwner", "Shape", "Tree"]

    def test_index_by_ref(self):
        graph = _build().build()
        assert graph.id_for("#/components/schemas/Pet") == "Pet"
        assert graph.get("Pet").origin == "schema"
        assert graph.get("Pet").description == "A pet."

    def test_nested_record_hoisted_with_suffix(self):
        """PetOwner is taken by a declaration, so the nested record gets a suffix."""
        graph = _build().build()
        owner = graph.get("Pet").node.field_named("owner").node
        assert owner == ReferenceHandle("PetOwner2")
        assert graph.get("PetOwner2").origin == "inline"

    def test_array_element_hoisted(self):
        graph = _build().build()
        tags = graph.get("Pet").node.field_named("tags").node
        assert tags == ArrayType(ReferenceHandle("PetTagsItem"))
        assert isinstance(graph.get("PetTagsItem").node, ObjectType)

    def test_union_variants_named_by_tag(self):
        graph = _build().build()
        shape = graph.get("Shape").node
        assert isinstance(shape, UnionType)
        assert shape.discriminator == "kind"
        assert shape.variants == (
            ReferenceHandle("ShapeCircle"),
            ReferenceHandle("ShapeSquare"),
        )

    def test_recursive_schema(self):
        graph = _build().build()
        children = graph.get("Tree").node.field_named("children").node
        assert children == ArrayType(ReferenceHandle("Tree"))

    def test_dereference(self):
        graph = _build().build()
        assert graph.dereference(ReferenceHandle("Tree")) is graph.get("Tree").node
        assert graph.dereference(ReferenceHandle("Nope")) is None


class TestDeterminism:
    """Building twice yields the same table."""

    def test_same_ids_and_nodes(self):
        first = _build().build()
        second = _build().build()
        assert [t.id for t in first] == [t.id for t in second]
        assert [t.node for t in first] == [t.node for t in second]

    def test_recursive_union_tagged_in_any_order(self):
        """A variant pointing back at its union does not hide the tag."""
        schemas = {
            "Lit": {"type": "object", "properties": {"kind": {"enum": ["lit"]}}},
            "Add": {
                "type": "object",
                "properties": {
                    "kind": {"enum": ["add"]},
                    "left": {"$ref": "#/components/schemas/Expr"},
                },
            },
            "Expr": {"oneOf": [
                {"$ref": "#/components/schemas/Lit"},
                {"$ref": "#/components/schemas/Add"},
            ]},
        }
        for order in (["Expr", "Lit", "Add"], ["Add", "Lit", "Expr"], ["Lit", "Add", "Expr"]):
            builder = TypeGraphBuilder({"components": {"schemas": {k: schemas[k] for k in order}}})
            builder.add_components()
            expr = builder.build().get("Expr").node
            assert expr == UnionType(
                (ReferenceHandle("Lit"), ReferenceHandle("Add")), discriminator="kind"
            ), order


class TestInlineAndEnvelopes:
    """Operation-level schemas and synthesized envelopes."""

    def test_inline_record_named(self):
        builder = _build()
        node = builder.add_inline(
            {"type": "object", "properties": {"q": {"type": "string"}}},
            "SearchRequest",
            "paths./search.post/requestBody",
        )
        assert node == ReferenceHandle("SearchRequest")
        graph = builder.build()
        assert graph.id_for("paths./search.post/requestBody") == "SearchRequest"

    def test_inline_ref_not_duplicated(self):
        builder = _build()
        node = builder.add_inline({"$ref": "#/components/schemas/Pet"}, "GetPet200Response", "k")
        assert node == ReferenceHandle("Pet")
        assert builder.build().get("GetPet200Response") is None

    def test_shared_mapping_declared_once(self):
        shared = {"type": "object", "properties": {"id": {"type": "integer"}}}
        builder = _build()
        first = builder.add_inline(shared, "FirstRequest", "a")
        second = builder.add_inline(shared, "SecondRequest", "b")
        assert first == second == ReferenceHandle("FirstRequest")

    def test_reserved_names_avoided(self):
        builder = TypeGraphBuilder(
            {"components": {"schemas": {"Any": {"type": "string"}}}}, reserved={"Any"}
        )
        builder.add_components()
        assert builder.build().id_for("#/components/schemas/Any") == "Any2"

    def test_envelope(self):
        builder = _build()
        ident = builder.add_envelope("ListPetsParameters", ObjectType(), "env", "Params.")
        named = builder.build().get(ident)
        assert named.origin == "envelope"
        assert named.description == "Params."
