"""Tests for whiteshelf.roadmap."""

import pytest
from whiteshelf.errors import AlreadyExists, InvalidInput, NotFound, ParseError
from whiteshelf.frontmatter import parse, serialize
from whiteshelf.roadmap import (
    DEFAULT_LABEL,
    RoadmapNode,
    add_node,
    delete_node,
    find_node,
    generate_node_id,
    get_nodes,
    parse_node,
    update_node,
)

ROADMAP = '---\ntitle: "Learn Go"\ncategory: "general"\nnodes: []\n---\n'


@pytest.fixture
def doc():
    return parse(ROADMAP)


class TestRoadmapNode:
    def test_defaults(self):
        node = RoadmapNode(id="n1")
        assert node.to_dict() == {
            "id": "n1",
            "label": DEFAULT_LABEL,
            "parents": [],
            "resources": [],
            "notes": "",
        }

    def test_parse_node_fills_missing_fields(self):
        node = parse_node({"id": "n1", "label": "Intro"})
        assert node.parents == []
        assert node.resources == []
        assert node.notes == ""

    @pytest.mark.parametrize("key", ["parents", "resources"])
    def test_parse_node_rejects_scalar_list_field(self, key):
        with pytest.raises(ParseError):
            parse_node({"id": "n1", key: "xy"})

    def test_scalar_parents_in_file(self):
        doc = parse('---\nnodes: [{"id": "a", "parents": "xy"}]\n---\n')
        with pytest.raises(ParseError):
            update_node(doc, "a", {"label": "A"})

    def test_to_dict_copies_lists(self):
        node = RoadmapNode(id="n1", parents=["a"])
        d = node.to_dict()
        d["parents"].append("b")
        assert node.parents == ["a"]


class TestGenerateNodeId:
    def test_uses_clock(self):
        assert generate_node_id(set(), clock=lambda: 1718000000.7) == "node_1718000000"

    def test_suffix_until_unique(self):
        existing = {"node_5", "node_5_2"}
        assert generate_node_id(existing, clock=lambda: 5) == "node_5_3"


class TestAddNode:
    def test_add_with_defaults(self, doc):
        node = add_node(doc)
        assert node.id.startswith("node_")
        assert node.label == DEFAULT_LABEL
        assert node.parents == []
        assert node.resources == []
        assert node.notes == ""
        assert doc.fields["nodes"] == [node.to_dict()]

    def test_add_with_id_and_label(self, doc):
        node = add_node(doc, node_id="intro", label="Intro")
        assert node.id == "intro"
        assert node.label == "Intro"

    def test_appends_in_order(self, doc):
        add_node(doc, node_id="a")
        add_node(doc, node_id="b")
        add_node(doc, node_id="c")
        assert [n["id"] for n in doc.fields["nodes"]] == ["a", "b", "c"]

    def test_generated_ids_are_distinct(self, doc):
        first = add_node(doc)
        second = add_node(doc)
        assert first.id != second.id

    def test_duplicate_id(self, doc):
        add_node(doc, node_id="a")
        with pytest.raises(AlreadyExists):
            add_node(doc, node_id="a")
        assert len(doc.fields["nodes"]) == 1

    @pytest.mark.parametrize("node_id", ["", "   ", 5])
    def test_invalid_id(self, doc, node_id):
        with pytest.raises(InvalidInput):
            add_node(doc, node_id=node_id)

    def test_invalid_label(self, doc):
        with pytest.raises(InvalidInput):
            add_node(doc, label=["x"])

    def test_creates_nodes_field_at_end(self):
        doc = parse('---\ntitle: "R"\ncategory: "c"\n---\n')
        add_node(doc, node_id="a")
        assert list(doc.fields) == ["title", "category", "nodes"]

    def test_field_order_unchanged(self, doc):
        add_node(doc, node_id="a")
        assert list(doc.fields) == ["title", "category", "nodes"]


class TestUpdateNode:
    @pytest.fixture
    def node_doc(self, doc):
        add_node(doc, node_id="a", label="A")
        add_node(doc, node_id="b", label="B")
        update_node(
            doc, "b", {"parents": ["a"], "resources": ["r1"], "notes": "n"}
        )
        return doc

    def test_label_only(self, node_doc):
        node = update_node(node_doc, "b", {"label": "X"})
        assert node == RoadmapNode(
            id="b", label="X", parents=["a"], resources=["r1"], notes="n"
        )

    def test_none_means_not_supplied(self, node_doc):
        node = update_node(
            node_doc,
            "b",
            {"label": None, "parents": None, "resources": None, "notes": None},
        )
        assert node == RoadmapNode(
            id="b", label="B", parents=["a"], resources=["r1"], notes="n"
        )

    def test_empty_parents_clears(self, node_doc):
        node = update_node(node_doc, "b", {"parents": []})
        assert node.parents == []
        assert node.resources == ["r1"]

    def test_parents_replaced_not_merged(self, node_doc):
        node = update_node(node_doc, "b", {"parents": ["c"]})
        assert node.parents == ["c"]

    def test_parents_deduplicated_in_order(self, node_doc):
        node = update_node(node_doc, "b", {"parents": ["c", "a", "c"]})
        assert node.parents == ["c", "a"]

    def test_other_nodes_untouched(self, node_doc):
        before = dict(find_node(node_doc, "a"))
        update_node(node_doc, "b", {"label": "X", "notes": "changed"})
        assert find_node(node_doc, "a") == before

    def test_updates_stored_map(self, node_doc):
        update_node(node_doc, "a", {"notes": "hello"})
        assert parse(serialize(node_doc)).fields["nodes"][0]["notes"] == "hello"

    def test_missing_node(self, node_doc):
        with pytest.raises(NotFound):
            update_node(node_doc, "zzz", {"label": "X"})

    def test_unknown_field(self, node_doc):
        with pytest.raises(InvalidInput):
            update_node(node_doc, "a", {"id": "renamed"})

    @pytest.mark.parametrize(
        "changes",
        [
            {"label": 3},
            {"notes": ["x"]},
            {"parents": "a"},
            {"resources": [1]},
            {"label": "ok", "parents": [None]},
        ],
    )
    def test_bad_types_change_nothing(self, node_doc, changes):
        before = dict(find_node(node_doc, "b"))
        with pytest.raises(InvalidInput):
            update_node(node_doc, "b", changes)
        assert find_node(node_doc, "b") == before

    def test_extra_keys_preserved(self):
        doc = parse('---\nnodes: [{"id": "a", "label": "A", "color": "red"}]\n---\n')
        update_node(doc, "a", {"label": "B"})
        assert doc.fields["nodes"][0] == {"id": "a", "label": "B", "color": "red"}


class TestDeleteNode:
    def test_delete(self, doc):
        add_node(doc, node_id="a")
        add_node(doc, node_id="b")
        assert delete_node(doc, "a") is True
        assert [n["id"] for n in doc.fields["nodes"]] == ["b"]

    def test_delete_missing_is_noop(self, doc):
        add_node(doc, node_id="a")
        assert delete_node(doc, "zzz") is False
        assert [n["id"] for n in doc.fields["nodes"]] == ["a"]

    def test_delete_twice(self, doc):
        add_node(doc, node_id="a")
        add_node(doc, node_id="b")
        delete_node(doc, "a")
        first = list(doc.fields["nodes"])
        delete_node(doc, "a")
        assert doc.fields["nodes"] == first

    def test_delete_without_nodes_field(self):
        doc = parse('---\ntitle: "R"\n---\n')
        assert delete_node(doc, "a") is False
        assert "nodes" not in doc.fields

    def test_parent_references_are_kept(self, doc):
        add_node(doc, node_id="a")
        add_node(doc, node_id="b")
        update_node(doc, "b", {"parents": ["a"]})
        delete_node(doc, "a")
        assert find_node(doc, "b")["parents"] == ["a"]


class TestGetNodes:
    def test_missing_field(self):
        assert get_nodes(parse('---\ntitle: "R"\n---\n')) == []

    def test_not_an_array(self):
        with pytest.raises(ParseError):
            get_nodes(parse('---\nnodes: "oops"\n---\n'))

    def test_entries_must_be_maps(self):
        with pytest.raises(ParseError):
            get_nodes(parse('---\nnodes: ["a"]\n---\n'))


class TestNodeLifecycle:
    def test_add_update_delete(self, doc):
        node = add_node(doc, label="Intro")
        assert doc.fields["nodes"] == [
            {
                "id": node.id,
                "label": "Intro",
                "parents": [],
                "resources": [],
                "notes": "",
            }
        ]

        updated = update_node(doc, node.id, {"parents": ["other-id"]})
        assert updated == RoadmapNode(
            id=node.id, label="Intro", parents=["other-id"], resources=[], notes=""
        )

        delete_node(doc, node.id)
        assert parse(serialize(doc)).fields["nodes"] == []
