"""
Tests for QueryResult: filtering, sorting, tracked mutations and aggregation.
"""

import json
import re
import threading

import pytest

from pdfquery.adapters import from_docai
from pdfquery.compiler import DocCompiler
from pdfquery.query import QueryResult, create_query_engine, execute_query, query_page, query_pages
from pdfquery.vdom import BoundingBox, EntityMeta, VirtualDoc, VirtualEntity, VirtualPage


@pytest.fixture
def q(doc):
    return create_query_engine(doc)


def make_entity(entity_id, xmin, ymin, confidence=0.5, value=None):
    return VirtualEntity(
        id=entity_id,
        type="text",
        text=entity_id,
        bbox=BoundingBox(xmin, ymin, xmin + 0.1, ymin + 0.05),
        meta=EntityMeta(confidence=confidence),
        page_index=0,
        value=value,
    )


def make_doc(entities):
    return VirtualDoc(id="loose", pages=[VirtualPage(id="p_0", page_index=0, page_number=1, entities=entities)])


# -------------------------
# Reads
# -------------------------


class TestFiltering:
    def test_filter_with_selector_and_predicate(self, q):
        high = q("*").filter("[confidence>0.9]")
        assert len(high) == 7
        assert all(e.meta.confidence > 0.9 for e in high)
        assert q("*").filter(lambda e: e.type == "total").ids() == ["e1"]

    def test_not(self, q):
        assert len(q("*").not_(".header")) == 10
        assert q(".table").not_(lambda e: e.page_number == 1).ids() == ["t2"]

    def test_contains_and_matches(self, q):
        assert q("*").contains("GROWTH").ids() == ["t1", "t1_r2_c0"]
        assert q("*").matches(r"^\d+$").ids() == ["t2_r1_c1"]
        assert q("*").matches(re.compile(r"^q\d", re.IGNORECASE)).ids() == ["t2_r1_c0"]

    def test_page_and_table(self, q):
        assert len(q("*").on_page(2)) == 6
        assert q("*").in_table("t2").ids() == ["t2_r0_c0", "t2_r0_c1", "t2_r1_c0", "t2_r1_c1"]

    def test_slicing(self, q):
        headers = q(".header")
        assert headers.take(2).ids() == ["t1_r0_c0", "t1_r0_c1"]
        assert headers.take(-1).ids() == []
        assert headers.skip(3).ids() == ["t2_r0_c1"]
        assert headers.first().ids() == ["t1_r0_c0"]
        assert headers.last().ids() == ["t2_r0_c1"]
        assert headers.eq(-2).ids() == ["t2_r0_c0"]
        assert headers.eq(10).ids() == []
        assert headers.by_id("t1_r0_c1").ids() == ["t1_r0_c1"]

    def test_results_are_independent_views(self, q):
        base = q(".table")
        base.filter(".bogus")
        assert len(base) == 2


class TestSorting:
    def test_sort_by_confidence(self, q):
        ordered = q("#e1, #e2, #t2").sort_by_confidence()
        assert ordered.ids() == ["e1", "t2", "e2"]

    def test_sort_by_confidence_tolerates_missing_confidence(self):
        unscored = make_entity("unscored", 0.1, 0.1, confidence=None)
        scored = make_entity("scored", 0.1, 0.2, confidence=0.4)
        doc = make_doc([unscored, scored])
        assert create_query_engine(doc)("*").sort_by_confidence().ids() == ["scored", "unscored"]
        assert [i.id for i in execute_query(doc, {"sortBy": "confidence"}).items] == ["scored", "unscored"]

    def test_null_vendor_confidence_sorts(self):
        box = [{"x": 0.1, "y": 0.1}, {"x": 0.5, "y": 0.1}, {"x": 0.5, "y": 0.2}, {"x": 0.1, "y": 0.2}]
        document = {"text": "AB", "pages": [{"pageNumber": 1, "lines": [
            {"layout": {"textAnchor": {"textSegments": [{"endIndex": "1"}]},
                        "boundingPoly": {"normalizedVertices": box}, "confidence": None}},
            {"layout": {"textAnchor": {"textSegments": [{"startIndex": "1", "endIndex": "2"}]},
                        "boundingPoly": {"normalizedVertices": box}, "confidence": 0.8}},
        ]}]}
        doc = DocCompiler().add_adapter_result(from_docai(document)).compile()

        assert [e.meta.confidence for e in doc.iter_entities()] == [1, 0.8]
        assert create_query_engine(doc)("*").sort_by_confidence().texts() == ["A", "B"]
        assert execute_query(doc, {"sortBy": "confidence"}).returned == 2

    def test_sort_by_field_name(self, q):
        assert q(".table").sort_by("confidence").ids() == ["t2", "t1"]

    def test_sort_by_text_field(self, q):
        assert q(".label").sort_by("text").texts() == ["Growth", "Q1", "Revenue"]

    def test_sort_by_key_function(self, q):
        assert q(".currency").sort_by(lambda e: -e.value).ids() == ["t1_r1_c1", "t2_r1_c1"]

    def test_sort_by_position_groups_rows(self):
        a = make_entity("a", 0.5, 0.100)
        b = make_entity("b", 0.1, 0.105)
        c = make_entity("c", 0.2, 0.300)
        d = make_entity("d", 0.0, 0.200)
        doc = make_doc([c, a, d, b])
        ordered = create_query_engine(doc)("*").sort_by_position()
        assert ordered.ids() == ["b", "a", "d", "c"]

    def test_sort_by_position_stable_within_row(self):
        a = make_entity("a", 0.3, 0.100)
        b = make_entity("b", 0.3, 0.104)
        doc = make_doc([b, a])
        assert create_query_engine(doc)("*").sort_by_position().ids() == ["b", "a"]


class TestAccessors:
    def test_get(self, q):
        assert q(".table").get(1).id == "t2"
        assert q(".table").get(5) is None

    def test_text_texts_values(self, q):
        assert q("#e1").text() == "$5,000"
        assert q(".bogus").text() is None
        assert q(".currency").values() == [pytest.approx(1234.56), 100.0]
        assert q(".table").types() == ["table", "table"]

    def test_functional_helpers(self, q):
        seen = []
        q(".table").each(lambda e: seen.append(e.id))
        assert seen == ["t1", "t2"]
        assert q(".table").map(lambda e: e.page_number) == [1, 2]
        assert q(".currency").reduce(lambda acc, e: acc + e.value, 0) == pytest.approx(1334.56)
        assert q("*").some(lambda e: e.type == "date")
        assert not q("*").every(lambda e: e.type == "date")
        assert q("*").find(lambda e: e.type == "date").id == "e2"
        assert q("*").find(lambda e: e.type == "figure") is None

    def test_get_doc(self, q, doc):
        assert q("*").get_doc() is doc


# -------------------------
# Mutations
# -------------------------


class TestMutations:
    def test_attr_read(self, q):
        assert q("#e2").attr("flagReason") == "blurry"
        assert q("#e2").attr("type") == "date"
        assert q(".bogus").attr("confidence") is None

    def test_attr_tracks_only_real_changes(self, q, doc):
        result = q(".table").attr("verificationStatus", "verified")
        changes = result.changes()
        assert len(changes) == 1
        assert changes[0].entity_id == "t2"
        assert changes[0].old_value == "pending"
        assert changes[0].new_value == "verified"
        assert changes[0].page_index == 1
        assert doc.version == 2

    def test_version_strictly_increases(self, q, doc):
        high = q("*").filter("[confidence>0.9]")
        before = doc.version
        high.attr("verified", False)
        assert len(high.changes()) == 7
        assert doc.version > before

    def test_no_op_keeps_version(self, q, doc):
        modified = doc.meta.last_modified
        result = q("#t1").attr("confidence", 0.95)
        assert not result.has_changes()
        assert doc.version == 1
        assert doc.meta.last_modified == modified

    def test_int_and_float_compare_by_value(self, q, doc):
        q("#t2_r1_c1").attr("value", 100)
        assert doc.version == 1

    def test_attr_dict_is_one_command(self, q, doc):
        result = q("#e1").attr({"verified": True, "verifiedBy": "alice"})
        assert [c.field for c in result.changes()] == ["verified", "verifiedBy"]
        assert doc.version == 2
        entity = result.get(0)
        assert entity.meta.verified is True
        assert entity.meta.verified_by == "alice"

    def test_attr_routing(self, q):
        result = q("#e1")
        result.attr("text", "$5,100")
        result.attr("reviewNote", "rechecked")
        entity = result.get(0)
        assert entity.text == "$5,100"
        assert entity.meta.extra == {"reviewNote": "rechecked"}
        assert q("[reviewNote=rechecked]").ids() == ["e1"]

    def test_edits_visible_to_new_queries(self, q, doc):
        q(".currency").attr("verificationStatus", "flagged")
        fresh = create_query_engine(doc)
        assert fresh("[verificationStatus=flagged]").ids() == ["t1_r1_c1", "e2", "t2_r1_c1"]

    def test_toggle_attr_single_version_bump(self, q, doc):
        result = q(".header").toggle_attr("highlight")
        assert doc.version == 2
        assert len(result.changes()) == 4
        assert all(e.meta.highlight is True for e in result)

        result.toggle_attr("highlight")
        assert doc.version == 3
        assert all(e.meta.highlight is False for e in result)

    def test_toggle_attr_force(self, q, doc):
        result = q(".table").toggle_attr("verified", force=True)
        assert [c.entity_id for c in result.changes()] == ["t2"]
        assert doc.version == 2

    def test_remove_attr(self, q, doc):
        result = q("#e2")
        result.remove_attr(["flagReason", "verificationStatus", "text"])
        assert [(c.field, c.old_value, c.new_value) for c in result.changes()] == [
            ("flagReason", "blurry", None),
        ]
        entity = result.get(0)
        assert entity.meta.flag_reason is None
        assert entity.meta.verification_status == "flagged"
        assert entity.text == "2024-01-15"
        assert doc.version == 2

    def test_remove_missing_attr_is_no_op(self, q, doc):
        q(".table").remove_attr("selected")
        assert doc.version == 1

    def test_remove_extension_key(self, q):
        result = q("#t1").attr("note", "x")
        result.clear_changes()
        result.remove_attr("note")
        assert result.get(0).meta.extra == {}
        assert len(result.changes()) == 1

    def test_data_bag(self, q, doc):
        result = q(".table").data("reviewer", "bob")
        assert result.data("reviewer") == "bob"
        assert result.data("confidence") == 0.95
        assert result.data("missing") is None
        assert doc.version == 1
        assert not result.has_changes()

        result.data({"a": 1, "b": 2})
        assert result.get(1).data == {"reviewer": "bob", "a": 1, "b": 2}

    def test_mutation_log(self, q, doc):
        result = q("#e1").attr("verified", True)
        log = result.get_mutation_log()
        assert log.doc_id == "doc_test"
        assert log.doc_version == 2
        data = json.loads(log.to_json())
        assert set(data) == {"docId", "docVersion", "changes", "createdAt"}
        assert data["changes"][0]["entityId"] == "e1"
        assert data["changes"][0]["oldValue"] is False
        assert data["changes"][0]["newValue"] is True

    def test_clear_changes(self, q):
        result = q("#e1").attr("verified", True)
        assert result.has_changes()
        result.clear_changes()
        assert result.changes() == []

    def test_concurrent_commands_serialize(self, q, doc):
        results = [q(".header") for _ in range(8)]
        threads = [threading.Thread(target=r.toggle_attr, args=("selected",)) for r in results]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert doc.version == 1 + 8


# -------------------------
# Aggregation
# -------------------------


class TestAggregation:
    def test_stats(self, q):
        stats = q("*").stats()
        assert stats.total == 14
        assert stats.verified == 7
        assert stats.flagged == 1
        assert stats.pending == 6
        assert stats.score == pytest.approx(0.5)
        assert stats.avg_confidence == pytest.approx((7 * 0.95 + 0.88 + 0.6 + 5 * 0.7) / 14)

    def test_empty_stats(self, q):
        stats = q(".bogus").stats()
        assert (stats.total, stats.score, stats.avg_confidence) == (0, 0.0, 0.0)

    def test_numeric_aggregates(self, q):
        currency = q(".currency")
        assert currency.sum() == pytest.approx(1334.56)
        assert currency.avg() == pytest.approx(667.28)
        assert currency.min() == 100.0
        assert currency.max() == pytest.approx(1234.56)

    def test_aggregates_skip_non_numeric(self):
        doc = make_doc([
            make_entity("a", 0, 0, value=2),
            make_entity("b", 0, 0, value="3"),
            make_entity("c", 0, 0, value=True),
            make_entity("d", 0, 0, value=float("nan")),
            make_entity("e", 0, 0),
        ])
        result = create_query_engine(doc)("*")
        assert result.sum() == 2
        assert result.avg() == 2

    def test_empty_aggregates(self, q):
        empty = q(".label")
        assert empty.sum() == 0
        assert empty.avg() == 0.0
        assert empty.min() is None
        assert empty.max() is None

    def test_counts_and_groups(self, q):
        assert q("*").count() == 14
        assert q("*").count_by_type() == {
            "table": 2, "header": 4, "label": 3, "currency": 2,
            "percentage": 1, "total": 1, "date": 1,
        }
        assert q("*").count_by_page() == {1: 8, 2: 6}

        by_page = q(".table").group_by_page()
        assert {page: r.ids() for page, r in by_page.items()} == {1: ["t1"], 2: ["t2"]}
        by_type = q(":page(2)").group_by_type()
        assert by_type["currency"].ids() == ["t2_r1_c1"]
        assert isinstance(by_type["date"], QueryResult)


# -------------------------
# Serialization
# -------------------------


class TestSerialization:
    def test_json_round_trip_preserves_ids(self, q):
        result = q(".table, .currency")
        data = json.loads(result.json())
        assert len(data) == len(result)
        assert [item["id"] for item in data] == result.ids()
        assert data[2]["tableId"] == "t1"

    def test_to_array(self, q):
        entities = q(".table").to_array()
        assert isinstance(entities, list)
        assert [e.id for e in entities] == ["t1", "t2"]

    def test_html_views(self, q):
        fragment = q("#t1").html()
        assert '<table class="vdoc-table">' in fragment
        document = q(".table").html_document({"class_prefix": "pq"})
        assert document.startswith("<!DOCTYPE html>")
        assert "pq-entity" in document
        by_page = q(".table").html_by_page()
        assert by_page.count('class="vdoc-page"') == 2


# -------------------------
# Engine helpers
# -------------------------


class TestEngineHelpers:
    def test_query_page(self, doc):
        assert len(query_page(doc, 1)) == 8
        assert len(query_page(doc, 7)) == 0

    def test_query_pages(self, doc):
        assert len(query_pages(doc, [2, 1])) == 14
        assert query_pages(doc, [2]).first().ids() == ["e2"]

    def test_engine_snapshot(self, doc):
        q = create_query_engine(doc)
        doc.pages[0].entities.append(make_entity("late", 0.0, 0.9))
        assert len(q("*")) == 14
        assert len(create_query_engine(doc)("*")) == 15
