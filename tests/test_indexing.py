"""Tests for the entity and structure indexes."""

from docchat.rag.chunking import DocumentChunk
from docchat.rag.indexing import (
    DocumentStructure,
    EntityRecord,
    build_entity_index,
    extract_entities,
    extract_structure,
    find_paragraphs,
    index_entities,
    is_heading,
    top_entities,
)

TECH_TEXT = "Apple and Microsoft are tech giants. Apple is in Cupertino."


class TestExtractEntities:
    def test_capitalized_runs(self):
        found = extract_entities("We met Steve Jobs in New York City yesterday.")
        assert ("Steve Jobs", 7) in found
        assert ("New York City", 21) in found

    def test_stopwords_and_single_letters_dropped(self):
        found = [entity for entity, _ in extract_entities("The cat. And I saw A dog. Paris")]
        assert found == ["Paris"]

    def test_offsets_point_at_mentions(self):
        for entity, offset in extract_entities(TECH_TEXT):
            assert TECH_TEXT[offset:offset + len(entity)] == entity


class TestEntityIndex:
    def test_counts_and_positions(self):
        index = build_entity_index([DocumentChunk(TECH_TEXT, 0, len(TECH_TEXT))])

        assert index["apple"].count == 2
        assert index["apple"].positions == [0, 37]
        assert index["microsoft"].count == 1
        assert index["cupertino"].count == 1

    def test_offsets_are_absolute(self):
        index = build_entity_index([DocumentChunk("Hello Berlin.", 500, 513)])
        assert index["hello berlin"].positions == [500]

    def test_overlapping_parents_count_once(self):
        text = "Intro text here. Apple rules. More words after."
        parents = [
            DocumentChunk(text[:29], 0, 29),
            DocumentChunk(text[17:], 17, len(text)),
        ]
        index = build_entity_index(parents)

        assert index["apple"].count == 1
        assert index["apple"].positions == [17]

    def test_index_entities_reports_new_mentions(self):
        index = {}
        parent = DocumentChunk(TECH_TEXT, 0, len(TECH_TEXT))
        assert index_entities(index, [parent]) == 4
        assert index_entities(index, [parent]) == 0

    def test_custom_extractor(self):
        index = build_entity_index(
            [DocumentChunk("anything", 10, 18)],
            extractor=lambda text: [("Widget", 2)],
        )
        assert index == {"widget": EntityRecord(count=1, positions=[12])}

    def test_top_entities_ranking(self):
        index = build_entity_index([DocumentChunk(TECH_TEXT, 0, len(TECH_TEXT))])
        ranked = top_entities(index, min_count=1, max_results=10)

        assert ranked[0].entity == "apple"
        assert ranked[0].count == 2
        assert [e.entity for e in ranked[1:]] == ["microsoft", "cupertino"]

    def test_top_entities_filters(self):
        index = build_entity_index([DocumentChunk(TECH_TEXT, 0, len(TECH_TEXT))])

        assert [e.entity for e in top_entities(index, min_count=2, max_results=10)] == ["apple"]
        assert len(top_entities(index, min_count=1, max_results=2)) == 2


class TestStructure:
    def test_heading_detection(self):
        assert is_heading("Chapter 1")
        assert is_heading("CHAPTER IV")
        assert is_heading("2. The Journey")
        assert is_heading("IV - Return")
        assert not is_heading("This is an ordinary sentence about chapters.")
        assert not is_heading("")

    def test_chapters_from_headings(self, sample_text):
        parents = [DocumentChunk(sample_text, 0, len(sample_text))]
        structure = extract_structure(parents)

        assert [c.name for c in structure.chapters] == ["Chapter 1", "Chapter 2", "Chapter 3"]
        second = structure.chapters[1]
        assert sample_text[second.start:].startswith("Chapter 2")
        assert structure.chapters[0].end == second.start
        assert structure.chapters[-1].end == len(sample_text)

    def test_headings_in_overlap_kept_once(self, sample_text):
        cut = sample_text.index("Chapter 3") + 20
        parents = [
            DocumentChunk(sample_text[:cut], 0, cut),
            DocumentChunk(sample_text[cut - 40:], cut - 40, len(sample_text)),
        ]
        structure = extract_structure(parents)
        assert [c.name for c in structure.chapters] == ["Chapter 1", "Chapter 2", "Chapter 3"]

    def test_fallback_sections(self):
        text = "Plain prose without any headings at all. " * 10
        structure = extract_structure([DocumentChunk(text, 100, 100 + len(text))])

        assert len(structure.chapters) == 8
        assert structure.chapters[0].start == 100
        assert structure.chapters[-1].end == 100 + len(text)
        assert structure.chapters[0].name == "Section 1"
        for previous, current in zip(structure.chapters, structure.chapters[1:]):
            assert previous.end == current.start

    def test_chapter_at(self, sample_text):
        structure = extract_structure([DocumentChunk(sample_text, 0, len(sample_text))])
        position = sample_text.index("Cupertino")

        assert structure.chapter_at(position).name == "Chapter 2"
        assert structure.chapter_at(len(sample_text) + 5) is None

    def test_paragraphs(self):
        parents = [DocumentChunk("First para.\n\nSecond para.", 40, 65)]
        spans = find_paragraphs(parents)
        assert [(s.start, s.end) for s in spans] == [(40, 51), (53, 65)]

    def test_empty_document(self):
        structure = extract_structure([])
        assert structure.chapters == []
        assert structure.paragraphs == []

    def test_dict_round_trip(self, sample_text):
        structure = extract_structure([DocumentChunk(sample_text, 0, len(sample_text))])
        assert DocumentStructure.from_dict(structure.to_dict()) == structure
