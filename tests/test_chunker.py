"""
Chunker Tests

Paragraph packing, sentence fallback, and whitespace-normalized
reconstruction of the source text.
"""

import pytest

from continuity_backfill.pipeline.chunker import chunk_text


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _paragraph(word: str, words: int) -> str:
    return " ".join([word] * words)


class TestParagraphPacking:

    def test_short_text_is_single_chunk(self):
        assert chunk_text("Just one paragraph.", 1500) == ["Just one paragraph."]

    def test_small_paragraphs_are_packed_together(self):
        text = "First paragraph.\n\nSecond paragraph.\n\nThird paragraph."
        assert chunk_text(text, 1500) == [text]

    def test_five_thousand_chars_with_two_breaks(self):
        """A 5000-char document with two paragraph breaks yields at least 3 chunks."""
        paragraphs = [_paragraph(w, 333) for w in ("alfa", "echo", "golf")]
        text = "\n\n".join(paragraphs)
        assert len(text) > 4900

        chunks = chunk_text(text, 1500)

        assert len(chunks) >= 3
        for chunk in chunks:
            assert len(chunk) <= 1502 or chunk in paragraphs

    def test_flushes_before_exceeding_target(self):
        a = "a" * 600
        b = "b" * 600
        c = "c" * 600
        chunks = chunk_text(f"{a}\n\n{b}\n\n{c}", 1500)
        assert chunks == [f"{a}\n\n{b}", c]

    def test_chunks_are_trimmed_and_non_empty(self):
        text = "\n\n  first  \n\n\n\n second \n\n"
        chunks = chunk_text(text, 5)
        assert chunks == ["first", "second"]


class TestSentenceFallback:

    def test_text_without_paragraphs_splits_on_sentences(self):
        sentences = [f"Sentence number {i} ends here." for i in range(150)]
        text = " ".join(sentences)
        assert len(text) > 3000

        chunks = chunk_text(text, 1500)

        assert len(chunks) >= 3
        for chunk in chunks:
            assert len(chunk) <= 1501
            assert chunk.endswith(".")

    def test_moderately_long_single_paragraph_is_kept(self):
        """Below twice the target, a break-less paragraph stays whole."""
        text = " ".join(f"Line {i}." for i in range(300))
        assert 1500 < len(text) <= 3000
        assert chunk_text(text, 1500) == [text]

    def test_single_giant_sentence_is_not_cut(self):
        text = "x" * 5000
        assert chunk_text(text, 1500) == [text]


class TestReconstruction:

    @pytest.mark.parametrize(
        "text",
        [
            "One.\n\nTwo two.\n\n\nThree three three.",
            " ".join(f"Sentence {i}!" for i in range(800)),
            "\n\n".join(_paragraph(f"w{i}", 120) for i in range(12)),
            "Mixed? Yes.\n\n" + " ".join(f"Part {i}." for i in range(600)),
        ],
    )
    def test_joined_chunks_reproduce_source(self, text):
        chunks = chunk_text(text, 200)
        assert chunks
        assert _collapse(" ".join(chunks)) == _collapse(text)


class TestEdgeCases:

    def test_whitespace_only_yields_nothing(self):
        assert chunk_text("   \n\n  \t", 1500) == []

    def test_empty_yields_nothing(self):
        assert chunk_text("", 1500) == []

    def test_non_positive_target_rejected(self):
        with pytest.raises(ValueError):
            chunk_text("text", 0)
