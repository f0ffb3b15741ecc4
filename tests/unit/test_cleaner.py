"""Unit tests for the scraped-text cleaner: link stripping and navigation removal."""

from __future__ import annotations

import pytest

from sitechat.services.ingestion.chunker import TextChunker
from sitechat.services.ingestion.cleaner import TextCleaner, clean, remove_links


class TestRemoveLinks:
    def test_markdown_link_becomes_label(self) -> None:
        assert remove_links("see [our card](https://x.com/card) now") == "see our card now"

    def test_bare_url_dropped(self) -> None:
        assert remove_links("visit https://x.com/a?b=1 today") == "visit  today"

    def test_relative_link_left_alone(self) -> None:
        text = "[Sign In](/login)"
        assert remove_links(text) == text

    def test_text_without_links_unchanged(self) -> None:
        assert remove_links("plain text.") == "plain text."


class TestNavigationLines:
    def test_bare_and_bulleted_labels_removed(self) -> None:
        cleaner = TextCleaner(nav_labels=["Card", "How It Works"])
        text = "Card\n- How It Works\n* card.\nReal content."
        assert cleaner.clean(text) == "Real content."

    def test_relative_markdown_link_label_removed(self) -> None:
        cleaner = TextCleaner(nav_labels=["Sign In"])
        assert cleaner.clean("- [Sign In](/login)\nBody") == "Body"

    def test_label_inside_sentence_kept(self) -> None:
        cleaner = TextCleaner(nav_labels=["Card"])
        text = "The Card has no annual fee."
        assert cleaner.clean(text) == text

    def test_case_insensitive(self) -> None:
        cleaner = TextCleaner(nav_labels=["About Us"])
        assert cleaner.clean("ABOUT US:\nText") == "Text"

    def test_blank_runs_collapse_to_one_blank_line(self) -> None:
        cleaner = TextCleaner(nav_labels=["Home"])
        text = "First.\n\n  \nHome\n\n\n\nSecond."
        assert cleaner.clean(text) == "First.\n\nSecond."

    def test_empty_label_list_only_collapses(self) -> None:
        cleaner = TextCleaner(nav_labels=[])
        assert cleaner.clean("Home\n\n\n\nx") == "Home\n\nx"

    def test_default_labels_used_when_none_given(self) -> None:
        assert "Home" in TextCleaner().nav_labels


class TestNavigationSegments:
    def test_label_sentences_dropped_from_running_text(self) -> None:
        cleaner = TextCleaner(nav_labels=["Support"])
        assert cleaner.clean("Apply now. Support. Rates vary.") == "Apply now. Rates vary."

    def test_label_with_colon_kept_as_content(self) -> None:
        cleaner = TextCleaner(nav_labels=["Support"])
        text = "Support: call us any time."
        assert cleaner.clean(text) == text

    def test_nav_link_dropped_with_its_label(self) -> None:
        cleaner = TextCleaner(nav_labels=["Home"])
        assert cleaner.clean("[Home](https://x.com/home) equity line.") == "equity line."

    def test_link_to_non_nav_label_keeps_label(self) -> None:
        cleaner = TextCleaner(nav_labels=["Card", "How It Works"])
        text = "Card. How It Works. [Home](https://x.com/home) equity line."
        assert cleaner.clean(text) == "Home equity line."

    def test_several_blanks_between_label_sentences(self) -> None:
        cleaner = TextCleaner(nav_labels=["Card", "Home"])
        assert cleaner.clean("Card.   Home. Body text.") == "Body text."


class TestCleanContract:
    def test_single_line_of_nav_and_links_reduces_to_content(self) -> None:
        text = "Card. How It Works. [Home](https://x.com/home) equity line."
        assert clean(text) == "equity line."
        assert TextChunker().chunk(clean(text)) == ["equity line"]

    def test_nav_lines_and_links_reduce_to_content(self) -> None:
        text = "Card.\nHow It Works.\n[Home](https://x.com/home)\nequity line."
        assert clean(text) == "equity line."

    def test_empty_input(self) -> None:
        assert clean("") == ""

    @pytest.mark.parametrize(
        "text",
        [
            "Card.\nHow It Works.\n[Home](https://x.com/home)\nequity line.",
            "Card. How It Works. [Home](https://x.com/home) equity line.",
            "Intro. Card.   Support. Who We Are\nbody. Home.",
            "[Home](https://a.com)\n\n\n- Support\nHELOC rates https://b.com vary.\n\n\n",
            "[https://a.com](https://a.com)\nWho We Are\nbody",
            "no links at all\n\n\n\njust gaps",
        ],
    )
    def test_idempotent(self, text: str) -> None:
        once = clean(text)
        assert clean(once) == once

    def test_sample_page(self, sample_page: str) -> None:
        cleaned = clean(sample_page)
        assert "http" not in cleaned
        assert "Who We Are" not in cleaned
        assert "\n\n\n" not in cleaned
        assert cleaned.startswith("# What is a HELOC card?")
        assert "Aven was founded" in cleaned
