from helpers import make_result

from docent.rag.post_filters import filter_by_delimited_terms, filter_by_substring


class TestDelimitedTerms:
    def setup_method(self):
        self.results = [
            make_result("a", tags="Tax|Receipts|2023"),
            make_result("b", tags="Travel"),
            make_result("c"),
            make_result("d", tags=["Insurance", "Car"]),
        ]

    def test_substring_of_any_token_case_insensitive(self):
        kept = filter_by_delimited_terms(self.results, "tags", "receipt")
        assert [r.content for r in kept] == ["a"]

    def test_any_of_several_terms(self):
        kept = filter_by_delimited_terms(self.results, "tags", ["travel", "car"])
        assert [r.content for r in kept] == ["b", "d"]

    def test_missing_field_is_dropped(self):
        kept = filter_by_delimited_terms(self.results, "tags", "a")
        assert "c" not in [r.content for r in kept]

    def test_empty_terms_is_noop(self):
        assert filter_by_delimited_terms(self.results, "tags", []) is self.results
        assert filter_by_delimited_terms(self.results, "tags", ["  "]) is self.results

    def test_custom_delimiter(self):
        results = [make_result("x", shelves="to-read, favorites")]
        assert filter_by_delimited_terms(results, "shelves", "favorites", delimiter=",") == results


class TestSubstring:
    def test_keeps_matching_results(self):
        results = [make_result("a", fileName="Annual Report.pdf"), make_result("b", fileName="notes.md")]
        kept = filter_by_substring(results, "fileName", "report")
        assert [r.content for r in kept] == ["a"]

    def test_no_term_is_noop(self):
        results = [make_result("a")]
        assert filter_by_substring(results, "fileName", None) is results
