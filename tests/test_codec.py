"""
Tests for percent-decoding and urlencoded form parsing.
"""
from formstore.codec import MAX_FORM_FIELDS, decode, parse


# ===================================================================
# decode
# ===================================================================


class TestDecode:
    def test_plus_and_percent_escapes(self):
        assert decode("a%20b+c") == "a b c"

    def test_hex_digits_are_case_insensitive(self):
        assert decode("%2f%2F") == "//"

    def test_trailing_percent_is_literal(self):
        assert decode("100%") == "100%"

    def test_truncated_escape_is_literal(self):
        assert decode("50%2") == "50%2"

    def test_non_hex_escape_keeps_following_characters(self):
        # The % is copied and scanning resumes right after it, so a valid
        # escape that starts one character later is still decoded.
        assert decode("%%41") == "%A"
        assert decode("%zz") == "%zz"

    def test_escaped_plus_is_not_a_space(self):
        assert decode("1%2B1") == "1+1"

    def test_multibyte_utf8(self):
        assert decode("caf%C3%A9") == "café"

    def test_invalid_utf8_is_replaced(self):
        assert decode("%FF") == "\ufffd"

    def test_empty(self):
        assert decode("") == ""


# ===================================================================
# parse
# ===================================================================


class TestParse:
    def test_ordered_pairs(self):
        assert parse("title=Buy+milk&completed=on") == [
            ("title", "Buy milk"),
            ("completed", "on"),
        ]

    def test_accepts_bytes(self):
        assert parse(b"name=Widget&price=9.50") == [("name", "Widget"), ("price", "9.50")]

    def test_pair_without_equals_is_dropped(self):
        assert parse("flag&title=x") == [("title", "x")]

    def test_splits_on_first_equals_only(self):
        assert parse("expr=a%3Db=c") == [("expr", "a=b=c")]

    def test_empty_segments_are_skipped(self):
        assert parse("&&a=1&&b=2&") == [("a", "1"), ("b", "2")]

    def test_empty_value_is_kept(self):
        assert parse("description=") == [("description", "")]

    def test_duplicates_are_retained(self):
        assert parse("title=first&title=second") == [("title", "first"), ("title", "second")]

    def test_names_are_decoded(self):
        assert parse("first+name=Ada") == [("first name", "Ada")]

    def test_caps_at_ten_pairs(self):
        body = "&".join(f"f{i}={i}" for i in range(15))
        pairs = parse(body)
        assert len(pairs) == MAX_FORM_FIELDS == 10
        assert pairs[-1] == ("f9", "9")

    def test_dropped_pairs_do_not_count_toward_cap(self):
        body = "junk&" * 5 + "&".join(f"f{i}={i}" for i in range(10))
        assert len(parse(body)) == 10

    def test_custom_limit(self):
        assert parse("a=1&b=2&c=3", limit=2) == [("a", "1"), ("b", "2")]

    def test_empty_body(self):
        assert parse("") == []
        assert parse(b"") == []
