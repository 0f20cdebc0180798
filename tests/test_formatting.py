"""Tests for varexport.formatting module."""

import io

import pytest

from varexport.formatting import (
    escape,
    escape_doc,
    format_json,
    format_line,
    parse_dump,
    unescape,
    value_text,
    write_entry,
)


class TestEscape:
    """Test escaping of names and values."""

    def test_plain_ascii_unchanged(self):
        assert escape("static1field") == "static1field"
        assert escape("Say what?") == "Say what?"

    def test_separators(self):
        """Test ':' and '=' are backslash escaped."""
        assert escape("foo:bar=hi") == "foo\\:bar\\=hi"
        assert escape("x:=y") == "x\\:\\=y"

    def test_backslash(self):
        assert escape("a\\b") == "a\\\\b"

    def test_non_ascii(self):
        """Test non-ASCII characters become lowercase \\uXXXX escapes."""
        assert escape("BulgariaŴhatsUp") == "Bulgaria\\u0174hatsUp"
        assert escape("é") == "\\u00e9"

    def test_control_characters(self):
        assert escape("a\nb\tc") == "a\\u000ab\\u0009c"

    def test_astral_characters_use_surrogate_pairs(self):
        assert escape("😀") == "\\ud83d\\ude00"

    def test_name_spaces_and_comment_markers(self):
        """Test names escape every space and a leading # or !."""
        assert escape("a b", key=True) == "a\\ b"
        assert escape(" lead", key=True) == "\\ lead"
        assert escape("#count", key=True) == "\\#count"
        assert escape("!bang", key=True) == "\\!bang"
        assert escape("map#1", key=True) == "map#1"

    def test_value_leading_space(self):
        """Test values escape only a leading space and keep comment markers."""
        assert escape(" padded value") == "\\ padded value"
        assert escape("#1") == "#1"
        assert format_line("a b", " x") == "a\\ b=\\ x"

    def test_doc_keeps_separators(self):
        """Test doc comments only escape non-ASCII characters."""
        assert escape_doc(":::=test=:::") == ":::=test=:::"
        assert escape_doc("ŴŴ") == "\\u0174\\u0174"


class TestValueText:
    """Test rendering of values."""

    def test_none_is_null(self):
        assert value_text(None) == "null"
        assert format_line("x", None) == "x=null"

    def test_str_form(self):
        assert value_text(42) == "42"
        assert value_text({"a": 1}) == "{'a': 1}"

    def test_format_line(self):
        assert format_line("foo:bar=hi", "x:=y") == "foo\\:bar\\=hi=x\\:\\=y"


class TestWriteEntry:
    """Test single dump entries."""

    def test_without_doc(self):
        out = io.StringIO()
        write_entry(out, "a", 1, doc="ignored")
        assert out.getvalue() == "a=1\n"

    def test_with_doc(self):
        out = io.StringIO()
        write_entry(out, "a", 1, doc="the a", include_doc=True)
        assert out.getvalue() == "\n# the a\na=1\n"

    def test_with_missing_doc(self):
        """Test undocumented variables get only the blank separator."""
        out = io.StringIO()
        write_entry(out, "a", 1, doc=None, include_doc=True)
        assert out.getvalue() == "\na=1\n"

    def test_with_empty_doc(self):
        out = io.StringIO()
        write_entry(out, "a", 1, doc="", include_doc=True)
        assert out.getvalue() == "\n#\na=1\n"


class TestFormatJson:
    """Test the JSON-like single line format."""

    def test_entries(self):
        assert format_json([("a", 1), ("b", None)]) == "{a='1', b='null'}"

    def test_empty(self):
        assert format_json([]) == "{}"

    def test_values_are_not_escaped(self):
        assert format_json([("k", "it's {x}")]) == "{k='it's {x}'}"


class TestParseDump:
    """Test reading dumps back."""

    def test_round_trip(self):
        """Test escaped text reverses to the original."""
        for text in ["plain", "foo:bar=hi", "a\\b", "Say Ŵhat?", "😀 smile", "tab\there", ""]:
            assert unescape(escape(text)) == text

    def test_parse_dump(self):
        dump = (
            "\n"
            "# \\u0174\\u0174\n"
            "Bulgaria\\u0174hatsUp=Say \\u0174hat?\n"
            "\n"
            "# :::=test=:::\n"
            "foo\\:bar\\=hi=x\\:\\=y\n"
            "! another comment\n"
            "colon:separated\n"
        )
        assert parse_dump(dump) == {
            "BulgariaŴhatsUp": "Say Ŵhat?",
            "foo:bar=hi": "x:=y",
            "colon": "separated",
        }

    def test_awkward_names_and_values(self):
        """Test comment markers and spaces in names and values read back unchanged."""
        out = io.StringIO()
        write_entry(out, "#count", 1)
        write_entry(out, "!flag", "on")
        write_entry(out, "a b", " padded")
        write_entry(out, " lead", "  two spaces")
        assert parse_dump(out.getvalue()) == {
            "#count": "1",
            "!flag": "on",
            "a b": " padded",
            " lead": "  two spaces",
        }

    def test_whitespace_separated_key(self):
        """Test properties-style whitespace separators."""
        assert parse_dump("key value\nother  =  x\n") == {"key": "value", "other": "x"}

    def test_lone_surrogate_round_trip(self):
        """Test an unpaired surrogate survives escape and parse."""
        out = io.StringIO()
        write_entry(out, "raw", "a\ud800b")
        assert out.getvalue() == "raw=a\\ud800b\n"
        assert parse_dump(out.getvalue()) == {"raw": "a\ud800b"}

    def test_key_without_value(self):
        assert parse_dump("lonely\n") == {"lonely": ""}

    def test_truncated_unicode_escape(self):
        with pytest.raises(ValueError, match="Truncated"):
            unescape("\\u12")

    def test_malformed_unicode_escape(self):
        with pytest.raises(ValueError, match="Malformed"):
            unescape("\\uzzzz")
