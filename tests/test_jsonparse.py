"""
Tests for defensive JSON extraction from LLM output.
"""

import pytest

from llm.jsonparse import extract_json, extract_json_object


class TestExtractJson:
    def test_plain_object(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_plain_array(self):
        assert extract_json("[1, 2]") == [1, 2]

    def test_markdown_fence(self):
        text = 'Sure!\n```json\n{"trends": []}\n```\nAnything else?'
        assert extract_json(text) == {"trends": []}

    def test_surrounding_prose(self):
        assert extract_json('Result: {"ok": true}. Done.') == {"ok": True}

    def test_braces_inside_strings(self):
        text = 'Note {not json} then {"title": "use {x} and ]", "n": 2}'
        assert extract_json(text) == {"title": "use {x} and ]", "n": 2}

    def test_escaped_quotes(self):
        assert extract_json(r'x {"q": "say \"hi\" {"} y') == {"q": 'say "hi" {'}

    def test_nested(self):
        assert extract_json('pre {"a": {"b": [1, {"c": 2}]}} post') == {"a": {"b": [1, {"c": 2}]}}

    def test_truncated_falls_through_to_later_value(self):
        assert extract_json('{"a": [1, 2 and then [3, 4]') == [3, 4]

    def test_nothing_parses(self):
        with pytest.raises(ValueError):
            extract_json("no json here")

    def test_truncated_only(self):
        with pytest.raises(ValueError):
            extract_json('{"a": 1')


class TestExtractJsonObject:
    def test_object(self):
        assert extract_json_object('```\n{"a": 1}\n```') == {"a": 1}

    def test_array_rejected(self):
        with pytest.raises(ValueError):
            extract_json_object("[1, 2]")
