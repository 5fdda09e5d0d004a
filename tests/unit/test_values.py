"""
Unit tests for the value adapter
"""

import json
from collections import OrderedDict

import pytest

from viewcompiler.errors import ScriptValueError
from viewcompiler.values import from_script, normalize, to_script


class TestNormalize:
    """Tests for the closed-case host value translation"""

    def test_scalars_pass_through(self):
        """Test that JSON scalars are returned unchanged"""
        for value in (None, True, False, 0, -3, 2.5, "text", ""):
            assert normalize(value) == value

    def test_mappings_become_dicts(self):
        """Test that any Mapping becomes a plain dict, keeping key order"""
        value = OrderedDict([("b", 1), ("a", 2)])
        result = normalize(value)

        assert type(result) is dict
        assert list(result) == ["b", "a"]

    def test_tuples_become_lists(self):
        """Test that non-string sequences become lists, recursively"""
        assert normalize({"pair": (1, (2, 3))}) == {"pair": [1, [2, 3]]}

    def test_nested_array_inside_object(self):
        """Test that a list nested in a dict comes out as a list, not an opaque object"""
        doc = {"meta": {"ratings": [5, 4], "history": [{"v": [1]}]}}
        assert normalize(doc) == doc

    def test_shared_references_are_not_cycles(self):
        """Test that the same list used twice is not mistaken for a cycle"""
        shared = [1, 2]
        assert normalize({"a": shared, "b": shared}) == {"a": [1, 2], "b": [1, 2]}

    def test_circular_dict_rejected(self):
        """Test that a self-referencing mapping is rejected"""
        doc = {"name": "loop"}
        doc["self"] = doc

        with pytest.raises(ScriptValueError, match="Circular"):
            normalize(doc)

    def test_circular_list_rejected(self):
        """Test that a self-containing list is rejected"""
        items = [1]
        items.append(items)

        with pytest.raises(ScriptValueError, match="Circular"):
            normalize({"items": items})

    def test_opaque_types_rejected(self):
        """Test that types outside the JSON value space are rejected"""
        for value in (object(), {1, 2}, b"bytes"):
            with pytest.raises(ScriptValueError, match="not JSON serializable"):
                normalize({"field": value})


class TestToScript:
    """Tests for serialization to canonical JSON text"""

    def test_produces_compact_json(self):
        """Test the canonical text form"""
        assert to_script({"a": [1, 2], "b": None}) == '{"a":[1,2],"b":null}'

    def test_nan_rejected(self):
        """Test that NaN and Infinity are outside the JSON value space"""
        with pytest.raises(ScriptValueError):
            to_script({"score": float("nan")})
        with pytest.raises(ScriptValueError):
            to_script([float("inf")])

    def test_unicode_is_escaped(self):
        """Test that output is ASCII so it can be embedded in script source"""
        text = to_script({"name": "Zoë  "})
        assert text.isascii()
        assert json.loads(text) == {"name": "Zoë  "}


class TestFromScript:
    """Tests for parsing engine output"""

    def test_parses_json_text(self):
        """Test that engine JSON becomes host values"""
        assert from_script('[["k", 1], {"v": [true, null]}]') == [["k", 1], {"v": [True, None]}]

    def test_rejects_non_text(self):
        """Test that a non-string engine result is reported"""
        with pytest.raises(ScriptValueError, match="Expected JSON text"):
            from_script(None)

    def test_rejects_invalid_json(self):
        """Test that malformed JSON is reported"""
        with pytest.raises(ScriptValueError, match="Invalid JSON"):
            from_script("{not json")
