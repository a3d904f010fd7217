import json

import pytest

from quote_assist.response.repair import (
    close_truncated,
    convert_single_quotes,
    extract_array_bounds,
    extract_object_bounds,
    find_keyed_array,
    find_matching_bracket,
    iter_segments,
    normalize_lexical,
    normalize_quotes,
    quote_bare_keys,
    remove_trailing_commas,
    strip_fences,
)


@pytest.mark.unit
class TestScanning:
    def test_segments_separate_literals_from_code(self):
        segments = list(iter_segments('{"a": \'b\'}'))
        assert [s.text for s in segments] == ["{", '"a"', ": ", "'b'", "}"]
        assert [s.literal for s in segments] == [False, True, False, True, False]

    def test_apostrophe_inside_prose_does_not_open_a_literal(self):
        segments = list(iter_segments("l'enduit: {"))
        assert all(not s.literal for s in segments)

    def test_matching_bracket_ignores_brackets_in_strings(self):
        text = '[{"a": "]}"}] tail'
        assert find_matching_bracket(text, 0) == text.index("] tail")

    def test_matching_bracket_none_when_truncated(self):
        assert find_matching_bracket('[{"a": 1}', 0) is None


@pytest.mark.unit
class TestStripFences:
    @pytest.mark.parametrize(
        "raw",
        [
            '```json\n{"a": 1}\n```',
            '```\n{"a": 1}\n```',
            '```JSON {"a": 1}```',
            '```json\n{"a": 1}',
            '  {"a": 1}  ',
        ],
    )
    def test_fences_removed_independently(self, raw):
        assert strip_fences(raw) == '{"a": 1}'


@pytest.mark.unit
class TestBoundExtraction:
    def test_array_slice_between_matching_brackets(self):
        assert extract_array_bounds('Voici: [{"a": 1}] merci') == '[{"a": 1}]'

    def test_array_prefers_array_of_objects(self):
        assert extract_array_bounds('Note [1] puis [{"a": 1}]') == '[{"a": 1}]'

    def test_truncated_array_keeps_complete_elements(self):
        raw = '[{"a": 1}, {"b": {"c": 2}}, {"d": "coupé'
        assert extract_array_bounds(raw) == '[{"a": 1}, {"b": {"c": 2}}]'

    def test_text_without_array_is_returned_as_is(self):
        assert extract_array_bounds("rien") == "rien"

    def test_object_prefers_first_balanced_object(self):
        raw = 'a {"x": {"y": 1}} b {"z": 2}'
        assert extract_object_bounds(raw) == '{"x": {"y": 1}}'

    def test_truncated_object_runs_to_end(self):
        assert extract_object_bounds('ok {"x": [1, 2') == '{"x": [1, 2'


@pytest.mark.unit
class TestLexicalNormalization:
    def test_smart_quotes_and_newlines(self):
        assert normalize_quotes("{“a”:\n‘b’}") == "{\"a\": 'b'}"

    def test_trailing_commas_removed(self):
        assert remove_trailing_commas('[{"a": 1,}, ]') == '[{"a": 1} ]'

    def test_trailing_comma_inside_string_kept(self):
        text = '{"a": "x,}"}'
        assert remove_trailing_commas(text) == text

    def test_bare_keys_quoted(self):
        assert quote_bare_keys('{title: "A", laborPrice: 3}') == (
            '{"title": "A", "laborPrice": 3}'
        )

    def test_bare_key_lookalike_inside_string_kept(self):
        text = '{"description": "Note, etape: poncer"}'
        assert quote_bare_keys(text) == text

    def test_normalize_lexical_produces_valid_json(self):
        text = "{title: “A”,\n description: “x”,}"
        assert json.loads(normalize_lexical(text)) == {"title": "A", "description": "x"}


@pytest.mark.unit
class TestConvertSingleQuotes:
    def test_converts_literals(self):
        assert json.loads(convert_single_quotes("{'a': 'b', 'n': 1}")) == {
            "a": "b",
            "n": 1,
        }

    def test_keeps_apostrophes_and_escapes_double_quotes(self):
        text = "{'description': 'l'enduit \"fin\"'}"
        assert json.loads(convert_single_quotes(text)) == {
            "description": 'l\'enduit "fin"'
        }

    def test_python_literals_become_json(self):
        assert json.loads(convert_single_quotes("{'a': None, 'b': True}")) == {
            "a": None,
            "b": True,
        }


@pytest.mark.unit
class TestCloseTruncated:
    def test_array_cut_after_last_complete_element(self):
        text = '[{"a": 1}, {"b": 2}, {"c": '
        assert close_truncated(text, array=True) == '[{"a": 1}, {"b": 2}]'

    def test_array_never_keeps_nested_partial_element(self):
        text = '[{"a": 1}, {"m": [{"n": 1}], "x": '
        assert close_truncated(text, array=True) == '[{"a": 1}]'

    def test_object_cut_after_nested_container(self):
        text = '{"d": "x", "m": [{"n": "c"}, {"n": '
        assert close_truncated(text, array=False) == '{"d": "x", "m": [{"n": "c"}]}'

    def test_limit_bounds_the_scan(self):
        text = '[{"a": 1}, {"b": 2}]'
        assert close_truncated(text, limit=text.index("{", 2), array=True) == (
            '[{"a": 1}]'
        )

    def test_none_without_complete_container(self):
        assert close_truncated('[{"a": ', array=True) is None


@pytest.mark.unit
class TestFindKeyedArray:
    def test_returns_text_from_bracket(self):
        text = 'x {"tasks": [{"a": 1}]}'
        assert find_keyed_array(text, ("tasks",)) == '[{"a": 1}]}'

    def test_accepts_alias_keys(self):
        assert find_keyed_array("{materials: [1]}", ("suggestedMaterials", "materials"))

    def test_none_when_absent(self):
        assert find_keyed_array('{"other": []}', ("tasks",)) is None
        assert find_keyed_array('{"tasks": []}', ()) is None
