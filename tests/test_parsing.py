"""Response normalization: fences, surrounding prose, invalid JSON."""
import pytest

from specgen.core.errors import MalformedResponse
from specgen.core.parsing import clean_markdown_response, normalize_response, quick_validate


class TestNormalizeResponse:
    def test_plain_json(self):
        assert normalize_response('{"a": 1}') == {"a": 1}

    def test_json_fence(self):
        raw = '```json\n{"a": 1}\n```'
        assert normalize_response(raw) == {"a": 1}

    def test_untagged_fence_and_whitespace(self):
        raw = '  \n```\n{"a": [1, 2]}\n```  \n'
        assert normalize_response(raw) == {"a": [1, 2]}

    def test_uppercase_tag(self):
        assert normalize_response('```JSON\n{"a": 1}\n```') == {"a": 1}

    def test_leading_prose(self):
        raw = 'Here is the specification you asked for:\n{"a": 1}'
        assert normalize_response(raw) == {"a": 1}

    def test_trailing_prose(self):
        raw = '{"a": {"b": 2}}\nLet me know if you need anything else.'
        assert normalize_response(raw) == {"a": {"b": 2}}

    def test_idempotent_cleaning(self):
        raw = 'Sure!\n```json\n{"a": 1}\n```\nBye'
        once = clean_markdown_response(raw)
        assert clean_markdown_response(once) == once

    def test_invalid_json_raises_malformed(self):
        with pytest.raises(MalformedResponse) as exc:
            normalize_response('{"a": 1,,}')
        assert exc.value.retryable is True
        assert "invalid JSON" in exc.value.message

    def test_no_json_at_all(self):
        with pytest.raises(MalformedResponse):
            normalize_response("I cannot help with that.")

    def test_non_string_input(self):
        with pytest.raises(MalformedResponse):
            normalize_response({"a": 1})


class TestQuickValidate:
    def test_all_sections_present(self, valid_spec):
        assert quick_validate(valid_spec) is True

    def test_missing_section(self, valid_spec):
        del valid_spec["deployment"]
        assert quick_validate(valid_spec) is False

    @pytest.mark.parametrize("value", [None, [], "text", 42])
    def test_non_mapping(self, value):
        assert quick_validate(value) is False
