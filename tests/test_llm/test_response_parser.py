"""Tests for JSON extraction from LLM responses."""

from grading_consensus.llm.response_parser import extract_json, strip_code_fences

# ---------------------------------------------------------------------------
# strip_code_fences
# ---------------------------------------------------------------------------


class TestStripCodeFences:
    def test_json_fence(self) -> None:
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self) -> None:
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence_untouched(self) -> None:
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


# ---------------------------------------------------------------------------
# extract_json
# ---------------------------------------------------------------------------


class TestExtractJson:
    def test_plain_object(self) -> None:
        assert extract_json('{"consensusScores": {"clarity": 80}}') == {
            "consensusScores": {"clarity": 80}
        }

    def test_fenced_object(self) -> None:
        response = '```json\n{"confidence": 90}\n```'
        assert extract_json(response) == {"confidence": 90}

    def test_uppercase_fence_tag(self) -> None:
        assert extract_json('```JSON\n{"confidence": 90}\n```') == {"confidence": 90}

    def test_fenced_block_amid_prose(self) -> None:
        response = (
            "Here is my assessment:\n"
            "```json\n"
            '{"consensusScore": 84}\n'
            "```\n"
            "Let me know if you need more detail."
        )
        assert extract_json(response) == {"consensusScore": 84}

    def test_bare_object_amid_prose(self) -> None:
        response = 'My answer is {"consensusScore": 77, "confidence": 70} as requested.'
        assert extract_json(response) == {"consensusScore": 77, "confidence": 70}

    def test_prose_only(self) -> None:
        assert extract_json("The report is strong overall. Clarity: 80") is None

    def test_malformed_json(self) -> None:
        assert extract_json('{"consensusScore": 84,,}') is None

    def test_array_is_not_an_object(self) -> None:
        assert extract_json("[1, 2, 3]") is None

    def test_empty(self) -> None:
        assert extract_json("") is None
        assert extract_json("   \n") is None
