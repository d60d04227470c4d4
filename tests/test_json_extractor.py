"""Tests for services/json_extractor.py — fence stripping, structural repair, envelopes."""

import json

import pytest

from errors.exceptions import ExtractionError
from services.json_extractor import (
    close_structures,
    extract,
    repair_candidates,
    strip_code_fences,
    strip_trailing_commas,
)
from services.normalizers import (
    normalize_contents,
    normalize_curriculum,
    normalize_flashcards,
    normalize_keypoints,
    normalize_mindmap,
    normalize_quiz,
)
from models.course import CurriculumSpec


# ── Strategy 1: fences ────────────────────────────────────────


def test_fenced_block_is_the_candidate():
    raw = 'Sure! Here it is:\n```json\n{"a": 1}\n```\nLet me know.'
    assert strip_code_fences(raw) == '{"a": 1}'


def test_untagged_fence():
    assert strip_code_fences('```\n[1, 2]\n```') == "[1, 2]"


def test_unclosed_fence_keeps_remaining_text():
    assert strip_code_fences('```json\n{"a": [1, 2') == '{"a": [1, 2'


def test_no_fence_returns_whole_text():
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


def test_fence_inside_a_string_value_is_not_the_candidate():
    raw = '{"content": "Run it:\\n```python\\nprint(1)\\n```"}'
    assert strip_code_fences(raw) == raw


def test_outer_fence_keeps_inner_fences():
    inner = '{"content": "```python\\nprint(1)\\n```"}'
    assert strip_code_fences(f"```json\n{inner}\n```") == inner


def test_fence_cut_off_after_an_inner_fence():
    inner = '{"content": "```python\\nprint(1)'
    assert strip_code_fences(f"```json\n{inner}") == inner


# ── Strategy 2: direct parse ──────────────────────────────────


@pytest.mark.parametrize(
    "doc",
    [
        {"title": "X", "lessons": [{"title": "L1"}]},
        [1, 2, {"nested": None}],
        {"text": 'quotes " and \\ backslashes', "unicode": "añø ✓"},
        {"empty": {}, "list": []},
    ],
)
def test_valid_json_round_trips(doc):
    assert extract(json.dumps(doc)) == doc


def test_prose_around_json_is_ignored():
    assert extract('Here is the JSON: {"a": 1} hope it helps') == {"a": 1}


def test_fenced_json_parses():
    assert extract('```json\n{"a": [1, 2, 3]}\n```') == {"a": [1, 2, 3]}


_CODE_LESSON = {
    "contents": [
        {"type": "rich_text", "title": "Hello", "content": "Run it:\n```python\nprint(1)\n```\nDone."},
        {"type": "example", "content": "```bash\npython hello.py\n```"},
    ]
}


def test_lesson_with_code_blocks_round_trips():
    assert extract(json.dumps(_CODE_LESSON)) == _CODE_LESSON


def test_fenced_lesson_with_code_blocks_parses():
    assert extract(f"```json\n{json.dumps(_CODE_LESSON)}\n```") == _CODE_LESSON
    assert extract(f"Here you go:\n```json\n{json.dumps(_CODE_LESSON)}\n```\nEnjoy!") == _CODE_LESSON


def test_truncated_lesson_inside_a_code_block_is_closed():
    text = json.dumps(_CODE_LESSON)
    cut = text[: text.index("print(1)") + len("print(1)")]
    expected = {"contents": [{"type": "rich_text", "title": "Hello", "content": "Run it:\n```python\nprint(1)"}]}
    assert extract(cut) == expected
    assert extract(f"```json\n{cut}") == expected


def test_two_fenced_blocks_use_the_first():
    raw = '```json\n{"a": 1}\n```\nor maybe\n```json\n{"b": 2}\n```'
    assert extract(raw) == {"a": 1}


# ── Strategy 3: structural repair ─────────────────────────────


def test_truncated_curriculum_is_closed():
    raw = '{"title":"X","lessons":[{"title":"L1"'
    assert extract(raw) == {"title": "X", "lessons": [{"title": "L1"}]}


def test_dangling_string_is_closed():
    raw = '{"title":"X","lessons":[{"title":"Intro to alg'
    assert extract(raw) == {"title": "X", "lessons": [{"title": "Intro to alg"}]}


def test_dangling_escape_is_dropped():
    assert close_structures('{"a": "line\\') == '{"a": "line"}'


def test_trailing_commas_removed():
    assert strip_trailing_commas('{"a": [1, 2,], }') == '{"a": [1, 2] }'
    assert extract('{"a": [1, 2,], }') == {"a": [1, 2]}


def test_trailing_comma_before_truncation():
    assert close_structures('{"a": [1, 2,') == '{"a": [1, 2]}'


def test_dangling_key_colon_gets_null():
    assert extract('{"a": 1, "b":') == {"a": 1, "b": None}


def test_dangling_key_is_cut_back():
    assert extract('{"a": 1, "b"') == {"a": 1}


def test_partial_literal_is_cut_back():
    assert extract('{"a": [1, 2], "done": tr') == {"a": [1, 2]}


def test_nesting_stack_decides_closing_order():
    assert close_structures('[{"a": [{"b": 1') == '[{"a": [{"b": 1}]}]'


def test_brackets_inside_strings_are_ignored():
    assert extract('{"note": "use [ and { freely", "x": [1') == {
        "note": "use [ and { freely",
        "x": [1],
    }


def test_repair_candidates_are_unique():
    candidates = list(repair_candidates('{"a": [1, 2'))
    assert len(candidates) == len(set(candidates))
    assert candidates[0] == '{"a": [1, 2]}'


# ── Strategy 4: provider envelopes ────────────────────────────


def _envelope(text: str) -> str:
    return json.dumps({"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}]})


def _cut_before_finish(envelope: str) -> str:
    return envelope[: envelope.index('"finishReason"')]


def test_valid_envelope_is_returned_unchanged():
    raw = _envelope("hello world")
    assert extract(raw) == json.loads(raw)


def test_repaired_envelope_is_unwrapped():
    assert extract(_cut_before_finish(_envelope('{"x": 1}'))) == {"x": 1}


def test_repaired_envelope_with_fenced_inner_text():
    raw = _cut_before_finish(_envelope('```json\n[{"front": "a", "back": "b"}]\n```'))
    assert extract(raw) == [{"front": "a", "back": "b"}]


def test_truncated_envelope_repairs_inner_text():
    full = _envelope('{"x": [1, 2, 3]}')
    truncated = full[: full.index("3")]
    assert extract(truncated) == {"x": [1, 2]}


def test_repaired_envelope_with_non_json_text_fails():
    with pytest.raises(ExtractionError) as exc_info:
        extract(_cut_before_finish(_envelope("I cannot help with that.")))
    assert "envelope" in str(exc_info.value)


# ── Strategy 5: failure ───────────────────────────────────────


@pytest.mark.parametrize("raw", ["", "   ", "no json here at all", "The answer is yes."])
def test_unrecoverable_text_raises_with_raw(raw):
    with pytest.raises(ExtractionError) as exc_info:
        extract(raw)
    assert exc_info.value.raw_text == raw


# ── Truncation never yields something a normalizer rejects ────


_SPEC = CurriculumSpec(subject="Algebra")

_DOC = {
    "title": "Algebra",
    "description": "Equations, \"quoted\" terms and unicode ✓",
    "lessons": [
        {"title": f"Lesson {i}", "objectives": ["a", "b"], "duration": 30, "done": True, "ratio": 0.5}
        for i in range(1, 6)
    ],
    "questions": [{"id": "q1", "question": "1+1?", "options": ["1", "2"], "correctAnswer": 1}],
    "data": {"nodes": [{"id": "1", "label": "Root", "children": ["2"]}, {"id": "2", "label": "Leaf"}]},
}


def test_truncated_documents_repair_to_structures():
    text = json.dumps(_DOC)
    for offset in range(len(text) // 2, len(text)):
        try:
            value = extract(text[:offset])
        except ExtractionError:
            continue
        assert isinstance(value, (dict, list)), offset
        normalize_curriculum(value, _SPEC)
        normalize_contents(value)
        normalize_quiz(value)
        normalize_flashcards(value)
        normalize_keypoints(value)
        normalize_mindmap(value)
