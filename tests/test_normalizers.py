"""Tests for services/normalizers.py — coercing model JSON into typed content."""

import pytest

from models.course import CurriculumSpec
from services.normalizers import (
    normalize_contents,
    normalize_curriculum,
    normalize_flashcards,
    normalize_keypoints,
    normalize_mindmap,
    normalize_quiz,
)

SPEC = CurriculumSpec(subject="Algebra", course_title="Algebra Basics", duration=60)


# ── Curriculum ────────────────────────────────────────────────


def test_flat_lessons_are_grouped_into_synthesized_modules():
    plan = normalize_curriculum(
        {"title": "Algebra Basics", "lessons": [{"title": f"L{i}"} for i in range(1, 5)]},
        SPEC,
    )

    assert [m.title for m in plan.modules] == ["Module 1: L1", "Module 2: L3"]
    assert plan.modules[0].description == "Lessons 1 to 2 of Algebra Basics"
    assert plan.modules[1].lesson_titles == ["L3", "L4"]
    assert [l.order for l in plan.lessons] == [1, 2, 3, 4]
    assert [l.module_index for l in plan.lessons] == [1, 1, 2, 2]
    assert [l.order_in_module for l in plan.lessons] == [1, 2, 1, 2]
    assert plan.lessons[2].module_title == "Module 2: L3"


def test_missing_durations_split_the_course_duration():
    plan = normalize_curriculum(
        {"lessons": [{"title": "A"}, {"title": "B", "duration": "45 minutes"}, {"title": "C"}]},
        SPEC,
    )
    assert [l.duration for l in plan.lessons] == [20, 45, 20]


def test_provided_module_titles_are_reused():
    plan = normalize_curriculum(
        {
            "modules": [{"title": "Foundations", "description": "Start here"}],
            "lessons": ["Variables", "Expressions", "Equations"],
        },
        SPEC,
    )
    assert [m.title for m in plan.modules] == ["Foundations", "Module 2: Equations"]
    assert plan.modules[0].description == "Start here"
    assert plan.lessons[1].module_title == "Foundations"


def test_nested_module_lessons_are_flattened_in_order():
    plan = normalize_curriculum(
        {
            "courseTitle": "Nested",
            "modules": [
                {"title": "One", "lessons": [{"title": "a"}, {"title": "b"}]},
                {"title": "Empty", "lessons": []},
                {"name": "Two", "lessons": ["c"]},
            ],
        },
        SPEC,
    )
    assert plan.title == "Nested"
    assert [m.title for m in plan.modules] == ["One", "Two"]
    assert [m.order for m in plan.modules] == [1, 2]
    assert [(l.title, l.order, l.module_index, l.order_in_module) for l in plan.lessons] == [
        ("a", 1, 1, 1),
        ("b", 2, 1, 2),
        ("c", 3, 2, 1),
    ]


def test_bare_list_is_the_lesson_list():
    plan = normalize_curriculum([{"title": "Only"}, "Second", 42], SPEC)
    assert plan.title == "Algebra Basics"
    assert [l.title for l in plan.lessons] == ["Only", "Second"]


@pytest.mark.parametrize("value", [None, "text", 3, {}, {"lessons": "nope"}])
def test_garbage_curriculum_yields_empty_plan(value):
    plan = normalize_curriculum(value, SPEC)
    assert plan.lessons == []
    assert plan.modules == []
    assert plan.title == "Algebra Basics"


def test_curriculum_objectives_accept_single_string():
    plan = normalize_curriculum({"objectives": "Solve equations", "lessons": ["x"]}, SPEC)
    assert plan.objectives == ["Solve equations"]


# ── Contents ──────────────────────────────────────────────────


def test_contents_list_keeps_order_and_drops_empty_blocks():
    blocks = normalize_contents(
        {
            "contents": [
                {"title": "Intro", "type": "rich_text", "content": "Hello"},
                {"title": "Blank", "content": "   "},
                {"heading": "Example", "text": "2x = 4"},
                "Plain paragraph",
            ]
        }
    )
    assert [b.title for b in blocks] == ["Intro", "Example", "Section 3"]
    assert [b.order for b in blocks] == [1, 2, 3]
    assert blocks[1].content == "2x = 4"


def test_single_content_object_is_one_block():
    blocks = normalize_contents({"title": "Only", "content": "Body text"})
    assert len(blocks) == 1
    assert blocks[0].title == "Only"


@pytest.mark.parametrize("value", [None, {}, {"contents": []}, [], "text"])
def test_empty_contents(value):
    assert normalize_contents(value) == []


# ── Quiz ──────────────────────────────────────────────────────


def test_quiz_answer_index_resolves_to_option():
    quiz = normalize_quiz(
        {
            "title": "Check",
            "questions": [
                {"question": "2+2?", "options": ["3", "4"], "correctAnswer": 1},
                {"question": "Capital?", "choices": ["Paris"], "answer": "Paris"},
                {"question": "", "options": ["x"]},
            ],
            "passingScore": "80%",
        }
    )
    assert quiz.title == "Check"
    assert [q.correct_answer for q in quiz.questions] == ["4", "Paris"]
    assert [q.id for q in quiz.questions] == ["q1", "q2"]
    assert quiz.passing_score == 80
    assert quiz.attempts == 3


def test_out_of_range_answer_index_is_kept_as_text():
    quiz = normalize_quiz({"questions": [{"question": "?", "options": ["a"], "correctAnswer": 5}]})
    assert quiz.questions[0].correct_answer == "5"


@pytest.mark.parametrize("value", [None, "oops", {}, {"questions": None}])
def test_quiz_defaults_to_empty_questions(value):
    quiz = normalize_quiz(value, lesson_title="Variables")
    assert quiz.questions == []
    assert quiz.title == "Quiz: Variables"
    assert quiz.passing_score == 70


def test_bare_question_list():
    quiz = normalize_quiz([{"text": "Why?", "options": ["a", "b"], "correctAnswer": 0}])
    assert quiz.questions[0].question == "Why?"
    assert quiz.questions[0].correct_answer == "a"


# ── Flashcards ────────────────────────────────────────────────


def test_flashcards_aliases_and_defaults():
    cards = normalize_flashcards(
        {
            "flashcards": [
                {"front": "x", "back": "unknown", "difficulty": "HARD", "hint": "letter"},
                {"term": "slope", "definition": "rise over run", "difficulty": "impossible"},
                {"front": "no back"},
            ]
        }
    )
    assert [(c.front, c.difficulty) for c in cards] == [("x", "hard"), ("slope", "medium")]
    assert cards[0].hint == "letter"
    assert cards[1].hint is None


@pytest.mark.parametrize("value", [None, {}, "cards", 7])
def test_flashcards_default_to_empty(value):
    assert normalize_flashcards(value) == []


# ── Key points ────────────────────────────────────────────────


def test_keypoints_from_strings_and_objects():
    points = normalize_keypoints(
        {
            "keyPoints": [
                "Variables hold values",
                {"point": "Balance", "explanation": "Do the same to both sides",
                 "importance": "HIGH", "examples": ["x+1=2", "2x=4"]},
                {"explanation": "no point"},
            ]
        }
    )
    assert [p.point for p in points] == ["Variables hold values", "Balance"]
    assert points[1].importance == "high"
    assert points[1].examples == "x+1=2; 2x=4"
    assert points[0].importance == "medium"


def test_keypoints_default_to_empty():
    assert normalize_keypoints(None) == []


# ── Mind map ──────────────────────────────────────────────────


def test_mindmap_drops_dangling_and_duplicate_nodes():
    mind_map = normalize_mindmap(
        {
            "title": "Algebra Map",
            "data": {
                "nodes": [
                    {"id": "1", "label": "Algebra", "children": ["2", "9", "1"]},
                    {"id": "2", "label": "Equations"},
                    {"id": "2", "label": "Duplicate"},
                    {"id": "3"},
                ]
            },
        }
    )
    assert mind_map.title == "Algebra Map"
    assert [n.label for n in mind_map.nodes] == ["Algebra", "Equations"]
    assert mind_map.nodes[0].children == ["2"]


def test_mindmap_accepts_top_level_nodes_and_bare_lists():
    from_nodes = normalize_mindmap({"nodes": [{"label": "Root"}]})
    from_list = normalize_mindmap([{"label": "Root"}])
    assert from_nodes.nodes[0].id == from_list.nodes[0].id == "1"


def test_mindmap_defaults():
    mind_map = normalize_mindmap(None, lesson_title="Variables")
    assert mind_map.title == "Mind Map: Variables"
    assert mind_map.nodes == []
