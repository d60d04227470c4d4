"""Tests for config/prompts/course_generation.py — prompt content per stage."""

from config.prompts.chat import CHAT_SYSTEM_PROMPT
from config.prompts.course_generation import (
    MAX_GROUNDING_CHARS,
    build_curriculum_prompt,
    build_flashcard_prompt,
    build_keypoints_prompt,
    build_lesson_content_prompt,
    build_mindmap_prompt,
    build_quiz_prompt,
    build_system_instruction,
)
from models.course import ContentBlock, CurriculumPlan, CurriculumSpec, LessonOutline

SPEC = CurriculumSpec(
    subject="Mathematics",
    course_title="Algebra Basics",
    academic_level="Intermediate",
    module_count=3,
    lessons_per_module=2,
    additional_instructions="Use sports examples.",
)
LESSON = LessonOutline(title="Variables", objectives=["Define a variable"], module_title="Module 1: Variables")
PLAN = CurriculumPlan(title="Algebra Basics", lessons=[LESSON])


def test_system_instruction_per_content_type():
    assert "quiz content in JSON format" in build_system_instruction("quiz")
    assert "lesson content content" in build_system_instruction("lesson_content")
    assert build_system_instruction("chat") == CHAT_SYSTEM_PROMPT


def test_curriculum_prompt_carries_course_settings():
    prompt = build_curriculum_prompt(SPEC)
    assert '"Algebra Basics"' in prompt
    assert "exactly 3 modules of 2 lessons each (6 lessons in total)" in prompt
    assert "Use sports examples." in prompt
    assert "```json" in prompt


def test_curriculum_prompt_omits_empty_instructions():
    prompt = build_curriculum_prompt(CurriculumSpec(subject="Art"))
    assert "Additional Instructions" not in prompt


def test_lesson_prompt_names_lesson_and_course():
    prompt = build_lesson_content_prompt(LESSON, SPEC, PLAN)
    assert prompt.startswith('Create comprehensive content for lesson "Variables" in the course "Algebra Basics"')
    assert "Objectives: Define a variable" in prompt
    assert "Module: Module 1: Variables" in prompt


def test_feature_prompts_are_grounded_and_truncated():
    long_block = ContentBlock(title="Concepts", content="x" * (MAX_GROUNDING_CHARS + 500))
    contents = [ContentBlock(title="Intro", content="Variables hold values."), long_block]

    for builder in (build_quiz_prompt, build_flashcard_prompt, build_keypoints_prompt, build_mindmap_prompt):
        prompt = builder(LESSON, SPEC, contents)
        assert '"Variables"' in prompt
        assert "### Intro\nVariables hold values." in prompt
        assert "x" * MAX_GROUNDING_CHARS in prompt
        assert "x" * (MAX_GROUNDING_CHARS + 1) not in prompt


def test_feature_prompt_without_content():
    assert "No lesson content available." in build_quiz_prompt(LESSON, SPEC, [])
