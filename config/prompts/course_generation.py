"""Prompt builders for each course generation stage.

One builder per content type.  Every prompt ends with an explicit JSON
example so the extractor sees the same shape the normalizers expect.
Feature prompts (quiz, flashcards, key points, mind map) are grounded on the
lesson's own content blocks.
"""

from __future__ import annotations

from config.prompts.chat import CHAT_SYSTEM_PROMPT
from models.course import ContentBlock, CurriculumPlan, CurriculumSpec, LessonOutline

# Per-block excerpt length used when grounding feature prompts.
MAX_GROUNDING_CHARS = 1500


def build_system_instruction(content_type: str) -> str:
    """Base system instruction; the guideline preamble is prepended to it."""
    if content_type == "chat":
        return CHAT_SYSTEM_PROMPT
    return (
        "You are an expert educational content creator. "
        f"Generate {content_type.replace('_', ' ')} content in JSON format. "
        "Return only valid JSON, without commentary."
    )


def build_curriculum_prompt(spec: CurriculumSpec) -> str:
    total = spec.total_lessons
    extra = (
        f"\n## Additional Instructions\n\n{spec.additional_instructions}\n"
        if spec.additional_instructions
        else ""
    )
    return f"""\
Create a comprehensive course curriculum for "{spec.display_title}" at \
{spec.academic_level} level in {spec.subject}.

## Course Details
- Type: {spec.course_type}
- Topic: {spec.topic or "General"}
- Difficulty: {spec.difficulty}
- Duration: {spec.duration} minutes total
- Learning Style: {spec.learning_style}
- Tone: {spec.tone}
{extra}
## Requirements
- Organize the course into exactly {spec.module_count} modules of \
{spec.lessons_per_module} lessons each ({total} lessons in total)
- Each lesson should build on previous concepts
- Include clear learning objectives for each lesson
- Keep content appropriate for the stated academic level

## Output Format

```json
{{
  "title": "Course Title",
  "description": "Course description",
  "objectives": ["objective1", "objective2"],
  "modules": [
    {{
      "title": "Module Title",
      "description": "Module description",
      "lessons": [
        {{
          "title": "Lesson Title",
          "description": "Lesson description",
          "objectives": ["lesson objective"],
          "order": 1,
          "duration": 30
        }}
      ]
    }}
  ]
}}
```

Return ONLY the JSON object."""


def build_lesson_content_prompt(
    lesson: LessonOutline,
    spec: CurriculumSpec,
    curriculum: CurriculumPlan,
) -> str:
    objectives = ", ".join(lesson.objectives) or "General learning"
    return f"""\
Create comprehensive content for lesson "{lesson.title}" in the course "{curriculum.title}".

## Lesson Context
- Module: {lesson.module_title or lesson.module_index}
- Order: {lesson.order}
- Duration: {lesson.duration} minutes
- Objectives: {objectives}
- Description: {lesson.description or "n/a"}
- Course Level: {spec.academic_level}
- Subject: {spec.subject}
- Tone: {spec.tone}

## Content Requirements
- Create multiple content blocks: introduction, main concepts, examples, summary
- Use rich markdown formatting with headings, bullet points and emphasis
- Include practical examples and real-world applications

## Output Format

```json
[
  {{"title": "Introduction", "type": "rich_text", "content": "# Introduction\\n\\nWelcome to this lesson...", "order": 1}},
  {{"title": "Main Concepts", "type": "rich_text", "content": "## Key Concepts\\n\\n...", "order": 2}},
  {{"title": "Examples", "type": "rich_text", "content": "## Practical Examples\\n\\n1. ...", "order": 3}},
  {{"title": "Summary", "type": "rich_text", "content": "## Lesson Summary\\n\\n...", "order": 4}}
]
```

Return ONLY the JSON array."""


def build_quiz_prompt(
    lesson: LessonOutline,
    spec: CurriculumSpec,
    contents: list[ContentBlock],
) -> str:
    return f"""\
Create a quiz for lesson "{lesson.title}" at {spec.academic_level} level.

{_grounding(contents)}

## Requirements
- 3-5 questions of varying difficulty, answerable from the lesson content
- Mix of multiple choice and other question types
- Include explanations for correct answers
- Test understanding, not just memorization

## Output Format

```json
{{
  "title": "Quiz: {lesson.title}",
  "questions": [
    {{
      "id": "q1",
      "question": "Question text",
      "type": "multiple_choice",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctAnswer": "Option A",
      "explanation": "Explanation of why this is correct"
    }}
  ],
  "passingScore": 70,
  "attempts": 3
}}
```

Return ONLY the JSON object."""


def build_flashcard_prompt(
    lesson: LessonOutline,
    spec: CurriculumSpec,
    contents: list[ContentBlock],
) -> str:
    return f"""\
Create flashcards for lesson "{lesson.title}" at {spec.academic_level} level.

{_grounding(contents)}

## Requirements
- 5-8 flashcards covering key concepts from the lesson content
- Vary difficulty levels
- Include terms, definitions, and examples

## Output Format

```json
[
  {{"front": "Question or term", "back": "Answer or definition", "difficulty": "easy|medium|hard", "hint": "Optional hint"}}
]
```

Return ONLY the JSON array."""


def build_keypoints_prompt(
    lesson: LessonOutline,
    spec: CurriculumSpec,
    contents: list[ContentBlock],
) -> str:
    return f"""\
Extract key points from lesson "{lesson.title}" at {spec.academic_level} level.

{_grounding(contents)}

## Requirements
- 4-6 most important concepts
- Clear, concise explanations
- Prioritize by importance

## Output Format

```json
[
  {{"point": "Key concept", "explanation": "Detailed explanation", "importance": "high|medium|low", "examples": "Optional examples"}}
]
```

Return ONLY the JSON array."""


def build_mindmap_prompt(
    lesson: LessonOutline,
    spec: CurriculumSpec,
    contents: list[ContentBlock],
) -> str:
    return f"""\
Create a mind map for lesson "{lesson.title}" at {spec.academic_level} level.

{_grounding(contents)}

## Requirements
- Central concept with branching sub-concepts
- Clear hierarchical structure; children reference node ids

## Output Format

```json
{{
  "title": "Mind Map: {lesson.title}",
  "data": {{
    "nodes": [
      {{"id": "1", "label": "Central Concept", "children": ["2", "3"]}},
      {{"id": "2", "label": "Sub-concept 1", "children": []}},
      {{"id": "3", "label": "Sub-concept 2", "children": []}}
    ]
  }}
}}
```

Return ONLY the JSON object."""


def _grounding(contents: list[ContentBlock]) -> str:
    if not contents:
        return "## Lesson Content\n\nNo lesson content available."
    parts = []
    for block in contents:
        excerpt = block.content[:MAX_GROUNDING_CHARS]
        parts.append(f"### {block.title}\n{excerpt}")
    return "## Lesson Content\n\n" + "\n\n".join(parts)
