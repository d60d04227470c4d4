"""Default content guidelines.

``DEFAULT_GUIDELINES_PROMPT`` is returned whenever the guideline store is
empty or unreachable.  ``DEFAULT_GUIDELINES`` seeds an empty store.
"""

from __future__ import annotations

from models.guideline import Guideline, GuidelineCategory, GuidelinePriority

GUIDELINES_HEADER = (
    "IMPORTANT: You must follow these content guidelines strictly "
    "when generating educational content:"
)

GUIDELINES_FOOTER = (
    "Please ensure all generated content adheres to these guidelines "
    "while maintaining educational quality and effectiveness."
)

DEFAULT_GUIDELINES_PROMPT = f"""\
IMPORTANT: Follow these default content guidelines:

CRITICAL GUIDELINES (Must Follow):
1. Educational Appropriateness: Ensure all content is age-appropriate and educationally sound
2. Factual Accuracy: All information must be factually correct and up-to-date
3. Respectful Content: Content must be respectful of all cultures, religions, and backgrounds
4. Safe Learning Environment: Avoid content that could be harmful, offensive, or inappropriate

IMPORTANT GUIDELINES:
1. Clear Learning Objectives: Each lesson should have clear, measurable learning objectives
2. Engaging Content: Make content engaging and interactive where possible
3. Progressive Difficulty: Structure content with appropriate difficulty progression
4. Inclusive Language: Use inclusive and accessible language

{GUIDELINES_FOOTER}
"""

DEFAULT_GUIDELINES: list[Guideline] = [
    Guideline(
        title="Educational Appropriateness",
        description="Ensure content is age-appropriate and educationally sound",
        category=GuidelineCategory.CONTENT,
        priority=GuidelinePriority.HIGH,
        guideline=(
            "All educational content must be appropriate for the specified age group "
            "and academic level. Avoid complex concepts for younger learners and ensure "
            "content complexity matches the target audience."
        ),
        applies_to=["curriculum", "lesson_content", "quiz", "flashcard"],
        tags=["age-appropriate", "educational"],
    ),
    Guideline(
        title="Factual Accuracy",
        description="Ensure all information is factually correct and current",
        category=GuidelineCategory.CONTENT,
        priority=GuidelinePriority.HIGH,
        guideline=(
            "All facts, figures, dates, and information must be accurate and up-to-date. "
            "When in doubt, indicate uncertainty or provide multiple perspectives on "
            "debated topics."
        ),
        applies_to=["curriculum", "lesson_content", "quiz", "keypoints"],
        tags=["accuracy", "facts"],
    ),
    Guideline(
        title="Respectful Content",
        description="Content must respect all cultures, religions, and backgrounds",
        category=GuidelineCategory.GENERAL,
        priority=GuidelinePriority.HIGH,
        guideline=(
            "Content should be respectful of diverse cultures, religions, and backgrounds. "
            "Avoid stereotypes, biased language, or content that could be offensive to any "
            "group. Present multiple perspectives when discussing cultural or historical topics."
        ),
        applies_to=["all"],
        tags=["respect", "diversity", "inclusion"],
    ),
    Guideline(
        title="Clear Learning Objectives",
        description="Each lesson should have clear, measurable learning objectives",
        category=GuidelineCategory.CURRICULUM,
        priority=GuidelinePriority.MEDIUM,
        guideline=(
            "Every lesson must include clear, specific, and measurable learning objectives "
            "that students can achieve. Use action verbs and specify what students will be "
            "able to do after completing the lesson."
        ),
        applies_to=["curriculum", "lesson_content"],
        tags=["objectives", "learning-outcomes"],
    ),
]
