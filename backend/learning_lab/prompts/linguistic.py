"""Prompt templates for the linguistic path: story, nikud, questions, gender, image."""
from __future__ import annotations

import random

from learning_lab.models.linguistic import LinguisticAnswers, Student

GRADE_TEXT_COMPLEXITY: dict[str, str] = {
    "ג": "Simple vocabulary and short sentences (5-8 words), mostly present tense, concrete "
         "descriptions, no complex conjunctions; direct actions and dialogue.",
    "ד": "Somewhat longer sentences (8-12 words), past tense, simple subordinate clauses "
         "('because', 'when') and more descriptive adjectives.",
    "ה": "Varied sentence structures, tenses and clauses, simple similes, and more abstract nouns.",
    "ו": "Complex, varied sentences, rich vocabulary with metaphors and nuanced emotion; may "
         "shift perspective or time.",
}

GRADE_QUESTION_TYPES: dict[str, str] = {
    "ג": "1 multiple-choice question about a main character or event; 1 open question about a "
         "feeling or a simple opinion.",
    "ד": "2 multiple-choice questions on plot details and character motivation; 1 open question "
         "needing a short inference ('Why do you think...?').",
    "ה": "2 multiple-choice questions, one on plot and one on the meaning of a word from the text; "
         "2 open questions, one summarizing part of the story and one asking for a personal connection.",
    "ו": "3 multiple-choice questions on plot, character development and theme; 2 open questions, "
         "one analysing the main message and one predicting what happens next.",
}

ART_STYLES = [
    "digital painting",
    "watercolor",
    "comic book style",
    "anime style",
    "storybook illustration",
]

STORY_EXCERPT_CHARS = 1000


def _story_layout(grade: str) -> dict[str, str]:
    if grade == "ה":
        return {
            "word_count": "150-250 words",
            "subheadings": 'exactly 2 Markdown subheadings (e.g. "## שם תת-כותרת")',
            "paragraphs": "5-8 sentences long",
        }
    if grade == "ו":
        return {
            "word_count": "200-300 words",
            "subheadings": '2 or 3 Markdown subheadings (e.g. "## שם תת-כותרת")',
            "paragraphs": "5-8 sentences long",
        }
    return {
        "word_count": "60-140 words",
        "subheadings": "no subheadings",
        "paragraphs": "4-7 sentences long",
    }


def build_story_prompt(student: Student, answers: LinguisticAnswers) -> str:
    layout = _story_layout(student.grade)
    if student.grade in ("ג", "ד"):
        creative = (
            f"The main character MUST be named {student.name}. Keep the story positive and "
            "encouraging and use the preferences below directly."
        )
    else:
        creative = (
            f"The main character MUST be named {student.name}. The story may include a small, "
            "age-appropriate challenge that is resolved by the end; weave the preferences in "
            "subtly."
        )
    colors = ", ".join(answers.colors) or "-"
    return f"""You are a creative storyteller for Israeli children. The reader is in grade {student.grade}. Write in Hebrew.

Requirements (non-negotiable):
1. Text complexity for grade {student.grade}: {GRADE_TEXT_COMPLEXITY[student.grade]}
2. Length: {layout['word_count']}.
3. Structure: {layout['subheadings']}.
4. Paragraphs: {layout['paragraphs']}.
{creative}

Student preferences:
- Genre: {answers.story_type}
- A recent achievement to inspire the theme: "{answers.achievement}"
- Favorite place for the setting: {answers.favorite_place}
- Role model whose traits inspire the hero: {answers.role_model}
- Colors for the atmosphere: {colors}

Output ONLY the story text in Hebrew: no title, no introduction, no explanation."""


def build_nikud_prompt(text: str) -> str:
    return (
        "Add Hebrew vowel points (nikud) to the following text. "
        "Return only the vocalized text.\n\n"
        f"{text}"
    )


def build_questions_prompt(story: str, grade: str) -> str:
    return f"""Write reading-comprehension questions in Hebrew for a grade {grade} student about the story below.

Story:
---
{story}
---

Rules:
1. Quantity and type for grade {grade}: {GRADE_QUESTION_TYPES[grade]}
2. Every multiple-choice question has exactly 4 options: one clearly correct according to the
   story and three plausible but wrong distractors related to the story.
3. "correctAnswer" repeats the exact text of the correct option.
4. Open questions invite short, thoughtful answers.

Return ONE JSON object and nothing else:
{{
  "mcqs": [
    {{"question": "...", "options": ["...", "...", "...", "..."], "correctAnswer": "..."}}
  ],
  "openQuestions": ["..."]
}}"""


def build_gender_prompt(name: str) -> str:
    return f"""Decide the most likely grammatical gender for addressing a child named "{name}" in Hebrew.

Return ONE JSON object and nothing else:
{{"gender": "male" | "female" | "unknown"}}

Use "unknown" when the name is commonly used for both or you cannot tell."""


def build_image_prompt(
    story: str,
    student_name: str,
    comprehension_answers: list[str],
    colors: list[str],
    style: str | None = None,
) -> str:
    style = style or random.choice(ART_STYLES)
    color_line = (
        f"Feature the colors: {', '.join(colors)}." if colors else "Use a cheerful palette."
    )
    return f"""Create a beautiful, imaginative, child-friendly image in {style} style.

It is a reward for a child named {student_name} who read a personalized story and answered
questions about it. The mood is uplifting, joyful and a little magical.

Main subject: the story's hero, {student_name}, at the center of the composition.

Story context (excerpt):
{story[:STORY_EXCERPT_CHARS]}...

The child's answers, for personal details in the scene: "{', '.join(comprehension_answers)}"

{color_line}
Do NOT include any text, letters or numbers in the image."""
