"""
Math exercise prompt builder.

build_exercise_prompt(topic, grade, is_follow_up, operation_type,
                      last_operation_type_to_avoid, seed) -> str

Pure apart from drawing a random seed when none is passed. The seed is written
into the prompt so repeated calls for the same topic do not collapse onto one
degenerate exercise.
"""
from __future__ import annotations

import random

# ---------------------------------------------------------------------------
# Curriculum per grade
# ---------------------------------------------------------------------------

GRADE_MATH_CURRICULUM: dict[str, str] = {
    "ג": (
        "- Numbers & operations: addition and subtraction up to 10,000, two-digit "
        "multiplication, simple division with or without remainder, rounding, "
        "parentheses, missing-number problems.\n"
        "- Fractions: ONLY identifying basic visual fractions (1/2, 1/3, 1/4). The one "
        "allowed question is which fraction the picture shows. No fraction arithmetic "
        "and no 'part of a quantity'.\n"
        "- Geometry: triangles, angles, rectangle area and perimeter, cuboid volume."
    ),
    "ד": (
        "- Numbers & operations: the four operations on larger numbers, estimation, "
        "decimal structure, division with remainder.\n"
        "- Fractions: adding and subtracting fractions with equal or related "
        "denominators; first steps in whole number times fraction ('part of a quantity').\n"
        "- Geometry: squares and rectangles, symmetry, heights, tessellation."
    ),
    "ה": (
        "- Numbers & operations: the four operations on large numbers.\n"
        "- Fractions: the four operations on simple and decimal fractions, converting "
        "between forms, rounding, word problems including 'part of a quantity'.\n"
        "- Geometry: circles, volume and its units, nets of solids.\n"
        "- Average: the average of a set of numbers."
    ),
    "ו": (
        "- Numbers & operations: all number sets and the relations between operations.\n"
        "- Fractions, decimals, percentages & ratios: multi-step problems using all "
        "four operations, percentages and ratios.\n"
        "- Average: complex average problems.\n"
        "- Geometry: area and volume, classifying complex solids."
    ),
}

OPERATION_NAMES = "addition, subtraction, multiplication, division"

# ---------------------------------------------------------------------------
# Shared blocks
# ---------------------------------------------------------------------------

_SYMBOL_RULES = (
    "Mathematical symbols in 'problemText': '+' for addition, '-' for subtraction, "
    "'×' for multiplication (never 'x' or '*'), '÷' for division (never '/')."
)

_FRACTION_RULES = (
    "Fractions in 'problemText' are written only as 'numerator/denominator' (e.g. '1/3'). "
    "Mixed numbers are written 'integer numerator/denominator' (e.g. '2 1/4'); never put "
    "Hebrew words such as 'ו' inside a number."
)

_ANSWER_RULES = (
    "Answer format:\n"
    "- Division with a remainder: 'quotient,remainder' (e.g. \"7,1\").\n"
    "- Fractions: 'numerator/denominator' (e.g. \"1/3\") or 'integer numerator/denominator' "
    "for mixed numbers (e.g. \"5 1/2\").\n"
    "- Anything else: a single number as a string."
)

_EXPLANATION_RULES = (
    "Explanations:\n"
    "- 'explanation': numbered steps in Hebrew with **bold** emphasis, ending with the final answer.\n"
    "- 'explanationHint': the exact same steps with the final numeric answer replaced by '___'.\n"
    "- Every line that is a full equation (e.g. \"200 - 120 = 80\") stands on its own line."
)

_SVG_RULES = (
    "SVG visualization:\n"
    "- One valid, self-contained SVG string with a suitable viewBox and no XML declaration.\n"
    "- Friendly colors; use #7371fc as the emphasis color.\n"
    "- It must never reveal the answer."
)

_OUTPUT_SHAPE = """Return ONE valid JSON object and nothing else:
{
  "problemText": "The problem in Hebrew.",
  "visualizationSvg": "<svg ...>...</svg>",
  "answer": "The final answer in the required format.",
  "explanation": "Step-by-step solution in Hebrew including the answer.",
  "explanationHint": "The same steps with the answer replaced by ___.",
  "operationType": "addition | subtraction | multiplication | division (four operations topic only)"
}"""


def _difficulty_line(is_follow_up: bool) -> str:
    if is_follow_up:
        return (
            "This is a follow-up for a student who just answered incorrectly. "
            "Make it simpler than a standard question for this grade."
        )
    return "Create a standard, non-trivial question for this grade."


# ---------------------------------------------------------------------------
# Topic blocks
# ---------------------------------------------------------------------------

def _operation_choice(
    is_follow_up: bool,
    operation_type: str | None,
    last_operation_type_to_avoid: str | None,
) -> str:
    if is_follow_up and operation_type:
        return f"You MUST use the operation **{operation_type}**. This follow-up depends on it."
    if last_operation_type_to_avoid:
        return (
            f"Pick ONE operation at random from ({OPERATION_NAMES}), "
            f"but it MUST NOT be **{last_operation_type_to_avoid}**."
        )
    return f"Pick ONE operation at random from ({OPERATION_NAMES})."


def _four_operations_block(is_follow_up, operation_type, last_operation_type_to_avoid) -> str:
    return (
        "Topic: the four arithmetic operations.\n"
        f"- {_operation_choice(is_follow_up, operation_type, last_operation_type_to_avoid)}\n"
        "- Use a varied range of numbers that fits the grade; avoid repeating problem shapes.\n"
        "- 'problemText' holds ONLY the expression (e.g. \"25 × 14\", \"357 ÷ 8\"), with no Hebrew "
        "words around it such as \"כמה שווה?\" or \"פתרו:\".\n"
        "- Division uses whole numbers only and may leave a remainder; no decimals.\n"
        "- When both operands have several digits, lay the expression out vertically with "
        "newlines, e.g. \"  25\\n× 14\\n----\".\n"
        "- If a multi-digit multiplication is explained with the distributive law, the "
        "explanation starts with the line \"נפתור את התרגיל בעזרת: **חוק הפילוג**:\".\n"
        "- The SVG is a light math-themed illustration (abacus, pencils, notebook) and shows "
        "no solving steps.\n"
        "- Include \"operationType\" with the operation you used."
    )


def _fractions_block(grade: str) -> str:
    block = (
        "Topic: fractions.\n"
        "- 'problemText' is ONLY the expression (e.g. \"1/2 + 3/4\", \"1 1/2 × 3/4\") or a direct "
        "question (e.g. \"איזה מספר גדול יותר: 3/4 או 0.7?\"). No labels like \"חשבו:\" and never "
        "'?' standing in for an operator between two numbers.\n"
        "- Vary the kind of exercise: calculation, comparison (ask directly which is larger or "
        "smaller, or ask for the right sign among <, >, =; never the vague \"השוו בין...\"), "
        "equivalent fractions, concept questions (numerator, mixed number), and visual "
        "identification.\n"
        "- About a quarter of the exercises review the previous grade's material.\n"
        "- The SVG shows the concept of the problem without giving away the answer."
    )
    if grade == "ג":
        block += (
            "\nGrade ג restriction: no calculation and no 'part of a quantity'. The ONLY allowed "
            "exercise shows a shape with colored parts and asks which fraction is colored, e.g. "
            "problemText \"איזה שבר מתאר החלק הצבוע בציור?\", SVG of a circle in 4 parts with 1 "
            "colored, answer \"1/4\"."
        )
    else:
        block += f"\nFor grade {grade}, mix the exercise kinds above across difficulty levels."
    return block


def _average_block() -> str:
    return (
        "Topic: average.\n"
        "- Use a fresh set of numbers fitting the grade, optionally inside a one-sentence "
        "story (e.g. \"מצאו את הממוצע של הציונים 80, 90 ו-100.\").\n"
        "- The SVG is a bar graph of the given numbers ONLY: no average value, no average "
        "line, no hint of the result."
    )


def _word_problems_block(grade: str) -> str:
    if grade in ("ה", "ו"):
        kind = (
            "Choose at random between a four-operations problem and a fractions problem "
            "(e.g. 'part of a quantity', חלק מכמות)."
        )
    else:
        kind = f"Use one of the four operations ({OPERATION_NAMES})."
    return (
        "Topic: word problems.\n"
        f"- {kind}\n"
        "- An original, imaginative scenario every time, relatable for children in Israel; "
        "no generic \"someone has 5 apples\" stories.\n"
        "- The SVG illustrates the scene and gives a clue without solving it (show 3 children "
        "with balloons, not the total number of balloons)."
    )


def _topic_block(topic, grade, is_follow_up, operation_type, last_operation_type_to_avoid) -> str:
    if topic == "4_operations":
        return _four_operations_block(is_follow_up, operation_type, last_operation_type_to_avoid)
    if topic == "fractions":
        return _fractions_block(grade)
    if topic == "average":
        return _average_block()
    return _word_problems_block(grade)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_exercise_prompt(
    topic: str,
    grade: str,
    is_follow_up: bool = False,
    operation_type: str | None = None,
    last_operation_type_to_avoid: str | None = None,
    seed: int | None = None,
) -> str:
    if seed is None:
        seed = random.randint(0, 9999)

    sections = [
        "You are an expert math teacher for Israeli elementary school students.",
        "Generate one math problem, an SVG visualization of it, the correct answer and two "
        "versions of a step-by-step explanation, as a single JSON object.",
        f"Random seed for variety: {seed}.",
        f"Curriculum for grade {grade} (do not go beyond it):\n{GRADE_MATH_CURRICULUM[grade]}",
        "Language: Hebrew. Use everyday, relatable contexts.",
        _SYMBOL_RULES,
        _FRACTION_RULES,
        _difficulty_line(is_follow_up),
        _ANSWER_RULES,
        _EXPLANATION_RULES,
        _topic_block(topic, grade, is_follow_up, operation_type, last_operation_type_to_avoid),
        _SVG_RULES,
        _OUTPUT_SHAPE,
    ]
    return "\n\n".join(sections)
