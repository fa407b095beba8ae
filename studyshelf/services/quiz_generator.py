import re
from datetime import datetime, timezone

from flask import current_app

from studyshelf.extensions import db, atomic
from studyshelf.models.quiz import Quiz, Question, DIFFICULTIES, OPTION_KEYS
from studyshelf.services.errors import (
    NotFoundError,
    PipelineError,
    ProviderError,
    QuizValidationError,
    ResponseFormatError,
)
from studyshelf.services.ocr import get_ocr
from studyshelf.services.pages import discover_pages, ocr_pages, pages_by_ids
from studyshelf.services.providers import get_gateway
from studyshelf.utils.llm_json import parse_json_loose

DIFFICULTY_RUBRICS = {
    "easy": "Basic comprehension, direct facts, simple recall questions",
    "medium": "Analysis, inference, connecting concepts, moderate complexity",
    "hard": "Critical thinking, complex analysis, synthesis, advanced reasoning",
}

QUIZ_PROMPT = """Based on the content from the book pages given as context, generate exactly {count} multiple-choice questions with difficulty level: {difficulty}.

DIFFICULTY LEVEL GUIDELINES:
{rubrics}

Requirements:
1. Generate exactly {count} questions appropriate for {difficulty_upper} difficulty level
2. Each question should have 4 options (A, B, C, D)
3. Provide the correct answer as the option letter
4. Include a brief explanation for each answer
5. Questions must match the {difficulty} difficulty criteria above
6. Vary question types: comprehension, analysis, application, evaluation
7. Return the response as a JSON array with this exact structure:

[
  {{
    "question": "Question text here?",
    "options": {{
      "A": "Option A text",
      "B": "Option B text",
      "C": "Option C text",
      "D": "Option D text"
    }},
    "correctAnswer": "A",
    "explanation": "Explanation of why this answer is correct"
  }}
]

Make sure to return ONLY the JSON array, no additional text or formatting.
"""

_OPTION_TOKEN = re.compile(r"^\(?(?:option|answer)?\s*([a-d1-4])\s*[).:]?$")


def normalize_option(value):
    """Map 'A', 'b', '(c)', 'option d', '2' ... to an option letter, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return OPTION_KEYS[value - 1] if 1 <= value <= 4 else None
    if not isinstance(value, str):
        return None
    m = _OPTION_TOKEN.match(value.strip().lower())
    if not m:
        return None
    token = m.group(1)
    return token.upper() if token.isalpha() else OPTION_KEYS[int(token) - 1]


def validate_difficulty(difficulty):
    value = str(difficulty or "").strip().lower()
    if value not in DIFFICULTIES:
        raise QuizValidationError("Invalid difficulty level. Must be: easy, medium, or hard")
    return value


def validate_question_count(question_count, minimum):
    if isinstance(question_count, bool):
        raise QuizValidationError("questionCount must be an integer")
    if isinstance(question_count, float) and not question_count.is_integer():
        raise QuizValidationError("questionCount must be an integer")
    try:
        count = int(question_count)
    except (TypeError, ValueError):
        raise QuizValidationError("questionCount must be an integer") from None
    if count < minimum:
        raise QuizValidationError(f"questionCount must be at least {minimum}")
    return count


def build_quiz_prompt(difficulty, count):
    rubrics = "\n".join(f"- {tier.upper()}: {text}" for tier, text in DIFFICULTY_RUBRICS.items())
    return QUIZ_PROMPT.format(
        count=count,
        difficulty=difficulty,
        difficulty_upper=difficulty.upper(),
        rubrics=rubrics,
    )


def build_quiz_context(page_texts):
    parts = []
    for result in page_texts:
        page = result.page
        parts.append(f'\n--- Page {page.page_number} from "{page.document.title}" ---\n{result.text}\n')
    return "".join(parts)


def _clean_question(index, item):
    if not isinstance(item, dict):
        raise ResponseFormatError(f"Question {index} is not an object")

    text = str(item.get("question") or "").strip()
    if not text:
        raise ResponseFormatError(f"Question {index} has no text")

    options = item.get("options")
    if isinstance(options, list) and len(options) == 4:
        options = dict(zip(OPTION_KEYS, options))
    if not isinstance(options, dict):
        raise ResponseFormatError(f"Question {index} options must be an object with keys A-D")
    options = {str(k).strip().upper(): str(v).strip() for k, v in options.items() if v is not None}
    if set(options) != set(OPTION_KEYS) or not all(options.values()):
        raise ResponseFormatError(f"Question {index} must have exactly 4 non-empty options A-D")

    answer = item.get("correctAnswer", item.get("answer"))
    correct = normalize_option(answer)
    if correct is None and isinstance(answer, str):
        # Some models answer with the option text instead of the letter
        wanted = answer.strip().lower()
        correct = next((k for k, v in options.items() if v.lower() == wanted), None)
    if correct is None:
        raise ResponseFormatError(f"Question {index} has an invalid correct answer: {answer!r}")

    return {
        "question": text,
        "options": {k: options[k] for k in OPTION_KEYS},
        "correct_option": correct,
        "explanation": str(item.get("explanation") or "").strip(),
    }


def parse_quiz_response(raw, question_count):
    """Parse and validate the provider answer; any deviation is fatal."""
    try:
        items = parse_json_loose(raw, expect=list)
    except ValueError as e:
        raise ResponseFormatError(f"Unparsable quiz response: {e}") from e

    if len(items) != question_count:
        raise ResponseFormatError(
            f"AI did not return exactly {question_count} questions (got {len(items)})"
        )
    return [_clean_question(i, item) for i, item in enumerate(items, start=1)]


def generate_quiz(user, page_ids=None, difficulty="medium", question_count=10, ocr=None, gateway=None):
    """
    Quiz pipeline: resolve pages -> OCR each page -> one combined context ->
    one provider call -> validate -> persist Quiz + Questions together.

    Returns:
        {"quiz": {...}, "questions": [...], "ocr_summary": {...}, "ocr_results": [...]}
    """
    config = current_app.config
    log = current_app.logger

    difficulty = validate_difficulty(difficulty)
    question_count = validate_question_count(question_count, config.get("QUIZ_MIN_QUESTIONS", 10))

    # Step 1: resolve pages
    if page_ids:
        pages = pages_by_ids(user, page_ids)
    else:
        pages = discover_pages(user, config.get("QUIZ_AUTO_PAGE_LIMIT", 3))
    if not pages:
        raise NotFoundError("No valid pages found. Please ensure pages exist and have valid URLs.")
    log.info(f"Generating {difficulty} quiz ({question_count} questions) from {len(pages)} pages")

    ocr = ocr or get_ocr()
    gateway = gateway or get_gateway()

    # Step 2: OCR each page independently
    results = ocr_pages(pages, ocr, workers=config.get("PAGE_WORKERS", 1))
    successful = [r for r in results if r.ok]
    log.info(f"OCR summary: {len(successful)}/{len(results)} pages processed successfully")
    if not successful:
        raise PipelineError("OCR failed for all pages. Cannot generate quiz without content.")

    # Steps 3 + 4: combined context and difficulty-aware instruction
    context = build_quiz_context(successful)
    instruction = build_quiz_prompt(difficulty, question_count)

    try:
        raw = gateway.complete(context, instruction, kind=config.get("QUIZ_PROVIDER"))
    except ProviderError as e:
        log.error(f"Quiz generation failed at the provider: {e}")
        raise PipelineError(f"Failed to generate questions using AI: {e}") from e

    # Step 5: exact-count validation
    questions_data = parse_quiz_response(raw, question_count)

    # Step 6: persist
    snapshot = [
        {
            "page_id": page.id,
            "page_number": page.page_number,
            "document_id": page.document_id,
            "document_title": page.document.title,
        }
        for page in pages
    ]
    ocr_summary = {
        "total_pages": len(results),
        "successful_pages": len(successful),
        "total_characters": len(context),
    }

    with atomic():
        quiz = Quiz(
            user_id=user.id,
            difficulty=difficulty,
            pages=snapshot,
            ocr_summary=ocr_summary,
            score=0.0,
        )
        db.session.add(quiz)
        for data in questions_data:
            quiz.questions.append(Question(
                text=data["question"],
                options=data["options"],
                correct_option=data["correct_option"],
                user_option=None,
                explanation_text=data["explanation"],
            ))

    log.info(f"Quiz {quiz.id} created with {len(quiz.questions)} questions")
    return {
        "quiz": quiz.to_dict(),
        "questions": [q.to_dict() for q in quiz.questions],
        "ocr_summary": ocr_summary,
        "ocr_results": [r.to_dict() for r in results],
    }


def submit_quiz(quiz, answers):
    """
    Record the user's options and recompute the score.

    answers maps question id -> option letter. Questions left out keep their
    previous user_option. Score = 100 * correct / total questions.
    Resubmitting overwrites the previous answers and score.
    """
    if not isinstance(answers, dict):
        raise QuizValidationError("Answers object is required")

    by_id = {q.id: q for q in quiz.questions}
    selected = {}
    for key, value in answers.items():
        try:
            question_id = int(key)
        except (TypeError, ValueError):
            raise QuizValidationError(f"Invalid question id: {key!r}") from None
        if question_id not in by_id:
            raise QuizValidationError(f"Question {question_id} does not belong to quiz {quiz.id}")
        option = normalize_option(value)
        if option is None:
            raise QuizValidationError(f"Invalid option for question {question_id}: {value!r}")
        selected[question_id] = option

    correct = 0
    results = []
    total = len(quiz.questions)

    with atomic():
        for question in quiz.questions:
            is_correct = None
            if question.id in selected:
                question.user_option = selected[question.id]
                is_correct = question.user_option == question.correct_option
                if is_correct:
                    correct += 1
            results.append({
                "question_id": question.id,
                "user_option": question.user_option,
                "correct_option": question.correct_option,
                "is_correct": is_correct,
            })
        quiz.score = (correct / total) * 100 if total else 0.0
        quiz.updated_at = datetime.now(timezone.utc)

    current_app.logger.info(f"Quiz {quiz.id} submitted. Score: {correct}/{total} ({quiz.score:.1f}%)")
    return {
        "quiz_id": quiz.id,
        "score": quiz.score,
        "correct_answers": correct,
        "total_questions": total,
        "results": results,
    }
