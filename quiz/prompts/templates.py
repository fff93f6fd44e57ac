"""Quiz Templates - Prompts and structured-output schema for quiz generation."""

from datetime import datetime, timezone

# =============================================================================
# USER TURN
# =============================================================================

DOCUMENTS_INSTRUCTION = "Please generate a quiz based on the following document(s)."

# =============================================================================
# SYSTEM PROMPT
# =============================================================================

QUIZ_SYSTEM_PROMPT = """**Critical context: The current date is {current_date}. All your knowledge and responses must be based on this current time.** You are an expert educator tasked with creating high-quality multiple choice questions (MCQs) from the provided PDF document.

**INSTRUCTIONS:**
1. Analyze the PDF document thoroughly to understand its content and scope
2. Based on the document content, generate {count_instruction}
3. The number of questions should be proportional to the amount of meaningful content in the PDF
4. For shorter documents or limited content, generate fewer questions (closer to {min_questions})
5. For comprehensive documents with rich content, generate more questions (up to {max_questions})
6. Each question must have exactly 4 options
7. Only one option should be correct
8. Make incorrect options plausible but clearly wrong
9. {explanation_instruction}
10. Language: {language}
11. Ensure questions test understanding, not just memorization
12. Focus on the main topics and key concepts from the document
13. **Crucially, ignore non-content sections like tables of contents, course outlines, grading rubrics, administrative boilerplate and reference lists when creating questions.**
{extra_instructions}
**QUALITY REQUIREMENTS:**
- Questions should be clear, unambiguous, and grammatically correct
- Avoid questions that can be answered without reading the document
- Test different cognitive levels (knowledge, comprehension, application, analysis)
- Ensure options are roughly equal in length and complexity
- Absolutely avoid "all of the above" or "none of the above" options
- Extract meaningful content from all sections of the document
- Don't create questions if there isn't enough substantial content
- Identify clear topics for each question based on the content

Generate a quiz that follows the structured output format with the required fields: title, description, questions array, and metadata."""

SEARCH_INSTRUCTION = (
    "14. You may call the web search tool when the document covers contemporary or "
    "evolving topics; use the results only to make questions more accurate and current.\n"
)


def build_system_prompt(
    min_questions: int,
    max_questions: int,
    language: str = "en",
    include_explanations: bool = True,
    question_count: int | None = None,
    difficulty: str = "mixed",
    topics: list[str] | None = None,
    use_search: bool = False,
    now: datetime | None = None,
) -> str:
    """Monta o system prompt de geracao.

    Args:
        min_questions: Lower bound of the question range (already clamped)
        max_questions: Upper bound of the question range (already clamped)
        language: Language of questions and options
        include_explanations: Ask for an explanation per question
        question_count: Preferred count inside the range, if requested
        difficulty: Requested difficulty mix
        topics: Topics to focus on
        use_search: Mention the web search tool
        now: Reference time (defaults to current UTC time)

    Returns:
        Prompt text for the system message
    """
    now = now or datetime.now(timezone.utc)

    count_instruction = f"between {min_questions} and {max_questions} multiple choice questions"
    if question_count:
        count_instruction += f", aiming for about {question_count}"

    extra = []
    if difficulty and difficulty != "mixed":
        extra.append(f"- Target difficulty: {difficulty}\n")
    if topics:
        extra.append(f"- Focus on these topics when the document covers them: {', '.join(topics)}\n")
    if use_search:
        extra.append(SEARCH_INSTRUCTION)

    return QUIZ_SYSTEM_PROMPT.format(
        current_date=now.strftime("%A, %d %B %Y %H:%M UTC"),
        count_instruction=count_instruction,
        min_questions=min_questions,
        max_questions=max_questions,
        explanation_instruction=(
            "Include detailed explanations for why the correct answer is right"
            if include_explanations
            else "Focus on clear, concise questions"
        ),
        language=language,
        extra_instructions="".join(extra),
    )


# =============================================================================
# STRUCTURED OUTPUT
# =============================================================================

_QUESTION_SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "description": "Unique identifier for the question (e.g., q1, q2, etc.)"},
        "question": {"type": "string", "description": "The question text, clear and concise"},
        "options": {
            "type": "array",
            "items": {"type": "string"},
            "minItems": 4,
            "maxItems": 4,
            "description": "Exactly 4 answer options",
        },
        "correctAnswer": {
            "type": "integer",
            "minimum": 0,
            "maximum": 3,
            "description": "Index of the correct answer (0, 1, 2, or 3)",
        },
        "explanation": {"type": "string", "description": "Brief explanation of why this answer is correct"},
        "topic": {"type": "string", "description": "Topic or subject area this question covers"},
    },
    "required": ["id", "question", "options", "correctAnswer", "explanation", "topic"],
    "additionalProperties": False,
}

QUIZ_RESPONSE_FORMAT = {
    "type": "json_schema",
    "json_schema": {
        "name": "mcq_quiz_generation",
        "strict": True,
        "schema": {
            "title": "mcq_quiz_generation",
            "description": "Generate a multiple choice quiz from PDF content",
            "type": "object",
            "properties": {
                "quiz": {
                    "type": "object",
                    "description": "Complete quiz object",
                    "properties": {
                        "title": {
                            "type": "string",
                            "description": "A descriptive title for the quiz based on the PDF content",
                        },
                        "description": {
                            "type": "string",
                            "description": "A brief description of what the quiz covers",
                        },
                        "questions": {
                            "type": "array",
                            "items": _QUESTION_SCHEMA,
                            "description": "Array of multiple choice questions",
                        },
                        "metadata": {
                            "type": "object",
                            "description": "Quiz metadata",
                            "properties": {
                                "totalQuestions": {"type": "integer", "minimum": 1},
                                "estimatedDuration": {
                                    "type": "integer",
                                    "minimum": 1,
                                    "description": "Estimated time to complete in minutes",
                                },
                                "topics": {
                                    "type": "array",
                                    "items": {"type": "string"},
                                    "description": "Main topics covered in the quiz",
                                },
                            },
                            "required": ["totalQuestions", "estimatedDuration", "topics"],
                            "additionalProperties": False,
                        },
                    },
                    "required": ["title", "description", "questions", "metadata"],
                    "additionalProperties": False,
                }
            },
            "required": ["quiz"],
            "additionalProperties": False,
        },
    },
}
