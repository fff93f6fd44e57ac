"""Quiz Engine - Turns uploaded documents into a validated Quiz."""

from __future__ import annotations

import base64
import json
import logging
import re
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from ..exceptions import InvalidInputError, QuizGenerationError
from ..llm.messages import (
    AssistantMessage,
    Conversation,
    SystemMessage,
    ToolCall,
    ToolMessage,
    UserMessage,
)
from ..models.schemas import GenerationOptions, Quiz, UploadedDocument
from ..prompts import DOCUMENTS_INSTRUCTION, QUIZ_RESPONSE_FORMAT, build_system_prompt
from ..responses import utc_now_iso

if TYPE_CHECKING:
    from config import AppConfig

    from ..llm.completion_client import CompletionProvider
    from ..llm.search import SearchToolAdapter

logger = logging.getLogger(__name__)

FENCED_JSON_PATTERN = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")
BARE_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

DEFAULT_TITLE = "Generated Quiz"


# =============================================================================
# RESPONSE REPAIR
# =============================================================================


def _message_text(content: Any) -> str:
    """Flattens provider content (plain string or list of text parts)."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part.get("text", "") for part in content if isinstance(part, dict)
        )
    return ""


def parse_quiz_content(content: Any) -> Any:
    """Decodes the final model message.

    Tries plain JSON, then a fenced ```json block, then the outermost
    ``{...}`` span.

    Raises:
        QuizGenerationError: No JSON could be recovered
    """
    text = _message_text(content).strip()
    if not text:
        raise QuizGenerationError("AI provider returned an empty response")

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        logger.error(f"Failed to parse AI response as JSON (first 500 chars): {text[:500]}")

    match = FENCED_JSON_PATTERN.search(text)
    if match:
        try:
            parsed = json.loads(match.group(1))
        except json.JSONDecodeError as e:
            raise QuizGenerationError("Could not parse JSON from response content") from e
        logger.info("Extracted JSON from markdown block")
        return parsed

    match = BARE_OBJECT_PATTERN.search(text)
    if match:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise QuizGenerationError("Found JSON-like content but could not parse it") from e
        logger.info("Extracted JSON object from response")
        return parsed

    raise QuizGenerationError("No valid JSON found in AI response")


def normalize_quiz_payload(parsed: Any) -> dict[str, Any]:
    """Returns the inner quiz object for the accepted shapes.

    Accepted: ``{"quiz": {...}}``, ``{"questions": [...]}`` and a bare
    question array.
    """
    if isinstance(parsed, list):
        return {"title": DEFAULT_TITLE, "questions": parsed}
    if not isinstance(parsed, dict):
        raise QuizGenerationError("AI response is not a valid object")
    if isinstance(parsed.get("quiz"), dict):
        return dict(parsed["quiz"])
    if "questions" in parsed:
        return dict(parsed)
    raise QuizGenerationError("Invalid response format from AI provider")


def coerce_correct_answer(question: dict[str, Any], log_prefix: str = "") -> int:
    """Integer index in [0, 3]; anything else becomes 0 with a warning."""
    raw = question.get("correctAnswer")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = -1
    if not 0 <= value <= 3:
        logger.warning(
            f"{log_prefix}Invalid correctAnswer {raw!r} for question {question.get('id')}, defaulting to 0"
        )
        value = 0
    return value


def coerce_duration(raw: Any, question_count: int) -> int:
    """Positive minutes from the model, else ``max(5, n + 2)``."""
    if isinstance(raw, (int, float)) and not isinstance(raw, bool) and raw > 0:
        return max(1, round(raw))
    return max(5, question_count + 2)


def clean_topics(raw: Any) -> list[str]:
    """Distinct non-empty strings, in order."""
    if not isinstance(raw, list):
        return []
    return list(dict.fromkeys(t.strip() for t in raw if isinstance(t, str) and t.strip()))


# =============================================================================
# ENGINE
# =============================================================================


class QuizEngine:
    """Drives the completion conversation for one generation job.

    Without search a single structured request is made. With search the
    first request offers the search tool; any tool calls are answered and a
    final structured request follows with tools turned off. The engine only
    computes: it never writes processing state.

    Example:
        >>> engine = QuizEngine(completion_client, search_adapter, config)
        >>> quiz = await engine.generate([document], GenerationOptions(), quiz_id="...")
        >>> quiz.metadata.total_questions
        12
    """

    def __init__(
        self,
        completion: CompletionProvider,
        search: SearchToolAdapter,
        config: AppConfig,
    ):
        self.completion = completion
        self.search = search
        self.config = config

    # -------------------------------------------------------------------------
    # Request assembly
    # -------------------------------------------------------------------------

    def question_bounds(self, options: GenerationOptions) -> tuple[int, int]:
        """Question range requested from the model, kept within configured limits."""
        low = max(self.config.min_questions, options.min_questions)
        high = min(self.config.max_questions, options.max_questions)
        if low > high:
            return self.config.min_questions, self.config.max_questions
        return low, high

    def build_conversation(
        self, documents: list[UploadedDocument], options: GenerationOptions
    ) -> Conversation:
        low, high = self.question_bounds(options)
        prompt = build_system_prompt(
            min_questions=low,
            max_questions=high,
            language=options.language,
            include_explanations=options.include_explanations,
            question_count=options.question_count,
            difficulty=options.difficulty,
            topics=options.topics,
            use_search=options.use_search,
        )

        parts: list[dict[str, Any]] = [{"type": "text", "text": DOCUMENTS_INSTRUCTION}]
        for index, document in enumerate(documents):
            encoded = base64.b64encode(document.data).decode("ascii")
            parts.append(
                {
                    "type": "file",
                    "file": {
                        "filename": f"document{index + 1}.pdf",
                        "file_data": f"data:application/pdf;base64,{encoded}",
                    },
                }
            )

        return Conversation([SystemMessage(prompt), UserMessage(parts)])

    def _request_body(
        self,
        conversation: Conversation,
        structured: bool = True,
        offer_tools: bool = False,
        disable_tools: bool = False,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.config.openrouter_model,
            "messages": conversation.to_payload(),
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "top_p": 0.9,
            "plugins": [{"id": "file-parser", "pdf": {"engine": self.config.pdf_processing_engine}}],
        }
        if structured:
            body["response_format"] = QUIZ_RESPONSE_FORMAT
        if offer_tools:
            body["tools"] = [self.search.tool_definition]
            body["tool_choice"] = "auto"
        elif disable_tools:
            body["tool_choice"] = "none"
        return body

    async def _ask(self, body: dict[str, Any]) -> AssistantMessage:
        data = await self.completion.complete(body)
        try:
            return AssistantMessage.from_payload(data["choices"][0]["message"])
        except (KeyError, IndexError, TypeError) as e:
            raise QuizGenerationError("AI provider response has no message") from e

    # -------------------------------------------------------------------------
    # Tool loop
    # -------------------------------------------------------------------------

    async def _run_tool_call(self, call: ToolCall, log_prefix: str) -> str:
        """Answers one tool call; the result is always text."""
        if call.name != self.search.TOOL_NAME:
            logger.warning(f"{log_prefix}Model requested unknown tool: {call.name}")
            return json.dumps({"error": "Unknown tool", "details": call.name})

        query = call.parsed_arguments().get("query", "")
        if not isinstance(query, str):
            query = str(query)
        try:
            return await self.search.search(query)
        except Exception as e:
            logger.warning(f"{log_prefix}Search tool failed, continuing without it: {e}")
            return json.dumps({"error": "Search failed", "details": str(e)})

    async def _search_phase(self, conversation: Conversation, log_prefix: str) -> None:
        """First turn with the search tool offered; appends tool results if used."""
        reply = await self._ask(
            self._request_body(conversation, structured=False, offer_tools=True)
        )
        if not reply.tool_calls:
            logger.info(f"{log_prefix}Model answered without calling a tool")
            return

        logger.info(f"{log_prefix}Model requested {len(reply.tool_calls)} tool call(s)")
        conversation.append(reply)
        for call in reply.tool_calls:
            result = await self._run_tool_call(call, log_prefix)
            conversation.append(ToolMessage(tool_call_id=call.id, name=call.name, content=result))

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    async def generate(
        self,
        documents: list[UploadedDocument],
        options: GenerationOptions,
        quiz_id: str | None = None,
    ) -> Quiz:
        """Generates and validates a quiz.

        Args:
            documents: Uploaded PDFs (one attachment each)
            options: Generation options
            quiz_id: Identifier stamped on the quiz and used in logs

        Returns:
            Validated Quiz (not yet stored)

        Raises:
            QuizGenerationError: Output could not be parsed or validated
            CompletionError: Transport failure after retries
        """
        if not documents:
            raise InvalidInputError("No PDF files uploaded", code="FILES_REQUIRED")

        log_prefix = f"[Quiz {quiz_id}] " if quiz_id else ""
        logger.info(
            f"{log_prefix}Generating MCQs from {len(documents)} PDF(s) using {self.config.openrouter_model}. "
            f"Search: {'Enabled' if options.use_search else 'Disabled'}"
        )

        conversation = self.build_conversation(documents, options)
        if options.use_search:
            await self._search_phase(conversation, log_prefix)
            final_body = self._request_body(conversation)
        else:
            final_body = self._request_body(conversation, disable_tools=True)

        reply = await self._ask(final_body)
        payload = normalize_quiz_payload(parse_quiz_content(reply.content))
        quiz = self._finalize(payload, documents, quiz_id, log_prefix)

        logger.info(f"{log_prefix}Generated {len(quiz.questions)} questions")
        return quiz

    def _finalize(
        self,
        payload: dict[str, Any],
        documents: list[UploadedDocument],
        quiz_id: str | None,
        log_prefix: str,
    ) -> Quiz:
        """Recomputes metadata, fills ids, repairs answer keys and validates."""
        questions = payload.get("questions")
        if not isinstance(questions, list) or not questions:
            raise QuizGenerationError("AI response contains no questions")

        for index, question in enumerate(questions):
            if not isinstance(question, dict):
                raise QuizGenerationError(f"Question {index + 1} is not an object")
            if question.get("id") is None or question.get("id") == "":
                question["id"] = f"q{index + 1}"
            else:
                question["id"] = str(question["id"])
            if isinstance(question.get("options"), list):
                question["options"] = [str(option) for option in question["options"]]
            question["correctAnswer"] = coerce_correct_answer(question, log_prefix)

        metadata = payload.get("metadata")
        metadata = dict(metadata) if isinstance(metadata, dict) else {}
        metadata.update(
            totalQuestions=len(questions),
            sourceFiles=[document.name for document in documents],
            pdfSize=sum(document.size for document in documents),
            pdfCount=len(documents),
            generatedAt=utc_now_iso(),
            model=self.config.openrouter_model,
            pdfProcessingEngine=self.config.pdf_processing_engine,
        )
        # Model-supplied duration and topics are hints only
        metadata["estimatedDuration"] = coerce_duration(metadata.get("estimatedDuration"), len(questions))
        metadata["topics"] = clean_topics(metadata.get("topics")) or clean_topics(
            [q.get("topic") for q in questions]
        )

        created_at = utc_now_iso()
        payload.update(
            id=quiz_id,
            title=payload.get("title") or DEFAULT_TITLE,
            description=payload.get("description") or "",
            metadata=metadata,
            createdAt=created_at,
            sourceFiles=[
                {
                    "name": document.name,
                    "size": document.size,
                    "type": document.content_type,
                    "uploadedAt": created_at,
                }
                for document in documents
            ],
        )

        try:
            return Quiz.model_validate(payload)
        except ValidationError as e:
            raise QuizGenerationError(
                f"Generated quiz failed validation ({e.error_count()} error(s))",
                details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
            ) from e
