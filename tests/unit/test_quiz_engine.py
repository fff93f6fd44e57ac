# =============================================================================
# TESTES - Quiz Engine
# =============================================================================
# Testes unitários para montagem de requests, loop de tools e reparo de saída
# =============================================================================

import json
import logging

import pytest


@pytest.fixture
def engine(fake_completion, mock_search, test_config):
    from quiz.engine.quiz_engine import QuizEngine

    return QuizEngine(fake_completion, mock_search, test_config)


class TestParseQuizContent:
    """Testes para parse_quiz_content/normalize_quiz_payload."""

    def test_plain_json(self):
        from quiz.engine.quiz_engine import parse_quiz_content

        assert parse_quiz_content('{"questions": []}') == {"questions": []}

    def test_fenced_json_block(self):
        """JSON dentro de bloco markdown."""
        from quiz.engine.quiz_engine import parse_quiz_content

        content = 'Here is your quiz:\n```json\n{"quiz": {"title": "T"}}\n```\nEnjoy!'

        assert parse_quiz_content(content) == {"quiz": {"title": "T"}}

    def test_bare_object_in_prose(self):
        from quiz.engine.quiz_engine import parse_quiz_content

        content = 'Sure! {"questions": [{"id": "q1"}]} Hope it helps.'

        assert parse_quiz_content(content) == {"questions": [{"id": "q1"}]}

    def test_text_parts_are_joined(self):
        from quiz.engine.quiz_engine import parse_quiz_content

        content = [{"type": "text", "text": '{"questions":'}, {"type": "text", "text": " []}"}]

        assert parse_quiz_content(content) == {"questions": []}

    def test_no_json_raises(self):
        from quiz.engine.quiz_engine import parse_quiz_content
        from quiz.exceptions import QuizGenerationError

        with pytest.raises(QuizGenerationError, match="No valid JSON"):
            parse_quiz_content("I cannot help with that.")

    def test_empty_content_raises(self):
        from quiz.engine.quiz_engine import parse_quiz_content
        from quiz.exceptions import QuizGenerationError

        with pytest.raises(QuizGenerationError):
            parse_quiz_content(None)

    def test_normalize_shapes(self):
        """Array solto, objeto com questions e wrapper quiz."""
        from quiz.engine.quiz_engine import normalize_quiz_payload

        questions = [{"id": "q1"}]

        assert normalize_quiz_payload(questions) == {"title": "Generated Quiz", "questions": questions}
        assert normalize_quiz_payload({"questions": questions}) == {"questions": questions}
        assert normalize_quiz_payload({"quiz": {"questions": questions}}) == {"questions": questions}

    def test_normalize_rejects_unknown_shape(self):
        from quiz.engine.quiz_engine import normalize_quiz_payload
        from quiz.exceptions import QuizGenerationError

        with pytest.raises(QuizGenerationError):
            normalize_quiz_payload({"answer": 42})


class TestCoerceCorrectAnswer:
    """Testes para coerce_correct_answer."""

    @pytest.mark.parametrize("raw,expected", [(0, 0), (3, 3), ("2", 2), (7, 0), (-1, 0), (None, 0), ("b", 0)])
    def test_values(self, raw, expected):
        from quiz.engine.quiz_engine import coerce_correct_answer

        assert coerce_correct_answer({"id": "q1", "correctAnswer": raw}) == expected


class TestQuizEngineRequests:
    """Testes para o request sem busca."""

    @pytest.mark.asyncio
    async def test_single_structured_request_without_tools(
        self, engine, fake_completion, make_response, sample_quiz_payload, sample_document, quiz_id
    ):
        from quiz.models.schemas import GenerationOptions

        fake_completion.responses.append(make_response(json.dumps(sample_quiz_payload)))

        await engine.generate([sample_document], GenerationOptions(), quiz_id=quiz_id)

        assert len(fake_completion.requests) == 1
        body = fake_completion.requests[0]
        assert body["model"] == "test/model"
        assert body["tool_choice"] == "none"
        assert "tools" not in body
        assert body["response_format"]["json_schema"]["name"] == "mcq_quiz_generation"
        assert body["plugins"] == [{"id": "file-parser", "pdf": {"engine": "native"}}]

    @pytest.mark.asyncio
    async def test_documents_attached_as_data_urls(
        self, engine, fake_completion, make_response, sample_quiz_payload, sample_document
    ):
        from quiz.models.schemas import GenerationOptions

        fake_completion.responses.append(make_response(json.dumps(sample_quiz_payload)))

        await engine.generate([sample_document, sample_document], GenerationOptions())

        system, user = fake_completion.requests[0]["messages"]
        assert system["role"] == "system"
        assert user["content"][0] == {
            "type": "text",
            "text": "Please generate a quiz based on the following document(s).",
        }
        files = [part["file"] for part in user["content"][1:]]
        assert [f["filename"] for f in files] == ["document1.pdf", "document2.pdf"]
        assert files[0]["file_data"].startswith("data:application/pdf;base64,")

    def test_question_bounds_clamped_to_config(self, engine):
        from quiz.models.schemas import GenerationOptions

        assert engine.question_bounds(GenerationOptions(min_questions=1, max_questions=100)) == (3, 20)
        assert engine.question_bounds(GenerationOptions(min_questions=5, max_questions=8)) == (5, 8)

    @pytest.mark.asyncio
    async def test_no_documents_raises(self, engine):
        from quiz.exceptions import InvalidInputError
        from quiz.models.schemas import GenerationOptions

        with pytest.raises(InvalidInputError) as exc_info:
            await engine.generate([], GenerationOptions())

        assert exc_info.value.code == "FILES_REQUIRED"


class TestQuizEngineFinalize:
    """Testes para o reparo e validação da saída."""

    @pytest.mark.asyncio
    async def test_metadata_is_recomputed(
        self, engine, fake_completion, make_response, sample_quiz_payload, sample_document, quiz_id
    ):
        """totalQuestions do modelo (99) é ignorado."""
        from quiz.models.schemas import GenerationOptions

        fake_completion.responses.append(make_response(json.dumps(sample_quiz_payload)))

        quiz = await engine.generate([sample_document], GenerationOptions(), quiz_id=quiz_id)

        assert quiz.id == quiz_id
        assert quiz.title == "Photosynthesis Basics"
        assert quiz.metadata.total_questions == 3
        assert quiz.metadata.estimated_duration == 6
        assert quiz.metadata.source_files == ["biology.pdf"]
        assert quiz.metadata.pdf_size == sample_document.size
        assert quiz.metadata.pdf_count == 1
        assert quiz.metadata.model == "test/model"
        assert quiz.source_files[0].name == "biology.pdf"
        assert quiz.created_at is not None

    @pytest.mark.asyncio
    async def test_missing_ids_and_duration_are_filled(
        self, engine, fake_completion, make_response, sample_quiz_payload, sample_document
    ):
        from quiz.models.schemas import GenerationOptions

        questions = sample_quiz_payload["quiz"]["questions"]
        for question in questions:
            del question["id"]
        fake_completion.responses.append(make_response(json.dumps(questions)))

        quiz = await engine.generate([sample_document], GenerationOptions())

        assert [q.id for q in quiz.questions] == ["q1", "q2", "q3"]
        assert quiz.title == "Generated Quiz"
        assert quiz.metadata.estimated_duration == 5
        assert quiz.metadata.topics == ["Cell biology", "Light reactions", "Dark reactions"]

    @pytest.mark.asyncio
    async def test_out_of_range_answer_clamped_with_warning(
        self, engine, fake_completion, make_response, sample_quiz_payload, sample_document, quiz_id, caplog
    ):
        from quiz.models.schemas import GenerationOptions

        sample_quiz_payload["quiz"]["questions"][2]["correctAnswer"] = 7
        fake_completion.responses.append(make_response(json.dumps(sample_quiz_payload)))

        with caplog.at_level(logging.WARNING, logger="quiz.engine.quiz_engine"):
            quiz = await engine.generate([sample_document], GenerationOptions(), quiz_id=quiz_id)

        assert quiz.questions[2].correct_answer == 0
        assert f"[Quiz {quiz_id}]" in caplog.text
        assert "correctAnswer 7" in caplog.text

    @pytest.mark.asyncio
    async def test_numeric_ids_become_strings(
        self, engine, fake_completion, make_response, sample_quiz_payload, sample_document
    ):
        """Saída recuperada de bloco markdown com ids inteiros."""
        from quiz.models.schemas import GenerationOptions

        for index, question in enumerate(sample_quiz_payload["quiz"]["questions"]):
            question["id"] = index + 1
        content = f"```json\n{json.dumps(sample_quiz_payload)}\n```"
        fake_completion.responses.append(make_response(content))

        quiz = await engine.generate([sample_document], GenerationOptions())

        assert [q.id for q in quiz.questions] == ["1", "2", "3"]

    @pytest.mark.parametrize("duration,expected", [(7.5, 8), (12, 12), ("10 minutes", 5), (-1, 5), (True, 5)])
    @pytest.mark.asyncio
    async def test_estimated_duration_is_a_hint(
        self, engine, fake_completion, make_response, sample_quiz_payload, sample_document, duration, expected
    ):
        """Duração inválida do modelo cai no padrão max(5, n + 2)."""
        from quiz.models.schemas import GenerationOptions

        sample_quiz_payload["quiz"]["metadata"]["estimatedDuration"] = duration
        fake_completion.responses.append(make_response(json.dumps(sample_quiz_payload)))

        quiz = await engine.generate([sample_document], GenerationOptions())

        assert quiz.metadata.estimated_duration == expected

    @pytest.mark.asyncio
    async def test_non_string_topics_are_dropped(
        self, engine, fake_completion, make_response, sample_quiz_payload, sample_document
    ):
        from quiz.models.schemas import GenerationOptions

        sample_quiz_payload["quiz"]["metadata"]["topics"] = ["Photosynthesis", 3, None, " ", "Photosynthesis"]
        fake_completion.responses.append(make_response(json.dumps(sample_quiz_payload)))

        quiz = await engine.generate([sample_document], GenerationOptions())

        assert quiz.metadata.topics == ["Photosynthesis"]

    @pytest.mark.asyncio
    async def test_unusable_topics_fall_back_to_question_topics(
        self, engine, fake_completion, make_response, sample_quiz_payload, sample_document
    ):
        from quiz.models.schemas import GenerationOptions

        sample_quiz_payload["quiz"]["metadata"]["topics"] = "Photosynthesis"
        fake_completion.responses.append(make_response(json.dumps(sample_quiz_payload)))

        quiz = await engine.generate([sample_document], GenerationOptions())

        assert quiz.metadata.topics == ["Cell biology", "Light reactions", "Dark reactions"]

    @pytest.mark.asyncio
    async def test_fenced_output_is_recovered(
        self, engine, fake_completion, make_response, sample_quiz_payload, sample_document
    ):
        from quiz.models.schemas import GenerationOptions

        content = f"```json\n{json.dumps(sample_quiz_payload)}\n```"
        fake_completion.responses.append(make_response(content))

        quiz = await engine.generate([sample_document], GenerationOptions())

        assert len(quiz.questions) == 3

    @pytest.mark.asyncio
    async def test_three_options_fail_validation(
        self, engine, fake_completion, make_response, sample_quiz_payload, sample_document
    ):
        """Cada pergunta precisa de exatamente 4 opções."""
        from quiz.exceptions import QuizGenerationError
        from quiz.models.schemas import GenerationOptions

        sample_quiz_payload["quiz"]["questions"][0]["options"] = ["A", "B", "C"]
        fake_completion.responses.append(make_response(json.dumps(sample_quiz_payload)))

        with pytest.raises(QuizGenerationError) as exc_info:
            await engine.generate([sample_document], GenerationOptions())

        assert exc_info.value.code == "GENERATION_FAILED"
        assert exc_info.value.details["errors"][0]["loc"][:2] == ("questions", 0)

    @pytest.mark.asyncio
    async def test_empty_questions_fail(self, engine, fake_completion, make_response, sample_document):
        from quiz.exceptions import QuizGenerationError
        from quiz.models.schemas import GenerationOptions

        fake_completion.responses.append(make_response('{"quiz": {"title": "x", "questions": []}}'))

        with pytest.raises(QuizGenerationError, match="no questions"):
            await engine.generate([sample_document], GenerationOptions())

    @pytest.mark.asyncio
    async def test_completion_error_propagates(self, engine, fake_completion, sample_document):
        from quiz.exceptions import CompletionTimeoutError
        from quiz.models.schemas import GenerationOptions

        fake_completion.responses.append(CompletionTimeoutError("timed out"))

        with pytest.raises(CompletionTimeoutError):
            await engine.generate([sample_document], GenerationOptions())


class TestQuizEngineSearch:
    """Testes para o loop com a tool de busca."""

    @pytest.mark.asyncio
    async def test_tool_call_then_final_request_without_tools(
        self,
        engine,
        fake_completion,
        mock_search,
        make_response,
        make_tool_call,
        sample_quiz_payload,
        sample_document,
    ):
        from quiz.models.schemas import GenerationOptions

        fake_completion.responses.extend(
            [
                make_response(None, tool_calls=[make_tool_call()]),
                make_response(json.dumps(sample_quiz_payload)),
            ]
        )

        quiz = await engine.generate([sample_document], GenerationOptions(use_search=True))

        assert len(quiz.questions) == 3
        first, final = fake_completion.requests
        assert first["tool_choice"] == "auto"
        assert first["tools"][0]["function"]["name"] == "web_search"
        assert "response_format" not in first

        assert "tools" not in final
        assert "tool_choice" not in final
        assert final["response_format"]["type"] == "json_schema"
        roles = [m["role"] for m in final["messages"]]
        assert roles == ["system", "user", "assistant", "tool"]
        tool_message = final["messages"][3]
        assert tool_message["tool_call_id"] == "call_1"
        assert json.loads(tool_message["content"])[0]["content"] == "Fresh fact"
        mock_search.search.assert_awaited_once_with("latest research")

    @pytest.mark.asyncio
    async def test_no_tool_call_keeps_conversation(
        self, engine, fake_completion, make_response, sample_quiz_payload, sample_document
    ):
        """Sem tool calls a resposta intermediária não entra na conversa."""
        from quiz.models.schemas import GenerationOptions

        fake_completion.responses.extend(
            [make_response("Nothing to search"), make_response(json.dumps(sample_quiz_payload))]
        )

        await engine.generate([sample_document], GenerationOptions(use_search=True))

        assert [m["role"] for m in fake_completion.requests[1]["messages"]] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_search_exception_degrades_to_error_payload(
        self,
        engine,
        fake_completion,
        mock_search,
        make_response,
        make_tool_call,
        sample_quiz_payload,
        sample_document,
    ):
        from quiz.models.schemas import GenerationOptions

        mock_search.search.side_effect = RuntimeError("provider exploded")
        fake_completion.responses.extend(
            [
                make_response(None, tool_calls=[make_tool_call()]),
                make_response(json.dumps(sample_quiz_payload)),
            ]
        )

        quiz = await engine.generate([sample_document], GenerationOptions(use_search=True))

        assert len(quiz.questions) == 3
        tool_content = json.loads(fake_completion.requests[1]["messages"][3]["content"])
        assert tool_content == {"error": "Search failed", "details": "provider exploded"}

    @pytest.mark.asyncio
    async def test_unknown_tool_and_malformed_arguments(
        self,
        engine,
        fake_completion,
        mock_search,
        make_response,
        make_tool_call,
        sample_quiz_payload,
        sample_document,
    ):
        from quiz.models.schemas import GenerationOptions

        calls = [
            make_tool_call(name="calculator", call_id="call_a"),
            make_tool_call(arguments="{not json", call_id="call_b"),
        ]
        fake_completion.responses.extend(
            [make_response(None, tool_calls=calls), make_response(json.dumps(sample_quiz_payload))]
        )

        await engine.generate([sample_document], GenerationOptions(use_search=True))

        tool_messages = fake_completion.requests[1]["messages"][3:]
        assert [m["tool_call_id"] for m in tool_messages] == ["call_a", "call_b"]
        assert json.loads(tool_messages[0]["content"])["error"] == "Unknown tool"
        mock_search.search.assert_awaited_once_with("")
