import json

import pytest

from quote_assist import GenerationRequest, QuoteAssistant
from quote_assist.core.schemas import (
    TaskSuggestion,
    task_array_shape,
    task_object_shape,
)
from quote_assist.core.types import (
    BudgetProfile,
    Failure,
    ParseFailure,
    ParseSuccess,
    PartialSuccess,
    Success,
)
from quote_assist.exceptions import (
    GenerationError,
    GenerationErrorKind,
    RateLimitedError,
)

TASKS = [
    {"title": "Poncer", "description": "Poncer les murs. Puis aspirer. Puis rincer."},
    {"title": "Peindre", "description": "Deux couches."},
]


class FakeGenerator:
    """Records calls and replays canned results."""

    def __init__(self, config, *results):
        self.config = config
        self.results = list(results) or [Success("Un beau projet.")]
        self.calls = []

    def _next(self, prompt, max_output_tokens):
        self.calls.append((prompt, max_output_tokens))
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]

    def __call__(self, prompt, max_output_tokens):
        return self._next(prompt, max_output_tokens)

    async def agenerate(self, prompt, max_output_tokens):
        return self._next(prompt, max_output_tokens)

    def describe(self):
        return {"available": True, "provider": "fake", "model": self.config.model}


def _task_request(text="repaint the living room"):
    return GenerationRequest(
        prompt=f"Suggest tasks for: {text}",
        input_text=text,
        shape=task_array_shape(),
        profile="task",
        context="peinture",
    )


@pytest.mark.unit
class TestRun:
    """End-to-end flow with a fake generator."""

    def test_task_array_request(self, frozen_config):
        generator = FakeGenerator(frozen_config, Success(json.dumps(TASKS)))
        assistant = QuoteAssistant(generator)

        result = assistant.run(_task_request())

        assert isinstance(result, Success)
        outcome = result.value
        assert isinstance(outcome, ParseSuccess)
        assert [task["title"] for task in outcome.value] == ["Poncer", "Peindre"]
        assert outcome.value[0]["description"] == "Poncer les murs. Puis aspirer."
        assert generator.calls == [("Suggest tasks for: repaint the living room", 1050)]

    def test_narrative_request_is_trimmed(self, frozen_config):
        generator = FakeGenerator(
            frozen_config, Success("Rénovation complète. Deux pièces. Trois jours.")
        )
        request = GenerationRequest(prompt="Décris", input_text="salle de bain")

        result = QuoteAssistant(generator).run(request)

        assert result == Success(
            ParseSuccess("Rénovation complète.", method="plain_text")
        )
        assert generator.calls[0][1] == 60

    def test_identical_requests_are_served_from_cache(self, frozen_config):
        generator = FakeGenerator(frozen_config, Success(json.dumps(TASKS)))
        assistant = QuoteAssistant(generator)

        first = assistant.run(_task_request())
        second = assistant.run(_task_request("  Repaint the LIVING room "))

        assert first == second
        assert len(generator.calls) == 1

    def test_rate_limit_failure_propagates(self, make_config):
        generator = FakeGenerator(make_config(requests_per_window=1))
        assistant = QuoteAssistant(generator)

        assistant.run(GenerationRequest(prompt="p", input_text="cuisine"))
        result = assistant.run(GenerationRequest(prompt="p", input_text="garage"))

        assert isinstance(result, Failure)
        assert isinstance(result.error, RateLimitedError)
        assert len(generator.calls) == 1

    def test_generation_failure_propagates(self, frozen_config):
        error = GenerationError("quota", GenerationErrorKind.QUOTA_EXHAUSTED)
        generator = FakeGenerator(frozen_config, Failure(error))
        assert QuoteAssistant(generator).run(_task_request()) == Failure(error)

    def test_unrecoverable_text_is_a_successful_call(self, frozen_config):
        generator = FakeGenerator(frozen_config, Success("no structure here"))
        result = QuoteAssistant(generator).run(_task_request())
        assert result == Success(ParseFailure("unparseable"))

    def test_unrecoverable_text_is_not_replayed_from_cache(self, frozen_config):
        generator = FakeGenerator(
            frozen_config,
            Success("Désolé, {erreur"),
            Success(json.dumps(TASKS)),
        )
        assistant = QuoteAssistant(generator)

        first = assistant.run(_task_request())
        second = assistant.run(_task_request())

        assert first == Success(ParseFailure("unparseable"))
        assert isinstance(second.value, ParseSuccess)
        assert [task["title"] for task in second.value.value] == ["Poncer", "Peindre"]
        assert len(generator.calls) == 2
        assert assistant.status()["governor"]["cache"]["size"] == 1

    def test_partial_recovery_is_logged(self, frozen_config, caplog):
        generator = FakeGenerator(frozen_config, Success("Poncer puis peindre."))
        request = GenerationRequest(
            prompt="p",
            input_text="salon",
            shape=task_object_shape(),
            profile=BudgetProfile.TASK,
        )

        result = QuoteAssistant(generator).run(request)

        assert isinstance(result.value, PartialSuccess)
        assert result.value.value == {"description": "Poncer puis peindre."}
        assert "Model answered in prose" in caplog.text


@pytest.mark.unit
class TestRequest:
    def test_profile_accepts_string(self):
        assert GenerationRequest("p", "t", profile="task").profile is BudgetProfile.TASK

    def test_item_count_defaults_to_array_bound(self):
        assert _task_request().item_count == 5
        assert GenerationRequest("p", "t").item_count is None

    def test_explicit_item_count_wins(self):
        request = GenerationRequest(
            "p", "t", shape=task_array_shape(), requested_items=2
        )
        assert request.item_count == 2

    def test_invalid_profile_rejected(self):
        with pytest.raises(ValueError):
            GenerationRequest("p", "t", profile="essay")


@pytest.mark.asyncio
async def test_arun_uses_async_generator(frozen_config):
    generator = FakeGenerator(frozen_config, Success(json.dumps(TASKS)))
    result = await QuoteAssistant(generator).arun(_task_request(), timeout=5)
    assert [task["title"] for task in result.value.value] == ["Poncer", "Peindre"]
    assert len(generator.calls) == 1


@pytest.mark.asyncio
async def test_arun_falls_back_to_thread(frozen_config):
    calls = []

    def generate(prompt, max_output_tokens):
        calls.append(max_output_tokens)
        return Success("Texte.")

    assistant = QuoteAssistant(generate, config=frozen_config)
    result = await assistant.arun(GenerationRequest(prompt="p", input_text="toit"))
    assert result == Success(ParseSuccess("Texte.", method="plain_text"))
    assert calls == [60]


def test_status_merges_governor_stats(frozen_config):
    generator = FakeGenerator(frozen_config)
    assistant = QuoteAssistant(generator)
    assistant.run(GenerationRequest(prompt="p", input_text="toit"))

    status = assistant.status()

    assert status["provider"] == "fake"
    assert status["governor"]["window_count"] == 1
    assert status["governor"]["cache"]["size"] == 1


def test_response_schema_reaches_generator(frozen_config):
    seen = {}

    def generate(prompt, max_output_tokens, **kwargs):
        seen.update(kwargs)
        return Success(json.dumps(TASKS))

    request = GenerationRequest(
        prompt="p",
        input_text="salon",
        shape=task_array_shape(),
        profile="task",
        response_schema=list[TaskSuggestion],
    )
    QuoteAssistant(generate, config=frozen_config).run(request)
    assert seen == {"response_schema": list[TaskSuggestion]}
