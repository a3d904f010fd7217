"""Call-site facade: budget, govern, generate, normalize.

`QuoteAssistant` is the one place where the independent pieces meet. The
caller supplies the prompt and declares the shape it expects back; the
assistant derives the length budget from the user's input, asks the governor
for a cached or freshly generated payload, and normalizes it.
"""

import asyncio
from collections.abc import Callable
import dataclasses
import logging
from typing import Any

from quote_assist.budget import compute_budget
from quote_assist.config import FrozenConfig, resolve_config
from quote_assist.core.types import (
    BudgetProfile,
    ExpectedShape,
    Failure,
    LengthBudget,
    ObjectArray,
    ParseFailure,
    ParseOutcome,
    PartialSuccess,
    PlainText,
    Result,
    Success,
)
from quote_assist.exceptions import GenerationError, GovernError
from quote_assist.governance import RequestGovernor, ResponseCache, build_cache_key
from quote_assist.response.normalizer import ResponseNormalizer
from quote_assist.telemetry import TelemetryContext, TelemetryContextProtocol

log = logging.getLogger(__name__)

type Generator = Callable[[str, int], Any]


@dataclasses.dataclass(frozen=True, slots=True)
class GenerationRequest:
    """One generation call as the application describes it.

    Attributes:
        prompt: Full prompt sent to the model.
        input_text: The user's own text; drives the length budget and cache key.
        shape: What the caller expects back.
        profile: Budget profile for the generated text.
        context: Category or other context that distinguishes cache entries.
        requested_items: Number of items asked for; defaults to the array
            shape's ``max_items``.
        response_schema: Schema handed to the generator for JSON output,
            e.g. ``list[TaskSuggestion]``. Leave unset for free-form text.
    """

    prompt: str
    input_text: str
    shape: ExpectedShape = dataclasses.field(default_factory=PlainText)
    profile: BudgetProfile = BudgetProfile.NARRATIVE
    context: str = ""
    requested_items: int | None = None
    response_schema: Any = None

    def __post_init__(self) -> None:
        """Accept the profile as a plain string."""
        object.__setattr__(self, "profile", BudgetProfile(self.profile))

    @property
    def item_count(self) -> int | None:
        if self.requested_items is not None:
            return self.requested_items
        if isinstance(self.shape, ObjectArray):
            return self.shape.max_items
        return None


class QuoteAssistant:
    """Budget-aware, governed generation with lenient response recovery."""

    def __init__(
        self,
        generator: Generator,
        governor: RequestGovernor | None = None,
        config: FrozenConfig | None = None,
        *,
        normalizer: ResponseNormalizer | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        """Initialize the assistant.

        Args:
            generator: ``(prompt, max_output_tokens) -> Result[str, GenerationError]``,
                e.g. a `GeminiGenerator`. An ``agenerate`` coroutine method is
                used by `arun` when present.
            governor: Shared governor; one is created from `config` if omitted.
            config: Frozen configuration; defaults to the generator's own or to
                a freshly resolved one.
            normalizer: Response normalizer to use.
            telemetry: Optional telemetry context.
        """
        self.generator = generator
        self.config = config or getattr(generator, "config", None) or (
            resolve_config().to_frozen()
        )
        self.tele = telemetry or TelemetryContext()
        self.governor = governor or RequestGovernor(
            ResponseCache(self.config.cache_max_entries), telemetry=self.tele
        )
        self.normalizer = normalizer or ResponseNormalizer(telemetry=self.tele)

    def _plan(self, request: GenerationRequest) -> tuple[LengthBudget, str]:
        budget = compute_budget(
            request.input_text, request.profile, requested_items=request.item_count
        )
        key = build_cache_key(
            request.context or request.profile.value,
            request.input_text,
            request.item_count,
            max_chars=self.config.cache_key_max_chars,
        )
        return budget, key

    def _generation_kwargs(self, request: GenerationRequest) -> dict[str, Any]:
        if request.response_schema is None:
            return {}
        return {"response_schema": request.response_schema}

    def _acceptor(
        self, budget: LengthBudget, request: GenerationRequest
    ) -> tuple[Callable[[Any], bool], dict[str, Any]]:
        """Predicate keeping unrecoverable payloads out of the cache.

        The outcome it computes is kept in the returned memo so `_finish`
        does not parse the same payload twice.
        """
        memo: dict[str, Any] = {}

        def accept(payload: Any) -> bool:
            memo["payload"] = payload
            memo["outcome"] = self.normalizer.normalize(payload, budget, request.shape)
            return not isinstance(memo["outcome"], ParseFailure)

        return accept, memo

    def _finish(
        self,
        result: Result[Any, GovernError | GenerationError],
        budget: LengthBudget,
        request: GenerationRequest,
        memo: dict[str, Any],
    ) -> Result[ParseOutcome, GovernError | GenerationError]:
        if isinstance(result, Failure):
            return result
        if "outcome" in memo and memo["payload"] == result.value:
            outcome = memo["outcome"]
        else:
            outcome = self.normalizer.normalize(result.value, budget, request.shape)
        if isinstance(outcome, PartialSuccess):
            log.warning("%s", outcome.warning)
        return Success(outcome)

    def run(
        self, request: GenerationRequest
    ) -> Result[ParseOutcome, GovernError | GenerationError]:
        """Generate and normalize a response for `request`.

        Returns:
            ``Success(ParseOutcome)``, or ``Failure`` with a `RateLimitedError`
            or `GenerationError`. A `ParseFailure` is a successful call whose
            text could not be recovered; such text is not cached.
        """
        budget, key = self._plan(request)
        kwargs = self._generation_kwargs(request)
        accept, memo = self._acceptor(budget, request)
        with self.tele("assistant.run", profile=request.profile.value):
            result = self.governor.call_with_governance(
                key,
                self.config.window_duration_ms,
                self.config.requests_per_window,
                lambda: self.generator(
                    request.prompt, budget.max_output_tokens, **kwargs
                ),
                accept=accept,
            )
        return self._finish(result, budget, request, memo)

    async def arun(
        self, request: GenerationRequest, *, timeout: float | None = None
    ) -> Result[ParseOutcome, GovernError | GenerationError]:
        """Async variant of `run`; `timeout` bounds the generation call."""
        budget, key = self._plan(request)
        kwargs = self._generation_kwargs(request)
        accept, memo = self._acceptor(budget, request)
        agenerate = getattr(self.generator, "agenerate", None)

        def call() -> Any:
            if agenerate is not None:
                return agenerate(request.prompt, budget.max_output_tokens, **kwargs)
            return asyncio.to_thread(
                self.generator, request.prompt, budget.max_output_tokens, **kwargs
            )

        result = await self.governor.acall_with_governance(
            key,
            self.config.window_duration_ms,
            self.config.requests_per_window,
            call,
            timeout=timeout,
            accept=accept,
        )
        return self._finish(result, budget, request, memo)

    def status(self) -> dict[str, Any]:
        """Generator description merged with governor statistics."""
        describe = getattr(self.generator, "describe", None)
        info = dict(describe()) if describe else {"available": True}
        info["governor"] = self.governor.stats()
        return info
