from __future__ import annotations

import json
import logging
from typing import Any, Protocol, runtime_checkable

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from dayflow.config import Settings, settings
from dayflow.models import SmartScheduleInput, SmartScheduleOutput
from dayflow.prompts import SYSTEM, USER_TEMPLATE

logger = logging.getLogger(__name__)


class OracleError(RuntimeError):
    """Base class for failures of the scheduling oracle round-trip."""


class OracleUnavailableError(OracleError):
    """Raised when the LLM cannot be reached or used."""


class OracleSchemaError(OracleError):
    """Raised when the LLM output does not match the response schema."""


@runtime_checkable
class ScheduleOracle(Protocol):
    """Anything that turns a schedule snapshot into suggested slots."""

    name: str

    async def suggest_optimal_time(
        self, payload: SmartScheduleInput
    ) -> SmartScheduleOutput: ...


def render_prompt(payload: SmartScheduleInput) -> str:
    return USER_TEMPLATE.format(
        schedule=payload.schedule,
        event_description=payload.event_description,
        event_duration=payload.event_duration,
    )


def validate_oracle_output(raw: Any) -> SmartScheduleOutput:
    """Parse a raw oracle payload, raising ``OracleSchemaError`` on mismatch.

    Accepts JSON text, a decoded mapping or an already-built model. Nothing is
    repaired: a payload that does not validate is a failed call.
    """

    if isinstance(raw, SmartScheduleOutput):
        return raw
    try:
        if isinstance(raw, (str, bytes, bytearray)):
            return SmartScheduleOutput.model_validate_json(raw)
        return SmartScheduleOutput.model_validate(raw)
    except ValidationError as exc:
        raise OracleSchemaError(
            f"oracle output failed schema validation: {exc.error_count()} error(s)"
        ) from exc


class OfflineScheduleOracle:
    """Stand-in used when credentials are missing; every call fails."""

    def __init__(self, name: str = "offline") -> None:
        self.name = name

    async def suggest_optimal_time(
        self, payload: SmartScheduleInput
    ) -> SmartScheduleOutput:
        logger.info("LLM provider '%s' operating in offline mode", self.name)
        raise OracleUnavailableError(
            f"LLM provider '{self.name}' is not configured"
        )


class OpenAIScheduleOracle:
    """Structured generation oracle backed by the OpenAI Responses API."""

    name = "openai"

    def __init__(
        self,
        *,
        api_host: str,
        api_key: str,
        model: str,
        temperature: float,
        client: AsyncOpenAI | None = None,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        self._model = model
        self._temperature = temperature
        self._client = client
        if self._client is None:
            try:
                self._client = AsyncOpenAI(
                    api_key=api_key,
                    base_url=api_host or None,
                    default_headers=default_headers,
                )
            except OpenAIError as exc:
                logger.error("Failed to initialise OpenAI client: %s", exc)
                raise OracleUnavailableError("OpenAI client is not configured") from exc

    async def suggest_optimal_time(
        self, payload: SmartScheduleInput
    ) -> SmartScheduleOutput:
        try:
            response = await self._client.responses.parse(
                model=self._model,
                temperature=self._temperature,
                max_output_tokens=1200,
                input=[
                    {"role": "system", "content": SYSTEM},
                    {"role": "user", "content": render_prompt(payload)},
                ],
                text_format=SmartScheduleOutput,
            )
        except ValidationError as exc:
            logger.error("Structured output did not match schema: %s", exc)
            raise OracleSchemaError(str(exc)) from exc
        except OpenAIError as exc:
            logger.error("Structured generation failed: %s", exc)
            raise OracleUnavailableError(str(exc)) from exc

        parsed = getattr(response, "output_parsed", None)
        if parsed is None:
            raw = getattr(response, "output_text", None)
            if not raw:
                raise OracleSchemaError("oracle returned an empty payload")
            parsed = raw

        result = validate_oracle_output(parsed)
        logger.debug(
            "Received %d suggested slots from %s",
            len(result.suggested_times),
            self.name,
        )
        return result


class OpenRouterScheduleOracle(OpenAIScheduleOracle):
    """OpenRouter oracle using the OpenAI-compatible SDK."""

    name = "openrouter"

    def __init__(
        self,
        *,
        api_host: str,
        api_key: str,
        model: str,
        temperature: float,
        client: AsyncOpenAI | None = None,
    ) -> None:
        super().__init__(
            api_host=api_host,
            api_key=api_key,
            model=model,
            temperature=temperature,
            client=client,
            default_headers={"X-Title": "DayFlow Calendar"},
        )


def build_oracle(config: Settings | None = None) -> ScheduleOracle:
    """Select the oracle implementation from configuration."""

    cfg = config or settings
    provider_key = (cfg.llm_provider or "openai").lower()
    try:
        if provider_key == "openai":
            if not cfg.openai_api_key:
                return OfflineScheduleOracle("openai")
            return OpenAIScheduleOracle(
                api_host=cfg.openai_api_host,
                api_key=cfg.openai_api_key,
                model=cfg.openai_model,
                temperature=cfg.openai_temperature,
            )
        if provider_key == "openrouter":
            api_key = cfg.openrouter_api_key or cfg.openai_api_key
            if not api_key:
                return OfflineScheduleOracle("openrouter")
            return OpenRouterScheduleOracle(
                api_host=cfg.openrouter_api_host,
                api_key=api_key,
                model=cfg.openai_model,
                temperature=cfg.openai_temperature,
            )
    except OracleUnavailableError as exc:
        logger.error("Failed to build '%s' oracle: %s", provider_key, exc)
        return OfflineScheduleOracle(provider_key)

    logger.warning(
        "Unknown LLM provider '%s'; falling back to offline mode", provider_key
    )
    return OfflineScheduleOracle(provider_key)


def dump_input(payload: SmartScheduleInput) -> str:
    """Wire form of the oracle request, for logging and debugging."""
    return json.dumps(payload.model_dump(by_alias=True), ensure_ascii=False)
