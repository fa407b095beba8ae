import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

import requests
import google.generativeai as genai
from flask import current_app

from studyshelf.services.errors import ProviderError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant that provides detailed explanations and "
    "generates quiz questions based on the given context."
)


class ProviderKind(str, enum.Enum):
    OPENAI = "openai"
    GEMINI = "gemini"
    DEEPSEEK = "deepseek"

    @classmethod
    def parse(cls, value) -> Optional["ProviderKind"]:
        if value is None or value == "":
            return None
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown provider kind: {value}") from None

    @classmethod
    def guess(cls, model_name) -> Optional["ProviderKind"]:
        """Infer a provider from a free-text model name.

        Only meant for importing model rows that carry no explicit kind.
        """
        name = (model_name or "").lower()
        if "gpt" in name or "chatgpt" in name or "openai" in name:
            return cls.OPENAI
        if "gemini" in name:
            return cls.GEMINI
        if "deepseek" in name:
            return cls.DEEPSEEK
        return None


@dataclass
class GatewayConfig:
    openai_api_key: str = ""
    gemini_api_key: str = ""
    deepseek_api_key: str = ""
    openai_models: list = field(default_factory=lambda: ["gpt-4"])
    gemini_models: list = field(default_factory=lambda: ["gemini-2.0-flash", "gemini-1.5-flash"])
    deepseek_models: list = field(default_factory=lambda: ["deepseek-chat"])
    priority: list = field(default_factory=lambda: ["openai", "gemini", "deepseek"])
    timeout: int = 120

    @classmethod
    def from_mapping(cls, config):
        defaults = cls()
        return cls(
            openai_api_key=config.get("OPENAI_API_KEY", ""),
            gemini_api_key=config.get("GEMINI_API_KEY", ""),
            deepseek_api_key=config.get("DEEPSEEK_API_KEY", ""),
            openai_models=list(config.get("OPENAI_MODELS") or defaults.openai_models),
            gemini_models=list(config.get("GEMINI_MODELS") or defaults.gemini_models),
            deepseek_models=list(config.get("DEEPSEEK_MODELS") or defaults.deepseek_models),
            priority=list(config.get("PROVIDER_PRIORITY") or defaults.priority),
            timeout=config.get("PROVIDER_TIMEOUT", defaults.timeout),
        )


def build_user_message(context, instruction):
    return f"Context: {context}\n\nPrompt: {instruction}"


def with_model_fallback(provider: str, variants: list, attempt: Callable[[str], str]) -> str:
    """
    Try each model variant in order and return the first successful answer.
    A failed variant is never retried. When every variant fails, the last
    error is raised wrapped in a ProviderError.
    """
    if not variants:
        raise ProviderError(provider, "No model variants configured")

    last_error = None
    for model in variants:
        try:
            logger.info("[%s] Trying model: %s", provider, model)
            return attempt(model)
        except Exception as e:
            logger.warning("[%s] Model %s failed: %s", provider, model, e)
            last_error = e
    raise ProviderError(provider, str(last_error)) from last_error


class BaseProvider:
    name = ""

    def __init__(self, api_key, models, timeout=120):
        self.api_key = (api_key or "").strip()
        self.models = list(models or [])
        self.timeout = timeout

    def is_configured(self):
        return bool(self.api_key)

    def variants(self, model=None):
        """Requested model first, then the configured defaults."""
        ordered = [model] if model else []
        ordered += [m for m in self.models if m != model]
        return ordered

    def complete(self, context, instruction, model=None):
        if not self.is_configured():
            raise ProviderError(self.name, "API key not configured")
        return with_model_fallback(
            self.name,
            self.variants(model),
            lambda variant: self._complete_once(variant, context, instruction),
        )

    def _complete_once(self, model, context, instruction):
        raise NotImplementedError


class ChatCompletionsProvider(BaseProvider):
    """OpenAI-compatible /chat/completions endpoint."""

    base_url = ""

    def _headers(self):
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _complete_once(self, model, context, instruction):
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_message(context, instruction)},
            ],
            "max_tokens": 2000,
            "temperature": 0.7,
        }

        resp = requests.post(
            f"{self.base_url}/chat/completions",
            headers=self._headers(),
            json=payload,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        data = resp.json()
        content = data["choices"][0]["message"]["content"]
        if not content:
            raise ValueError(f"Model {model} returned an empty response")
        return content


class OpenAIProvider(ChatCompletionsProvider):
    name = "openai"
    base_url = "https://api.openai.com/v1"


class DeepSeekProvider(ChatCompletionsProvider):
    name = "deepseek"
    base_url = "https://api.deepseek.com"


class GeminiProvider(BaseProvider):
    name = "gemini"

    def _complete_once(self, model, context, instruction):
        genai.configure(api_key=self.api_key)
        generative_model = genai.GenerativeModel(model, system_instruction=SYSTEM_PROMPT)
        resp = generative_model.generate_content(
            build_user_message(context, instruction),
            request_options={"timeout": self.timeout},
        )
        text = getattr(resp, "text", None)
        if not text:
            raise ValueError(f"Model {model} returned an empty response")
        return text


class ProviderGateway:
    """Routes completions to the provider a model reference is tagged with."""

    def __init__(self, config: GatewayConfig, providers: Optional[dict] = None):
        self.config = config
        if providers is None:
            providers = {
                ProviderKind.OPENAI: OpenAIProvider(config.openai_api_key, config.openai_models, config.timeout),
                ProviderKind.GEMINI: GeminiProvider(config.gemini_api_key, config.gemini_models, config.timeout),
                ProviderKind.DEEPSEEK: DeepSeekProvider(config.deepseek_api_key, config.deepseek_models, config.timeout),
            }
        self.providers = providers
        self.priority = [ProviderKind.parse(name) for name in config.priority]

    def resolve(self, kind=None):
        kind = ProviderKind.parse(kind)
        if kind is not None:
            return self.providers[kind]
        for candidate in self.priority:
            provider = self.providers.get(candidate)
            if provider is not None and provider.is_configured():
                return provider
        raise ProviderError("gateway", "No API keys available for AI processing")

    def complete(self, context, instruction, kind=None, model=None):
        try:
            resolved_kind = ProviderKind.parse(kind)
        except ValueError as e:
            raise ProviderError("gateway", str(e)) from e

        provider = self.resolve(resolved_kind)
        if resolved_kind is None:
            if model:
                logger.warning("No provider kind for model %s, using %s defaults", model, provider.name)
            # the model name belongs to an unknown provider; let the fallback use its own variants
            model = None

        logger.info("[%s] Sending %d context characters", provider.name, len(context or ""))
        return provider.complete(context, instruction, model=model)


def get_gateway():
    return ProviderGateway(GatewayConfig.from_mapping(current_app.config))
