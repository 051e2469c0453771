from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests
import structlog

from .config import LLMConfig, Provider, resolve_api_key


logger = structlog.get_logger(__name__)

Message = Dict[str, str]

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
MAX_TOKENS = 2048
REQUEST_TIMEOUT = 120
PROBE_TIMEOUT = 3


class LLMError(RuntimeError):
    pass


class ProviderNotConfigured(LLMError):
    def __init__(self):
        super().__init__("No LLM provider configured. Run: voto config")


class MissingCredentials(LLMError):
    def __init__(self, provider: Provider):
        self.provider = provider
        super().__init__(f"{PROVIDER_INFO[provider].name} API key not configured. Run: voto config")


class ProviderRequestError(LLMError):
    def __init__(self, provider: Provider, message: str, status: Optional[int] = None):
        self.provider = provider
        self.status = status
        super().__init__(f"{PROVIDER_INFO[provider].name} error: {message}")


class MalformedResponse(LLMError):
    def __init__(self, provider: Provider, detail: str):
        self.provider = provider
        super().__init__(f"{PROVIDER_INFO[provider].name} returned an unexpected response: {detail}")


@dataclass(frozen=True)
class ProviderInfo:
    name: str
    description: str
    requires_key: bool
    default_model: str


PROVIDER_INFO: Dict[Provider, ProviderInfo] = {
    Provider.OLLAMA: ProviderInfo("Ollama (Local)", "Gratis, privado, corre en tu máquina", False, "llama3.2"),
    Provider.OPENAI: ProviderInfo("OpenAI", "GPT-4o, rápido y preciso", True, "gpt-4o-mini"),
    Provider.ANTHROPIC: ProviderInfo("Claude (Anthropic)", "Claude 3.5, excelente razonamiento", True, "claude-3-5-sonnet-20241022"),
    Provider.GEMINI: ProviderInfo("Google Gemini", "Free tier generoso", True, "gemini-1.5-flash"),
}


def _error_detail(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return str(resp.status_code)
    err = data.get("error") if isinstance(data, dict) else None
    if isinstance(err, dict) and err.get("message"):
        return str(err["message"])
    if isinstance(err, str):
        return err
    return str(resp.status_code)


def _post(provider: Provider, url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    try:
        resp = requests.post(
            url,
            headers={"Content-Type": "application/json", **headers},
            params=params,
            data=json.dumps(payload),
            timeout=timeout,
        )
    except requests.Timeout as exc:
        raise ProviderRequestError(provider, f"request timed out after {timeout}s") from exc
    except requests.RequestException as exc:
        raise ProviderRequestError(provider, f"could not reach the service ({exc.__class__.__name__})") from exc
    if not resp.ok:
        raise ProviderRequestError(provider, _error_detail(resp), status=resp.status_code)
    try:
        return resp.json()
    except ValueError as exc:
        raise MalformedResponse(provider, "body is not JSON") from exc


def _dig(provider: Provider, data: Any, *path) -> str:
    cur = data
    try:
        for key in path:
            cur = cur[key]
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedResponse(provider, "missing " + "/".join(str(p) for p in path)) from exc
    if not isinstance(cur, str):
        raise MalformedResponse(provider, "reply text is not a string")
    return cur


def _split_system(messages: List[Message]) -> tuple[str, List[Message]]:
    system = next((m["content"] for m in messages if m["role"] == "system"), "")
    return system, [m for m in messages if m["role"] != "system"]


def call_ollama(messages: List[Message], config: LLMConfig, timeout: float = REQUEST_TIMEOUT) -> str:
    settings = config.ollama
    payload = {"model": settings.model, "messages": messages, "stream": False}
    try:
        data = _post(Provider.OLLAMA, f"{settings.base_url.rstrip('/')}/api/chat", payload, {}, timeout)
    except ProviderRequestError as exc:
        if isinstance(exc.__cause__, requests.ConnectionError):
            raise ProviderRequestError(Provider.OLLAMA, "is Ollama running? (ollama serve)") from exc
        raise
    return _dig(Provider.OLLAMA, data, "message", "content")


def call_openai(messages: List[Message], config: LLMConfig, timeout: float = REQUEST_TIMEOUT) -> str:
    settings = config.openai
    api_key = resolve_api_key(config, Provider.OPENAI)
    if not api_key:
        raise MissingCredentials(Provider.OPENAI)
    payload = {"model": settings.model, "messages": messages, "max_tokens": MAX_TOKENS}
    data = _post(Provider.OPENAI, OPENAI_API_URL, payload, {"Authorization": f"Bearer {api_key}"}, timeout)
    return _dig(Provider.OPENAI, data, "choices", 0, "message", "content")


def call_anthropic(messages: List[Message], config: LLMConfig, timeout: float = REQUEST_TIMEOUT) -> str:
    settings = config.anthropic
    api_key = resolve_api_key(config, Provider.ANTHROPIC)
    if not api_key:
        raise MissingCredentials(Provider.ANTHROPIC)
    system, rest = _split_system(messages)
    payload = {"model": settings.model, "max_tokens": MAX_TOKENS, "system": system, "messages": rest}
    headers = {"x-api-key": api_key, "anthropic-version": ANTHROPIC_VERSION}
    data = _post(Provider.ANTHROPIC, ANTHROPIC_API_URL, payload, headers, timeout)
    return _dig(Provider.ANTHROPIC, data, "content", 0, "text")


def call_gemini(messages: List[Message], config: LLMConfig, timeout: float = REQUEST_TIMEOUT) -> str:
    settings = config.gemini
    api_key = resolve_api_key(config, Provider.GEMINI)
    if not api_key:
        raise MissingCredentials(Provider.GEMINI)
    system, rest = _split_system(messages)
    payload: Dict[str, Any] = {
        "contents": [
            {"role": "model" if m["role"] == "assistant" else "user", "parts": [{"text": m["content"]}]}
            for m in rest
        ]
    }
    if system:
        payload["systemInstruction"] = {"parts": [{"text": system}]}
    url = GEMINI_API_URL.format(model=settings.model)
    data = _post(Provider.GEMINI, url, payload, {}, timeout, params={"key": api_key})
    return _dig(Provider.GEMINI, data, "candidates", 0, "content", "parts", 0, "text")


ADAPTERS: Dict[Provider, Callable[[List[Message], LLMConfig, float], str]] = {
    Provider.OLLAMA: call_ollama,
    Provider.OPENAI: call_openai,
    Provider.ANTHROPIC: call_anthropic,
    Provider.GEMINI: call_gemini,
}


def send(messages: List[Message], config: LLMConfig, timeout: float = REQUEST_TIMEOUT) -> str:
    if config.provider is None:
        raise ProviderNotConfigured()
    model = getattr(config, config.provider.value).model
    logger.info("llm_call", provider=config.provider.value, model=model, messages=len(messages))
    try:
        return ADAPTERS[config.provider](messages, config, timeout)
    except LLMError as exc:
        logger.warning("llm_call_failed", provider=config.provider.value, error=str(exc))
        raise


def check_provider(provider: Optional[Provider], config: LLMConfig) -> bool:
    if provider is None:
        return False
    if provider is Provider.OLLAMA:
        try:
            resp = requests.get(f"{config.ollama.base_url.rstrip('/')}/api/tags", timeout=PROBE_TIMEOUT)
            return resp.ok
        except requests.RequestException:
            return False
    return bool(resolve_api_key(config, provider))


def list_local_models(config: LLMConfig) -> List[str]:
    try:
        resp = requests.get(f"{config.ollama.base_url.rstrip('/')}/api/tags", timeout=PROBE_TIMEOUT)
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError):
        return []
    return [m.get("name", "") for m in data.get("models", []) if m.get("name")]
