from types import SimpleNamespace

import pytest

from codeforge.core import llm_client
from codeforge.core.llm_client import (
    GeminiTextGenerator,
    _message_text,
    call_structured_generation,
    call_text_generation,
)
from codeforge.core.multi_generator import FilesPayloadModel


class FlakyLLM:
    """ainvoke fails `failures` times, then returns `result`."""

    def __init__(self, result, failures=0):
        self.result = result
        self.failures = failures
        self.calls = 0

    async def ainvoke(self, prompt):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"attempt {self.calls} failed")
        return self.result

    def with_structured_output(self, model, method=None):
        return self


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(llm_client, "RETRY_BACKOFF_S", 0)


def _patch_llm(monkeypatch, llm):
    monkeypatch.setattr(llm_client, "get_llm", lambda temperature=0.0, max_tokens=0: llm)


@pytest.mark.asyncio
async def test_text_generation_retries_then_succeeds(monkeypatch):
    llm = FlakyLLM(SimpleNamespace(content="```tsx\ncode\n```"), failures=2)
    _patch_llm(monkeypatch, llm)
    text = await call_text_generation("prompt", max_retries=2)
    assert text == "```tsx\ncode\n```"
    assert llm.calls == 3


@pytest.mark.asyncio
async def test_text_generation_raises_after_last_attempt(monkeypatch):
    llm = FlakyLLM(None, failures=10)
    _patch_llm(monkeypatch, llm)
    with pytest.raises(RuntimeError, match="after 2 attempts"):
        await call_text_generation("prompt", max_retries=1)
    assert llm.calls == 2


@pytest.mark.asyncio
async def test_structured_generation_dumps_models(monkeypatch):
    payload = FilesPayloadModel(files=[{"path": "src/a.ts", "content": "x"}])
    _patch_llm(monkeypatch, FlakyLLM(payload, failures=1))
    result = await call_structured_generation("prompt", FilesPayloadModel, max_retries=1)
    assert result == {"files": [{"path": "src/a.ts", "content": "x"}]}


@pytest.mark.asyncio
async def test_structured_generation_accepts_json_text(monkeypatch):
    _patch_llm(monkeypatch, FlakyLLM('{"files": []}'))
    assert await call_structured_generation("prompt", FilesPayloadModel) == {"files": []}


@pytest.mark.asyncio
async def test_gemini_text_generator(monkeypatch):
    _patch_llm(monkeypatch, FlakyLLM(SimpleNamespace(content="hello")))
    assert await GeminiTextGenerator(max_retries=0).generate("p") == "hello"


def test_message_text_joins_parts():
    message = SimpleNamespace(content=["a", {"type": "text", "text": "b"}, {"type": "image"}])
    assert _message_text(message) == "ab"
    assert _message_text(SimpleNamespace(content="plain")) == "plain"


def test_get_llm_requires_api_key(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY_GEMINI", raising=False)
    with pytest.raises(RuntimeError, match="GOOGLE_API_KEY_GEMINI"):
        llm_client.get_llm()


@pytest.mark.asyncio
async def test_debug_log_failure_does_not_fail_the_call(monkeypatch, tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    monkeypatch.setattr(llm_client, "LOG_DIR", str(blocker / "logs"))
    llm = FlakyLLM(SimpleNamespace(content="ok"))
    _patch_llm(monkeypatch, llm)
    assert await call_text_generation("prompt", max_retries=2, debug=True) == "ok"
    assert llm.calls == 1


def test_debug_log_written_when_dir_is_missing(monkeypatch, tmp_path):
    target = tmp_path / "nested" / "logs"
    monkeypatch.setattr(llm_client, "LOG_DIR", str(target))
    llm_client._save_debug_log("extraction", {"a": 1})
    assert len(list(target.glob("*_extraction.json"))) == 1
