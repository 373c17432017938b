# codeforge/core/llm_client.py
import asyncio
import json
import logging
import os
import time
from typing import Any, Dict, List, Optional, Type

from langchain_google_genai import ChatGoogleGenerativeAI
from pydantic import BaseModel

from codeforge.utils.config import DEFAULT_TEMPERATURE, LLM_RETRIES, LOG_DIR, MAX_TOKENS, MODEL_NAME, TIMEOUT

logger = logging.getLogger(__name__)

# seconds; attempt n waits n * RETRY_BACKOFF_S before the next try
RETRY_BACKOFF_S = 1


# -------------------------
# LLM init
# -------------------------
def get_llm(temperature: float = DEFAULT_TEMPERATURE, max_tokens: int = MAX_TOKENS):
    api_key = os.getenv("GOOGLE_API_KEY_GEMINI")
    if not api_key:
        raise RuntimeError("Please set GOOGLE_API_KEY_GEMINI environment variable for Gemini access.")
    if "GOOGLE_API_KEY" not in os.environ:
        os.environ["GOOGLE_API_KEY"] = api_key
    return ChatGoogleGenerativeAI(
        model=MODEL_NAME,
        temperature=temperature,
        max_output_tokens=max_tokens,
        timeout=TIMEOUT,
    )


def _save_debug_log(prefix: str, payload: Dict[str, Any]):
    fname = f"{int(time.time())}_{prefix}.json"
    path = os.path.join(LOG_DIR, fname)
    try:
        os.makedirs(LOG_DIR, exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, ensure_ascii=False, default=str)
    except Exception:
        logger.exception("Failed to write debug log")


def _message_text(message: Any) -> str:
    """AIMessage content can be a string or a list of parts."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return str(content)


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


# -------------------------
# Retrying calls
# -------------------------
async def call_text_generation(prompt: str,
                               temperature: float = DEFAULT_TEMPERATURE,
                               max_retries: int = LLM_RETRIES,
                               debug: bool = False) -> str:
    """
    Plain text completion. Total attempts = 1 + max_retries with linear backoff;
    raises RuntimeError after the last attempt.
    """
    llm = get_llm(temperature=temperature)
    last_exc: Optional[BaseException] = None
    attempts_info: List[Dict[str, Any]] = []

    total_attempts = 1 + max_retries
    for attempt in range(1, total_attempts + 1):
        start_ts = time.time()
        try:
            message = await llm.ainvoke(prompt)
            text = _message_text(message)
            attempts_info.append({"attempt": attempt, "duration_s": time.time() - start_ts,
                                  "raw_result": _truncate(text, 10000)})
            if debug:
                _save_debug_log(f"llm_text_attempt_{attempt}", {"prompt": prompt, "raw_result": text,
                                                                "attempts": attempts_info})
            return text
        except Exception as e:
            last_exc = e
            attempts_info.append({"attempt": attempt, "duration_s": time.time() - start_ts, "error": repr(e)})
            logger.exception("LLM text attempt %d failed: %s", attempt, e)
            if debug:
                _save_debug_log(f"llm_text_error_attempt_{attempt}", {"prompt": prompt, "error": repr(e)})
            if attempt < total_attempts:
                await asyncio.sleep(RETRY_BACKOFF_S * attempt)

    raise RuntimeError(f"LLM generation failed after {total_attempts} attempts. Last error: {last_exc}")


async def call_structured_generation(prompt: str,
                                     structured_model: Type[BaseModel],
                                     temperature: float = DEFAULT_TEMPERATURE,
                                     max_retries: int = LLM_RETRIES,
                                     debug: bool = False) -> Dict[str, Any]:
    """
    Call Gemini with with_structured_output(method="json_mode").
    structured_model is a pydantic model class; returns the parsed object as a dict.
    """
    llm = get_llm(temperature=temperature)
    structured_callable = llm.with_structured_output(structured_model, method="json_mode")

    last_exc: Optional[BaseException] = None
    total_attempts = 1 + max_retries
    for attempt in range(1, total_attempts + 1):
        start_ts = time.time()
        try:
            result = await structured_callable.ainvoke(prompt)
            duration = time.time() - start_ts
            if isinstance(result, BaseModel):
                parsed = result.model_dump()
            elif isinstance(result, dict):
                parsed = result
            else:
                parsed = json.loads(str(result))
            logger.debug("structured attempt %d ok in %.2fs", attempt, duration)
            if debug:
                _save_debug_log(f"llm_attempt_{attempt}", {"prompt": prompt, "raw_result": parsed})
            return parsed
        except Exception as e:
            last_exc = e
            logger.exception("LLM attempt %d failed: %s", attempt, e)
            if debug:
                _save_debug_log(f"llm_error_attempt_{attempt}", {"prompt": prompt, "error": repr(e)})
            if attempt < total_attempts:
                await asyncio.sleep(RETRY_BACKOFF_S * attempt)

    raise RuntimeError(f"LLM generation failed after {total_attempts} attempts. Last error: {last_exc}")


class GeminiTextGenerator:
    """RawTextGenerator backed by Gemini."""

    def __init__(self, temperature: float = DEFAULT_TEMPERATURE, max_retries: int = LLM_RETRIES,
                 debug: bool = False):
        self.temperature = temperature
        self.max_retries = max_retries
        self.debug = debug

    async def generate(self, prompt: str) -> str:
        return await call_text_generation(prompt, temperature=self.temperature,
                                          max_retries=self.max_retries, debug=self.debug)
