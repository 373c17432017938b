# codeforge/core/analysis.py
import logging
from typing import Any, Dict, Optional

from codeforge.core.extractor import DEFAULT_NAME, extract_main_entity
from codeforge.core.llm_client import call_structured_generation
from codeforge.core.prompts import build_analysis_prompt
from codeforge.models import GenerationRequest, PromptAnalysis
from codeforge.utils.config import AGENT_TEMPERATURES, LLM_RETRIES

logger = logging.getLogger(__name__)


def fallback_analysis(request: GenerationRequest) -> PromptAnalysis:
    """Deterministic analysis used when the analysis agent is missing or fails."""
    entity = extract_main_entity(request.prompt)
    domain = request.context.get("domain") if isinstance(request.context, dict) else None
    return PromptAnalysis(
        original_prompt=request.prompt,
        intent_type=None,
        confidence=0.6,
        domain=domain or "general",
        complexity="standard",
        entities=[] if entity == DEFAULT_NAME else [entity],
        requirements=[],
        specification=request.specification,
        is_fallback=True,
    )


class LLMPromptAnalyzer:
    """PromptAnalyzer backed by structured Gemini output."""

    def __init__(self, temperature: float = AGENT_TEMPERATURES["analysis"],
                 max_retries: int = LLM_RETRIES, debug: bool = False):
        self.temperature = temperature
        self.max_retries = max_retries
        self.debug = debug

    async def analyze(self, prompt: str, context: Optional[Dict[str, Any]] = None) -> PromptAnalysis:
        raw = await call_structured_generation(
            build_analysis_prompt(prompt, context),
            PromptAnalysis,
            temperature=self.temperature,
            max_retries=self.max_retries,
            debug=self.debug,
        )
        analysis = PromptAnalysis.model_validate(raw)
        analysis.original_prompt = prompt
        logger.info("analysis: intent=%s domain=%s entities=%s",
                    analysis.intent_type, analysis.domain, analysis.entities)
        return analysis
