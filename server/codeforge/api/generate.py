# codeforge/api/generate.py
import logging
from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from codeforge.core.aggregator import build_structure
from codeforge.core.analysis import LLMPromptAnalyzer
from codeforge.core.cache import TTLResultCache
from codeforge.core.extractor import extract_files
from codeforge.core.llm_client import GeminiTextGenerator
from codeforge.core.multi_generator import LLMMultiGenerator
from codeforge.core.optimizer import HeuristicCodeOptimizer
from codeforge.core.orchestrator import GenerationOrchestrator
from codeforge.core.quality import HeuristicQualityAnalyzer
from codeforge.core.scope import classify_scope
from codeforge.core.validator import HeuristicValidator
from codeforge.models import GeneratedFile, GenerationRequest, GenerationResult, ProjectStructure, Scope
from codeforge.utils.config import AGENT_TEMPERATURES, PipelineConfig

logger = logging.getLogger(__name__)

router = APIRouter()


class GenerateBody(GenerationRequest):
    cache_key: Optional[str] = None


class ScopeBody(BaseModel):
    prompt: Optional[str] = None
    intent: Optional[str] = None


class ExtractBody(BaseModel):
    raw_text: Optional[str] = None
    prompt: Optional[str] = None


class ExtractResponse(BaseModel):
    files: List[GeneratedFile]
    structure: ProjectStructure


@lru_cache(maxsize=1)
def get_orchestrator() -> GenerationOrchestrator:
    """Process-wide orchestrator wired with the default collaborators."""
    config = PipelineConfig.from_env()
    return GenerationOrchestrator(
        raw_generator=GeminiTextGenerator(temperature=AGENT_TEMPERATURES["raw_generation"]),
        prompt_analyzer=LLMPromptAnalyzer(),
        multi_generator=LLMMultiGenerator(),
        validator=HeuristicValidator(),
        quality_analyzer=HeuristicQualityAnalyzer(),
        optimizer=HeuristicCodeOptimizer(),
        cache=TTLResultCache(ttl=config.cache_ttl),
        config=config,
    )


def _log_incoming_request(kind: str, body: BaseModel):
    logger.info("incoming %s request: %s", kind, body.model_dump_json(exclude_none=True)[:500])


@router.post("/", response_model=GenerationResult)
async def generate(body: GenerateBody, orchestrator: GenerationOrchestrator = Depends(get_orchestrator)):
    _log_incoming_request("generate", body)
    request = GenerationRequest.model_validate(body.model_dump(exclude={"cache_key"}, by_alias=True))
    return await orchestrator.generate(request, cache_key=body.cache_key)


@router.post("/scope", response_model=Scope)
async def scope(body: ScopeBody):
    if body.prompt is None:
        raise HTTPException(status_code=400, detail="prompt is required")
    return classify_scope(body.prompt, body.intent)


@router.post("/extract", response_model=ExtractResponse)
async def extract(body: ExtractBody):
    if body.raw_text is None:
        raise HTTPException(status_code=400, detail="raw_text is required")
    files = extract_files(body.raw_text, prompt=body.prompt)
    return ExtractResponse(files=files, structure=build_structure(f.path for f in files))
