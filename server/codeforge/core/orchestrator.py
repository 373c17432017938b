# codeforge/core/orchestrator.py
"""
GenerationOrchestrator: Prepare -> Generate -> Validate -> Optimize.

Stages run strictly in order, each consuming the previous stage's output.
Prepare and Generate can abort the run (FatalInputError / StageFatalError);
Validate and Optimize only ever add warnings. `execute` never raises: every
outcome is a well-formed GenerationResult.

All collaborators are injected; any of them except the raw text generator may
be None, in which case the corresponding step is skipped or degrades to its
deterministic fallback.
"""
import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from codeforge.core.aggregator import build_structure, collect_dependencies, dedupe_paths, files_from_generator_output
from codeforge.core.analysis import fallback_analysis
from codeforge.core.dep_resolver import resolve_versions
from codeforge.core.errors import FatalInputError, PipelineError, StageFatalError
from codeforge.core.extractor import extract_files, extract_main_entity, fallback_file, repair_generic_names
from codeforge.core.gates import OptimizationGate, ValidationGate
from codeforge.core.llm_client import _save_debug_log
from codeforge.core.manifest import render_fallback_component, render_package_json, render_readme
from codeforge.core.multi_generator import build_project_description
from codeforge.core.prompts import build_enriched_prompt
from codeforge.core.scope import classify_scope
from codeforge.models import (
    GeneratedFile,
    GenerationMetrics,
    GenerationRequest,
    GenerationResult,
    PromptAnalysis,
    Scope,
    ScopeType,
    StageDegradedWarning,
    StageResult,
)
from codeforge.utils.config import PipelineConfig

logger = logging.getLogger(__name__)


# ---- stage data ----
@dataclass
class PreparedRequest:
    request: GenerationRequest
    analysis: PromptAnalysis
    scope: Scope
    templates: List[Any]
    specification: Dict[str, Any]


# Generate outcomes
@dataclass
class Generated:
    files: List[GeneratedFile]
    source: str
    substages: List[StageResult] = field(default_factory=list)


@dataclass
class Degraded:
    reason: str
    substages: List[StageResult] = field(default_factory=list)


@dataclass
class Failed:
    error: str


GenerateOutcome = Union[Generated, Degraded, Failed]


@dataclass
class RunState:
    run_id: str
    stages: List[StageResult] = field(default_factory=list)
    warnings: List[StageDegradedWarning] = field(default_factory=list)


def _summary(files: List[GeneratedFile]) -> Dict[str, Any]:
    return {"files": len(files), "paths": [f.path for f in files]}


class GenerationOrchestrator:
    def __init__(self,
                 raw_generator,
                 prompt_analyzer=None,
                 template_search=None,
                 multi_generator=None,
                 validator=None,
                 quality_analyzer=None,
                 optimizer=None,
                 cache=None,
                 config: Optional[PipelineConfig] = None):
        self.raw_generator = raw_generator
        self.prompt_analyzer = prompt_analyzer
        self.template_search = template_search
        self.multi_generator = multi_generator
        self.validator = validator
        self.quality_analyzer = quality_analyzer
        self.optimizer = optimizer
        self.cache = cache
        self.config = config or PipelineConfig()

    # ---- public ----
    async def generate(self, request: GenerationRequest, cache_key: Optional[str] = None) -> GenerationResult:
        """Cached entry point: read, run on a miss, write once after a successful run."""
        if cache_key and self.cache is not None:
            try:
                cached = await self.cache.get(cache_key)
            except Exception as e:
                logger.warning("cache read failed for %s: %s", cache_key, e)
                cached = None
            if cached is not None:
                logger.info("cache hit for %s", cache_key)
                return cached.model_copy(deep=True)

        result = await self.execute(request)

        if cache_key and self.cache is not None and result.success:
            try:
                await self.cache.set(cache_key, result.model_copy(deep=True), ttl=self.config.cache_ttl)
            except Exception as e:
                logger.warning("cache write failed for %s: %s", cache_key, e)
        return result

    async def execute(self, request: GenerationRequest) -> GenerationResult:
        state = RunState(run_id=request.request_id or uuid.uuid4().hex[:8])
        started = time.perf_counter()
        logger.info("[%s] generation started", state.run_id)
        try:
            prepared = await self._stage(state, "prepare", self._prepare(request, state))
            generated = await self._stage(state, "generate", self._generate(prepared, state))
            files = generated.files

            if self._validation_enabled(request):
                files = await self._stage(state, "validate", self._validate(files, state))
            if self._optimization_enabled(request):
                files = await self._stage(state, "optimize", self._optimize(files, state))

            result = await self._finalize(prepared, generated, files, state, started)
            logger.info("[%s] generation finished: %d file(s), quality %.1f",
                        state.run_id, len(result.files), result.quality_score)
            return result
        except PipelineError as e:
            logger.error("[%s] generation aborted: %s", state.run_id, e)
            return GenerationResult.failure(str(e), stages=state.stages, warnings=state.warnings)
        except Exception as e:
            logger.exception("[%s] unexpected pipeline error", state.run_id)
            return GenerationResult.failure(f"unexpected error: {e}", stages=state.stages,
                                            warnings=state.warnings)

    # ---- stage runner ----
    async def _stage(self, state: RunState, name: str, coro):
        start = time.perf_counter()
        try:
            output = await coro
        except Exception as e:
            state.stages.append(StageResult(name=name, success=False, error=str(e),
                                            duration_ms=(time.perf_counter() - start) * 1000))
            raise
        summary = _summary(output) if isinstance(output, list) else self._describe(output)
        state.stages.append(StageResult(name=name, success=True, output=summary,
                                        duration_ms=(time.perf_counter() - start) * 1000))
        return output

    @staticmethod
    def _describe(output) -> Dict[str, Any]:
        if isinstance(output, PreparedRequest):
            return {
                "scope": output.scope.type.value,
                "intent": output.analysis.intent_type,
                "analysis_fallback": output.analysis.is_fallback,
                "templates": len(output.templates),
            }
        if isinstance(output, Generated):
            return dict(_summary(output.files), source=output.source)
        return {}

    def _validation_enabled(self, request: GenerationRequest) -> bool:
        return self.config.enable_validation and request.options.validate_output and self.validator is not None

    def _optimization_enabled(self, request: GenerationRequest) -> bool:
        has_collaborator = self.optimizer is not None or (
            self.config.enable_quality_analysis and self.quality_analyzer is not None)
        return self.config.enable_optimization and request.options.optimize and has_collaborator

    # ---- Prepare ----
    async def _prepare(self, request: GenerationRequest, state: RunState) -> PreparedRequest:
        if not request.prompt or not request.prompt.strip():
            raise FatalInputError("prompt is required")

        analysis = await self._analyze(request, state)
        scope = classify_scope(request.prompt, analysis.intent_type)
        templates = await self._search_templates(analysis, scope)
        specification = request.specification or analysis.specification or {
            "domain": analysis.domain,
            "entities": analysis.entities,
            "requirements": analysis.requirements,
            "scope": scope.type.value,
            "framework": request.options.framework,
            "language": request.options.language,
            "style": request.options.style,
        }
        logger.info("[%s] prepared: scope=%s confidence=%.2f keywords=%s",
                    state.run_id, scope.type.value, scope.confidence, scope.matched_keywords)
        return PreparedRequest(request=request, analysis=analysis, scope=scope,
                               templates=templates, specification=specification)

    async def _analyze(self, request: GenerationRequest, state: RunState) -> PromptAnalysis:
        if self.prompt_analyzer is None:
            return fallback_analysis(request)
        try:
            return await self.prompt_analyzer.analyze(request.prompt, request.context)
        except Exception as e:
            logger.warning("[%s] prompt analysis failed, using fallback: %s", state.run_id, e)
            state.warnings.append(StageDegradedWarning(stage="prepare", message=f"prompt analysis failed: {e}"))
            return fallback_analysis(request)

    async def _search_templates(self, analysis: PromptAnalysis, scope: Scope) -> List[Any]:
        if self.template_search is None:
            return []
        keyword = analysis.entities[0] if analysis.entities else analysis.domain
        try:
            return list(await self.template_search.search(keyword, scope.type.value, scope.matched_keywords) or [])
        except Exception as e:
            logger.warning("template search failed: %s", e)
            return []

    # ---- Generate ----
    async def _generate(self, prepared: PreparedRequest, state: RunState) -> Generated:
        if prepared.scope.type == ScopeType.FULLSTACK and self.multi_generator is not None:
            outcome: GenerateOutcome = await self._generate_structured(prepared)
        else:
            outcome = Degraded(reason=f"{prepared.scope.type.value} scope uses raw text generation")

        if isinstance(outcome, Degraded):
            state.stages.extend(outcome.substages)
            logger.info("[%s] raw text path: %s", state.run_id, outcome.reason)
            outcome = await self._generate_raw(prepared)
        elif isinstance(outcome, Generated):
            state.stages.extend(outcome.substages)

        if isinstance(outcome, Failed):
            raise StageFatalError("generate", outcome.error)

        if not outcome.files:
            logger.warning("[%s] no files generated, using fallback stub", state.run_id)
            stub = fallback_file(render_fallback_component(prepared.request.prompt), None)
            outcome = Generated(files=[stub], source="fallback")

        self._check_file_count(outcome.files, prepared.scope, state)
        return outcome

    async def _generate_structured(self, prepared: PreparedRequest) -> GenerateOutcome:
        description = build_project_description(prepared.request, prepared.analysis, prepared.scope)
        try:
            output = await self.multi_generator.generate(description)
        except Exception as e:
            logger.warning("multi-generator failed: %s", e)
            return Degraded(reason=f"multi-generator failed: {e}")

        substages = []
        if isinstance(output, dict):
            for sub in output.get("stages") or []:
                if isinstance(sub, StageResult):
                    substages.append(sub.model_copy(update={
                        "name": f"generate.{sub.name}",
                        "output": {"files": len(sub.output or [])},
                    }))
        files = files_from_generator_output(output, generator="multi_generator")
        if not files:
            return Degraded(reason="multi-generator returned no files", substages=substages)
        return Generated(files=files, source="multi_generator", substages=substages)

    async def _generate_raw(self, prepared: PreparedRequest) -> GenerateOutcome:
        if self.raw_generator is None:
            return Failed(error="no text generator configured")
        request = prepared.request
        prompt = build_enriched_prompt(request.prompt, prepared.analysis, prepared.scope)
        try:
            raw_text = await self.raw_generator.generate(prompt)
        except Exception as e:
            logger.error("raw text generation failed: %s", e)
            return Failed(error=f"text generation failed: {e}")

        files = extract_files(raw_text or "", prompt=request.prompt)
        if files and files[0].metadata.generator == "fallback":
            if request.options.debug:
                _save_debug_log("extraction_fallback", {"prompt": request.prompt, "raw_text": raw_text})
            return Generated(files=files, source="fallback")
        dedupe_paths(repair_generic_names(files, extract_main_entity(request.prompt)))
        for f in files:
            f.metadata.generator = "raw_text"
        return Generated(files=files, source="raw_text")

    def _check_file_count(self, files: List[GeneratedFile], scope: Scope, state: RunState) -> None:
        expected = scope.expected_file_count
        if expected.min <= len(files) <= expected.max:
            return
        message = f"generated {len(files)} file(s), expected {expected.min}-{expected.max} for {scope.type.value}"
        logger.warning("[%s] %s", state.run_id, message)
        state.warnings.append(StageDegradedWarning(stage="generate", message=message))

    # ---- Validate / Optimize ----
    async def _validate(self, files: List[GeneratedFile], state: RunState) -> List[GeneratedFile]:
        gate = ValidationGate(self.validator, concurrency=self.config.gate_concurrency)
        files, warnings = await gate.run(files)
        state.warnings.extend(warnings)
        return files

    async def _optimize(self, files: List[GeneratedFile], state: RunState) -> List[GeneratedFile]:
        analyzer = self.quality_analyzer if self.config.enable_quality_analysis else None
        gate = OptimizationGate(analyzer, self.optimizer, concurrency=self.config.gate_concurrency)
        files, warnings = await gate.run(files)
        state.warnings.extend(warnings)
        return files

    # ---- result ----
    async def _finalize(self, prepared: PreparedRequest, generated: Generated, files: List[GeneratedFile],
                        state: RunState, started: float) -> GenerationResult:
        quality = sum(f.metadata.quality_score or 0 for f in files) / len(files) if files else 0.0
        dependencies = collect_dependencies(files)
        versions: Dict[str, str] = {}
        if self.config.pin_dependencies and dependencies:
            resolved = await asyncio.to_thread(resolve_versions, dependencies)
            versions = resolved["pinned"]
            state.warnings.extend(
                StageDegradedWarning(stage="finalize", message=w) for w in resolved["warnings"])
        return GenerationResult(
            success=True,
            files=files,
            quality_score=round(quality, 2),
            dependencies=dependencies,
            package_json=render_package_json(dependencies, versions),
            readme=render_readme(files, prepared.scope, prepared.request.prompt),
            structure=build_structure(f.path for f in files),
            scope=prepared.scope,
            stages=state.stages,
            warnings=state.warnings,
            metrics=GenerationMetrics(
                total_files=len(files),
                total_lines=sum(f.metadata.lines_of_code for f in files),
                duration_ms=(time.perf_counter() - started) * 1000,
            ),
            generation_source=generated.source,
        )
