# codeforge/core/gates.py
"""
Per-file annotation passes run after generation.

Files are independent, so each gate maps over the list with a bounded number
of concurrent collaborator calls. A collaborator failure for one file becomes a
StageDegradedWarning and leaves that file unannotated; it never aborts the pass
and never drops a file. Paths are never touched.
"""
import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from codeforge.core.aggregator import calculate_complexity, count_lines, extract_dependencies
from codeforge.models import GeneratedFile, StageDegradedWarning

logger = logging.getLogger(__name__)

GateOutcome = Tuple[List[GeneratedFile], List[StageDegradedWarning]]


def _optional_score(value) -> Optional[float]:
    """None stays absent; anything else must be numeric."""
    return None if value is None else float(value)


async def _bounded_map(files: List[GeneratedFile], worker, concurrency: int) -> List[List[StageDegradedWarning]]:
    sem = asyncio.Semaphore(max(1, concurrency))

    async def _one(f: GeneratedFile):
        async with sem:
            return await worker(f)

    return list(await asyncio.gather(*(_one(f) for f in files)))


class ValidationGate:
    stage = "validate"

    def __init__(self, validator, concurrency: int = 4):
        self.validator = validator
        self.concurrency = concurrency

    async def _annotate(self, f: GeneratedFile) -> List[StageDegradedWarning]:
        try:
            report = await self.validator.validate(f.content, f.language)
            validated = bool(report.get("is_valid"))
            score = _optional_score(report.get("score"))
            issues = [
                i.get("message", str(i)) if isinstance(i, dict) else str(i) for i in report.get("issues") or []
            ]
        except Exception as e:
            logger.warning("validation skipped for %s: %s", f.path, e)
            return [StageDegradedWarning(stage=self.stage, path=f.path, message=f"validator failed: {e}")]
        f.metadata.validated = validated
        f.metadata.validation_score = score
        f.metadata.validation_issues = issues
        f.touch()
        return []

    async def run(self, files: List[GeneratedFile]) -> GateOutcome:
        results = await _bounded_map(files, self._annotate, self.concurrency)
        warnings = [w for ws in results for w in ws]
        logger.info("validated %d file(s), %d skipped", len(files), len(warnings))
        return files, warnings


class OptimizationGate:
    """Optimizer rewrites content first; quality is then scored on the final content."""
    stage = "optimize"

    def __init__(self, quality_analyzer=None, optimizer=None, concurrency: int = 4,
                 optimizer_flags: Optional[Dict[str, bool]] = None):
        self.quality_analyzer = quality_analyzer
        self.optimizer = optimizer
        self.concurrency = concurrency
        self.optimizer_flags = optimizer_flags

    async def _optimize(self, f: GeneratedFile) -> Optional[StageDegradedWarning]:
        try:
            result = await self.optimizer.optimize(f.content, self.optimizer_flags)
            new_code = result.get("optimized_code")
            optimizations = [
                c.get("description", str(c)) if isinstance(c, dict) else str(c)
                for c in result.get("changes") or []
            ]
        except Exception as e:
            logger.warning("optimization skipped for %s: %s", f.path, e)
            return StageDegradedWarning(stage=self.stage, path=f.path, message=f"optimizer failed: {e}")
        if isinstance(new_code, str) and new_code.strip() and new_code != f.content:
            f.content = new_code
            f.metadata.optimized = True
            f.metadata.dependencies = extract_dependencies(new_code)
            f.metadata.lines_of_code = count_lines(new_code)
            f.metadata.complexity = calculate_complexity(new_code)
        f.metadata.optimizations = optimizations
        return None

    async def _score(self, f: GeneratedFile) -> Optional[StageDegradedWarning]:
        try:
            report = await self.quality_analyzer.analyze(f.content, f.language)
            score = _optional_score(report.get("overall_score"))
            grade = report.get("grade")
        except Exception as e:
            logger.warning("quality analysis skipped for %s: %s", f.path, e)
            return StageDegradedWarning(stage=self.stage, path=f.path, message=f"quality analyzer failed: {e}")
        f.metadata.quality_score = score
        f.metadata.quality_grade = grade if isinstance(grade, str) else None
        return None

    async def _annotate(self, f: GeneratedFile) -> List[StageDegradedWarning]:
        warnings = []
        if self.optimizer is not None:
            warnings.append(await self._optimize(f))
        if self.quality_analyzer is not None:
            warnings.append(await self._score(f))
        f.touch()
        return [w for w in warnings if w is not None]

    async def run(self, files: List[GeneratedFile]) -> GateOutcome:
        results = await _bounded_map(files, self._annotate, self.concurrency)
        warnings = [w for ws in results for w in ws]
        optimized = sum(1 for f in files if f.metadata.optimized)
        logger.info("optimize pass: %d/%d file(s) rewritten, %d warning(s)", optimized, len(files), len(warnings))
        return files, warnings
