# codeforge/core/multi_generator.py
"""
Structured multi-agent generation for full-stack requests.

Six role-specific sub-generators each return a JSON `files` payload. The
independent roles run concurrently; `tests` runs last because it is told which
files exist. A failing role is reported as a failed StageResult and does not
fail its siblings.
"""
import asyncio
import logging
import re
import time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from codeforge.core.aggregator import files_from_generator_output, merge_files
from codeforge.core.llm_client import call_structured_generation
from codeforge.core.prompts import build_subgenerator_prompt
from codeforge.models import GeneratedFile, GenerationRequest, PromptAnalysis, Scope, StageResult
from codeforge.utils.config import AGENT_TEMPERATURES, LLM_RETRIES

logger = logging.getLogger(__name__)


# -------------------------
# Structured payload
# -------------------------
class FileOutModel(BaseModel):
    path: str = Field(..., description="Relative path for the file")
    content: str = Field(..., description="File content as a string")


class FilesPayloadModel(BaseModel):
    files: List[FileOutModel] = Field(default_factory=list, description="List of files")


# -------------------------
# Project description
# -------------------------
FEATURE_RULES = [
    (("auth", "login", "sign in", "signup"), "User Authentication"),
    (("crud",), "CRUD Operations"),
    (("dashboard",), "Dashboard"),
    (("task", "todo", "to-do"), "Task Management"),
]


def infer_features(prompt: str) -> List[str]:
    lowered = (prompt or "").lower()
    features = [label for words, label in FEATURE_RULES if any(w in lowered for w in words)]
    if "crud" not in lowered and "create" in lowered and "delete" in lowered:
        features.append("CRUD Operations")
    if "user" in lowered and "manag" in lowered:
        features.append("User Management")
    return features or ["Core Functionality"]


def detect_database(prompt: str) -> Optional[str]:
    lowered = (prompt or "").lower()
    if "prisma" in lowered:
        return "prisma"
    if "postgres" in lowered:
        return "postgresql"
    if "mongo" in lowered:
        return "mongodb"
    if "mysql" in lowered:
        return "mysql"
    if "database" in lowered or re.search(r"\bdb\b", lowered):
        return "postgresql"
    return None


def build_project_description(request: GenerationRequest, analysis: Optional[PromptAnalysis],
                              scope: Scope) -> Dict[str, Any]:
    prompt = request.prompt
    entities = analysis.entities if analysis else []
    features = (analysis.requirements if analysis and analysis.requirements else None) or infer_features(prompt)
    database = detect_database(prompt)
    if database is None and scope.include_database:
        database = "postgresql"
    return {
        "project_name": entities[0] if entities else f"project-{int(time.time())}",
        "project_type": scope.type.value,
        "description": prompt,
        "features": features,
        "tech_stack": {
            "frontend": [request.options.framework, request.options.language, "tailwindcss"],
            "backend": ["express", "typescript"],
            "database": database,
        },
        "entities": entities,
        "authentication": "auth" in prompt.lower() or "login" in prompt.lower(),
        "api_type": "rest",
        "include_tests": request.options.include_tests,
        "specification": request.specification,
    }


# -------------------------
# Generator
# -------------------------
PARALLEL_ROLES = ["architecture", "database", "backend", "api", "ui"]


class LLMMultiGenerator:
    """MultiGenerator backed by one structured Gemini call per role."""

    def __init__(self, max_retries: int = LLM_RETRIES, debug: bool = False):
        self.max_retries = max_retries
        self.debug = debug

    async def _run_role(self, role: str, description: Dict[str, Any],
                        existing_paths: Optional[List[str]] = None) -> List[GeneratedFile]:
        raw = await call_structured_generation(
            build_subgenerator_prompt(role, description, existing_paths),
            FilesPayloadModel,
            temperature=AGENT_TEMPERATURES[role],
            max_retries=self.max_retries,
            debug=self.debug,
        )
        return files_from_generator_output(raw, generator=role)

    async def _timed(self, role: str, coro) -> StageResult:
        start = time.perf_counter()
        try:
            files = await coro
            return StageResult(name=role, success=True, output=files,
                               duration_ms=(time.perf_counter() - start) * 1000)
        except Exception as e:
            logger.warning("sub-generator %s failed: %s", role, e)
            return StageResult(name=role, success=False, output=[], error=str(e),
                               duration_ms=(time.perf_counter() - start) * 1000)

    async def generate(self, description: Dict[str, Any]) -> Dict[str, Any]:
        """Returns {"files": [GeneratedFile, ...], "stages": [StageResult, ...]}."""
        roles = [r for r in PARALLEL_ROLES
                 if r != "database" or description.get("tech_stack", {}).get("database")]
        stages = list(await asyncio.gather(
            *(self._timed(role, self._run_role(role, description)) for role in roles)
        ))
        files = merge_files(*(s.output for s in stages if s.success))

        if description.get("include_tests", True) and files:
            paths = [f.path for f in files]
            tests = await self._timed("tests", self._run_role("tests", description, paths))
            stages.append(tests)
            if tests.success:
                files = merge_files(files, tests.output)

        logger.info("multi-generator produced %d file(s) from %d role(s)", len(files), len(stages))
        return {"files": files, "stages": stages}
