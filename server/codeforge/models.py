from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field, model_validator


def _now() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


# -------------------------
# Request
# -------------------------
class GenerationOptions(BaseModel):
    framework: str = "react"
    language: str = "typescript"
    style: Optional[str] = None
    include_tests: bool = True
    validate_output: bool = Field(True, alias="validate")
    optimize: bool = True
    debug: bool = False

    model_config = {"populate_by_name": True}


class GenerationRequest(BaseModel):
    prompt: str = ""
    specification: Optional[Dict[str, Any]] = None
    options: GenerationOptions = Field(default_factory=GenerationOptions)
    context: Dict[str, Any] = Field(default_factory=dict)
    request_id: Optional[str] = None


# -------------------------
# Scope
# -------------------------
class ScopeType(str, Enum):
    SINGLE_COMPONENT = "single_component"
    FEATURE = "feature"
    PAGE = "page"
    BACKEND = "backend"
    FULLSTACK = "fullstack"
    LANDING_PAGE = "landing_page"


class Complexity(str, Enum):
    MINIMAL = "minimal"
    MODERATE = "moderate"
    COMPLEX = "complex"


class FileCountRange(BaseModel):
    min: int = Field(..., ge=0)
    max: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _check_order(self):
        if self.min > self.max:
            raise ValueError("expected file count min must not exceed max")
        return self


class Scope(BaseModel):
    type: ScopeType
    complexity: Complexity
    confidence: float = Field(..., ge=0.0, le=1.0)
    expected_file_count: FileCountRange
    include_frontend: bool = True
    include_backend: bool = False
    include_database: bool = False
    matched_keywords: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}


# -------------------------
# Prompt analysis (PromptAnalyzer boundary)
# -------------------------
class PromptAnalysis(BaseModel):
    original_prompt: str = ""
    intent_type: Optional[str] = Field(None, description="e.g. CREATE_COMPONENT, CREATE_API, CREATE_APP")
    confidence: float = Field(0.6, description="Analyzer confidence 0-1")
    domain: str = Field("general", description="Business domain of the request")
    complexity: str = Field("standard", description="Analyzer complexity label")
    entities: List[str] = Field(default_factory=list, description="Main entities named in the prompt")
    requirements: List[str] = Field(default_factory=list, description="Functional requirements")
    specification: Optional[Dict[str, Any]] = None
    is_fallback: bool = False


# -------------------------
# Files
# -------------------------
class FileType(str, Enum):
    TSX = "tsx"
    JSX = "jsx"
    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"
    CSS = "css"
    HTML = "html"
    JSON = "json"
    MARKDOWN = "markdown"
    PYTHON = "python"
    PRISMA = "prisma"
    OTHER = "other"


class FileMetadata(BaseModel):
    generator: str = "unknown"
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)
    dependencies: List[str] = Field(default_factory=list)
    lines_of_code: int = 0
    complexity: int = 1
    validated: Optional[bool] = None
    validation_score: Optional[float] = None
    validation_issues: List[str] = Field(default_factory=list)
    quality_score: Optional[float] = None
    quality_grade: Optional[str] = None
    optimized: bool = False
    optimizations: List[str] = Field(default_factory=list)
    auto_fixed_naming: bool = False
    original_name: Optional[str] = None


class GeneratedFile(BaseModel):
    path: str
    filename: str
    name: str
    content: str = ""
    language: str = "typescript"
    type: FileType = FileType.OTHER
    metadata: FileMetadata = Field(default_factory=FileMetadata)

    @computed_field
    @property
    def size(self) -> int:
        return len(self.content)

    def touch(self) -> None:
        self.metadata.updated_at = _now()


class ProjectStructure(BaseModel):
    """Folder tree built from file paths: sub-folders by segment, filenames at each level."""
    folders: Dict[str, "ProjectStructure"] = Field(default_factory=dict)
    files: List[str] = Field(default_factory=list)


# -------------------------
# Stages & result
# -------------------------
class StageResult(BaseModel):
    name: str
    success: bool
    output: Any = None
    duration_ms: float = Field(0.0, ge=0.0)
    error: Optional[str] = None


class StageDegradedWarning(BaseModel):
    stage: str
    message: str
    path: Optional[str] = None


class GenerationMetrics(BaseModel):
    total_files: int = 0
    total_lines: int = 0
    duration_ms: float = 0.0


class GenerationResult(BaseModel):
    success: bool
    files: List[GeneratedFile] = Field(default_factory=list)
    quality_score: float = 0.0
    dependencies: List[str] = Field(default_factory=list)
    package_json: str = ""
    readme: str = ""
    structure: ProjectStructure = Field(default_factory=ProjectStructure)
    scope: Optional[Scope] = None
    stages: List[StageResult] = Field(default_factory=list)
    warnings: List[StageDegradedWarning] = Field(default_factory=list)
    metrics: GenerationMetrics = Field(default_factory=GenerationMetrics)
    generation_source: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str,
                stages: Optional[List[StageResult]] = None,
                warnings: Optional[List[StageDegradedWarning]] = None,
                duration_ms: float = 0.0) -> "GenerationResult":
        return cls(
            success=False,
            error=error,
            stages=list(stages or []),
            warnings=list(warnings or []),
            metrics=GenerationMetrics(duration_ms=duration_ms),
        )
