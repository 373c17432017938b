# codeforge/core/scope.py
"""
Scope classification.

Maps a free-text request (plus an optional upstream intent label) to a Scope:
the breadth of what should be generated and how many files to expect.

Rule groups are evaluated in declared order and the first one that fires wins;
match counts never break ties.
"""
import logging
import re
from typing import Iterable, List, Optional

from codeforge.models import Complexity, FileCountRange, Scope, ScopeType

logger = logging.getLogger(__name__)

FULLSTACK_PHRASES = [
    "full-stack", "fullstack", "full stack",
    "complete app", "complete application", "complete web app",
    "frontend and backend", "frontend + backend", "front-end and back-end",
    "react and express", "react + express",
    "aplicação completa", "aplicacao completa", "sistema completo",
]

FRONTEND_TERMS = [
    "frontend", "front-end", "react", "vue", "angular", "svelte", "next.js", "nextjs",
    "ui", "interface", "component", "components", "tailwind",
]

BACKEND_TERMS = [
    "backend", "back-end", "api", "rest api", "restful", "express", "server", "servidor",
    "endpoint", "endpoints", "routes", "controllers", "middleware", "graphql", "fastapi",
]

BACKEND_ONLY_PHRASES = [
    "backend only", "backend-only", "api only", "api-only", "only the backend",
    "only an api", "no frontend", "without frontend", "without a frontend", "apenas backend",
]

DATABASE_TERMS = [
    "database", "db", "sql", "postgres", "postgresql", "mysql", "sqlite", "mongodb", "mongo",
    "prisma", "banco de dados",
]

LANDING_PHRASES = ["landing page", "landing-page", "marketing page", "página de destino"]
LANDING_SECTIONS = ["hero", "hero section", "cta", "call to action", "pricing", "testimonial", "testimonials"]

PAGE_TERMS = [
    "dashboard", "admin panel", "painel", "page", "screen", "analytics", "charts",
    "metrics", "reports", "relatórios",
]

SINGLE_COMPONENT_PATTERNS = [
    r"\b(?:create|build|make|generate|write|crie|criar)\s+(?:a|an|one|um|uma)?\s*(?:\w+\s+){0,3}component\b",
    r"\bsingle component\b",
    r"\bcomponente\b",
    r"\b(?:create|build|make|generate|write)\s+(?:a|an)\s+(?:\w+\s+){0,2}"
    r"(?:button|card|input|select|dropdown|modal|navbar|tooltip|badge|avatar|toggle)\b",
]

APP_TERMS = [
    "app", "application", "aplicação", "aplicacao", "api", "system", "sistema",
    "backend", "database", "website", "platform",
]

INTENT_SCOPES = {
    "CREATE_COMPONENT": ScopeType.SINGLE_COMPONENT,
    "CREATE_API": ScopeType.BACKEND,
    "CREATE_APP": ScopeType.FULLSTACK,
    "CREATE_FULLSTACK_APP": ScopeType.FULLSTACK,
}

# (complexity, min files, max files)
SCOPE_PROFILES = {
    ScopeType.FULLSTACK: (Complexity.COMPLEX, 20, 30),
    ScopeType.BACKEND: (Complexity.MODERATE, 8, 12),
    ScopeType.LANDING_PAGE: (Complexity.MODERATE, 10, 15),
    ScopeType.PAGE: (Complexity.MODERATE, 6, 12),
    ScopeType.SINGLE_COMPONENT: (Complexity.MINIMAL, 2, 4),
    ScopeType.FEATURE: (Complexity.MODERATE, 6, 12),
}


def _term_pattern(term: str) -> str:
    return r"(?<![\w-])" + re.escape(term) + r"(?![\w-])"


def find_terms(text: str, terms: Iterable[str]) -> List[str]:
    """Return the terms that occur in text as whole words, in declared order."""
    return [t for t in terms if re.search(_term_pattern(t), text)]


def _build(scope_type: ScopeType, confidence: float, keywords: List[str],
           frontend: bool, backend: bool, database: bool) -> Scope:
    complexity, lo, hi = SCOPE_PROFILES[scope_type]
    return Scope(
        type=scope_type,
        complexity=complexity,
        confidence=confidence,
        expected_file_count=FileCountRange(min=lo, max=hi),
        include_frontend=frontend,
        include_backend=backend,
        include_database=database,
        matched_keywords=keywords,
    )


def classify_scope(text: str, upstream_intent: Optional[str] = None) -> Scope:
    """
    Classify a request. Deterministic and total: any input, including empty
    text, yields a Scope.
    """
    lowered = (text or "").lower()

    fullstack = find_terms(lowered, FULLSTACK_PHRASES)
    frontend = find_terms(lowered, FRONTEND_TERMS)
    backend = find_terms(lowered, BACKEND_TERMS)
    backend_only = find_terms(lowered, BACKEND_ONLY_PHRASES)
    database = find_terms(lowered, DATABASE_TERMS)
    has_db = bool(database)

    # 1. fullstack
    if fullstack or (frontend and backend and not backend_only):
        keywords = fullstack or (frontend + backend)
        logger.info("scope: FULLSTACK (keywords=%s)", keywords)
        return _build(ScopeType.FULLSTACK, 0.95, keywords + database, True, True, has_db)

    # 2. backend only
    if backend and (not frontend or backend_only):
        logger.info("scope: BACKEND (keywords=%s)", backend)
        return _build(ScopeType.BACKEND, 0.9, backend_only + backend + database, False, True, has_db)

    # 3. landing page
    landing = find_terms(lowered, LANDING_PHRASES)
    sections = find_terms(lowered, LANDING_SECTIONS)
    if landing or len(sections) >= 2:
        logger.info("scope: LANDING_PAGE (keywords=%s)", landing + sections)
        return _build(ScopeType.LANDING_PAGE, 0.85, landing + sections, True, False, False)

    # 4. dashboard / page
    page = find_terms(lowered, PAGE_TERMS)
    if page:
        logger.info("scope: PAGE (keywords=%s)", page)
        return _build(ScopeType.PAGE, 0.8, page, True, False, False)

    # 5. single component
    single = [p for p in SINGLE_COMPONENT_PATTERNS if re.search(p, lowered)]
    if single and not find_terms(lowered, APP_TERMS):
        matched = [re.search(p, lowered).group(0).strip() for p in single]
        logger.info("scope: SINGLE_COMPONENT (keywords=%s)", matched)
        return _build(ScopeType.SINGLE_COMPONENT, 0.9, matched, True, False, False)

    # 6. upstream intent
    mapped = INTENT_SCOPES.get((upstream_intent or "").strip().upper())
    if mapped is not None:
        logger.info("scope: %s from upstream intent %s", mapped.name, upstream_intent)
        keywords = [f"intent:{upstream_intent.strip().upper()}"]
        if mapped == ScopeType.FULLSTACK:
            return _build(mapped, 0.7, keywords, True, True, has_db)
        if mapped == ScopeType.BACKEND:
            return _build(mapped, 0.7, keywords, False, True, has_db)
        return _build(mapped, 0.7, keywords, True, False, False)

    # 7. default
    logger.info("scope: FEATURE (default)")
    return _build(ScopeType.FEATURE, 0.5, [], True, False, False)
