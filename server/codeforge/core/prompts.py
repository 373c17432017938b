# codeforge/core/prompts.py
"""
Prompts used by the generation pipeline.

Goals:
- Make raw-text generations land in the fenced format the extractor reads first
  (```component:Name:lang:path).
- Scale the requested output to the request's scope (one component vs. a whole app).
- Keep structured sub-generators on a strict JSON `files` contract.
"""

import json
from typing import Any, Dict, List, Optional

from codeforge.models import PromptAnalysis, Scope, ScopeType

QUALITY_PROTOCOL = (
    "CODE QUALITY RULES:\n"
    " - TypeScript with explicit types for props, state and function signatures. Never use `any`.\n"
    " - Functional React components with hooks; Tailwind CSS classes for styling.\n"
    " - Accessible markup: semantic elements, labels, aria attributes, keyboard support.\n"
    " - Handle loading, empty and error states. Wrap async work in try/catch.\n"
    " - No placeholder comments like '// TODO: implement'. Every file must be complete.\n"
    " - Never hard-code secrets; read configuration from environment variables.\n"
)

OUTPUT_FORMAT = (
    "OUTPUT FORMAT (mandatory):\n"
    " - Emit every file as its own fenced block whose opening line is\n"
    "   ```component:<ComponentName>:<language>:<relative/path.ext>\n"
    "   for example ```component:TodoList:tsx:src/components/TodoList.tsx\n"
    " - Close every block with ``` on its own line.\n"
    " - No prose between blocks.\n"
)

SCOPE_INSTRUCTIONS = {
    ScopeType.SINGLE_COMPONENT: (
        "SCOPE: a single reusable component.\n"
        " - Produce the component, its props/types file and, if useful, a small usage example.\n"
        " - Do NOT build pages, routing, a backend or an entire application.\n"
    ),
    ScopeType.LANDING_PAGE: (
        "SCOPE: a marketing landing page.\n"
        " - One page composed of section components: hero, features, social proof/testimonials,\n"
        "   pricing, call to action and footer. Responsive layout.\n"
    ),
    ScopeType.PAGE: (
        "SCOPE: one application page (e.g. a dashboard).\n"
        " - The page component plus the widgets, hooks and types it needs, with mock data.\n"
    ),
    ScopeType.FEATURE: (
        "SCOPE: one self-contained frontend feature.\n"
        " - Components, a custom hook for state, types and a small service module.\n"
    ),
    ScopeType.BACKEND: (
        "SCOPE: a backend/API only (Node.js + Express + TypeScript).\n"
        " - server entry point, routes, controllers, services, middleware (errors, validation), models\n"
        "   and configuration. No frontend code.\n"
    ),
    ScopeType.FULLSTACK: (
        "SCOPE: a complete full-stack application.\n"
        " - Frontend (React + TypeScript): pages, components, hooks, API client, types.\n"
        " - Backend (Express + TypeScript): server, routes, controllers, services, middleware.\n"
        " - Database schema when persistence is needed, plus package manifests.\n"
    ),
}


def build_analysis_prompt(prompt: str, context: Optional[Dict[str, Any]] = None) -> str:
    """Prompt for the analysis agent; the answer must validate as PromptAnalysis."""
    ctx = json.dumps(context or {}, ensure_ascii=False)
    return (
        "You analyse software generation requests.\n"
        "Return ONLY a JSON object with keys: intent_type, confidence, domain, complexity, entities, requirements.\n"
        " - intent_type: one of CREATE_COMPONENT, CREATE_PAGE, CREATE_API, CREATE_APP, CREATE_FULLSTACK_APP.\n"
        " - confidence: number between 0 and 1.\n"
        " - domain: short business domain (e.g. 'e-commerce', 'productivity').\n"
        " - complexity: one of simple, standard, complex.\n"
        " - entities: main nouns the user wants built (e.g. ['Todo', 'User']).\n"
        " - requirements: short functional requirements.\n\n"
        f"REQUEST:\n{prompt}\n\nCONTEXT:\n{ctx}\n"
    )


def build_enriched_prompt(prompt: str, analysis: Optional[PromptAnalysis], scope: Scope) -> str:
    """Scope-aware prompt for the raw text generator."""
    lo, hi = scope.expected_file_count.min, scope.expected_file_count.max
    lines = [
        "You are a senior engineer generating production-ready source code.",
        "",
        QUALITY_PROTOCOL,
        SCOPE_INSTRUCTIONS[scope.type],
        f"FILE COUNT: produce between {lo} and {hi} files.",
        "",
        OUTPUT_FORMAT,
    ]
    if analysis is not None:
        if analysis.entities:
            lines.append(f"MAIN ENTITIES: {', '.join(analysis.entities)}")
        if analysis.requirements:
            lines.append("REQUIREMENTS:")
            lines.extend(f" - {r}" for r in analysis.requirements)
        if analysis.domain and analysis.domain != "general":
            lines.append(f"DOMAIN: {analysis.domain}")
    lines += ["", "USER REQUEST:", prompt.strip()]
    return "\n".join(lines) + "\n"


# ---- multi-generator ----
FILES_CONTRACT = (
    "Return ONLY a JSON object: {\"files\": [{\"path\": \"relative/path.ext\", \"content\": \"...\"}]}.\n"
    "Content must be a string with the complete file. No markdown, no commentary.\n"
)

ROLE_INSTRUCTIONS = {
    "architecture": "Produce project scaffolding: package.json files, tsconfig, README and the folder layout "
                    "(client/ for React, server/ for Express).",
    "database": "Produce the database layer: schema (Prisma schema.prisma or SQL migrations) and seed data.",
    "backend": "Produce the Express server: server/src/server.ts, app setup, middleware and services.",
    "api": "Produce REST routes and controllers under server/src/routes and server/src/controllers, with "
           "input validation.",
    "ui": "Produce the React client under client/src: pages, components, hooks and an API client.",
    "tests": "Produce unit tests (Jest + Testing Library) for the files listed below.",
}


def build_subgenerator_prompt(role: str, description: Dict[str, Any],
                              existing_paths: Optional[List[str]] = None) -> str:
    lines = [
        f"You are the {role} generator of a full-stack code generation system.",
        ROLE_INSTRUCTIONS[role],
        "",
        FILES_CONTRACT,
        "PROJECT DESCRIPTION:",
        json.dumps(description, indent=2, ensure_ascii=False),
    ]
    if existing_paths:
        lines += ["", "FILES ALREADY GENERATED:"] + [f" - {p}" for p in existing_paths]
    return "\n".join(lines) + "\n"
