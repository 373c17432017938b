# codeforge/core/manifest.py
import json
from typing import Dict, List, Optional

from codeforge.models import GeneratedFile, Scope

PROJECT_NAME = "generated-project"


def render_package_json(dependencies: List[str],
                        versions: Optional[Dict[str, str]] = None,
                        name: str = PROJECT_NAME) -> str:
    """package.json text; a dependency without a pinned version gets "latest"."""
    versions = versions or {}
    pkg = {
        "name": name,
        "version": "1.0.0",
        "private": True,
        "dependencies": {dep: versions.get(dep) or "latest" for dep in sorted(set(dependencies))},
    }
    return json.dumps(pkg, indent=2)


def render_readme(files: List[GeneratedFile], scope: Optional[Scope] = None,
                  prompt: str = "") -> str:
    lines = ["# Generated Project", ""]
    if prompt:
        lines += [f"> {prompt.strip()}", ""]
    if scope is not None:
        lines += [f"Scope: **{scope.type.value}** ({scope.complexity.value})", ""]
    lines += ["## Files", ""]
    lines += [f"- **{f.name}** (`{f.path}`, {f.type.value})" for f in files]
    lines += [
        "",
        "## Installation",
        "",
        "```bash",
        "npm install",
        "```",
        "",
    ]
    return "\n".join(lines)


def render_fallback_component(prompt: str) -> str:
    """Minimal React entry point used when nothing could be extracted."""
    heading = (prompt or "").strip().replace("{", "&#123;").replace("}", "&#125;") or "Generated App"
    return (
        "import React from 'react';\n"
        "\n"
        "export default function App() {\n"
        "  return (\n"
        '    <div className="min-h-screen flex items-center justify-center p-8">\n'
        '      <div className="bg-white rounded-lg shadow p-8 max-w-2xl">\n'
        f'        <h1 className="text-3xl font-bold text-gray-800 mb-4">{heading}</h1>\n'
        '        <p className="text-gray-600">Generated placeholder. Try refining the request.</p>\n'
        "      </div>\n"
        "    </div>\n"
        "  );\n"
        "}\n"
    )
