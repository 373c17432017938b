# codeforge/core/aggregator.py
"""
File aggregation: turns loose (path, content) pairs coming from extraction or
from structured generators into normalized GeneratedFile objects, merges
per-stage file lists and derives the project folder tree.
"""
import logging
import os
import re
from typing import Any, Dict, Iterable, List, Optional

from codeforge.models import FileMetadata, FileType, GeneratedFile, ProjectStructure
from codeforge.utils.file_helpers import join_path, safe_normalize

logger = logging.getLogger(__name__)

EXTENSION_TYPES = {
    ".tsx": (FileType.TSX, "typescript"),
    ".jsx": (FileType.JSX, "javascript"),
    ".ts": (FileType.TYPESCRIPT, "typescript"),
    ".js": (FileType.JAVASCRIPT, "javascript"),
    ".mjs": (FileType.JAVASCRIPT, "javascript"),
    ".cjs": (FileType.JAVASCRIPT, "javascript"),
    ".css": (FileType.CSS, "css"),
    ".scss": (FileType.CSS, "scss"),
    ".html": (FileType.HTML, "html"),
    ".json": (FileType.JSON, "json"),
    ".md": (FileType.MARKDOWN, "markdown"),
    ".py": (FileType.PYTHON, "python"),
    ".prisma": (FileType.PRISMA, "prisma"),
}

IMPORT_RE = re.compile(r"""import\s+(?:[^'";]+?\s+from\s+)?['"]([^'"]+)['"]""")
REQUIRE_RE = re.compile(r"""require\(\s*['"]([^'"]+)['"]\s*\)""")
COMPLEXITY_KEYWORDS = ["if", "else", "for", "while", "switch", "case", "catch"]


def detect_file_type(path: str) -> FileType:
    ext = os.path.splitext(path or "")[1].lower()
    return EXTENSION_TYPES.get(ext, (FileType.OTHER, "text"))[0]


def detect_language(path: str) -> str:
    ext = os.path.splitext(path or "")[1].lower()
    return EXTENSION_TYPES.get(ext, (FileType.OTHER, "text"))[1]


def _package_root(spec: str) -> Optional[str]:
    """'@scope/pkg/sub' -> '@scope/pkg', 'lodash/fp' -> 'lodash'; None for local paths and aliases."""
    if not spec or spec.startswith((".", "/", "@/", "~/", "#")) or ":" in spec:
        return None
    parts = spec.split("/")
    if spec.startswith("@"):
        return "/".join(parts[:2]) if len(parts) >= 2 else None
    return parts[0]


def extract_dependencies(content: str) -> List[str]:
    """Non-relative package imports of a source file, in first-seen order."""
    found: List[str] = []
    for spec in IMPORT_RE.findall(content or "") + REQUIRE_RE.findall(content or ""):
        root = _package_root(spec.strip())
        if root and root not in found:
            found.append(root)
    return found


def calculate_complexity(content: str) -> int:
    """Rough cyclomatic complexity: 1 + decision points."""
    text = content or ""
    score = 1
    for kw in COMPLEXITY_KEYWORDS:
        score += len(re.findall(rf"\b{kw}\b", text))
    score += text.count("&&") + text.count("||")
    return score


def count_lines(content: str) -> int:
    return len([ln for ln in (content or "").splitlines() if ln.strip()])


def name_from_path(path: str) -> str:
    base = os.path.basename(path or "")
    stem = base.split(".")[0] if base else ""
    return stem or "Component"


def create_file(path: str, content: str, name: Optional[str] = None,
                generator: str = "extractor") -> GeneratedFile:
    """
    Build a GeneratedFile with a normalized path and derived metadata.
    Unsafe paths (absolute, traversal) are reduced to their basename under src/.
    """
    clean = safe_normalize(path)
    if clean is None:
        base = os.path.basename((path or "").replace("\\", "/"))
        clean = safe_normalize(join_path("src", base)) or f"src/{name or 'Component'}.tsx"
        logger.warning("unsafe or empty path %r replaced by %s", path, clean)
    content = content or ""
    return GeneratedFile(
        path=clean,
        filename=os.path.basename(clean),
        name=name or name_from_path(clean),
        content=content,
        language=detect_language(clean),
        type=detect_file_type(clean),
        metadata=FileMetadata(
            generator=generator,
            dependencies=extract_dependencies(content),
            lines_of_code=count_lines(content),
            complexity=calculate_complexity(content),
        ),
    )


def merge_files(*file_lists: Iterable[GeneratedFile]) -> List[GeneratedFile]:
    """
    Merge per-stage lists. A later file with the same path replaces the earlier
    one but keeps the earlier position.
    """
    by_path: Dict[str, GeneratedFile] = {}
    order: List[str] = []
    for files in file_lists:
        for f in files or []:
            if f.path not in by_path:
                order.append(f.path)
            else:
                logger.debug("duplicate path %s, keeping latest", f.path)
            by_path[f.path] = f
    return [by_path[p] for p in order]


def dedupe_paths(files: List[GeneratedFile]) -> List[GeneratedFile]:
    """
    Give files that share a path a numeric suffix (Button.tsx, Button2.tsx) so
    every file survives. First occurrence keeps its path.
    """
    seen = set()
    for f in files:
        if f.path in seen:
            stem, ext = os.path.splitext(f.path)
            n = 2
            while f"{stem}{n}{ext}" in seen:
                n += 1
            old = f.path
            f.path = f"{stem}{n}{ext}"
            f.filename = os.path.basename(f.path)
            logger.info("duplicate path %s renamed to %s", old, f.path)
        seen.add(f.path)
    return files


def build_structure(paths: Iterable[str]) -> ProjectStructure:
    """
    Folder tree from paths. Filenames at each level are sorted, so the same set
    of paths always produces the same tree regardless of input order.
    """
    root: Dict[str, Any] = {"folders": {}, "files": set()}
    for raw in paths:
        clean = safe_normalize(raw)
        if clean is None:
            continue
        *folders, filename = clean.split("/")
        node = root
        for segment in folders:
            node = node["folders"].setdefault(segment, {"folders": {}, "files": set()})
        node["files"].add(filename)

    def _freeze(node: Dict[str, Any]) -> ProjectStructure:
        return ProjectStructure(
            folders={k: _freeze(node["folders"][k]) for k in sorted(node["folders"])},
            files=sorted(node["files"]),
        )

    return _freeze(root)


def collect_dependencies(files: Iterable[GeneratedFile]) -> List[str]:
    deps = set()
    for f in files:
        deps.update(f.metadata.dependencies)
    return sorted(deps)


# ---- structured generator output ----
def _entry_path(entry: Dict[str, Any], default_folder: str) -> Optional[str]:
    path = entry.get("path") or entry.get("filePath") or entry.get("file")
    name = entry.get("filename") or entry.get("name")
    if path and name and not os.path.splitext(str(path))[1]:
        return join_path(str(path), str(name))
    if path:
        return str(path)
    if name:
        return join_path(default_folder, str(name))
    return None


def _entry_content(entry: Dict[str, Any]) -> Optional[str]:
    for key in ("content", "code", "source"):
        value = entry.get(key)
        if isinstance(value, str):
            return value
    return None


def _from_entries(entries: Any, default_folder: str, generator: str) -> List[GeneratedFile]:
    out: List[GeneratedFile] = []
    if isinstance(entries, dict):
        entries = [entries]
    if not isinstance(entries, list):
        return out
    for entry in entries:
        if isinstance(entry, GeneratedFile):
            out.append(entry)
            continue
        if not isinstance(entry, dict):
            continue
        path = _entry_path(entry, default_folder)
        content = _entry_content(entry)
        if not path or content is None:
            continue
        out.append(create_file(path, content, generator=generator))
    return out


BACKEND_SHAPE = {
    "server": "src",
    "app": "src",
    "routes": "src/routes",
    "controllers": "src/controllers",
    "services": "src/services",
    "middleware": "src/middleware",
    "models": "src/models",
    "schema": "prisma",
}

FRONTEND_SHAPE = {
    "pages": "src/pages",
    "components": "src/components",
    "hooks": "src/hooks",
}


def files_from_generator_output(output: Any, generator: str) -> List[GeneratedFile]:
    """
    Normalize whatever a structured sub-generator returned into files.
    Accepted shapes: {"files": [...]}, a bare list, {"components": [{"files": [...]}]},
    the backend object shape and the frontend object shape.
    """
    if output is None:
        return []
    if isinstance(output, list):
        return _from_entries(output, "src", generator)
    if not isinstance(output, dict):
        return []

    if isinstance(output.get("files"), list):
        return _from_entries(output["files"], "src", generator)

    comps = output.get("components")
    if isinstance(comps, list) and any(isinstance(c, dict) and "files" in c for c in comps):
        out: List[GeneratedFile] = []
        for comp in comps:
            if isinstance(comp, dict):
                out.extend(_from_entries(comp.get("files"), "src/components", generator))
        return out

    out = []
    for key, folder in list(BACKEND_SHAPE.items()) + list(FRONTEND_SHAPE.items()):
        value = output.get(key)
        if value is None:
            continue
        default_name = "schema.prisma" if key == "schema" else f"{key}.ts"
        if isinstance(value, str):
            out.append(create_file(join_path(folder, default_name), value, generator=generator))
        elif isinstance(value, dict) and _entry_path(value, folder) is None:
            out.extend(_from_entries(dict(value, name=default_name), folder, generator))
        else:
            out.extend(_from_entries(value, folder, generator))
    return out
