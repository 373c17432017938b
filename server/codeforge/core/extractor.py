# codeforge/core/extractor.py
"""
Source extraction.

The text generator gives no structural guarantee, so raw output is sliced into
files by a cascade of independent strategies. Each strategy is a pure function
``text -> Optional[List[GeneratedFile]]``; the first one that returns a
non-empty list wins and the rest are never called. When every strategy comes
back empty, a single fallback file is produced, so extraction always yields
at least one file.
"""
import json
import logging
import os
import re
from typing import Callable, List, Optional, Sequence, Tuple

from codeforge.core.aggregator import create_file, dedupe_paths
from codeforge.core.manifest import render_fallback_component
from codeforge.models import GeneratedFile

logger = logging.getLogger(__name__)

Strategy = Callable[[str], Optional[List[GeneratedFile]]]

HEADER_MIN_CODE = 10
SEGMENT_MIN_CODE = 50
DEFAULT_NAME = "Component"
FALLBACK_NAME = "App"

FENCE_RE = re.compile(r"```([^\n`]*)\n([\s\S]*?)```")
FENCE_LINE_RE = re.compile(r"^\s*```[^\n]*$", re.MULTILINE)
PATH_MARKER_RE = re.compile(
    r"^[ \t]*//[ \t]*(?:[Ff]ile:[ \t]*)?([\w@.\-]+(?:/[\w@.\-\[\]]+)*\.[A-Za-z0-9]+)[ \t]*$",
    re.MULTILINE,
)
BOUNDARY_RE = re.compile(
    r"^[ \t]*(?:export[ \t]+default[ \t]+function[ \t]+([A-Za-z_]\w*)"
    r"|export[ \t]+function[ \t]+([A-Za-z_]\w*)"
    r"|(?:export[ \t]+)?const[ \t]+([A-Za-z_]\w*)[ \t]*:[ \t]*[A-Z][\w.]*)",
    re.MULTILINE,
)

NAME_PATTERNS = [
    re.compile(r"export\s+default\s+(?:function|const|class)\s+([A-Za-z_]\w*)"),
    re.compile(r"export\s+(?:function|const|class)\s+([A-Za-z_]\w*)"),
    re.compile(r"const\s+([A-Za-z_]\w*)\s*:\s*[A-Z][\w.]*"),
    re.compile(r"class\s+([A-Za-z_]\w*)"),
]

JSON_SINGULAR_KEYS = {"server": ("src/server.ts", "Server"), "app": ("src/app.ts", "App")}
JSON_COLLECTION_KEYS = [
    "controllers", "services", "middleware", "models",
    "routes", "config", "utils", "validators",
]

ENTITY_MAP = [
    ("botão", "Button"), ("button", "Button"),
    ("card", "Card"), ("cartão", "Card"),
    ("modal", "Modal"), ("dialog", "Dialog"), ("diálogo", "Dialog"),
    ("formulário", "Form"), ("form", "Form"),
    ("lista", "List"), ("list", "List"),
    ("tabela", "Table"), ("table", "Table"),
    ("navbar", "Navbar"), ("sidebar", "Sidebar"), ("menu", "Menu"),
    ("footer", "Footer"), ("header", "Header"),
    ("input", "Input"), ("textarea", "Textarea"), ("select", "Select"),
    ("checkbox", "Checkbox"), ("radio", "Radio"),
    ("toggle", "Toggle"), ("switch", "Switch"), ("slider", "Slider"),
    ("dropdown", "Dropdown"), ("tooltip", "Tooltip"), ("popover", "Popover"),
    ("alert", "Alert"), ("notification", "Notification"),
    ("badge", "Badge"), ("avatar", "Avatar"),
    ("image", "Image"), ("icon", "Icon"),
    ("spinner", "Spinner"), ("loader", "Loader"),
    ("progress", "Progress"), ("stepper", "Stepper"),
    ("tabs", "Tabs"), ("accordion", "Accordion"),
    ("carousel", "Carousel"), ("pagination", "Pagination"),
    ("breadcrumb", "Breadcrumb"), ("chip", "Chip"), ("tag", "Tag"), ("divider", "Divider"),
]

# sentence-initial words that are never the thing being built
NON_ENTITY_WORDS = {
    "Create", "Build", "Make", "Generate", "Write", "Add", "Design", "Implement",
    "Crie", "Criar", "Faça", "Gere", "Please", "The", "An", "Can", "Could", "I",
}

GENERIC_NAMES = {"Item", "Component", "Element", "Widget"}


# ---- helpers ----
def strip_fences(text: str) -> str:
    """Drop markdown fence lines and surrounding whitespace."""
    return FENCE_LINE_RE.sub("", text or "").strip()


def derive_name(path: Optional[str], code: str) -> str:
    """Display name: basename of a known path, else the first declaration found, else a placeholder."""
    if path:
        stem = os.path.basename(path.replace("\\", "/")).split(".")[0]
        if stem:
            return stem
    for pattern in NAME_PATTERNS:
        m = pattern.search(code or "")
        if m:
            return m.group(1)
    return DEFAULT_NAME


def extract_main_entity(prompt: Optional[str]) -> str:
    """Main UI entity named by a request, e.g. "create a botão azul" -> "Button"."""
    text = prompt or ""
    lowered = text.lower()
    for keyword, entity in ENTITY_MAP:
        if re.search(rf"(?<!\w){re.escape(keyword)}s?(?!\w)", lowered):
            return entity
    for word in re.findall(r"\b([A-Z][a-z]+)\b", text):
        if word not in NON_ENTITY_WORDS:
            return word
    return DEFAULT_NAME


# ---- strategies ----
def from_fenced_headers(text: str) -> Optional[List[GeneratedFile]]:
    """```component:Name:lang:path or ```lang:path fences."""
    files: List[GeneratedFile] = []
    for header, body in FENCE_RE.findall(text):
        parts = [p.strip() for p in header.strip().split(":")]
        name = path = None
        if len(parts) >= 4 and parts[0].lower() == "component":
            name, path = parts[1], ":".join(parts[3:])
        elif len(parts) == 2 and os.path.splitext(parts[1])[1]:
            path = parts[1]
            name = derive_name(path, body)
        code = body.strip()
        if name and path and len(code) > HEADER_MIN_CODE:
            files.append(create_file(path, code, name=name))
    return files or None


def from_path_markers(text: str) -> Optional[List[GeneratedFile]]:
    """Segments introduced by `// path/to/File.tsx` (or `// File: ...`) lines."""
    markers = list(PATH_MARKER_RE.finditer(text))
    if not markers:
        return None
    files: List[GeneratedFile] = []
    for i, m in enumerate(markers):
        end = markers[i + 1].start() if i + 1 < len(markers) else len(text)
        code = strip_fences(text[m.end():end])
        if len(code) > SEGMENT_MIN_CODE:
            path = m.group(1)
            files.append(create_file(path, code, name=derive_name(path, code)))
    return files or None


def from_generic_fences(text: str) -> Optional[List[GeneratedFile]]:
    """Any fence; a `// path` comment as first line (or right before the fence) gives the path."""
    files: List[GeneratedFile] = []
    for m in FENCE_RE.finditer(text):
        body = m.group(2)
        path = None
        first, _, rest = body.lstrip("\n").partition("\n")
        marker = PATH_MARKER_RE.match(first)
        if marker:
            path, body = marker.group(1), rest
        else:
            before = text[:m.start()].rstrip("\n").rsplit("\n", 1)[-1]
            marker = PATH_MARKER_RE.match(before)
            if marker:
                path = marker.group(1)
        code = body.strip()
        if len(code) <= SEGMENT_MIN_CODE:
            continue
        name = derive_name(path, code)
        files.append(create_file(path or f"src/components/{name}.tsx", code, name=name))
    return files or None


def from_declarations(text: str) -> Optional[List[GeneratedFile]]:
    """Bare source sliced at top-level declaration boundaries."""
    code = strip_fences(text)
    bounds = list(BOUNDARY_RE.finditer(code))
    if not bounds:
        return None
    if len(bounds) == 1:
        name = next(g for g in bounds[0].groups() if g)
        return [create_file(f"src/{name}.tsx", code, name=name)]

    files: List[GeneratedFile] = []
    preamble = code[:bounds[0].start()]
    for i, m in enumerate(bounds):
        end = bounds[i + 1].start() if i + 1 < len(bounds) else len(code)
        chunk = code[m.start():end].strip()
        if i == 0 and preamble.strip():
            chunk = preamble.strip() + "\n\n" + chunk
        if len(chunk) <= SEGMENT_MIN_CODE:
            continue
        name = next(g for g in m.groups() if g)
        files.append(create_file(f"src/components/{name}.tsx", chunk, name=name))
    return files or None


def _json_entry(value, default_path: str, default_name: str) -> Optional[Tuple[str, str, str]]:
    if isinstance(value, str):
        return default_path, value, default_name
    if isinstance(value, dict):
        content = value.get("content") or value.get("code")
        if isinstance(content, str):
            return value.get("path") or default_path, content, value.get("name") or default_name
    return None


def from_json_payload(text: str) -> Optional[List[GeneratedFile]]:
    """A JSON object keyed by known backend collections."""
    try:
        data = json.loads(strip_fences(text))
    except (ValueError, TypeError):
        return None
    if not isinstance(data, dict):
        return None

    files: List[GeneratedFile] = []
    for key, (default_path, default_name) in JSON_SINGULAR_KEYS.items():
        entry = _json_entry(data.get(key), default_path, default_name)
        if entry:
            path, content, name = entry
            files.append(create_file(path, content, name=name))

    for key in JSON_COLLECTION_KEYS:
        items = data.get(key)
        if isinstance(items, dict):
            items = [items]
        if not isinstance(items, list):
            continue
        for item in items:
            if not isinstance(item, dict):
                continue
            name, content = item.get("name"), item.get("content") or item.get("code")
            if not name or not isinstance(content, str):
                continue
            filename = name if os.path.splitext(name)[1] else f"{name}.ts"
            folder = item.get("path") or f"src/{key}"
            path = folder if os.path.splitext(folder)[1] else f"{folder.rstrip('/')}/{filename}"
            files.append(create_file(path, content, name=os.path.splitext(name)[0]))
    return files or None


def fallback_file(text: str, prompt: Optional[str] = None) -> GeneratedFile:
    """Last resort: the whole stripped text as one entry-point file."""
    name = extract_main_entity(prompt) if prompt else FALLBACK_NAME
    content = strip_fences(text) or render_fallback_component(prompt or "")
    return create_file(f"src/{name}.tsx", content, name=name, generator="fallback")


STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("fenced_header", from_fenced_headers),
    ("path_markers", from_path_markers),
    ("generic_fences", from_generic_fences),
    ("declarations", from_declarations),
    ("json_payload", from_json_payload),
)


def extract_files(raw_text: str, prompt: Optional[str] = None,
                  strategies: Optional[Sequence[Tuple[str, Strategy]]] = None) -> List[GeneratedFile]:
    """Run the cascade. Never raises; always returns at least one file."""
    text = raw_text or ""
    for name, strategy in (strategies if strategies is not None else STRATEGIES):
        try:
            files = strategy(text)
        except Exception as e:
            logger.debug("extraction strategy %s raised %r, skipping", name, e)
            continue
        if files:
            logger.info("extraction strategy %s produced %d file(s)", name, len(files))
            return dedupe_paths(files)
    logger.warning("no extraction strategy matched, using fallback file")
    return [fallback_file(text, prompt)]


# ---- naming repair ----
def repair_generic_names(files: List[GeneratedFile], entity: str) -> List[GeneratedFile]:
    """
    Rename files extracted under a generic name (Item, Component, ...) to the
    request's main entity. Path, filename and identifiers in content follow.
    """
    if not entity or entity in GENERIC_NAMES:
        return files
    for f in files:
        old = f.name
        if old not in GENERIC_NAMES or old == entity:
            continue
        folder = os.path.dirname(f.path)
        new_filename = re.sub(rf"^{old}(?=\d*\.|\d*$)", entity, f.filename)
        f.filename = new_filename
        f.path = f"{folder}/{new_filename}" if folder else new_filename
        f.name = entity
        f.content = re.sub(rf"(?<![\w.]){old}Props\b", f"{entity}Props", f.content)
        f.content = re.sub(rf"(?<![\w.]){old}(?!\w)", entity, f.content)
        f.metadata.auto_fixed_naming = True
        f.metadata.original_name = old
        f.touch()
        logger.info("renamed generic %s to %s (%s)", old, entity, f.path)
    return files
