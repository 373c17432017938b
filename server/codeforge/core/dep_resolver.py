# codeforge/core/dep_resolver.py
"""
Dependency version resolver.

Given package names collected from generated imports, look up the latest
published version on the npm registry (dist-tags.latest). Results are kept in
a process-wide TTL cache. Lookups are best-effort: a package that cannot be
resolved is simply left out of the returned mapping and the manifest falls
back to "latest" for it.
"""
import logging
import time
import urllib.parse
from typing import Any, Dict, Iterable, List, Tuple

import requests

logger = logging.getLogger(__name__)

NPM_REGISTRY = "https://registry.npmjs.org"
NPM_CACHE_TTL = 24 * 3600
NPM_TIMEOUT = 10

_cache: Dict[str, Dict[str, Any]] = {}


def _lookup(name: str, session=requests) -> Tuple[str, str]:
    """-> (version or "", warning or "")"""
    # scoped names keep "@" and encode "/" (@scope%2Fpkg)
    url = f"{NPM_REGISTRY}/{urllib.parse.quote(name, safe='@')}"
    try:
        resp = session.get(url, timeout=NPM_TIMEOUT)
    except requests.RequestException as e:
        return "", f"failed to query registry for {name}: {e}"
    if resp.status_code == 404:
        return "", f"npm registry returned 404 for {name}"
    if resp.status_code != 200:
        return "", f"npm registry returned {resp.status_code} for {name}"
    try:
        data = resp.json()
    except ValueError:
        return "", f"unparseable registry response for {name}"
    ver = (data.get("dist-tags", {}) or {}).get("latest") or data.get("version")
    if not ver:
        versions = sorted((data.get("versions") or {}).keys())
        ver = versions[-1] if versions else ""
    return ver, "" if ver else f"no version found for {name} in registry response"


def resolve_versions(names: Iterable[str], session=requests) -> Dict[str, Any]:
    """
    Returns {"pinned": {name: version}, "warnings": [...]}. Cached entries
    younger than NPM_CACHE_TTL are reused without a network call.
    """
    pinned: Dict[str, str] = {}
    warnings: List[str] = []
    now = time.time()
    for name in names:
        entry = _cache.get(name)
        if entry and now - entry.get("ts", 0) < NPM_CACHE_TTL:
            pinned[name] = entry["ver"]
            continue
        ver, warning = _lookup(name, session=session)
        if ver:
            pinned[name] = ver
            _cache[name] = {"ver": ver, "ts": now}
        if warning:
            logger.warning(warning)
            warnings.append(warning)
    return {"pinned": pinned, "warnings": warnings}


def clear_cache() -> None:
    _cache.clear()
