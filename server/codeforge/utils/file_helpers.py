import os
import re
from typing import Optional


# --- Helper: safe path normalize & reject traversal/abs paths ---
def safe_normalize(p: str) -> Optional[str]:
    """
    Normalize a generated relative path to single forward slashes with no
    leading or trailing slash. Returns None for empty, absolute or
    traversing paths.
    """
    if not isinstance(p, str) or p.strip() == "":
        return None
    p = p.strip().replace("\\", "/")
    if p.startswith("/") or re.match(r"^[A-Za-z]:/", p):
        return None
    clean = os.path.normpath(p).replace("\\", "/")
    if clean == ".." or clean.startswith("../") or "/../" in clean:
        return None
    while clean.startswith("./"):
        clean = clean[2:]
    clean = re.sub(r"/+", "/", clean).strip("/")
    if clean in ("", "."):
        return None
    return clean


def join_path(folder: str, filename: str) -> str:
    """Join a folder and a filename with exactly one separator."""
    folder = (folder or "").replace("\\", "/").strip().strip("/")
    filename = (filename or "").replace("\\", "/").strip().strip("/")
    if not folder:
        return filename
    if not filename:
        return folder
    return f"{folder}/{filename}"
