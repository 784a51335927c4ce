import re
from typing import Optional

_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9_]")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")
_VECTOR_TYPE_RE = re.compile(r"^\s*vector\s*\(\s*(\d+)\s*\)\s*$", re.IGNORECASE)

COLUMN_PREFIX = "embedded_"


def embedding_column_name(model_id: str) -> str:
    """
    Storage column holding vectors of one model, e.g.
    "Xenova/all-MiniLM-L6-v2" -> "embedded_xenova_all_minilm_l6_v2".
    """
    if not model_id or not model_id.strip():
        raise ValueError("model id must not be empty")
    return COLUMN_PREFIX + _UNSAFE_RE.sub("_", model_id.strip()).lower()


def is_safe_identifier(name: str) -> bool:
    """Table names are interpolated into SQL, so only plain (optionally schema-qualified) names pass."""
    return bool(name) and _IDENTIFIER_RE.match(name) is not None


def parse_vector_width(declared_type: Optional[str]) -> Optional[int]:
    """Width of a declared `vector(N)` type, None for any other type."""
    if not declared_type:
        return None
    m = _VECTOR_TYPE_RE.match(declared_type)
    return int(m.group(1)) if m else None


def vector_type(dimensionality: int) -> str:
    return f"vector({int(dimensionality)})"
