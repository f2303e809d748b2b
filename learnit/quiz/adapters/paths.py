import secrets
import string
from typing import Any

_ID_ALPHABET = string.ascii_letters + string.digits
_ID_LENGTH = 20


def new_doc_id() -> str:
    """Random 20-char id, same shape as hosted document-store auto ids."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


def split_path(path: str) -> list[str]:
    parts = path.split(".")
    if any(not p for p in parts):
        raise ValueError(f"Invalid field path: '{path}'")
    return parts


def get_path(doc: dict[str, Any], path: str, default: Any = None) -> Any:
    node: Any = doc
    for part in split_path(path):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


def set_path(doc: dict[str, Any], path: str, value: Any) -> None:
    """Sets a dotted path, creating (or replacing non-dict) parents on the way."""
    parts = split_path(path)
    node = doc
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def deep_merge(target: dict[str, Any], patch: dict[str, Any]) -> None:
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            deep_merge(target[key], value)
        else:
            target[key] = value
