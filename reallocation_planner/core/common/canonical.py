import hashlib
import json
from typing import Any

from pydantic import BaseModel


def canonical_json(payload: Any) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def hash_canonical_payload(payload: Any) -> str:
    digest = hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()
    return f"sha256:{digest}"


def hash_model(model: BaseModel, *, exclude: set[str] | None = None) -> str:
    """Hash of a model's JSON form; amounts serialize as strings, so the hash is exact."""
    return hash_canonical_payload(model.model_dump(mode="json", exclude=exclude))
