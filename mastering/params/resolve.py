"""
Settings resolution: map aliases, merge onto schema defaults, then clamp.
Incoming values override defaults; unknown keys are ignored.
"""
import logging
from typing import Any, Dict, Mapping, Optional

from mastering.params.clamp import clamp_params
from mastering.params.schema import EXTRA_ALIASES, PARAM_SCHEMA, defaults

logger = logging.getLogger(__name__)

_ALIASES: Dict[str, str] = {entry["alias"]: name for name, entry in PARAM_SCHEMA.items()}
_ALIASES.update(EXTRA_ALIASES)


def canonical_key(key: str) -> Optional[str]:
    """snake_case field name for a field or alias, None if unknown."""
    if key in PARAM_SCHEMA:
        return key
    return _ALIASES.get(key)


def normalize_keys(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Rewrite aliased keys to field names. Canonical names win over aliases."""
    out: Dict[str, Any] = {}
    unknown = []
    for key, value in params.items():
        name = canonical_key(key)
        if name is None:
            unknown.append(key)
            continue
        if key == name or name not in out:
            out[name] = value
    if unknown:
        logger.debug("[Settings] ignoring unknown keys: %s", sorted(unknown))
    return out


def resolve_params(params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    Resolve params by:
    1. Starting from schema defaults
    2. Merging incoming params (aliases mapped to field names)
    3. Clamping every field to its range
    """
    merged = defaults()
    if params:
        merged.update(normalize_keys(params))
    return clamp_params(merged)
