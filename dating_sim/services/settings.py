"""
Settings layering: hard-coded defaults, then the user's global settings,
then the per-game-state override.
"""
import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from dating_sim.schemas.settings import GameSettings, SettingsUpdate

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = GameSettings()

_FIELD_NAMES = set(GameSettings.model_fields)
_ALIAS_TO_FIELD = {to_camel(name): name for name in _FIELD_NAMES}


def _known_fields(blob: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Read a stored settings blob leniently: accept camelCase or snake_case
    keys, drop unknown keys and null values.
    """
    if not blob:
        return {}
    known: Dict[str, Any] = {}
    dropped = []
    for key, value in blob.items():
        name = _ALIAS_TO_FIELD.get(key, key)
        if name not in _FIELD_NAMES:
            dropped.append(key)
            continue
        if value is not None:
            known[name] = value
    if dropped:
        logger.debug(f"Ignoring unknown stored settings keys: {dropped}")
    return known


def _layer(base: GameSettings, values: Dict[str, Any]) -> GameSettings:
    if not values:
        return base
    try:
        return GameSettings.model_validate({**base.model_dump(), **values})
    except ValidationError as e:
        # A corrupt stored value falls back to the layer below instead of failing the request
        bad_fields = {_ALIAS_TO_FIELD.get(str(err["loc"][0]), str(err["loc"][0])) for err in e.errors() if err.get("loc")}
        logger.warning(f"Ignoring invalid stored settings fields: {sorted(bad_fields)}")
        cleaned = {k: v for k, v in values.items() if k not in bad_fields}
        return GameSettings.model_validate({**base.model_dump(), **cleaned})


def effective_settings(
    user_settings: Optional[Mapping[str, Any]] = None,
    state_override: Optional[Mapping[str, Any]] = None,
    defaults: GameSettings = DEFAULT_SETTINGS,
) -> GameSettings:
    """Merge the game-state override over the user's globals over the defaults."""
    merged = _layer(defaults, _known_fields(user_settings))
    return _layer(merged, _known_fields(state_override))


def merge_settings(current: GameSettings, update: SettingsUpdate) -> GameSettings:
    """Apply only the fields set on `update`."""
    changes = update.model_dump(exclude_unset=True, exclude_none=True)
    return _layer(current, changes)


def settings_to_blob(settings: GameSettings) -> Dict[str, Any]:
    return settings.model_dump(by_alias=True)


def override_to_blob(update: Optional[SettingsUpdate]) -> Optional[Dict[str, Any]]:
    if update is None:
        return None
    return update.model_dump(by_alias=True, exclude_none=True)


def override_from_blob(blob: Optional[Mapping[str, Any]]) -> Optional[SettingsUpdate]:
    """Turn a stored override back into a partial update, dropping anything unrecognised."""
    if blob is None:
        return None
    known = _known_fields(blob)
    try:
        return SettingsUpdate.model_validate(known)
    except ValidationError as e:
        logger.warning(f"Discarding invalid stored settings override: {e.error_count()} error(s)")
        return SettingsUpdate()
