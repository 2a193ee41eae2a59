"""Loading and validation of the YAML light configuration."""

from __future__ import annotations

import json
import logging
import os
import re
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from homelight.core.errors import ConfigLoadError, ConfigValidationError
from homelight.core.model import CacheSettings, LightConfig, LoadedConfig

_UUID_RE = re.compile(r"^[0-9a-f]{4}$|^[0-9a-f]{8}$|^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")
_MAC_RE = re.compile(r"^[0-9A-F]{2}(?::[0-9A-F]{2}){5}$")
_BLUETOOTH_BASE_UUID_SUFFIX = "-0000-1000-8000-00805f9b34fb"
DEFAULT_CHAR_UUID = "0000dfb1" + _BLUETOOTH_BASE_UUID_SUFFIX
CONFIG_ENV_VAR = "HOMELIGHT_CONFIG"
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


def _load_schema_validator() -> Any:
    schema_text = resources.files("homelight.schemas").joinpath("lights.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "homelight/lights.yaml"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def normalize_uuid(value: str, *, context: str) -> str:
    """Validate a characteristic UUID and expand 16/32-bit forms to 128-bit."""
    normalized = value.strip().lower()
    if not _UUID_RE.match(normalized):
        raise ConfigValidationError(
            f"{context} must be a 16-bit, 32-bit, or 128-bit UUID string"
        )
    if len(normalized) == 4:
        return f"0000{normalized}{_BLUETOOTH_BASE_UUID_SUFFIX}"
    if len(normalized) == 8:
        return f"{normalized}{_BLUETOOTH_BASE_UUID_SUFFIX}"
    return normalized


def normalize_address(value: str, *, context: str) -> str:
    normalized = value.strip().upper()
    if _MAC_RE.match(normalized):
        return normalized
    # CoreBluetooth identifies peripherals by UUID rather than MAC address.
    if _UUID_RE.match(normalized.lower()) and len(normalized) == 36:
        return normalized
    raise ConfigValidationError(f"{context} must be a MAC address or a peripheral UUID")


def _build_config(doc: dict[str, Any], source: Path) -> LoadedConfig:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    cache_doc = doc.get("cache", {})
    query_timeout = cache_doc.get("query_timeout_s")
    cache = CacheSettings(
        ttl_s=float(cache_doc.get("ttl_s", CacheSettings.ttl_s)),
        query_timeout_s=float(query_timeout) if query_timeout is not None else None,
    )

    lights: dict[int, LightConfig] = {}
    for light_doc in doc["lights"]:
        light_id = int(light_doc["id"])
        if light_id in lights:
            raise ConfigValidationError(f"Duplicate light id {light_id} in {source}")
        context = f"lights[{light_id}]"
        lights[light_id] = LightConfig(
            id=light_id,
            name=light_doc["name"],
            address=normalize_address(light_doc["address"], context=f"{context}.address"),
            notify_char_uuid=normalize_uuid(
                light_doc.get("notify_char_uuid", DEFAULT_CHAR_UUID),
                context=f"{context}.notify_char_uuid",
            ),
            write_char_uuid=normalize_uuid(
                light_doc.get("write_char_uuid", light_doc.get("notify_char_uuid", DEFAULT_CHAR_UUID)),
                context=f"{context}.write_char_uuid",
            ),
            connect_timeout_s=float(light_doc.get("connect_timeout_s", LightConfig.connect_timeout_s)),
        )

    return LoadedConfig(lights=lights, cache=cache, warnings=())


def load_config(path: Path | None = None) -> LoadedConfig:
    config_path = path or default_config_path()
    if path is None and not config_path.exists():
        warning = f"No light configuration found at {config_path}"
        LOGGER.info(warning)
        return LoadedConfig(lights={}, cache=CacheSettings(), warnings=(warning,))

    doc = _read_yaml(config_path)
    return _build_config(doc, config_path)
