from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Any, Iterator, Mapping, MutableMapping, Optional, Sequence

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

from kiosk_media.config.models import AppConfig, ConfigLoadRequest

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_TEMPLATE = Path("examples/config.yaml")
_DATA_SUBDIRECTORIES = ("config", "cache", "logs")


def _seed_from_template(target_path: Path) -> None:
    if target_path.exists() or not DEFAULT_CONFIG_TEMPLATE.exists():
        return
    target_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(DEFAULT_CONFIG_TEMPLATE, target_path)
    logger.info("config.seeded path=%s template=%s", target_path, DEFAULT_CONFIG_TEMPLATE)


def _prepare_data_root(yaml_path: Path) -> None:
    # Only the conventional data/config/config.yaml location owns a data root.
    if yaml_path.parent.name != "config":
        return
    for name in _DATA_SUBDIRECTORIES:
        (yaml_path.parent.parent / name).mkdir(parents=True, exist_ok=True)


def _read_yaml_mapping(path: Path) -> dict[str, Any]:
    _seed_from_template(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Top-level YAML must be a mapping, got: {type(data).__name__}")
    return data


def _section_model(path: Sequence[str]) -> Optional[type[BaseModel]]:
    """The settings model addressed by `path`, or None when `path` is not a section."""
    model: type[BaseModel] = AppConfig
    for segment in path:
        field = model.model_fields.get(segment)
        annotation = field.annotation if field is not None else None
        if not (isinstance(annotation, type) and issubclass(annotation, BaseModel)):
            return None
        model = annotation
    return model


def _iter_env_overrides(environ: Mapping[str, str], prefix: str) -> Iterator[tuple[list[str], str]]:
    for name, value in environ.items():
        if not name.startswith(prefix):
            continue
        segments = [part.lower() for part in name[len(prefix) :].split("__") if part]
        if not segments:
            raise ValueError(f"Invalid environment variable override name: {name}")
        yield segments, value


def _apply_override(config: MutableMapping[str, Any], segments: Sequence[str], value: str) -> None:
    dotted = ".".join(segments)
    section = _section_model(segments[:-1])
    if section is None or segments[-1] not in section.model_fields:
        raise KeyError(f"Unknown configuration key path: {dotted}")

    target: MutableMapping[str, Any] = config
    for segment in segments[:-1]:
        # Sections with defaults may be absent from YAML.
        child = target.setdefault(segment, {})
        if not isinstance(child, dict):
            raise TypeError(f"Configuration key path does not point to a mapping: {dotted}")
        target = child

    # Strings only; pydantic coerces them during validation.
    target[segments[-1]] = value


class YamlConfigLoader:
    """YAML file, then `.env`, then `APP__SECTION__KEY` environment variables; validated last."""

    async def load(self, request: ConfigLoadRequest = ConfigLoadRequest()) -> AppConfig:
        yaml_path = Path(request.yaml_path)
        _prepare_data_root(yaml_path)
        config = _read_yaml_mapping(yaml_path)

        if request.dotenv_path is not None and Path(request.dotenv_path).exists():
            load_dotenv(dotenv_path=request.dotenv_path, override=False)

        for segments, value in _iter_env_overrides(os.environ, request.env_prefix):
            _apply_override(config, segments, value)
        return AppConfig.model_validate(config)
