from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.category_request import Language, RequestOptions, language_for_locale
from ..models.config_models import DEFAULT_MAX_RECORDS, ColumnLayout, PipelineSettings

"""Config loader.

Responsibilities:
- Load YAML config/categorizer.yml (optional; every key has a default)
- Validate against the bundled config_schema.json
- Apply the CATEGORIZER_API_URL environment override (set directly or via .env)
- Build the PipelineSettings consumed by the orchestrator
"""

__all__ = [
    "API_URL_ENV",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "AppConfig",
    "ConfigError",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/categorizer.yml")
API_URL_ENV = "CATEGORIZER_API_URL"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class AppConfig:
    endpoint: str | None  # None -> 送信不可 (inspect のみ可能)
    timeout_seconds: float = 60.0
    max_submission_records: int = DEFAULT_MAX_RECORDS
    logs_dir: Path = Path("./logs")
    settings: PipelineSettings = field(default_factory=PipelineSettings)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing / not valid JSON, or the config
            data violates the schema
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = ".".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"config validation failed at {location}: {e.message}") from e


def _build_options(raw: dict[str, Any], locale: str | None) -> RequestOptions | None:
    # 未指定時は None (normalizer がロケールから言語を決定)
    if not raw:
        return None
    defaults = RequestOptions()
    language = Language(raw["language"]) if "language" in raw else language_for_locale(locale)
    return RequestOptions(
        language=language,
        semantic_top_k=raw.get("semantic_top_k", defaults.semantic_top_k),
        first_category_via_llm=raw.get("first_category_via_llm", defaults.first_category_via_llm),
        descriptive_title_via_llm=raw.get("descriptive_title_via_llm", defaults.descriptive_title_via_llm),
        round_out_keywords_via_llm=raw.get("round_out_keywords_via_llm", defaults.round_out_keywords_via_llm),
        broad_keyword_matching=raw.get("broad_keyword_matching", defaults.broad_keyword_matching),
    )


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")
    return data


def load_config(
    path: Path | None = None, *, required: bool = False, locale: str | None = None
) -> AppConfig:
    """Load configuration.

    Args:
        path: YAML file; defaults to config/categorizer.yml
        required: Raise when the file does not exist (explicit --config)
        locale: Active UI locale, used when request_defaults.language is unset

    Returns:
        AppConfig with defaults applied for every missing key
    """
    path = path or DEFAULT_CONFIG_PATH
    if path.exists():
        data = _read_yaml(path)
    elif required:
        raise ConfigError(f"config file not found: {path}")
    else:
        data = {}

    _validate_config_schema(data)

    api = data.get("api", {})
    limits = data.get("limits", {})
    processing = data.get("processing", {})
    request_defaults = data.get("request_defaults", {})
    columns = data.get("columns", {})

    max_total_records = limits.get("max_total_records", DEFAULT_MAX_RECORDS)
    max_submission_records = limits.get("max_submission_records", DEFAULT_MAX_RECORDS)
    # どちらのモードでも1回の送信は総上限まで膨らみうる
    if max_submission_records < max_total_records:
        raise ConfigError(
            f"limits.max_submission_records ({max_submission_records}) must be >= "
            f"limits.max_total_records ({max_total_records})"
        )

    # 環境変数 (.env 含む) が YAML より優先
    endpoint = os.getenv(API_URL_ENV) or api.get("endpoint")

    defaults = PipelineSettings()
    settings = PipelineSettings(
        max_total_records=max_total_records,
        inter_file_delay_seconds=float(
            limits.get("inter_file_delay_seconds", defaults.inter_file_delay_seconds)
        ),
        mode=processing.get("mode", defaults.mode),
        options=_build_options(request_defaults, locale),
        layout=ColumnLayout(**{**vars(ColumnLayout()), **columns}),
    )
    return AppConfig(
        endpoint=endpoint,
        timeout_seconds=float(api.get("timeout_seconds", 60.0)),
        max_submission_records=max_submission_records,
        logs_dir=Path(processing.get("logs_dir", "./logs")),
        settings=settings,
    )
