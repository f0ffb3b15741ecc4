"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

    1. config/config.yaml - static defaults checked into the repo
       (ingestion source URLs, nav labels, category)
    2. .env file - local developer overrides (not committed)
    3. Environment vars - set at deploy time

:func:`load_config` reads the YAML file first, then deep-merges the values
that :class:`Settings` actually received from the environment (or ``.env``)
on top.  Settings left at their class default never clobber a YAML value.
"""

from pathlib import Path

import yaml

from sitechat.config.settings import Settings

# (section, key) in the YAML document  ->  Settings field
_ENV_OVERRIDES: dict[tuple[str, str], str] = {
    ("app", "host"): "app_host",
    ("app", "port"): "app_port",
    ("app", "env"): "app_env",
    ("llm", "base_url"): "openai_base_url",
    ("llm", "text_model"): "openai_text_model",
    ("llm", "embedding_model"): "openai_embedding_model",
    ("vector_store", "backend"): "vector_store_backend",
    ("vector_store", "namespace"): "vector_namespace",
    ("ingestion", "nav_labels"): "nav_labels",
    ("ingestion", "category"): "corpus_category",
    ("logging", "level"): "log_level",
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.
        settings: Settings to merge; a fresh ``Settings()`` when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides: dict = {}
    for (section, key), field_name in _ENV_OVERRIDES.items():
        if field_name in settings.model_fields_set:
            env_overrides.setdefault(section, {})[key] = getattr(settings, field_name)

    _deep_merge(yaml_config, _drop_empty(env_overrides))
    return yaml_config


def get_source_urls(config: dict) -> list[str]:
    """Return the configured ingestion source URLs, in file order."""
    urls = (config.get("ingestion") or {}).get("source_urls") or []
    return [str(u).strip() for u in urls if str(u).strip()]


def get_section(config: dict, section: str) -> dict:
    """Return one top-level section of the resolved config (``{}`` if absent)."""
    value = config.get(section)
    return value if isinstance(value, dict) else {}


def _drop_empty(values: dict) -> dict:
    """Remove empty-string leaves so a blank env var keeps the YAML value."""
    cleaned: dict = {}
    for key, value in values.items():
        if isinstance(value, dict):
            cleaned[key] = _drop_empty(value)
        elif value != "":
            cleaned[key] = value
    return cleaned


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
