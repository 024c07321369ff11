import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "model": "gemini",  # provider: gemini | anthropic | openai
    "model_name": None,  # None = provider default
    "gemini_model": None,  # GEMINI_MODEL; used only when model is gemini
    "max_files": 40,
    "max_lines_per_file": 1500,
    "exclude": [],  # fnmatch patterns or directory names to skip (e.g. "migrations/", "*.snap")
    "repositories": [],  # "owner/name" entries watched by `diffsentry poll`
    "poll_interval": 120,
    "review_delay": 5,
    "chunk_delay": 1,
    "model_retries": 0,
    "retention_days": 7,
    "sweep_interval": 3600,
    "host": "0.0.0.0",
    "port": 3000,
}

# Environment overrides for non-secret settings, with the type to coerce to.
_ENV_OVERRIDES = {
    "GEMINI_MODEL": ("gemini_model", str),
    "MAX_FILES": ("max_files", int),
    "MAX_LINES_PER_FILE": ("max_lines_per_file", int),
}


def load_config(config_path: str = ".diffsentry.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .diffsentry.yml in the current directory
      3. Environment variable overrides
      4. CLI argument overrides
    """
    config = {
        **DEFAULT_CONFIG,
        "exclude": list(DEFAULT_CONFIG["exclude"]),
        "repositories": list(DEFAULT_CONFIG["repositories"]),
    }

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    for env_var, (key, cast) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            try:
                config[key] = cast(value)
            except ValueError:
                raise ValueError(f"Invalid value for {env_var}: {value!r}")

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["gemini_api_key"] = os.environ.get("GEMINI_API_KEY")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    config["webhook_secret"] = os.environ.get("GITHUB_WEBHOOK_SECRET")

    return config


def api_key_env_for(provider: str) -> str:
    return {
        "gemini": "GEMINI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
        "openai": "OPENAI_API_KEY",
    }.get(provider, "GEMINI_API_KEY")


def parse_repository(slug: str) -> tuple[str, str]:
    """Split "owner/name" into its parts."""
    owner, sep, name = slug.strip().partition("/")
    if not sep or not owner or not name or "/" in name:
        raise ValueError(f"Invalid repository {slug!r}; expected owner/name.")
    return owner, name
