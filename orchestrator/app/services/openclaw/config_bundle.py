"""Per-deployment secrets and OpenClaw configuration generation.

``generate_config_bundle`` is pure: it turns the request environment into a
fresh gateway token, the ``openclaw.json`` and ``auth-profiles.json``
documents, the container environment and the rendered startup script.
``write_config_bundle`` is the only function here that touches the
filesystem; it writes a bundle into a new directory that is bind-mounted
read-only into the container.
"""

from __future__ import annotations

import json
import shutil
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import uuid4

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from app.core.agent_tokens import generate_gateway_token
from app.core.logging import get_logger
from app.services.openclaw.constants import (
    AUTH_PROFILES_FILENAME,
    AUTH_PROFILES_VERSION,
    CONFIG_FILENAME,
    CONTAINER_APP_DIR,
    CONTAINER_CONFIG_DIR,
    CONTAINER_RUN_AS,
    CONTAINER_STATE_DIR,
    DEFAULT_COMMANDS,
    DEFAULT_GATEWAY_SETTINGS,
    DEFAULT_TELEGRAM_CHANNEL,
    GATEWAY_TOKEN_ENV,
    MODEL_SELECTION_ENV,
    STARTUP_CONTRACT_VERSION,
    STARTUP_SCRIPT_FILENAME,
    STARTUP_TEMPLATE,
    TELEGRAM_BOT_TOKEN_ENV,
)
from app.services.openclaw.providers import ModelChoice, Provider

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ConfigBundle:
    """Everything generated for a single deployment."""

    gateway_token: str
    model: ModelChoice
    config: dict[str, Any]
    auth_profiles: dict[str, Any]
    environment: dict[str, str]
    startup_script: str


def _templates_root() -> Path:
    return Path(__file__).resolve().parents[2] / "templates"


def _template_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(_templates_root()),
        # Shell scripts are rendered verbatim.
        autoescape=select_autoescape(default=False),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


def _clean_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def present_provider_keys(env: Mapping[str, str]) -> dict[Provider, str]:
    """Return the provider API keys actually supplied in ``env``."""
    keys: dict[Provider, str] = {}
    for provider in Provider:
        value = _clean_str(env.get(provider.request_env_key))
        if value is not None:
            keys[provider] = value
    return keys


def build_openclaw_config(
    *,
    model: ModelChoice,
    gateway_token: str,
    telegram_token: str | None,
) -> dict[str, Any]:
    # Telegram is switched on only when a bot token was supplied.
    telegram_enabled = telegram_token is not None
    return {
        "agents": {"defaults": {"model": {"primary": model.openclaw_model}}},
        "gateway": {**DEFAULT_GATEWAY_SETTINGS, "auth": {"token": gateway_token}},
        "channels": {
            "telegram": {
                "enabled": telegram_enabled,
                "botToken": telegram_token or "",
                **DEFAULT_TELEGRAM_CHANNEL,
                "allowFrom": list(DEFAULT_TELEGRAM_CHANNEL["allowFrom"]),
            },
        },
        "plugins": {"entries": {"telegram": {"enabled": telegram_enabled}}},
        "commands": dict(DEFAULT_COMMANDS),
    }


def build_auth_profiles(provider_keys: Mapping[Provider, str]) -> dict[str, Any]:
    """Build the credentials document; absent providers get no entry."""
    profiles = {
        provider.profile_name: {
            "type": "api_key",
            "provider": provider.slug,
            "key": key,
        }
        for provider, key in provider_keys.items()
    }
    return {"version": AUTH_PROFILES_VERSION, "profiles": profiles}


def build_container_environment(
    *,
    gateway_token: str,
    provider_keys: Mapping[Provider, str],
    telegram_token: str | None,
) -> dict[str, str]:
    environment = {GATEWAY_TOKEN_ENV: gateway_token}
    for provider, key in provider_keys.items():
        environment[provider.runtime_env_key] = key
    if telegram_token is not None:
        environment[TELEGRAM_BOT_TOKEN_ENV] = telegram_token
    return environment


def render_startup_script(*, model: ModelChoice, gateway_port: int) -> str:
    template = _template_env().get_template(STARTUP_TEMPLATE)
    return template.render(
        contract_version=STARTUP_CONTRACT_VERSION,
        run_as=CONTAINER_RUN_AS,
        state_dir=CONTAINER_STATE_DIR,
        config_dir=CONTAINER_CONFIG_DIR,
        app_dir=CONTAINER_APP_DIR,
        config_filename=CONFIG_FILENAME,
        auth_profiles_filename=AUTH_PROFILES_FILENAME,
        model=model.openclaw_model,
        gateway_port=gateway_port,
    )


def generate_config_bundle(env: Mapping[str, str], *, gateway_port: int) -> ConfigBundle:
    """Generate a fresh token and configuration for one deployment."""
    requested_model = _clean_str(env.get(MODEL_SELECTION_ENV))
    model = ModelChoice.parse(requested_model)
    if requested_model is not None and model.model_id != requested_model.lower():
        logger.warning(
            "config_bundle.model.fallback requested=%s resolved=%s",
            requested_model,
            model.model_id,
        )
    gateway_token = generate_gateway_token()
    telegram_token = _clean_str(env.get(TELEGRAM_BOT_TOKEN_ENV))
    provider_keys = present_provider_keys(env)
    return ConfigBundle(
        gateway_token=gateway_token,
        model=model,
        config=build_openclaw_config(
            model=model,
            gateway_token=gateway_token,
            telegram_token=telegram_token,
        ),
        auth_profiles=build_auth_profiles(provider_keys),
        environment=build_container_environment(
            gateway_token=gateway_token,
            provider_keys=provider_keys,
            telegram_token=telegram_token,
        ),
        startup_script=render_startup_script(model=model, gateway_port=gateway_port),
    )


def write_config_bundle(bundle: ConfigBundle, root: Path, container_name: str) -> Path:
    """Write ``bundle`` into a new directory under ``root`` and return it."""
    bundle_dir = root / container_name / uuid4().hex
    bundle_dir.mkdir(mode=0o700, parents=True)
    (bundle_dir / CONFIG_FILENAME).write_text(
        json.dumps(bundle.config, indent=2),
        encoding="utf-8",
    )
    (bundle_dir / AUTH_PROFILES_FILENAME).write_text(
        json.dumps(bundle.auth_profiles, indent=2),
        encoding="utf-8",
    )
    script_path = bundle_dir / STARTUP_SCRIPT_FILENAME
    script_path.write_text(bundle.startup_script, encoding="utf-8")
    script_path.chmod(0o755)
    logger.info(
        "config_bundle.written name=%s dir=%s model=%s telegram_enabled=%s env_keys=%s",
        container_name,
        bundle_dir,
        bundle.model.openclaw_model,
        bundle.config["channels"]["telegram"]["enabled"],
        sorted(bundle.environment),
    )
    return bundle_dir


def reap_config_bundles(root: Path, container_name: str, *, keep: Path | None = None) -> int:
    """Remove bundle directories of ``container_name`` other than ``keep``."""
    identity_dir = root / container_name
    if not identity_dir.is_dir():
        return 0
    removed = 0
    for child in identity_dir.iterdir():
        if keep is not None and child == keep:
            continue
        if child.is_dir():
            shutil.rmtree(child, ignore_errors=True)
        else:
            child.unlink(missing_ok=True)
        removed += 1
    if keep is None and not any(identity_dir.iterdir()):
        identity_dir.rmdir()
    if removed:
        logger.info("config_bundle.reaped name=%s count=%s", container_name, removed)
    return removed
