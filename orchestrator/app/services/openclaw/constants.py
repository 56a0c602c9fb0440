"""Shared constants for agent container orchestration."""

from __future__ import annotations

import re
from typing import Any

AGENT_CONTAINER_PREFIX = "agent-"
AGENT_VOLUME_PREFIX = "openclaw-data-"
# Docker reports container names with a leading slash.
AGENT_LISTED_NAME_PREFIX = f"/{AGENT_CONTAINER_PREFIX}"
DOCKER_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]*$")

CONTAINER_CONFIG_DIR = "/tmp/openclaw-config"  # noqa: S108
CONTAINER_STATE_DIR = "/home/node/.openclaw"
CONTAINER_APP_DIR = "/app"
CONTAINER_RUN_AS = "node"
CONTAINER_BOOT_USER = "root"

CONFIG_FILENAME = "openclaw.json"
AUTH_PROFILES_FILENAME = "auth-profiles.json"
STARTUP_SCRIPT_FILENAME = "startup.sh"
STARTUP_TEMPLATE = "startup.sh.j2"
STARTUP_CONTRACT_VERSION = 2

GATEWAY_TOKEN_ENV = "OPENCLAW_GATEWAY_TOKEN"
MODEL_SELECTION_ENV = "AI_MODEL"
TELEGRAM_BOT_TOKEN_ENV = "TELEGRAM_BOT_TOKEN"

AUTH_PROFILES_VERSION = 1

DEFAULT_GATEWAY_SETTINGS: dict[str, Any] = {
    "mode": "local",
    "bind": "lan",
}

DEFAULT_TELEGRAM_CHANNEL: dict[str, Any] = {
    "dmPolicy": "open",
    "allowFrom": ["*"],
    "groupPolicy": "allowlist",
    "streamMode": "partial",
}

DEFAULT_COMMANDS: dict[str, str] = {
    "native": "auto",
    "nativeSkills": "auto",
}
