"""Application name and version constants."""

APP_NAME = "instantclaw-orchestrator"
APP_VERSION = "0.1.0"
