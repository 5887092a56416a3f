from __future__ import annotations


class FaucetServiceError(Exception):
    """Base exception for all faucet-service errors."""


class ConfigError(FaucetServiceError, RuntimeError):
    """Invalid or missing configuration (env vars, config.yaml)."""


class CodeGenerationError(FaucetServiceError):
    """Could not find an unused access code within the attempt budget."""
