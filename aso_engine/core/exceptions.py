"""Custom exception classes for the engine."""

from typing import Any


class AsoEngineError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# Registry Errors
class RegistryConfigError(AsoEngineError):
    """KPI registry definition is malformed."""

    def __init__(self, version: str, message: str, item_id: str | None = None) -> None:
        prefix = f"KPI registry {version}"
        if item_id:
            prefix = f"{prefix} [{item_id}]"
        super().__init__(
            f"{prefix}: {message}",
            details={"version": version, "item_id": item_id},
        )


class UnknownRegistryVersionError(RegistryConfigError):
    """No registry file exists for the requested version."""

    def __init__(self, version: str) -> None:
        super().__init__(version, "no registry file for this version")


class KpiVersionMismatchError(AsoEngineError):
    """Two KPI results come from different registry versions."""

    def __init__(self, before: str, after: str) -> None:
        super().__init__(
            f"Cannot compare KPI vectors across registry versions: {before} vs {after}",
            details={"before": before, "after": after},
        )


# Combo Errors
class LocaleIsolationError(AsoEngineError, AssertionError):
    """A combo mixes tokens from more than one locale."""

    def __init__(self, combo_text: str, combo_locale: str | None, token_locales: set[str | None]) -> None:
        super().__init__(
            f"Combo '{combo_text}' for locale {combo_locale} contains tokens from "
            f"{sorted(str(locale) for locale in token_locales)}",
            details={"combo": combo_text, "locale": combo_locale},
        )


# Validation Errors
class ValidationError(AsoEngineError):
    """Input data validation failed."""

    pass
