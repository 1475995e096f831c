"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field
from datetime import timedelta

from pinlocal.core.favorite import ALERT_DISTANCE_STEPS, ALERT_DISTANCE_ZIP_CODE


PERSISTENCE_BACKENDS = ("memory", "file", "firestore")


@dataclass
class PersistenceConfig:
    """Where engine state is persisted.

    Attributes:
        backend: One of 'memory', 'file', 'firestore'
        path: JSON state file (file backend)
        firestore_database: Firestore database name (None for default)
        firestore_collection: Firestore collection holding the state document
        firestore_document: Document ID for this device's state
    """
    backend: str = "file"
    path: str = "data/state.json"
    firestore_database: str | None = None
    firestore_collection: str = "pinlocal_state"
    firestore_document: str = "default"


@dataclass
class BackendConfig:
    """Report backend connection settings.

    Attributes:
        base_url: Backend base URL (None disables syncing and submission)
        timeout_seconds: HTTP request timeout
        max_retries: Retries for transient failures
        device_token: Push token sent with alert subscriptions
    """
    base_url: str | None = None
    timeout_seconds: int = 30
    max_retries: int = 3
    device_token: str | None = None


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        alert_distance_m: Default user alert radius in meters
        cooldown_seconds: Alert suppression window after creating a report
        check_interval_seconds: How often alert matching runs without a position change
        cleanup_interval_seconds: How often expired reports are swept
        language: Language for notification texts
        persistence: Persistence backend settings
        backend: Report backend settings
    """
    alert_distance_m: float = ALERT_DISTANCE_ZIP_CODE
    cooldown_seconds: int = 60
    check_interval_seconds: int = 120
    cleanup_interval_seconds: int = 3600
    language: str = "en"
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)

    @property
    def cooldown(self) -> timedelta:
        return timedelta(seconds=self.cooldown_seconds)


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def validate_alert_distance(distance_m: float, field_name: str) -> list[ValidationError]:
    """Validate an alert radius.

    Pure function. Non-positive values are errors; values that are not
    one of the offered steps are only warnings.
    """
    if distance_m <= 0:
        return [ValidationError(
            field=field_name,
            message=f"Alert distance must be positive, got {distance_m}",
        )]
    if distance_m not in ALERT_DISTANCE_STEPS:
        return [ValidationError(
            field=field_name,
            message=f"Alert distance {distance_m} is not one of the standard steps",
            severity="warning",
        )]
    return []


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    errors.extend(validate_alert_distance(config.alert_distance_m, "alert_distance_m"))

    if config.cooldown_seconds < 0:
        errors.append(ValidationError(
            field="cooldown_seconds",
            message=f"Cooldown cannot be negative, got {config.cooldown_seconds}",
        ))

    for name in ("check_interval_seconds", "cleanup_interval_seconds"):
        value = getattr(config, name)
        if value <= 0:
            errors.append(ValidationError(
                field=name,
                message=f"Interval must be positive, got {value}",
            ))

    persistence = config.persistence
    if persistence.backend not in PERSISTENCE_BACKENDS:
        errors.append(ValidationError(
            field="persistence.backend",
            message=(
                f"Unknown persistence backend '{persistence.backend}', "
                f"expected one of {', '.join(PERSISTENCE_BACKENDS)}"
            ),
        ))
    elif persistence.backend == "file" and not persistence.path:
        errors.append(ValidationError(
            field="persistence.path",
            message="File persistence requires a path",
        ))
    elif persistence.backend == "memory":
        errors.append(ValidationError(
            field="persistence.backend",
            message="In-memory persistence does not survive restarts",
            severity="warning",
        ))

    backend = config.backend
    if backend.base_url is not None and backend.base_url.startswith("${"):
        errors.append(ValidationError(
            field="backend.base_url",
            message="Backend URL not resolved (still contains placeholder)",
            severity="warning",
        ))
    if backend.timeout_seconds <= 0:
        errors.append(ValidationError(
            field="backend.timeout_seconds",
            message=f"Timeout must be positive, got {backend.timeout_seconds}",
        ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
