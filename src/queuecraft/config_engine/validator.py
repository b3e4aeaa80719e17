"""Pre-flight validation for desired queue states.

Catches logical errors before any spooler communication.
"""
import re

from ..queue.snapshot import Ensure
from .schema import DesiredState, ValidationResult

# CUPS rejects names with whitespace, '/', '\\', '#' or non-printable bytes
INVALID_NAME_RE = re.compile(r"[\s/\\#\x00-\x1f\x7f]")
MAX_NAME_LENGTH = 127

# Properties that lpadmin manages through their own flags
RESERVED_OPTIONS = {
    "printer-is-shared": "use 'shared' instead",
    "printer-info": "use 'description' instead",
    "printer-location": "use 'location' instead",
    "device-uri": "use 'uri' instead",
}


class ConfigValidator:
    """Validate desired state for logical errors before execution."""

    def validate(self, desired: DesiredState) -> ValidationResult:
        """
        Validate a desired queue state.

        Performs pre-flight checks:
        - Queue name syntax
        - Class / printer specific parameters
        - Option names

        Args:
            desired: The desired state to validate

        Returns:
            ValidationResult with valid flag, errors, and warnings
        """
        errors: list[str] = []
        warnings: list[str] = []

        self._validate_name(desired, errors)
        self._validate_ensure(desired, errors, warnings)
        self._validate_options(desired, errors)

        return ValidationResult(
            valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )

    def _validate_name(self, desired: DesiredState, errors: list[str]) -> None:
        if len(desired.name) > MAX_NAME_LENGTH:
            errors.append(
                f"Queue name '{desired.name}' is longer than {MAX_NAME_LENGTH} characters"
            )
        if INVALID_NAME_RE.search(desired.name):
            errors.append(
                f"Queue name '{desired.name}' contains whitespace, '/', '\\' or '#'"
            )

    def _validate_ensure(
        self,
        desired: DesiredState,
        errors: list[str],
        warnings: list[str]
    ) -> None:
        if desired.ensure is None:
            warnings.append(
                f"Queue {desired.name} has no 'ensure'; it is only managed if it already exists"
            )
            return

        if desired.ensure == Ensure.ABSENT:
            managed = [
                f for f in ("access", "accepting", "description", "enabled", "held",
                            "location", "shared", "members", "uri")
                if getattr(desired, f) not in (None, "")
            ]
            if desired.options:
                managed.append("options")
            if managed:
                warnings.append(
                    f"Queue {desired.name} is absent; ignoring {', '.join(managed)}"
                )
            return

        if desired.ensure == Ensure.CLASS:
            if not desired.members:
                errors.append(f"Class {desired.name} needs at least one member")
            elif desired.name in desired.members:
                errors.append(f"Class {desired.name} cannot be a member of itself")
            for param in ("uri", "model", "ppd", "interface"):
                if getattr(desired, param):
                    errors.append(f"'{param}' does not apply to class {desired.name}")

        if desired.ensure == Ensure.PRINTER:
            if desired.members is not None:
                errors.append(f"'members' only applies to classes, not printer {desired.name}")
            given = [p for p in ("model", "ppd", "interface") if getattr(desired, p)]
            if len(given) > 1:
                errors.append(
                    f"Printer {desired.name} may use only one of model, ppd, interface"
                )

    def _validate_options(self, desired: DesiredState, errors: list[str]) -> None:
        for key, value in desired.options.items():
            if not key or INVALID_NAME_RE.search(key) or "=" in key:
                errors.append(f"Invalid option name '{key}' for queue {desired.name}")
            if key in RESERVED_OPTIONS:
                errors.append(
                    f"Option '{key}' for queue {desired.name}: {RESERVED_OPTIONS[key]}"
                )
            if "\n" in value:
                errors.append(f"Option '{key}' for queue {desired.name} contains a line break")
