"""Validation result models shared by rarity, layer and config checks."""

from enum import Enum

from pydantic import BaseModel, Field


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ValidationIssue(BaseModel):
    """A single problem found while validating input."""

    severity: Severity
    category: str
    location: str
    message: str
    suggestion: str | None = None
    value: str | None = None

    def __str__(self) -> str:
        return self.message


class ValidationResult(BaseModel):
    """Tagged outcome of a validation pass.

    `valid` is False whenever at least one ERROR was recorded. Warnings never
    block, they only describe fallbacks that will be applied.
    """

    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.errors]

    @property
    def warning_messages(self) -> list[str]:
        return [issue.message for issue in self.warnings]

    def add_error(
        self,
        category: str,
        location: str,
        message: str,
        suggestion: str | None = None,
        value: str | None = None,
    ) -> None:
        self.errors.append(
            ValidationIssue(
                severity=Severity.ERROR,
                category=category,
                location=location,
                message=message,
                suggestion=suggestion,
                value=value,
            )
        )

    def add_warning(
        self,
        category: str,
        location: str,
        message: str,
        suggestion: str | None = None,
        value: str | None = None,
    ) -> None:
        self.warnings.append(
            ValidationIssue(
                severity=Severity.WARNING,
                category=category,
                location=location,
                message=message,
                suggestion=suggestion,
                value=value,
            )
        )

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        """Append another result's issues onto this one and return self."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        return self
