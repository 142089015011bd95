"""Artifact drift check: a checked-in schema against a fresh rendering."""

from __future__ import annotations

from dataclasses import dataclass, field

from polyface.domain.exceptions import PolyfaceError


def normalize_lines(text: str) -> list[str]:
    """Trimmed, non-empty lines."""
    return [line.strip() for line in text.splitlines() if line.strip()]


@dataclass
class SchemaDiff:
    schema_type: str
    missing: list[str] = field(default_factory=list)
    extra: list[str] = field(default_factory=list)

    @property
    def has_differences(self) -> bool:
        return bool(self.missing or self.extra)

    def to_dict(self) -> dict[str, object]:
        return {"schema_type": self.schema_type, "missing": self.missing, "extra": self.extra}

    def __str__(self) -> str:
        lines = [f"{self.schema_type} schema does not match the service definition"]
        if self.missing:
            lines.append("Missing (expected but not generated):")
            lines.extend(f"  - {line}" for line in self.missing)
        if self.extra:
            lines.append("Extra (generated but not expected):")
            lines.extend(f"  + {line}" for line in self.extra)
        return "\n".join(lines)


class SchemaValidationError(PolyfaceError):
    code = "SCHEMA_DRIFT"

    def __init__(self, diff: SchemaDiff) -> None:
        self.diff = diff
        super().__init__(str(diff))


def diff_schema(schema_type: str, expected: str, actual: str) -> SchemaDiff:
    """Line-set comparison; order and blank lines are ignored."""
    expected_lines = normalize_lines(expected)
    actual_lines = normalize_lines(actual)
    actual_set = set(actual_lines)
    expected_set = set(expected_lines)
    return SchemaDiff(
        schema_type,
        missing=[line for line in expected_lines if line not in actual_set],
        extra=[line for line in actual_lines if line not in expected_set],
    )


def validate_schema(schema_type: str, expected: str, actual: str) -> None:
    """Raise :class:`SchemaValidationError` when *actual* drifted from *expected*."""
    diff = diff_schema(schema_type, expected, actual)
    if diff.has_differences:
        raise SchemaValidationError(diff)
