from dataclasses import dataclass


@dataclass(frozen=True)
class OptionValidationError:
    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class OptionTypeGroup:
    """All active values of one option type, in display order."""

    option_type: str
    values: tuple[dict[str, object], ...]
