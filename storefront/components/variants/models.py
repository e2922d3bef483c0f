from dataclasses import dataclass


@dataclass(frozen=True)
class VariantValidationError:
    code: str
    message: str
    field: str | None = None
