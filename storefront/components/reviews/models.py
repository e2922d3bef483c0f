from dataclasses import dataclass


@dataclass(frozen=True)
class ReviewValidationError:
    code: str
    message: str
    field: str | None = None
