from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentMethodValidationError:
    code: str
    message: str
    field: str | None = None
