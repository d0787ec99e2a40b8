from __future__ import annotations


class DynarecordError(Exception):
    pass


class ConditionFailedError(DynarecordError):
    pass


class NotFoundError(DynarecordError):
    pass


class ValidationError(DynarecordError):
    pass


class UnknownEntityError(ValidationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"unknown entity: {name}")
        self.name = name


class TransactionCanceledError(DynarecordError):
    def __init__(self, *, message: str, reason_codes: tuple[str, ...]) -> None:
        super().__init__(message)
        self.reason_codes = reason_codes


class AwsError(DynarecordError):
    def __init__(self, *, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
