from __future__ import annotations

from botocore.exceptions import ClientError

from .errors import (
    AwsError,
    ConditionFailedError,
    NotFoundError,
    TransactionCanceledError,
    ValidationError,
)


def _error_fields(err: ClientError) -> tuple[str, str]:
    error = err.response.get("Error", {})
    return str(error.get("Code", "")), str(error.get("Message", ""))


def map_client_error(err: ClientError) -> Exception:
    code, message = _error_fields(err)

    if code == "ConditionalCheckFailedException":
        return ConditionFailedError(message or "conditional check failed")
    if code == "ValidationException":
        return ValidationError(message)
    if code == "ResourceNotFoundException":
        return NotFoundError(message)

    return AwsError(code=code or "UnknownError", message=message or str(err))


def map_transaction_error(err: ClientError) -> Exception:
    code, message = _error_fields(err)
    if code != "TransactionCanceledException":
        return map_client_error(err)

    reasons = err.response.get("CancellationReasons") or []
    reason_codes = tuple(
        str(reason["Code"]) for reason in reasons if isinstance(reason, dict) and reason.get("Code")
    )

    if "ConditionalCheckFailed" in reason_codes or "ConditionalCheckFailed" in message:
        return ConditionFailedError(message or "transaction canceled: ConditionalCheckFailed")

    return TransactionCanceledError(message=message or "transaction canceled", reason_codes=reason_codes)
