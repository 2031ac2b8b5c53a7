"""Retriable submission of on-chain write operations."""

from .backoff import RetryPolicy, delay_for_attempt
from .classifier import (
    Classification,
    Diagnosis,
    FatalFailure,
    RetryableFailure,
    attempt_result,
    classify,
    diagnose,
)
from .errors import ErrorKind
from .executor import execute, is_retryable
from .models import OperationKind, OperationRequest, PendingOperation, Receipt
from .submitter import (
    OperationSubmitter,
    SubmitAmbiguous,
    SubmitConfirmed,
    SubmitOutcome,
    SubmitReverted,
)

__all__ = [
    "Classification",
    "Diagnosis",
    "ErrorKind",
    "FatalFailure",
    "OperationKind",
    "OperationRequest",
    "OperationSubmitter",
    "PendingOperation",
    "Receipt",
    "RetryPolicy",
    "RetryableFailure",
    "SubmitAmbiguous",
    "SubmitConfirmed",
    "SubmitOutcome",
    "SubmitReverted",
    "attempt_result",
    "classify",
    "delay_for_attempt",
    "diagnose",
    "execute",
    "is_retryable",
]
