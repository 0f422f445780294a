"""Exception hierarchy."""

from __future__ import annotations


class DermoptError(Exception):
    """Base class for dermopt errors."""


class MissingInputError(DermoptError):
    """A required record (patient, plan, current biologic) is missing.

    Aborts the operation and is reported to the caller.
    """


class LLMResponseError(DermoptError):
    """The LLM returned an empty or malformed reply."""


class PatientNotFoundError(MissingInputError):
    """No patient matches the requested id."""


class CsvReadError(DermoptError):
    """An uploaded file could not be read as CSV at all."""
