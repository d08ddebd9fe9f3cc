from __future__ import annotations


class SfmsError(Exception):
    """Base class for every error raised by the fees package."""


class ValidationError(SfmsError, ValueError):
    """Input rejected before anything was written.

    ``messages`` holds the user-facing lines, in the order they were found.
    """

    def __init__(self, messages: list[str] | str):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class InvalidStatusTransition(ValidationError):
    pass


class NotFoundError(SfmsError, KeyError):
    def __init__(self, entity: str, record_id: str):
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity} not found: {record_id}")

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.record_id}"


class StoreError(SfmsError):
    """The workbook could not be read or written."""
