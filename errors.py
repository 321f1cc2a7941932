#!/usr/bin/env python3
"""Exception types shared by the migration helpers."""


class MigrationError(Exception):
    pass


class PreconditionError(MigrationError):
    """Run-level failure: cluster unreachable, repository missing, transfer failed."""


class OperationTimedOut(MigrationError):
    """A blocking cluster call exceeded the client-side timeout."""

    def __init__(self, operation, timeout):
        super().__init__(f"{operation} did not complete within {timeout} seconds")
        self.operation = operation
        self.timeout = timeout


class InvalidDateRange(MigrationError, ValueError):
    pass
