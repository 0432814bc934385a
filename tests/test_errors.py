"""Tests for the lending error taxonomy."""

import pytest

from loanledger.errors import (
    BookAlreadyBorrowedError,
    BookNotBorrowedError,
    BookNotFoundError,
    BorrowerNotFoundError,
    ErrorKind,
    LendingError,
    MissingLoanReferenceError,
    OpenLoanConflictError,
    StorageError,
    UnauthorizedBorrowerError,
)


@pytest.mark.parametrize(
    "error, kind",
    [
        (BorrowerNotFoundError("B1"), ErrorKind.NOT_FOUND),
        (BookNotFoundError("K1"), ErrorKind.NOT_FOUND),
        (BookAlreadyBorrowedError("K1"), ErrorKind.CONFLICT),
        (OpenLoanConflictError("K1"), ErrorKind.CONFLICT),
        (MissingLoanReferenceError("B1", "K1"), ErrorKind.NOT_FOUND),
        (BookNotBorrowedError("K1"), ErrorKind.INVALID_STATE),
        (UnauthorizedBorrowerError("B2", "K1"), ErrorKind.FORBIDDEN),
        (StorageError("disk on fire"), ErrorKind.STORAGE_FAILURE),
    ],
)
def test_error_kinds(error, kind):
    assert isinstance(error, LendingError)
    assert error.kind == kind


def test_messages_name_the_entities():
    assert "B1" in str(BorrowerNotFoundError("B1"))
    assert "K1" in str(BookNotFoundError("K1"))
    assert "already borrowed" in str(BookAlreadyBorrowedError("K1"))
    assert "not currently borrowed" in str(BookNotBorrowedError("K1"))

    error = UnauthorizedBorrowerError("B2", "K1")
    assert error.borrower_id == "B2"
    assert error.book_id == "K1"
    assert "B2" in str(error)
