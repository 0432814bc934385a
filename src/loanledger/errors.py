"""Error taxonomy for loan operations.

Every failure raised by the lending core is a ``LendingError`` carrying an
``ErrorKind``. Callers branch on the kind; transport adapters (the CLI) map
kinds to their own status codes.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Category of a lending failure."""

    NOT_FOUND = "not_found"  # Borrower or book does not exist
    CONFLICT = "conflict"  # Book already has an open loan
    INVALID_STATE = "invalid_state"  # Return with no open loan
    FORBIDDEN = "forbidden"  # Return by someone other than the holder
    STORAGE_FAILURE = "storage_failure"  # Database or driver failure


class LendingError(Exception):
    """Base exception for lending failures."""

    kind: ErrorKind = ErrorKind.STORAGE_FAILURE


class BorrowerNotFoundError(LendingError):
    """Raised when a borrower reference does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, borrower_id: str):
        self.borrower_id = borrower_id
        super().__init__(f"Borrower not found with ID: {borrower_id}")


class BookNotFoundError(LendingError):
    """Raised when a book reference does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(f"Book not found with ID: {book_id}")


class MissingLoanReferenceError(LendingError):
    """Raised by the record store when a loan references a deleted borrower or book."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, borrower_id: str, book_id: str):
        self.borrower_id = borrower_id
        self.book_id = book_id
        super().__init__(
            f"Borrower {borrower_id} or book {book_id} no longer exists"
        )


class BookAlreadyBorrowedError(LendingError):
    """Raised when a borrow targets a book that already has an open loan."""

    kind = ErrorKind.CONFLICT

    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(f"Book with ID {book_id} is already borrowed")


class OpenLoanConflictError(LendingError):
    """Raised by the record store when the open-loan index rejects an insert."""

    kind = ErrorKind.CONFLICT

    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(f"An open loan already exists for book {book_id}")


class BookNotBorrowedError(LendingError):
    """Raised when returning a book that has no open loan."""

    kind = ErrorKind.INVALID_STATE

    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(f"Book with ID {book_id} is not currently borrowed")


class UnauthorizedBorrowerError(LendingError):
    """Raised when a book is returned by someone other than its holder."""

    kind = ErrorKind.FORBIDDEN

    def __init__(self, borrower_id: str, book_id: str):
        self.borrower_id = borrower_id
        self.book_id = book_id
        super().__init__(
            f"Book with ID {book_id} was not borrowed by borrower {borrower_id}"
        )


class StorageError(LendingError):
    """Raised when the database fails for reasons other than a business rule."""

    kind = ErrorKind.STORAGE_FAILURE
