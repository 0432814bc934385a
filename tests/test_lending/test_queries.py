"""Tests for LoanQueries."""

from datetime import timedelta

import pytest

from conftest import FIXED_NOW
from loanledger.errors import BookNotFoundError, BorrowerNotFoundError
from loanledger.lending.manager import LoanManager
from loanledger.lending.queries import LoanQueries


@pytest.fixture
async def loans(manager: LoanManager, clock, sample_books, alice, bob):
    """Alice holds book 0 (overdue) and returned book 1; Bob holds book 2."""
    clock.now = FIXED_NOW - timedelta(days=20)
    overdue = await manager.borrow(alice.id, sample_books[0].id)
    returned = await manager.borrow(alice.id, sample_books[1].id)
    clock.now = FIXED_NOW - timedelta(days=19)
    await manager.return_book(alice.id, sample_books[1].id)

    clock.now = FIXED_NOW - timedelta(days=10)
    current = await manager.borrow(bob.id, sample_books[2].id)

    clock.now = FIXED_NOW
    return {"overdue": overdue, "returned": returned, "current": current}


class TestListing:
    """Tests for list projections."""

    async def test_list_all(self, queries: LoanQueries, loans):
        views = await queries.list_all()

        assert {v.id for v in views} == {l.id for l in loans.values()}
        # Newest first
        assert views[0].id == loans["current"].id

    async def test_list_active(self, queries: LoanQueries, loans):
        views = await queries.list_active()

        assert {v.id for v in views} == {loans["overdue"].id, loans["current"].id}
        assert all(v.returned_at is None for v in views)

    async def test_list_overdue(self, queries: LoanQueries, loans):
        views = await queries.list_overdue(FIXED_NOW)

        assert [v.id for v in views] == [loans["overdue"].id]
        assert views[0].days_overdue == 6
        assert views[0].borrower_name == "Alice Smith"

    async def test_list_overdue_defaults_to_clock(self, queries: LoanQueries, clock, loans):
        clock.now = FIXED_NOW + timedelta(days=5)

        views = await queries.list_overdue()

        # Bob's loan fell due at FIXED_NOW + 4 days
        assert {v.id for v in views} == {loans["overdue"].id, loans["current"].id}

    async def test_list_by_borrower(self, queries: LoanQueries, loans, alice):
        views = await queries.list_by_borrower(alice.id)

        assert {v.id for v in views} == {loans["overdue"].id, loans["returned"].id}

    async def test_list_active_by_borrower(self, queries: LoanQueries, loans, alice):
        views = await queries.list_active_by_borrower(alice.id)

        assert [v.id for v in views] == [loans["overdue"].id]

    async def test_list_by_borrower_without_loans(self, queries: LoanQueries, borrowers):
        from loanledger.directory.schemas import BorrowerCreate

        carol = await borrowers.add_borrower(BorrowerCreate(name="Carol", email="c@example.com"))

        assert await queries.list_by_borrower(carol.id) == []

    async def test_list_by_book(self, queries: LoanQueries, loans, sample_books):
        views = await queries.list_by_book(sample_books[1].id)

        assert [v.id for v in views] == [loans["returned"].id]
        assert views[0].returned_at == FIXED_NOW - timedelta(days=19)

    async def test_unknown_borrower(self, queries: LoanQueries):
        with pytest.raises(BorrowerNotFoundError):
            await queries.list_by_borrower("nobody")
        with pytest.raises(BorrowerNotFoundError):
            await queries.list_active_by_borrower("nobody")

    async def test_unknown_book(self, queries: LoanQueries):
        with pytest.raises(BookNotFoundError):
            await queries.list_by_book("K99")


class TestListMatching:
    """Tests for combined loan filters."""

    async def test_no_filters_lists_everything(self, queries: LoanQueries, loans):
        views = await queries.list_matching()

        assert {v.id for v in views} == {l.id for l in loans.values()}

    async def test_book_and_active(self, queries: LoanQueries, loans, sample_books):
        assert await queries.list_matching(book_id=sample_books[1].id, active_only=True) == []

        views = await queries.list_matching(book_id=sample_books[0].id, active_only=True)
        assert [v.id for v in views] == [loans["overdue"].id]

    async def test_borrower_and_book(self, queries: LoanQueries, loans, alice, sample_books):
        views = await queries.list_matching(borrower_id=alice.id, book_id=sample_books[1].id)

        assert [v.id for v in views] == [loans["returned"].id]

    async def test_borrower_and_overdue(self, queries: LoanQueries, loans, alice, bob):
        alice_views = await queries.list_matching(borrower_id=alice.id, overdue_only=True)
        bob_views = await queries.list_matching(borrower_id=bob.id, overdue_only=True)

        assert [v.id for v in alice_views] == [loans["overdue"].id]
        assert bob_views == []

    async def test_overdue_only(self, queries: LoanQueries, loans):
        views = await queries.list_matching(overdue_only=True)

        assert [v.id for v in views] == [loans["overdue"].id]

    async def test_unknown_book_with_borrower(self, queries: LoanQueries, loans, alice):
        with pytest.raises(BookNotFoundError):
            await queries.list_matching(borrower_id=alice.id, book_id="K99")


class TestAvailability:
    """Tests for availability checks."""

    async def test_is_available(self, queries: LoanQueries, loans, sample_books):
        assert await queries.is_available(sample_books[0].id) is False
        assert await queries.is_available(sample_books[1].id) is True
        assert await queries.is_available(sample_books[2].id) is False

    async def test_is_available_unknown_book(self, queries: LoanQueries):
        with pytest.raises(BookNotFoundError):
            await queries.is_available("K99")

    async def test_list_available_books(self, queries: LoanQueries, loans, sample_books):
        books = await queries.list_available_books()

        assert [b.id for b in books] == [sample_books[1].id]
        assert books[0].title == "Test Book 2"

    async def test_list_available_books_without_loans(
        self, queries: LoanQueries, sample_books
    ):
        books = await queries.list_available_books()

        assert [b.title for b in books] == ["Test Book 1", "Test Book 2", "Test Book 3"]

    async def test_list_available_books_over_other_catalog(self, store, borrowers, clock):
        from conftest import StaticCatalog
        from loanledger.directory.schemas import BookDetails

        catalog = StaticCatalog(
            {"K1": BookDetails(title="Dune", author="Frank Herbert", isbn="1")}
        )
        queries = LoanQueries(store, catalog, borrowers, clock=clock)

        books = await queries.list_available_books()

        assert [b.id for b in books] == ["K1"]


class TestReports:
    """Tests for statistics and reports."""

    async def test_due_soon(self, queries: LoanQueries, loans):
        views = await queries.list_due_soon(days=7, now=FIXED_NOW)

        assert [v.id for v in views] == [loans["current"].id]
        assert views[0].days_until_due == 4

    async def test_due_soon_excludes_beyond_window(self, queries: LoanQueries, loans):
        assert await queries.list_due_soon(days=3, now=FIXED_NOW) == []

    async def test_stats(self, queries: LoanQueries, loans):
        stats = await queries.get_stats(FIXED_NOW)

        assert stats.total_loans == 3
        assert stats.active_loans == 2
        assert stats.overdue_loans == 1
        assert stats.returned_loans == 1

    async def test_stats_empty(self, queries: LoanQueries):
        stats = await queries.get_stats()

        assert stats.total_loans == 0
        assert stats.overdue_loans == 0

    async def test_overdue_report(self, queries: LoanQueries, loans):
        report = await queries.overdue_report(FIXED_NOW + timedelta(days=5))

        assert report.total_overdue == 2
        assert report.oldest_overdue_days == 11
        # Most overdue first
        assert report.loans[0].id == loans["overdue"].id

    async def test_overdue_report_empty(self, queries: LoanQueries):
        report = await queries.overdue_report()

        assert report.loans == []
        assert report.oldest_overdue_days == 0
