"""Tests for per-tenant, per-day sequence allocation."""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.models.base import Base
from app.models.organization import Organization
from app.models.tenant_domain import TENANT_TABLES
from app.models.visit_counter import VisitCounter
from app.services.sequence_service import mint_numbers, next_numbers
from app.utils.id_generators import format_token_number, format_visit_number, to_org_code

MORNING = datetime(2025, 1, 27, 8, 0, tzinfo=timezone.utc)
NEXT_DAY = datetime(2025, 1, 28, 8, 0, tzinfo=timezone.utc)


class TestNextNumbers:
    def test_first_allocation_of_the_day_starts_at_one(self, db, org):
        allocated = next_numbers(db, org.id, now=MORNING)
        db.commit()
        assert (allocated.visit_seq, allocated.token_seq, allocated.date_key) == (1, 1, "20250127")

    def test_consecutive_allocations_are_gapless(self, db, org):
        seqs = []
        for _ in range(3):
            seqs.append(next_numbers(db, org.id, now=MORNING).visit_seq)
            db.commit()
        assert seqs == [1, 2, 3]

    def test_counter_row_holds_next_values(self, db, org):
        next_numbers(db, org.id, now=MORNING)
        next_numbers(db, org.id, now=MORNING)
        db.commit()
        counter = db.get(VisitCounter, (org.id, "20250127"))
        assert counter.next_visit_seq == 3
        assert counter.next_token_seq == 3

    def test_tenants_have_independent_sequences(self, db, org, other_org):
        first = next_numbers(db, org.id, now=MORNING)
        other = next_numbers(db, other_org.id, now=MORNING)
        db.commit()
        assert first.visit_seq == 1
        assert other.visit_seq == 1

    def test_new_day_starts_a_fresh_counter(self, db, org):
        next_numbers(db, org.id, now=MORNING)
        next_numbers(db, org.id, now=MORNING)
        tomorrow = next_numbers(db, org.id, now=NEXT_DAY)
        db.commit()
        assert tomorrow.visit_seq == 1
        assert tomorrow.date_key == "20250128"

    def test_token_only_allocation_leaves_visit_sequence(self, db, org):
        next_numbers(db, org.id, now=MORNING)
        token_only = next_numbers(db, org.id, include_visit=False, now=MORNING)
        after = next_numbers(db, org.id, now=MORNING)
        db.commit()
        assert token_only.visit_seq is None
        assert token_only.token_seq == 2
        assert (after.visit_seq, after.token_seq) == (2, 3)

    def test_rolled_back_allocation_is_released(self, db, org):
        next_numbers(db, org.id, now=MORNING)
        db.rollback()
        assert next_numbers(db, org.id, now=MORNING).visit_seq == 1

    def test_date_key_uses_facility_timezone(self, db, org, feature_flags, monkeypatch):
        monkeypatch.setattr(feature_flags, "facility_timezone", "Asia/Kolkata")
        late_evening_utc = datetime(2025, 1, 27, 20, 0, tzinfo=timezone.utc)
        assert next_numbers(db, org.id, now=late_evening_utc).date_key == "20250128"


class TestMintNumbers:
    def test_formats_visit_and_token_numbers(self, db, org):
        minted = mint_numbers(db, org, now=MORNING)
        db.commit()
        assert minted.visit_number == "V-APOLLO-250127-0001"
        assert minted.token_number == "T-APOLLO-250127-0001"

    def test_token_only(self, db, org):
        minted = mint_numbers(db, org, include_visit=False, now=MORNING)
        assert minted.visit_number is None
        assert minted.token_number == "T-APOLLO-250127-0001"


class TestConcurrentMinting:
    WORKERS = 8

    @pytest.fixture
    def file_session_factory(self, tmp_path):
        """Separate connections per thread against one on-disk database."""
        engine = create_engine(
            f"sqlite:///{tmp_path / 'counters.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(bind=engine, tables=TENANT_TABLES)
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
        engine.dispose()

    def test_parallel_minting_is_unique_and_gapless(self, file_session_factory):
        with file_session_factory() as setup:
            org = Organization(name="Apollo Hospital", subdomain="apollo")
            setup.add(org)
            setup.commit()
            org_id = org.id

        start = threading.Barrier(self.WORKERS)

        def mint_and_commit(_):
            with file_session_factory() as session:
                tenant = session.get(Organization, org_id)
                start.wait(timeout=10)
                minted = mint_numbers(session, tenant, now=MORNING)
                session.commit()
                return minted

        with ThreadPoolExecutor(max_workers=self.WORKERS) as pool:
            results = list(pool.map(mint_and_commit, range(self.WORKERS)))

        expected = list(range(1, self.WORKERS + 1))
        assert sorted(int(r.visit_number[-4:]) for r in results) == expected
        assert sorted(int(r.token_number[-4:]) for r in results) == expected


class TestFormatting:
    @pytest.mark.parametrize(
        "subdomain, expected",
        [
            ("apollo", "APOLLO"),
            ("apollo-north-wing", "APOLLONO"),
            ("st.mary's", "STMARYS"),
            (None, "ORG"),
            ("---", "ORG"),
        ],
    )
    def test_org_code(self, subdomain, expected):
        assert to_org_code(subdomain) == expected

    def test_numbers_are_zero_padded(self):
        assert format_visit_number("MAX", "20250127", 7) == "V-MAX-250127-0007"
        assert format_token_number("MAX", "20250127", 12345) == "T-MAX-250127-12345"
