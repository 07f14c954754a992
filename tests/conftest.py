from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from momentum.db.base import Base
from momentum.db.dependencies import get_db_session
import momentum.models.entities  # noqa: F401
from momentum.main import create_app
from momentum.models.entities import (
    WBS,
    Activity,
    ActivityType,
    MomentumProject,
    Phase,
    ProgressEntry,
    Proposal,
)

TEST_TABLES = [
    Proposal.__table__,
    WBS.__table__,
    Phase.__table__,
    Activity.__table__,
    MomentumProject.__table__,
    ProgressEntry.__table__,
]


@dataclass(slots=True)
class SeededEstimate:
    """Two-WBS estimate used across the suite.

    WBS 100 (Piping): phase 10 holds a 60 MH weld activity plus a material
    line, phase 20 holds a 20 MH custom labor activity.
    WBS 200 (Steel): phase 30 holds a labor activity without constants.
    """

    proposal: Proposal
    other_proposal: Proposal
    piping: WBS
    steel: WBS
    phase_welds: Phase
    phase_supports: Phase
    phase_steel: Phase
    weld: Activity
    supports: Activity
    pipe_material: Activity
    unpriced_steel: Activity
    foreign_activity: Activity


def _create_proposal(db: Session, *, number: str, description: str, owner: str) -> Proposal:
    row = Proposal(
        proposal_number=number,
        description=description,
        owner_name=owner,
        job_number=f"J-{number}",
        job_site_address="1200 Refinery Rd, Baytown TX",
        status="won",
        project_start_date=date(2026, 3, 2),
        project_end_date=date(2026, 9, 30),
        created_at=datetime.utcnow(),
    )
    db.add(row)
    db.flush()
    return row


def _create_activity(
    db: Session,
    *,
    phase: Phase,
    activity_type: ActivityType,
    description: str,
    quantity: str,
    unit: str,
    craft: str | None,
    welder: str | None,
    sort_order: int = 0,
) -> Activity:
    row = Activity(
        proposal_id=phase.proposal_id,
        wbs_id=phase.wbs_id,
        phase_id=phase.id,
        type=activity_type,
        description=description,
        quantity=Decimal(quantity),
        unit=unit,
        sort_order=sort_order,
        craft_constant=Decimal(craft) if craft is not None else None,
        welder_constant=Decimal(welder) if welder is not None else None,
    )
    db.add(row)
    db.flush()
    return row


def seed_estimate(db: Session) -> SeededEstimate:
    proposal = _create_proposal(db, number="P-2026-014", description="Unit 4 Revamp", owner="Gulf Chem")
    other_proposal = _create_proposal(db, number="P-2026-020", description="Tank Farm", owner="Coastal Energy")

    piping = WBS(proposal_id=proposal.id, wbs_pool_id=100, name="Piping", sort_order=1)
    steel = WBS(proposal_id=proposal.id, wbs_pool_id=200, name="Steel", sort_order=2)
    other_wbs = WBS(proposal_id=other_proposal.id, wbs_pool_id=100, name="Piping", sort_order=1)
    db.add_all([piping, steel, other_wbs])
    db.flush()

    phase_welds = Phase(
        proposal_id=proposal.id, wbs_id=piping.id, phase_pool_id=10, description="Field Welds", sort_order=1
    )
    phase_supports = Phase(
        proposal_id=proposal.id, wbs_id=piping.id, phase_pool_id=20, description="Pipe Supports", sort_order=2
    )
    phase_steel = Phase(
        proposal_id=proposal.id, wbs_id=steel.id, phase_pool_id=30, description="Structural Steel", sort_order=1
    )
    other_phase = Phase(
        proposal_id=other_proposal.id, wbs_id=other_wbs.id, phase_pool_id=10, description="Field Welds"
    )
    db.add_all([phase_welds, phase_supports, phase_steel, other_phase])
    db.flush()

    weld = _create_activity(
        db,
        phase=phase_welds,
        activity_type=ActivityType.LABOR,
        description='6" butt welds',
        quantity="100",
        unit="EA",
        craft="0.5",
        welder="0.1",
        sort_order=1,
    )
    pipe_material = _create_activity(
        db,
        phase=phase_welds,
        activity_type=ActivityType.MATERIAL,
        description="A106 pipe",
        quantity="50",
        unit="LF",
        craft=None,
        welder=None,
        sort_order=2,
    )
    supports = _create_activity(
        db,
        phase=phase_supports,
        activity_type=ActivityType.CUSTOM_LABOR,
        description="Shoe supports",
        quantity="10",
        unit="EA",
        craft="2",
        welder="0",
    )
    unpriced_steel = _create_activity(
        db,
        phase=phase_steel,
        activity_type=ActivityType.LABOR,
        description="Handrail",
        quantity="5",
        unit="LF",
        craft=None,
        welder=None,
    )
    foreign_activity = _create_activity(
        db,
        phase=other_phase,
        activity_type=ActivityType.LABOR,
        description="Tank nozzle welds",
        quantity="8",
        unit="EA",
        craft="1",
        welder="1",
    )
    db.commit()

    return SeededEstimate(
        proposal=proposal,
        other_proposal=other_proposal,
        piping=piping,
        steel=steel,
        phase_welds=phase_welds,
        phase_supports=phase_supports,
        phase_steel=phase_steel,
        weld=weld,
        supports=supports,
        pipe_material=pipe_material,
        unpriced_steel=unpriced_steel,
        foreign_activity=foreign_activity,
    )


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=TEST_TABLES)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def estimate(db_session: Session) -> SeededEstimate:
    return seed_estimate(db_session)


@pytest.fixture()
def project_id(client: TestClient, estimate: SeededEstimate) -> str:
    response = client.post("/api/v1/projects", json={"proposal_id": str(estimate.proposal.id)})
    assert response.status_code == 201
    return response.json()["id"]
