"""
Agent KPI tests.

Verifies:
- productivity, strike rate, drop size and target progress formulas
- Zero denominators report 0 instead of failing
- Half-up rounding and the 150% progress cap
- Date range defaults to the current month
"""

from datetime import timedelta

import pytest

from fieldstock.errors import NotFoundError, ValidationError
from fieldstock.models import Product
from fieldstock.services import kpi_service, sales_service
from fieldstock.time_utils import today, utcnow

from helpers import sell


def _visit(agent, outcome=None, visit_date=None):
    return sales_service.record_visit(agent.id, 700, outcome=outcome, visit_date=visit_date)


@pytest.fixture
def cheap(db_session):
    product = Product(sku="CHEAP", name="Cheap", unit_price_cents=3)
    db_session.add(product)
    db_session.commit()
    return product


def test_no_activity_reports_zeros(db_session, agent):
    kpis = kpi_service.get_agent_kpis(agent.id)
    data = kpis.to_dict()

    assert data["productivity"] == 0.0
    assert data["strike_rate"] == 0.0
    assert data["drop_size_cents"] == 0
    assert data["target_progress"] == 0.0
    assert data["target_cartons"] == 100
    assert data["target_tons"] == 0.05


def test_zero_target_reports_zero_progress(db_session, other_agent, water):
    sell(other_agent, water, 3)
    data = kpi_service.get_agent_kpis(other_agent.id).to_dict()
    assert data["target_progress"] == 0.0
    assert data["cartons_progress"] == 0.0
    assert data["tons_progress"] == 0.0


def test_mixed_day(db_session, agent, water):
    sell(agent, water, 10)
    _visit(agent, outcome="no_sale")
    _visit(agent, outcome="successful")
    _visit(agent)
    db_session.commit()

    data = kpi_service.get_agent_kpis(agent.id).to_dict()

    assert data["total_visits"] == 4
    assert data["successful_visits"] == 2
    assert data["total_invoices"] == 1
    assert data["productivity"] == 0.25
    assert data["strike_rate"] == 50.0
    assert data["drop_size_cents"] == 48000
    assert data["actual_cents"] == 48000
    assert data["target_progress"] == 4.8
    assert data["actual_cartons"] == 10
    assert data["cartons_progress"] == 10.0
    assert data["tons_progress"] == 10.0


def test_rounding_is_half_up(db_session, agent, cheap):
    # 1 invoice over 8 visits: 0.125
    sell(agent, cheap, 1)
    for _ in range(7):
        _visit(agent, outcome="no_sale")
    db_session.commit()

    kpis = kpi_service.get_agent_kpis(agent.id)
    assert str(kpis.productivity) == "0.13"

    sell(agent, cheap, 2)
    kpis = kpi_service.get_agent_kpis(agent.id)
    # (3 + 6) / 2 = 4.5
    assert kpis.drop_size_cents == 5


def test_strike_rate_one_decimal(db_session, agent, water):
    sell(agent, water, 1)
    _visit(agent, outcome="no_sale")
    _visit(agent, outcome="no_sale")
    db_session.commit()

    assert kpi_service.get_agent_kpis(agent.id).to_dict()["strike_rate"] == 33.3


def test_progress_is_capped(db_session, agent, water):
    agent.monthly_target_cents = 10000
    db_session.commit()
    product = Product(sku="BIG", name="Big", unit_price_cents=10000)
    db_session.add(product)
    db_session.commit()
    sell(agent, product, 10)

    data = kpi_service.get_agent_kpis(agent.id).to_dict()
    assert data["target_progress"] == 150.0
    assert data["cartons_progress"] == 150.0


def test_defaults_to_current_month(db_session, agent, water):
    month_start, month_end = kpi_service.current_month_range()
    sell(agent, water, 1)
    sell(agent, water, 1, created_at=utcnow().replace(day=1) - timedelta(days=1))
    _visit(agent, outcome="no_sale", visit_date=month_start - timedelta(days=1))
    db_session.commit()

    data = kpi_service.get_agent_kpis(agent.id).to_dict()

    assert data["from"] == month_start.isoformat()
    assert data["to"] == month_end.isoformat()
    assert data["total_invoices"] == 1
    assert data["total_visits"] == 1


def test_explicit_range_is_inclusive(db_session, agent, water):
    yesterday = today() - timedelta(days=1)
    sell(agent, water, 1, created_at=utcnow() - timedelta(days=1))
    sell(agent, water, 1)

    kpis = kpi_service.get_agent_kpis(agent.id, yesterday, yesterday)
    assert kpis.total_invoices == 1

    kpis = kpi_service.get_agent_kpis(agent.id, yesterday, today())
    assert kpis.total_invoices == 2


def test_other_agents_do_not_count(db_session, agent, other_agent, water):
    sell(other_agent, water, 5)
    assert kpi_service.get_agent_kpis(agent.id).total_invoices == 0


def test_inverted_range_rejected(db_session, agent):
    with pytest.raises(ValidationError):
        kpi_service.get_agent_kpis(agent.id, today(), today() - timedelta(days=1))


def test_unknown_agent(db_session):
    with pytest.raises(NotFoundError):
        kpi_service.get_agent_kpis(999_999)
