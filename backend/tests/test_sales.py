"""
Field sales and visit tests.

Verifies:
- Sequential invoice numbers
- Catalog price snapshot
- Offline sales keep their device timestamp
- Visit linking and closing
"""

from datetime import timedelta

import pytest

from fieldstock.errors import InvalidStateTransition, PermissionDenied, ValidationError
from fieldstock.models import AgentVisit
from fieldstock.services import ledger_service, sales_service
from fieldstock.time_utils import today, utcnow

from helpers import sell


class TestInvoices:

    def test_numbers_are_sequential(self, db_session, agent, water):
        first = sell(agent, water, 1)
        second = sell(agent, water, 1)
        assert (first.invoice_number, second.invoice_number) == ("INV-000001", "INV-000002")

    def test_price_is_snapshotted(self, db_session, agent, water):
        invoice = sell(agent, water, 3)
        water.unit_price_cents = 9999
        db_session.commit()

        line = invoice.items[0]
        assert (line.unit_price_cents, line.line_total_cents) == (4800, 14400)
        assert invoice.total_cents == 14400

    def test_offline_sale_counts_on_its_own_day(self, db_session, agent, water):
        yesterday = utcnow() - timedelta(days=1)
        invoice = sell(agent, water, 2, created_at=yesterday)

        assert invoice.offline_created is True
        assert ledger_service.get_ledger(agent.id, water.id, yesterday.date()).sold == 2
        assert ledger_service.get_ledger(agent.id, water.id, today()).sold == 0

    def test_credit_sale_is_pending(self, db_session, agent, water):
        invoice = sales_service.record_sale(
            agent.id, 501, [{"product_id": water.id, "quantity": 1}], payment_method="credit",
        )
        assert invoice.payment_status == "pending"

    @pytest.mark.parametrize("items", [
        [],
        [{"product_id": 1}],
        [{"product_id": 1, "quantity": 0}],
        [{"product_id": 1, "quantity": 1.5}],
    ])
    def test_bad_lines_rejected(self, db_session, agent, items):
        with pytest.raises(ValidationError):
            sales_service.record_sale(agent.id, 501, items)

    def test_unknown_or_inactive_product_rejected(self, db_session, agent, water):
        with pytest.raises(ValidationError):
            sales_service.record_sale(agent.id, 501, [{"product_id": 999_999, "quantity": 1}])

        water.is_active = False
        db_session.commit()
        with pytest.raises(ValidationError):
            sales_service.record_sale(agent.id, 501, [{"product_id": water.id, "quantity": 1}])

    def test_payment_method_validated(self, db_session, agent, water):
        with pytest.raises(ValidationError):
            sales_service.record_sale(
                agent.id, 501, [{"product_id": water.id, "quantity": 1}], payment_method="barter",
            )

    def test_agent_sells_only_for_self(self, db_session, agent, other_agent, agent_user, water):
        with pytest.raises(PermissionDenied):
            sales_service.record_sale(
                other_agent.id, 501, [{"product_id": water.id, "quantity": 1}], actor_user_id=agent_user.id,
            )


class TestVisits:

    def test_sale_without_visit_creates_one(self, db_session, agent, water):
        invoice = sell(agent, water, 1)

        visit = db_session.query(AgentVisit).filter_by(invoice_id=invoice.id).one()
        assert (visit.visit_type, visit.outcome) == ("unscheduled", "sale")
        assert visit.check_out_at is not None

    def test_sale_links_existing_visit(self, db_session, agent, water):
        visit = sales_service.record_visit(agent.id, 501)
        invoice = sales_service.record_sale(
            agent.id, 501, [{"product_id": water.id, "quantity": 1}], visit_id=visit.id,
        )
        db_session.commit()

        assert visit.invoice_id == invoice.id
        assert visit.outcome == "sale"
        assert db_session.query(AgentVisit).count() == 1

    def test_visit_takes_one_invoice(self, db_session, agent, water):
        visit = sales_service.record_visit(agent.id, 501)
        line = [{"product_id": water.id, "quantity": 1}]
        sales_service.record_sale(agent.id, 501, line, visit_id=visit.id)
        with pytest.raises(InvalidStateTransition):
            sales_service.record_sale(agent.id, 501, line, visit_id=visit.id)

    def test_visit_of_other_agent_rejected(self, db_session, agent, other_agent, water):
        visit = sales_service.record_visit(other_agent.id, 501)
        with pytest.raises(ValidationError):
            sales_service.record_sale(
                agent.id, 501, [{"product_id": water.id, "quantity": 1}], visit_id=visit.id,
            )

    def test_close_visit_once(self, db_session, agent):
        visit = sales_service.record_visit(agent.id, 501)
        sales_service.close_visit(visit.id, "no_sale")
        assert visit.check_out_at is not None

        with pytest.raises(InvalidStateTransition):
            sales_service.close_visit(visit.id, "no_sale")

    def test_outcome_closes_immediately(self, db_session, agent):
        visit = sales_service.record_visit(agent.id, 501, outcome="closed_shop")
        assert visit.check_out_at is not None

    def test_visit_type_validated(self, db_session, agent):
        with pytest.raises(ValidationError):
            sales_service.record_visit(agent.id, 501, visit_type="drive_by")
