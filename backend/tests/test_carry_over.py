"""
Carry-over tests: stock still on the vehicle is advisory only.
"""

from fieldstock.services import carry_over_service, load_service

from helpers import released_load, sell


def test_carry_over_is_ledger_remaining(db_session, agent, agent_user, manager, water, juice):
    released_load(agent, {water: 100, juice: 5}, requester=agent_user, manager=manager)
    sell(agent, water, 30)
    sell(agent, juice, 5)

    assert carry_over_service.get_carry_over(agent.id, water.id) == 70
    assert carry_over_service.get_carry_over(agent.id, juice.id) == 0

    entries = carry_over_service.get_carry_over_for_agent(agent.id)
    assert [(e.product_id, e.remaining) for e in entries] == [(water.id, 70)]


def test_new_request_is_not_reduced(db_session, agent, agent_user, manager, water):
    released_load(agent, {water: 100}, requester=agent_user, manager=manager)
    sell(agent, water, 30)

    load = load_service.request_load(
        agent.id,
        [{"product_id": water.id, "requested_quantity": 50}],
        requested_by_user_id=agent_user.id,
    )
    db_session.commit()

    assert load.items[0].requested_quantity == 50
    assert carry_over_service.get_carry_over(agent.id, water.id) == 70


def test_no_activity_means_no_carry_over(db_session, agent, water):
    assert carry_over_service.get_carry_over(agent.id, water.id) == 0
    assert carry_over_service.get_carry_over_for_agent(agent.id) == []
