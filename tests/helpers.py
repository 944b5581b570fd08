from stranger_relay.models import ServiceState


def assert_state_consistent(testcase, state: ServiceState):
    """Check the queue and pairing invariants at a quiescent point."""
    for conn_id in state.waiting_queue:
        testcase.assertIn(conn_id, state.connections)
        testcase.assertIsNone(state.connections[conn_id].partner_id)
    testcase.assertEqual(len(state.waiting_queue), len(set(state.waiting_queue)))
    for conn in state.connections.values():
        if conn.partner_id is None:
            continue
        partner = state.connections.get(conn.partner_id)
        testcase.assertIsNotNone(partner, f"{conn.id} points at missing partner {conn.partner_id}")
        testcase.assertEqual(partner.partner_id, conn.id)
        testcase.assertNotEqual(conn.partner_id, conn.id)
