"""
Court board services.

board and the pure rule modules (court_state, block_scheduler, roster,
waitlist_engine) take snapshots and clock values and return plain results.
assignment_orchestrator is the only writer: it goes through a BoardGateway
(board_store) and publishes changes through events.
"""
