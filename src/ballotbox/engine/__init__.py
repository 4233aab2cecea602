"""Election engine — workflow state machine, tally, and the election core."""

from ballotbox.engine.election import Election
from ballotbox.engine.state_machine import WorkflowStateMachine
from ballotbox.engine.tally import TallyEngine

__all__ = ["Election", "WorkflowStateMachine", "TallyEngine"]
