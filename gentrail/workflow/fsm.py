"""Generation lifecycle state machine using the transitions library.

The FSM is never persisted. Each command derives the generation's current
state from git (see workflow/generation.py), seeds the machine with it, and
fires one or more triggers to validate the operation before touching the
repository:

    nonexistent --start--> active --cycle_complete--> active
    active --interrupt--> suspended --resume--> active
    active|suspended --stop--> completing --merge_success--> merged
                                          --merge_failed--> suspended
    active|suspended --reset--> nonexistent

Usage:
    from gentrail.workflow.fsm import GenerationFSM

    fsm = GenerationFSM("generation-20260101.1", "suspended")
    fsm.fire("resume")
"""

import logging
from transitions import Machine, MachineError

from gentrail.lib.errors import GentrailError

logger = logging.getLogger(__name__)


NONEXISTENT = "nonexistent"
ACTIVE = "active"
SUSPENDED = "suspended"
COMPLETING = "completing"
MERGED = "merged"

STATES = [NONEXISTENT, ACTIVE, SUSPENDED, COMPLETING, MERGED]

TRANSITIONS = [
    {"trigger": "start", "source": NONEXISTENT, "dest": ACTIVE},

    # One committed cycle; the counter lives in git, not here
    {"trigger": "cycle_complete", "source": ACTIVE, "dest": ACTIVE},

    # Cycle failed or process was signalled
    {"trigger": "interrupt", "source": ACTIVE, "dest": SUSPENDED},
    {"trigger": "resume", "source": SUSPENDED, "dest": ACTIVE},
    {"trigger": "resume", "source": ACTIVE, "dest": ACTIVE},  # idle run with cycles left

    # Termination
    {"trigger": "stop", "source": ACTIVE, "dest": COMPLETING},
    {"trigger": "stop", "source": SUSPENDED, "dest": COMPLETING},
    {"trigger": "merge_success", "source": COMPLETING, "dest": MERGED},
    {"trigger": "merge_failed", "source": COMPLETING, "dest": SUSPENDED},

    # Destructive side-channel; merged generations are not destroyable
    {"trigger": "reset", "source": ACTIVE, "dest": NONEXISTENT},
    {"trigger": "reset", "source": SUSPENDED, "dest": NONEXISTENT},
]


class InvalidTransition(GentrailError):
    """Raised when an operation is not allowed in the generation's current state."""

    def __init__(self, name: str, state: str, trigger: str):
        self.name = name
        self.state = state
        self.trigger = trigger
        super().__init__(f"Cannot {trigger} generation {name}: it is {state}")


class GenerationFSM:
    """State machine for one generation.

    Logs every transition.
    """

    def __init__(self, name: str, initial: str = NONEXISTENT):
        """Initialize FSM for a generation.

        Args:
            name: Generation (branch) name
            initial: State derived from git
        """
        self.name = name

        if initial not in STATES:
            raise ValueError(f"Unknown generation state: {initial}")

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=initial,
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    def can(self, trigger: str) -> bool:
        """True if trigger is allowed from the current state."""
        return trigger in self.machine.get_triggers(self.state)

    def fire(self, trigger: str) -> str:
        """Fire a trigger and return the new state.

        Raises:
            InvalidTransition: If trigger is not allowed from the current state
        """
        state = self.state
        try:
            getattr(self, trigger)()
        except (MachineError, AttributeError) as e:
            raise InvalidTransition(self.name, state, trigger) from e
        return self.state

    def on_state_change(self, event) -> None:
        from_state = event.transition.source
        to_state = event.transition.dest
        trigger = event.event.name

        logger.info(f"[FSM] {self.name}: {from_state} -> {to_state} ({trigger})")
