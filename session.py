"""Session globals: signed-in user, available states and the selected state."""
from dataclasses import dataclass, field
from typing import List, Optional

from constants import default_states


@dataclass
class Session:
    user_id: Optional[int] = None
    states: List[str] = field(default_factory=default_states)
    state_selected: int = 0

    def selected_state(self) -> str:
        return self.states[self.state_selected]

    def has_state_choice(self) -> bool:
        """The state picker is only offered when there is more than one state."""
        return len(self.states) > 1

    def select_state(self, index: int) -> bool:
        """Select the state at ``index`` and report whether it changed.

        Callers refetch paragraphs only when this returns ``True``.
        """
        if index < 0 or index >= len(self.states):
            raise ValueError(f"State index {index} out of range (0..{len(self.states) - 1})")
        previous = self.state_selected
        self.state_selected = index
        return previous != index

    def state_for_request(self) -> Optional[str]:
        # index 0 means no state difference is requested
        if self.state_selected == 0:
            return None
        return self.selected_state()


current = Session()
