"""FSM states and per-user conversation data."""

from dataclasses import dataclass, field, fields
from typing import Any

from aiogram.fsm.state import State, StatesGroup


class Step(StatesGroup):
    """States of the guided content flow."""

    IDLE = State()  # Waiting for a product photo
    AWAITING_PLATFORM = State()
    AWAITING_TONE = State()
    AWAITING_SERVICES = State()  # Toggling services until "Done"
    AWAITING_CONTEXT = State()  # Free text or "Skip"


# Forward order of the guided flow; generation returns the user to IDLE.
STEP_SEQUENCE: tuple[State, ...] = (
    Step.IDLE,
    Step.AWAITING_PLATFORM,
    Step.AWAITING_TONE,
    Step.AWAITING_SERVICES,
    Step.AWAITING_CONTEXT,
)

STEPS_BY_NAME: dict[str, State] = {step.state: step for step in Step.__all_states__}


@dataclass
class UserState:
    """Everything collected from one user during one guided cycle."""

    cycle: int = 0
    step: State = field(default_factory=lambda: Step.IDLE)
    image: bytes = b""
    mime_type: str = ""
    platform: str = ""
    tone: str = ""
    services: list[str] = field(default_factory=list)
    context: str = ""
    pending_message_ref: int | None = None
    generating: bool = False

    def toggle_service(self, service: str) -> None:
        if service in self.services:
            self.services.remove(service)
        else:
            self.services.append(service)

    def to_data(self) -> dict[str, Any]:
        """FSM data dict; the step itself is stored as the FSM state."""
        data = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "step"}
        data["services"] = list(self.services)
        return data

    @classmethod
    def from_data(cls, raw_state: str | None, data: dict[str, Any]) -> "UserState":
        step = STEPS_BY_NAME.get(raw_state, Step.IDLE) if raw_state else Step.IDLE
        values = dict(data)
        values["services"] = list(values.get("services", ()))
        return cls(step=step, **values)


@dataclass(frozen=True)
class GenerationParams:
    """Inputs of one generation, read out of the state before any network call."""

    image: bytes
    mime_type: str
    platform: str
    tone: str
    services: tuple[str, ...]
    context: str

    @classmethod
    def from_state(cls, state: UserState) -> "GenerationParams":
        return cls(
            image=state.image,
            mime_type=state.mime_type,
            platform=state.platform,
            tone=state.tone,
            services=tuple(state.services),
            context=state.context,
        )
