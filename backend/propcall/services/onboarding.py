"""
Onboarding step flow.

The flow is an explicit finite-state machine: a fixed, ordered list of steps and a
transition table (step, action) -> target. A URL is only a view over a step; the
current step is recovered from the path with step_for_path, never stored alongside it.

Advancing from the last step completes onboarding. Completion is best-effort: the
completion call is awaited, any failure is logged and swallowed, and navigation to
the dashboard happens either way.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Tuple

# Set up logger
logger = logging.getLogger(__name__)

DASHBOARD_PATH = "/dashboard"
ONBOARDING_ENTRY_PATH = "/onboarding/welcome"

_LOCALE_PREFIX = re.compile(r"^/[a-z]{2}(?=/)")


class Action(str, Enum):
    ADVANCE = "advance"
    RETREAT = "retreat"
    SKIP = "skip"


@dataclass(frozen=True)
class OnboardingStep:
    path: str
    title: str
    can_skip: bool = False


STEPS: Tuple[OnboardingStep, ...] = (
    OnboardingStep("/onboarding/welcome", "onboarding.steps.welcome", can_skip=True),
    OnboardingStep("/onboarding/property", "onboarding.steps.property"),
    OnboardingStep("/onboarding/ai-agent", "onboarding.steps.aiAgent"),
    OnboardingStep("/onboarding/features", "onboarding.steps.features", can_skip=True),
)


@dataclass(frozen=True)
class Transition:
    """Where an action leads. complete=True means run the completion side effect first."""
    target: str
    complete: bool = False


def build_transitions(steps: Tuple[OnboardingStep, ...]) -> Dict[Tuple[int, Action], Transition]:
    """Transition table. A missing (index, action) pair is a no-op."""
    table: Dict[Tuple[int, Action], Transition] = {}
    last = len(steps) - 1
    for i, step in enumerate(steps):
        if i < last:
            table[(i, Action.ADVANCE)] = Transition(steps[i + 1].path)
            if step.can_skip:
                table[(i, Action.SKIP)] = Transition(steps[i + 1].path)
        else:
            table[(i, Action.ADVANCE)] = Transition(DASHBOARD_PATH, complete=True)
        if i > 0:
            table[(i, Action.RETREAT)] = Transition(steps[i - 1].path)
    return table


def strip_locale(path: str) -> str:
    return _LOCALE_PREFIX.sub("", path, count=1)


def locale_of(path: str) -> Optional[str]:
    match = _LOCALE_PREFIX.match(path)
    return match.group(0) if match else None


class OnboardingFlow:
    def __init__(self, steps: Tuple[OnboardingStep, ...] = STEPS) -> None:
        if not steps:
            raise ValueError("onboarding needs at least one step")
        self.steps = steps
        self.transitions = build_transitions(steps)

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def step_for_path(self, path: str) -> Optional[int]:
        """Index of the step shown at path (locale prefix ignored), or None."""
        bare = strip_locale(path).rstrip("/") or "/"
        for i, step in enumerate(self.steps):
            if step.path == bare:
                return i
        return None

    def is_first(self, index: int) -> bool:
        return index == 0

    def is_last(self, index: int) -> bool:
        return index == len(self.steps) - 1

    def is_skippable(self, index: int) -> bool:
        return self.steps[index].can_skip

    def progress(self, index: int) -> Dict[str, int]:
        current = index + 1
        return {
            "current": current,
            "total": self.total_steps,
            "percentage": int(current / self.total_steps * 100 + 0.5),
        }

    def transition(self, index: int, action: Action) -> Optional[Transition]:
        return self.transitions.get((index, Action(action)))


class OnboardingNavigator:
    """Applies flow transitions for the step currently shown at a path.

    navigate receives the target path (with the locale prefix of the current
    path re-applied). complete is the best-effort completion call.
    """

    def __init__(
        self,
        navigate: Callable[[str], None],
        complete: Callable[[], Awaitable[object]],
        flow: Optional[OnboardingFlow] = None,
    ) -> None:
        self.navigate = navigate
        self.complete = complete
        self.flow = flow or OnboardingFlow()

    def _localized(self, current_path: str, target: str) -> str:
        prefix = locale_of(current_path)
        return f"{prefix}{target}" if prefix else target

    async def dispatch(self, current_path: str, action: Action) -> Optional[str]:
        """Run an action. Returns the path navigated to, or None for a no-op."""
        index = self.flow.step_for_path(current_path)
        if index is None:
            logger.warning(f"Onboarding action {action} from non-onboarding path {current_path}")
            return None
        transition = self.flow.transition(index, action)
        if transition is None:
            return None
        if transition.complete:
            try:
                await self.complete()
            except Exception:
                # Navigation proceeds regardless so the user is never trapped
                logger.exception("Error completing onboarding")
        target = self._localized(current_path, transition.target)
        self.navigate(target)
        return target

    async def advance(self, current_path: str) -> Optional[str]:
        return await self.dispatch(current_path, Action.ADVANCE)

    async def retreat(self, current_path: str) -> Optional[str]:
        return await self.dispatch(current_path, Action.RETREAT)

    async def skip(self, current_path: str) -> Optional[str]:
        return await self.dispatch(current_path, Action.SKIP)


def onboarding_redirect(path: str, authenticated: bool, completed: bool) -> Optional[str]:
    """Route guard. Returns the path to redirect to, or None to let the request through."""
    if not authenticated:
        return None
    bare = strip_locale(path)
    if bare.startswith("/auth") or "onboarding" in bare:
        return None
    if not completed:
        return ONBOARDING_ENTRY_PATH
    return None


class OnboardingStatusCache:
    """Completion status fetched once and kept as a boolean until refreshed."""

    def __init__(self, fetch: Callable[[], Awaitable[Dict[str, object]]]) -> None:
        self._fetch = fetch
        self._completed: Optional[bool] = None

    async def is_completed(self) -> bool:
        if self._completed is None:
            await self.refresh()
        return bool(self._completed)

    async def refresh(self) -> bool:
        status = await self._fetch()
        self._completed = bool((status or {}).get("completed", False))
        return self._completed
