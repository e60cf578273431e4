from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Deque, Iterable, List, Optional, Protocol, Set, Union
import asyncio
import inspect
import logging

from .config import LoopConfig
from .entities import ChipAction, ChipState, PolicyAction
from .errors import EncodingError, InferenceError, TrainingError, UnknownAction
from .reward import RewardModel
from .transitions import ChipTransitionModel, resolve_action

logger = logging.getLogger(__name__)

FALLBACK_ACTION: ChipAction = ChipAction.OPTIMIZE_CONNECTIONS

ApplyAction = Callable[[ChipState, ChipAction], ChipState]
Observer = Callable[[ChipState, ChipAction], Any]


class OptimizingAgent(Protocol):
    """
    What the loop needs from an agent. See chip_agent.adapters for the
    wrappers around ValueAgent and PolicyAgent.
    """

    def select_action(self, state: ChipState) -> Union[ChipAction, PolicyAction, int]:
        ...

    def learn(
        self,
        state: ChipState,
        action: ChipAction,
        reward: float,
        next_state: ChipState,
    ) -> float:
        ...


class LoopStatus(Enum):
    IDLE = auto()
    RUNNING = auto()


@dataclass(frozen=True)
class IterationResult:
    """Outcome of one optimize-observe-train iteration."""
    iteration: int
    action: ChipAction
    reward: float
    improvement: float
    loss: float
    state: ChipState


class OptimizationLoop:
    """
    Cooperative optimize-observe-train loop.

    One iteration at a time: ask the agent for an action, apply it, score
    the successor state, train, then publish the new snapshot. Agent calls
    run on a worker thread and are awaited to completion, so the event loop
    stays responsive while the current ChipState reference is only swapped
    between iterations.

    stop() is cooperative: it is honored between iterations or during the
    pacing delay, never in the middle of an iteration.
    """

    def __init__(
        self,
        agent: OptimizingAgent,
        initial_state: Optional[ChipState] = None,
        apply_action: Optional[ApplyAction] = None,
        reward_model: Optional[RewardModel] = None,
        config: Optional[LoopConfig] = None,
        observers: Iterable[Observer] = (),
    ) -> None:
        self.agent = agent
        self.apply_action: ApplyAction = apply_action or ChipTransitionModel()
        self.reward_model = reward_model or RewardModel()
        self.config = config or LoopConfig()

        self._state: ChipState = initial_state or ChipState.default()
        self._status = LoopStatus.IDLE
        self._stop_requested = False
        self._stop_event: Optional[asyncio.Event] = None
        self._iteration = 0
        self._observers: List[Observer] = list(observers)
        self._observer_tasks: Set[asyncio.Task] = set()
        self.history: Deque[IterationResult] = deque(maxlen=self.config.HISTORY_LIMIT)

    @property
    def state(self) -> ChipState:
        return self._state

    @property
    def status(self) -> LoopStatus:
        return self._status

    @property
    def iterations(self) -> int:
        return self._iteration

    def reset(self, state: ChipState) -> None:
        """Replace the current design. Only allowed while idle."""
        if self._status is LoopStatus.RUNNING:
            raise RuntimeError("Cannot reset the design while the loop is running")
        self._state = state

    def add_observer(self, observer: Observer) -> None:
        self._observers.append(observer)

    def remove_observer(self, observer: Observer) -> None:
        self._observers.remove(observer)

    def stop(self) -> None:
        """Request a stop. Must be called from the event loop's thread."""
        self._stop_requested = True
        if self._stop_event is not None:
            self._stop_event.set()

    async def step(self) -> IterationResult:
        """
        Run exactly one iteration.

        Raises:
            EncodingError: the agent could not vectorize the state.
            UnknownAction: the agent proposed an action with no transition.
        """
        current = self._state

        try:
            proposal = await asyncio.to_thread(self.agent.select_action, current)
        except InferenceError as exc:
            logger.warning("Action inference failed (%s); using %s", exc, FALLBACK_ACTION.name)
            proposal = FALLBACK_ACTION

        action = resolve_action(proposal)
        next_state = self.apply_action(current, action)
        reward = self.reward_model.reward(next_state)

        try:
            loss = await asyncio.to_thread(
                self.agent.learn, current, action, reward, next_state
            )
        except TrainingError as exc:
            logger.warning("Training step skipped: %s", exc)
            loss = 0.0

        self._iteration += 1
        result = IterationResult(
            iteration=self._iteration,
            action=action,
            reward=reward,
            improvement=reward - self.reward_model.reward(current),
            loss=float(loss),
            state=next_state,
        )
        self._state = next_state
        self.history.append(result)
        logger.debug(
            "Iteration %d: %s reward=%.4f improvement=%+.4f loss=%.5f",
            result.iteration,
            action.name,
            reward,
            result.improvement,
            result.loss,
        )
        self._publish(next_state, action)
        return result

    async def run(self, max_iterations: Optional[int] = None) -> int:
        """
        Iterate until stop() is called or max_iterations attempts are made.

        Returns:
            Number of iterations that completed.
        """
        if self._status is LoopStatus.RUNNING:
            raise RuntimeError("Optimization loop is already running")

        self._status = LoopStatus.RUNNING
        self._stop_requested = False
        self._stop_event = asyncio.Event()
        attempts = 0
        completed = 0
        logger.info("Optimization loop started")

        try:
            while not self._stop_requested:
                if max_iterations is not None and attempts >= max_iterations:
                    break
                attempts += 1
                try:
                    await self.step()
                    completed += 1
                except (EncodingError, UnknownAction):
                    logger.error("Aborting optimization loop after iteration %d", self._iteration)
                    raise
                except Exception:
                    logger.exception("Optimization iteration failed; continuing")

                if self._stop_requested:
                    break
                if max_iterations is not None and attempts >= max_iterations:
                    break
                await self._pace()
        finally:
            self._status = LoopStatus.IDLE
            self._stop_event = None
            logger.info("Optimization loop stopped after %d iterations", completed)

        return completed

    async def _pace(self) -> None:
        assert self._stop_event is not None
        try:
            await asyncio.wait_for(
                self._stop_event.wait(), timeout=self.config.STEP_INTERVAL_S
            )
        except asyncio.TimeoutError:
            pass

    def _publish(self, state: ChipState, action: ChipAction) -> None:
        """Notify observers without waiting on them."""
        loop = asyncio.get_running_loop()
        for observer in list(self._observers):
            if inspect.iscoroutinefunction(observer):
                task = loop.create_task(self._notify_async(observer, state, action))
                self._observer_tasks.add(task)
                task.add_done_callback(self._observer_tasks.discard)
            else:
                loop.call_soon(self._notify, observer, state, action)

    @staticmethod
    def _notify(observer: Observer, state: ChipState, action: ChipAction) -> None:
        try:
            observer(state, action)
        except Exception:
            logger.exception("Observer %r raised; ignoring", observer)

    @staticmethod
    async def _notify_async(observer: Observer, state: ChipState, action: ChipAction) -> None:
        try:
            await observer(state, action)
        except Exception:
            logger.exception("Observer %r raised; ignoring", observer)
