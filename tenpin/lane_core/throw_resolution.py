"""
Throw Resolution
================

State machine that turns a physical throw into a scored throw.

Each tick it polls the lane's sensor predicates (ball exited, ball at rest,
pins down, pins moving), keeps a monotonic tally of knocked pins, waits for
the lane to settle, records the pin count with the scorekeeper and schedules
the rack reset for the next ball. All mutation happens on the caller's tick;
delayed transitions go through the TaskScheduler so ``reset()`` can void them.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Set, Tuple

from tenpin.lane_core.config_loader import GameConfig, get_config
from tenpin.lane_core.scheduler import TaskScheduler
from tenpin.lane_core.scorecard import PIN_COUNT, FrameScore
from tenpin.lane_core.scorekeeper import MultiPlayerScorekeeper
from tenpin.lane_core.scoring import MalformedPinCount

logger = logging.getLogger(__name__)


class ThrowState(Enum):
    """Lifecycle of a single throw."""
    IDLE = "idle"
    AIMING = "aiming"
    IN_MOTION = "in_motion"
    SETTLING_AFTER_STOP = "settling_after_stop"
    SETTLING_AFTER_EXIT = "settling_after_exit"
    RESOLVING_COMPLETION = "resolving_completion"
    AWAITING_FRAME_TRANSITION = "awaiting_frame_transition"


# States in which a throw is in flight and may still be resolved
_RESOLVABLE_STATES = (
    ThrowState.IN_MOTION,
    ThrowState.SETTLING_AFTER_STOP,
    ThrowState.SETTLING_AFTER_EXIT,
    ThrowState.RESOLVING_COMPLETION,
)


class RackReset(Enum):
    """How the deck is prepared for the next ball."""
    FULL = "full"
    KEEP_STANDING = "keep_standing"


@dataclass
class ThrowResult:
    """Summary of a resolved throw."""
    pins_knocked_down: int
    is_frame_complete: bool
    is_strike: bool
    is_spare: bool
    frame_number: int
    ball_number: int
    game_number: int
    player_name: str

    def to_dict(self) -> dict:
        return {
            "pins_knocked_down": self.pins_knocked_down,
            "is_frame_complete": self.is_frame_complete,
            "is_strike": self.is_strike,
            "is_spare": self.is_spare,
            "frame_number": self.frame_number,
            "ball_number": self.ball_number,
            "game_number": self.game_number,
            "player_name": self.player_name,
        }


@dataclass
class ThrowObservers:
    """Presentation callbacks. Each list is called in registration order."""
    status: List[Callable[[str], None]] = field(default_factory=list)
    scorecard: List[Callable[[], None]] = field(default_factory=list)
    power: List[Callable[[float], None]] = field(default_factory=list)
    throw_result: List[Callable[[ThrowResult], None]] = field(default_factory=list)

    def emit_status(self, message: str) -> None:
        for callback in self.status:
            callback(message)

    def emit_scorecard(self) -> None:
        for callback in self.scorecard:
            callback()

    def emit_power(self, power: float) -> None:
        for callback in self.power:
            callback(power)

    def emit_throw_result(self, result: ThrowResult) -> None:
        for callback in self.throw_result:
            callback(result)


def plan_next_rack(frame: FrameScore) -> Tuple[RackReset, int]:
    """
    Decide how to rack for the ball after the one just recorded in ``frame``.

    Returns:
        (reset kind, next ball number). A completed frame always re-racks in
        full for ball 1 of whoever bowls next.
    """
    if frame.is_complete:
        return RackReset.FULL, 1

    if not frame.is_tenth:
        return RackReset.KEEP_STANDING, 2

    throws = frame.throws
    if len(throws) == 1:
        if throws[0] == PIN_COUNT:
            return RackReset.FULL, 2
        return RackReset.KEEP_STANDING, 2

    # Two balls in an unfinished tenth: strike or spare earned ball 3
    first, second = throws[0], throws[1]
    if first != PIN_COUNT:
        return RackReset.FULL, 3            # spare
    if second == PIN_COUNT:
        return RackReset.FULL, 3            # two strikes
    return RackReset.KEEP_STANDING, 3       # strike, then a count


class ThrowResolutionStateMachine:
    """
    Per-throw lifecycle: motion detection, pin tally, settle debounce,
    dispatch to scoring and rack reset scheduling.

    Only one throw is ever in flight. ``throw_ball`` is rejected (returns
    False) unless the machine is IDLE or AIMING. There is deliberately no
    timeout: a ball that neither stops nor leaves the lane keeps the machine
    in motion until ``reset()``.
    """

    def __init__(
        self,
        lane,
        scorekeeper: MultiPlayerScorekeeper,
        scheduler: Optional[TaskScheduler] = None,
        config: Optional[GameConfig] = None
    ):
        """
        Initialize the state machine.

        Args:
            lane: Physics collaborator exposing the LaneWorld sensor and
                lifecycle methods.
            scorekeeper: Receives each resolved pin count.
            scheduler: Timeline for delayed transitions. A private one is
                created if None.
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._lane = lane
        self._scorekeeper = scorekeeper
        self._scheduler = scheduler if scheduler is not None else TaskScheduler()
        self.observers = ThrowObservers()

        self._state = ThrowState.IDLE
        self._is_playing = False
        self._ball_number = 1
        self._pins_remaining = PIN_COUNT
        self._knocked: Set[int] = set()
        self._stopped_time = 0.0
        self._power = 0.0
        self._status = ""

        self._throw_id = 0
        self._resolved_throw_id = 0
        self._last_result: Optional[ThrowResult] = None

    # --- Properties -------------------------------------------------------

    @property
    def state(self) -> ThrowState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._is_playing

    @property
    def ball_number(self) -> int:
        return self._ball_number

    @property
    def pins_remaining(self) -> int:
        """Pins on the deck when the current ball was racked."""
        return self._pins_remaining

    @property
    def knocked_pins(self) -> Set[int]:
        """Handles of pins seen down during the current throw."""
        return set(self._knocked)

    @property
    def last_result(self) -> Optional[ThrowResult]:
        return self._last_result

    @property
    def throw_id(self) -> int:
        """Number of throws launched since construction."""
        return self._throw_id

    @property
    def status(self) -> str:
        """Most recent status message."""
        return self._status

    @property
    def scheduler(self) -> TaskScheduler:
        return self._scheduler

    @property
    def scorekeeper(self) -> MultiPlayerScorekeeper:
        return self._scorekeeper

    @scorekeeper.setter
    def scorekeeper(self, scorekeeper: MultiPlayerScorekeeper) -> None:
        self._scorekeeper = scorekeeper

    @property
    def can_throw(self) -> bool:
        return (
            self._is_playing
            and self._state in (ThrowState.IDLE, ThrowState.AIMING)
            and self._lane.has_ball
        )

    # --- Control ----------------------------------------------------------

    def _set_state(self, state: ThrowState) -> None:
        if state is not self._state:
            logger.debug("Throw state %s -> %s", self._state.value, state.value)
            self._state = state

    def _show_status(self, message: str) -> None:
        self._status = message
        self.observers.emit_status(message)

    def start(self) -> None:
        """Begin play with a fresh rack."""
        self._is_playing = True
        self.reset()
        self._show_status("New frame ready - aim and throw!")
        self.observers.emit_scorecard()

    def stop(self) -> None:
        """End play; pending transitions are discarded."""
        self._scheduler.cancel_all()
        self._is_playing = False
        self._set_state(ThrowState.IDLE)

    def reset(self) -> None:
        """
        Force the machine back to IDLE, racked for the scorecard's next ball.

        Every pending deferred transition is invalidated, and the in-flight
        throw (if any) can no longer be resolved. Scores are left alone.
        """
        self._scheduler.cancel_all()
        self._resolved_throw_id = self._throw_id
        self._knocked.clear()
        self._stopped_time = 0.0
        self._power = 0.0
        self._rack_for_scorecard()
        self._set_state(ThrowState.IDLE)

    def _rack_for_scorecard(self) -> None:
        """
        Rack the deck for the next ball the current frame expects.

        Mid-frame the original leave is not known, so pins are swept from the
        front of a full rack until the count matches the frame's pins standing.
        """
        self._lane.reset_full()
        frame = self._scorekeeper.current_frame
        if frame.is_complete or not frame.throws:
            self._ball_number = 1
        else:
            self._ball_number = len(frame.throws) + 1
            surplus = self._lane.pin_count - frame.pins_standing
            if surplus > 0:
                self._lane.reset_keep_standing(range(surplus))
        self._pins_remaining = self._lane.pin_count

    def start_aiming(self) -> bool:
        """IDLE -> AIMING while the bowler lines up and charges power."""
        if not self._is_playing or self._state is not ThrowState.IDLE:
            return False
        self._power = 0.0
        self._set_state(ThrowState.AIMING)
        self._show_status("Hold to charge power... Release to throw!")
        self.observers.emit_power(0.0)
        return True

    def update_power(self, power: float) -> None:
        """Report the charging power level to the power meter."""
        if self._state is not ThrowState.AIMING:
            return
        self._power = min(1.0, max(0.0, power))
        self.observers.emit_power(self._power)

    def cancel_aiming(self) -> None:
        if self._state is ThrowState.AIMING:
            self._power = 0.0
            self._set_state(ThrowState.IDLE)
            self.observers.emit_power(0.0)

    def throw_ball(self, direction: Tuple[float, float], power: float) -> bool:
        """
        Launch the ball.

        Args:
            direction: Aim vector (x across, y down-lane); normalized here.
            power: Requested strength; clamped to [min_power, 1].

        Returns:
            True if the throw started, False if it was rejected.
        """
        if not self.can_throw:
            logger.info(
                "Cannot throw - state=%s playing=%s ball=%s",
                self._state.value, self._is_playing, self._lane.has_ball
            )
            return False

        dx, dy = float(direction[0]), float(direction[1])
        length = math.hypot(dx, dy)
        if not math.isfinite(length) or length == 0.0:
            logger.info("Cannot throw - degenerate aim %r", direction)
            return False

        power = min(1.0, max(self._config.throw.min_power, float(power)))

        self._throw_id += 1
        self._knocked.clear()
        self._stopped_time = 0.0
        self._lane.apply_throw((dx / length, dy / length), power)
        self._set_state(ThrowState.IN_MOTION)

        self._power = 0.0
        self.observers.emit_power(0.0)
        self._show_status(f"Ball thrown with {round(power * 100)}% power! Watch the pins!")
        return True

    # --- Per-tick polling -------------------------------------------------

    def tick(self, dt: float) -> None:
        """
        Advance physics, run due deferred transitions, then poll sensors.

        Args:
            dt: Elapsed time; clamped to physics.max_frame_dt.
        """
        dt = min(max(0.0, dt), self._config.physics.max_frame_dt)
        self._lane.step(dt)
        self._scheduler.advance(dt)

        if self._state is ThrowState.IN_MOTION:
            self._poll_in_motion()
        elif self._state is ThrowState.SETTLING_AFTER_STOP:
            self._poll_settling_after_stop(dt)
        elif self._state is ThrowState.SETTLING_AFTER_EXIT:
            self._tally_knocked_pins()

    def _tally_knocked_pins(self) -> None:
        """Union this tick's down pins into the throw's tally."""
        for index in range(self._lane.pin_count):
            if index not in self._knocked and self._lane.is_pin_down(index):
                self._knocked.add(index)

    def _count_moving_pins(self) -> int:
        return sum(1 for i in range(self._lane.pin_count) if self._lane.is_pin_moving(i))

    def _poll_in_motion(self) -> None:
        self._tally_knocked_pins()
        if self._lane.has_ball_exited_bounds():
            self._handle_exit()
            return
        if self._lane.is_ball_at_rest():
            self._stopped_time = 0.0
            self._set_state(ThrowState.SETTLING_AFTER_STOP)
            logger.debug("Ball stopped; waiting for pins to settle")

    def _poll_settling_after_stop(self, dt: float) -> None:
        self._tally_knocked_pins()
        if self._lane.has_ball_exited_bounds():
            self._handle_exit()
            return

        if not self._lane.is_ball_at_rest():
            logger.debug("Ball started moving again")
            self._stopped_time = 0.0
            self._set_state(ThrowState.IN_MOTION)
            return

        self._stopped_time += dt
        if self._stopped_time < self._config.timing.settle_time:
            return

        moving = self._count_moving_pins()
        if moving <= self._config.timing.max_moving_pins:
            self.resolve_completion()
        else:
            logger.debug("Ball stopped but %d pins still settling", moving)

    def _handle_exit(self) -> None:
        """Ball left the play volume: take it off the lane and let pins finish falling."""
        if self._lane.has_ball:
            logger.debug("Ball exited lane at %s", self._lane.ball.position)
        self._lane.stop_ball()
        self._lane.remove_ball()
        self._set_state(ThrowState.SETTLING_AFTER_EXIT)

        throw_id = self._throw_id
        self._scheduler.schedule(
            self._config.timing.settle_time,
            lambda: self._on_exit_settled(throw_id),
            label="settle-after-exit"
        )

    def _on_exit_settled(self, throw_id: int) -> None:
        if throw_id != self._throw_id or self._state is not ThrowState.SETTLING_AFTER_EXIT:
            return
        self.resolve_completion()

    # --- Completion -------------------------------------------------------

    def resolve_completion(self) -> Optional[ThrowResult]:
        """
        Score the in-flight throw exactly once.

        Returns:
            The ThrowResult, or None if this throw was already resolved (or
            there is no throw in flight).
        """
        if self._resolved_throw_id == self._throw_id or self._state not in _RESOLVABLE_STATES:
            logger.debug("Duplicate completion for throw %d suppressed", self._throw_id)
            return None

        self._resolved_throw_id = self._throw_id
        self._set_state(ThrowState.RESOLVING_COMPLETION)
        self._tally_knocked_pins()

        pins = len(self._knocked)
        standing_before = self._pins_remaining
        ball_before = self._ball_number
        player = self._scorekeeper.current_player
        stream = player.stream
        game_number = stream.game_number
        frame = stream.current_frame

        try:
            self._scorekeeper.record_throw(pins)
        except MalformedPinCount as e:
            logger.error("Throw %d not scored: %s", self._throw_id, e)
            self._knocked.clear()
            self._rack_for_scorecard()
            self._set_state(ThrowState.IDLE)
            self._show_status("Rack reset - throw again!")
            self.observers.emit_scorecard()
            return None

        result = ThrowResult(
            pins_knocked_down=pins,
            is_frame_complete=frame.is_complete,
            is_strike=frame.is_strike,
            is_spare=frame.is_spare,
            frame_number=frame.frame_number,
            ball_number=ball_before,
            game_number=game_number,
            player_name=player.name,
        )
        self._last_result = result

        message = f"{pins} pins knocked down! "
        if pins == PIN_COUNT and standing_before == PIN_COUNT:
            message += "STRIKE!"
        elif pins == standing_before and pins > 0:
            message += "SPARE!"
        self._show_status(message.strip())

        logger.debug(
            "%s game %d frame %d ball %d: %d pins",
            player.name, game_number, frame.frame_number, ball_before, pins
        )

        self._schedule_transition(frame)
        self.observers.emit_scorecard()
        self.observers.emit_throw_result(result)
        return result

    def _schedule_transition(self, frame: FrameScore) -> None:
        reset, next_ball = plan_next_rack(frame)
        self._ball_number = next_ball
        self._set_state(ThrowState.AWAITING_FRAME_TRANSITION)

        throw_id = self._throw_id
        pause = self._config.timing.inter_frame_pause

        if frame.is_tenth and frame.is_complete and self._scorekeeper.is_round_complete():
            self._scheduler.schedule(
                pause,
                lambda: self._complete_game(throw_id),
                label="game-complete"
            )
            return

        self._scheduler.schedule(
            pause,
            lambda: self._apply_rack(throw_id, reset),
            label=f"rack-{reset.value}"
        )

    def _apply_rack(self, throw_id: int, reset: RackReset) -> None:
        if throw_id != self._throw_id or self._state is not ThrowState.AWAITING_FRAME_TRANSITION:
            return

        if reset is RackReset.FULL:
            self._lane.reset_full()
        else:
            # Late fallers are swept with the rest; they were not scored on either ball
            self._tally_knocked_pins()
            self._lane.reset_keep_standing(self._knocked)
        self._knocked.clear()
        self._pins_remaining = self._lane.pin_count
        self._set_state(ThrowState.IDLE)

        if self._ball_number == 1:
            self._show_status("New frame ready - aim and throw!")
        elif reset is RackReset.FULL:
            self._show_status("Fresh rack - bonus ball!")
        else:
            self._show_status("Second ball - knock down remaining pins!")
        self.observers.emit_scorecard()

    def _complete_game(self, throw_id: int) -> None:
        if throw_id != self._throw_id or self._state is not ThrowState.AWAITING_FRAME_TRANSITION:
            return

        finished = self._scorekeeper.current_player.stream.game_number
        if self._scorekeeper.start_next_game():
            self._show_status(f"Game {finished} complete! Starting Game {finished + 1}...")
            self._scheduler.schedule(
                self._config.timing.next_game_pause,
                lambda: self._apply_rack(throw_id, RackReset.FULL),
                label="next-game"
            )
            return

        self._is_playing = False
        self._knocked.clear()
        self._set_state(ThrowState.IDLE)
        average = self._scorekeeper.combined_average()
        self._show_status(f"Series Complete! {finished}-Game Average: {average}")
        self.observers.emit_scorecard()
