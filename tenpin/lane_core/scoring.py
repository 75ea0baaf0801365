"""
Scoring System
==============

Applies ten-pin scoring rules to one game, one throw at a time.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from tenpin.lane_core.scorecard import (
    FRAMES_PER_GAME,
    PIN_COUNT,
    FrameScore,
    GameRecord,
)

logger = logging.getLogger(__name__)


class ScoringError(ValueError):
    """Base class for rejected scoring input."""


class MalformedPinCount(ScoringError):
    """Pin count outside [0, 10] or larger than the pins left standing."""

    def __init__(self, pins: object, pins_standing: int, frame_number: int):
        self.pins = pins
        self.pins_standing = pins_standing
        self.frame_number = frame_number
        super().__init__(
            f"Cannot record {pins!r} pins in frame {frame_number}: "
            f"{pins_standing} pins standing"
        )


class GameScoringEngine:
    """
    Scores a single game.

    Every recorded throw recomputes all ten frame scores from scratch, so
    strike and spare bonuses resolve as soon as the throws they depend on
    arrive. Frames whose bonus throws are still unknown keep ``score=None``
    and the running total freezes at the last resolved frame.
    """

    def __init__(self, game: Optional[GameRecord] = None):
        """
        Initialize scoring engine.

        Args:
            game: Record to score into. A fresh game is created if None.
        """
        self._game = game if game is not None else GameRecord.new()
        self._last_frame_index: Optional[int] = None

    @property
    def game(self) -> GameRecord:
        """The game record being scored."""
        return self._game

    @property
    def total_score(self) -> int:
        """Running total through the last resolved frame."""
        return self._game.total_score

    @property
    def is_complete(self) -> bool:
        """True once frame 10 is complete."""
        return self._game.is_complete

    @property
    def current_frame(self) -> FrameScore:
        """Frame that will receive the next throw."""
        return self._game.current_frame

    @property
    def last_recorded_frame(self) -> Optional[FrameScore]:
        """Frame that received the most recent throw, if any."""
        if self._last_frame_index is None:
            return None
        return self._game.frames[self._last_frame_index]

    def record_throw(self, pins: int) -> bool:
        """
        Record one throw and rescore the game.

        Args:
            pins: Pins knocked down by this throw.

        Returns:
            True if the throw was recorded, False if the game is already complete.

        Raises:
            MalformedPinCount: If pins is not an int in [0, 10] or exceeds the
                pins standing in the current frame. Nothing is mutated.
        """
        if self._game.is_complete:
            return False

        frame = self._game.current_frame
        if frame.is_complete:
            return False

        standing = frame.pins_standing
        if isinstance(pins, bool) or not isinstance(pins, int) or not 0 <= pins <= standing:
            raise MalformedPinCount(pins, standing, frame.frame_number)

        frame.throws.append(pins)
        if frame.is_tenth:
            self._apply_tenth_frame(frame)
        else:
            self._apply_regular_frame(frame)

        self._last_frame_index = frame.frame_number - 1
        self._calculate_scores()

        logger.debug(
            "Frame %d throw %d: %d pins (total=%d)",
            frame.frame_number, len(frame.throws), pins, self._game.total_score
        )
        return True

    def _apply_regular_frame(self, frame: FrameScore) -> None:
        """Completion rules for frames 1-9."""
        if len(frame.throws) == 1:
            if frame.throws[0] == PIN_COUNT:
                frame.is_strike = True
                frame.is_complete = True
        elif len(frame.throws) == 2:
            if sum(frame.throws) == PIN_COUNT:
                frame.is_spare = True
            frame.is_complete = True

    def _apply_tenth_frame(self, frame: FrameScore) -> None:
        """Completion rules for frame 10: strike or spare earns a third ball."""
        throws = frame.throws
        first = throws[0]
        second = throws[1] if len(throws) > 1 else None

        if first == PIN_COUNT:
            frame.is_strike = True
            frame.is_complete = len(throws) >= 3
        elif second is not None and first + second == PIN_COUNT:
            frame.is_spare = True
            frame.is_complete = len(throws) >= 3
        elif len(throws) >= 2:
            frame.is_complete = True

    def _strike_bonus(self, index: int) -> Optional[int]:
        """Next two balls after the strike in frame ``index``, or None if unknown."""
        frames = self._game.frames
        next_frame = frames[index + 1]

        if len(next_frame.throws) >= 2:
            return next_frame.throws[0] + next_frame.throws[1]

        if len(next_frame.throws) == 1 and next_frame.is_strike and index < FRAMES_PER_GAME - 2:
            after_next = frames[index + 2]
            if after_next.throws:
                return next_frame.throws[0] + after_next.throws[0]

        return None

    def _spare_bonus(self, index: int) -> Optional[int]:
        """Next ball after the spare in frame ``index``, or None if unknown."""
        next_frame = self._game.frames[index + 1]
        if next_frame.throws:
            return next_frame.throws[0]
        return None

    def _frame_score(self, index: int) -> Optional[int]:
        frame = self._game.frames[index]

        if frame.is_tenth:
            return sum(frame.throws) if frame.is_complete else None

        if frame.is_strike:
            bonus = self._strike_bonus(index)
            return None if bonus is None else PIN_COUNT + bonus

        if frame.is_spare:
            bonus = self._spare_bonus(index)
            return None if bonus is None else PIN_COUNT + bonus

        if frame.is_complete:
            return sum(frame.throws)

        return None

    def _calculate_scores(self) -> None:
        """Recompute every frame score, the cumulative column and the total."""
        cumulative = 0
        for index, frame in enumerate(self._game.frames):
            frame.score = self._frame_score(index)
            if frame.score is not None:
                cumulative += frame.score
                frame.cumulative_score = cumulative
            else:
                frame.cumulative_score = None

        self._game.total_score = cumulative
        self._game.is_complete = self._game.frames[-1].is_complete

    def frame_scores(self) -> List[Optional[int]]:
        """Per-frame scores (None where unresolved)."""
        return [frame.score for frame in self._game.frames]

    def reset(self) -> None:
        """Discard all throws and start a fresh game record."""
        self._game = GameRecord.new()
        self._last_frame_index = None
