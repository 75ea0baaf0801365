"""
Scorecard Records
=================

Plain data records for frames, games and series, plus scorecard mark rendering.
Scoring rules live in scoring.py; these records only hold state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

PIN_COUNT = 10
FRAMES_PER_GAME = 10
PERFECT_GAME = 300


@dataclass
class FrameScore:
    """One frame's recorded throws and derived score."""
    frame_number: int                       # 1..10
    throws: List[int] = field(default_factory=list)
    score: Optional[int] = None             # This frame's points, None until resolvable
    cumulative_score: Optional[int] = None  # Running total through this frame
    is_strike: bool = False
    is_spare: bool = False
    is_complete: bool = False

    @property
    def is_tenth(self) -> bool:
        return self.frame_number == FRAMES_PER_GAME

    @property
    def max_throws(self) -> int:
        return 3 if self.is_tenth else 2

    @property
    def pins_standing(self) -> int:
        """
        Pins available to the next ball of this frame.

        The tenth frame re-racks after a strike or spare, so the count depends
        on whether the previous ball cleared the deck.
        """
        if self.is_complete:
            return 0
        if not self.throws:
            return PIN_COUNT
        if not self.is_tenth:
            return PIN_COUNT - self.throws[0]

        if len(self.throws) == 1:
            first = self.throws[0]
            return PIN_COUNT if first == PIN_COUNT else PIN_COUNT - first

        first, second = self.throws[0], self.throws[1]
        if first == PIN_COUNT and second < PIN_COUNT:
            return PIN_COUNT - second
        return PIN_COUNT


@dataclass
class GameRecord:
    """Ten frames plus the running total for one game."""
    frames: List[FrameScore]
    total_score: int = 0
    is_complete: bool = False

    @classmethod
    def new(cls) -> "GameRecord":
        return cls(frames=[FrameScore(frame_number=i + 1) for i in range(FRAMES_PER_GAME)])

    @property
    def current_frame(self) -> FrameScore:
        """
        First incomplete frame, or frame 10 once everything is complete.

        Raises:
            RuntimeError: If a later frame holds throws while an earlier one is
                still open (scorecard recorded out of order).
        """
        for i, frame in enumerate(self.frames):
            if not frame.is_complete:
                if any(later.throws for later in self.frames[i + 1:]):
                    raise RuntimeError(
                        f"Frame {frame.frame_number} is open but later frames have throws"
                    )
                return frame
        return self.frames[-1]

    @property
    def all_throws(self) -> List[int]:
        return [pins for frame in self.frames for pins in frame.throws]


@dataclass
class SeriesRecord:
    """Fixed-length sequence of games for one player."""
    capacity: int
    games: List[GameRecord] = field(default_factory=list)
    current_game_index: int = 0

    @property
    def current_game(self) -> GameRecord:
        return self.games[self.current_game_index]

    @property
    def completed_games(self) -> List[GameRecord]:
        return [g for g in self.games if g.is_complete]

    @property
    def has_capacity(self) -> bool:
        return len(self.games) < self.capacity


def _pin_mark(pins: int) -> str:
    return str(pins) if pins > 0 else "-"


def frame_marks(frame: FrameScore) -> List[str]:
    """
    Render a frame the way a scorecard shows it.

    Frames 1-9 get two boxes, frame 10 gets three. Strikes show as "X",
    spares as "/", misses as "-" and unthrown balls as "".
    """
    marks: List[str] = []
    rack_first: Optional[int] = None  # First ball of the current rack, if any

    for pins in frame.throws:
        if rack_first is None:
            if pins == PIN_COUNT:
                marks.append("X")
            else:
                marks.append(_pin_mark(pins))
                rack_first = pins
        else:
            if rack_first + pins == PIN_COUNT:
                marks.append("/")
            else:
                marks.append(_pin_mark(pins))
            rack_first = None

    slots = frame.max_throws
    while len(marks) < slots:
        marks.append("")
    return marks
