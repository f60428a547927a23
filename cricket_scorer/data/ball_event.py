"""
Ball-by-ball event data model.

Defines the tagged events a scorer records against a live match, plus the
derived events the engine emits when an over, innings or match finishes.
Commentary strings are derived from the tags, so the event log stays
append-only and replayable.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, ClassVar, Optional, Union


class WicketKind(Enum):
    BOWLED = "bowled"
    CAUGHT = "caught"
    RUN_OUT = "run-out"
    HIT_WICKET = "hit-wicket"
    STUMP_OUT = "stump-out"
    # Combination kinds: a dismissal on the same delivery as an extra
    WIDE_WICKET = "wide-wicket"
    NO_BALL_WICKET = "no-ball-wicket"
    BYE_WICKET = "bye-wicket"
    LEG_BYE_WICKET = "leg-bye-wicket"

    @property
    def extras_type(self) -> Optional["ExtrasType"]:
        return _COMBINATION_EXTRAS.get(self)

    @property
    def is_legal_delivery(self) -> bool:
        extra = self.extras_type
        return extra is None or extra.is_legal_delivery

    @property
    def credits_bowler(self) -> bool:
        return self not in (
            WicketKind.RUN_OUT,
            WicketKind.BYE_WICKET,
            WicketKind.LEG_BYE_WICKET,
        )

    @property
    def allows_non_striker(self) -> bool:
        """Only run-outs (including those off an extra) can dismiss the non-striker."""
        return self == WicketKind.RUN_OUT or self.extras_type is not None


class ExtrasType(Enum):
    WIDE = "wide"
    NO_BALL = "no-ball"
    BYE = "bye"
    LEG_BYE = "leg-bye"

    @property
    def is_legal_delivery(self) -> bool:
        return self in (ExtrasType.BYE, ExtrasType.LEG_BYE)

    @property
    def charged_to_bowler(self) -> bool:
        return not self.is_legal_delivery

    @property
    def label(self) -> str:
        return self.value.capitalize()


_COMBINATION_EXTRAS = {
    WicketKind.WIDE_WICKET: ExtrasType.WIDE,
    WicketKind.NO_BALL_WICKET: ExtrasType.NO_BALL,
    WicketKind.BYE_WICKET: ExtrasType.BYE,
    WicketKind.LEG_BYE_WICKET: ExtrasType.LEG_BYE,
}


class TossDecision(Enum):
    BAT = "bat"
    BOWL = "bowl"


class DismissedSide(Enum):
    STRIKER = "striker"
    NON_STRIKER = "non-striker"


VALID_RUNS = (0, 1, 2, 3, 4, 6)


def _runs_text(runs: int) -> str:
    return f"{runs} run{'s' if runs != 1 else ''}"


# ----------------------------------------------------------------------
# Input events
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class MatchStarted:
    """Toss result and opening players; moves the match to live."""

    tag: ClassVar[str] = "match_started"

    toss_winner: str
    toss_decision: TossDecision
    striker: str
    non_striker: str
    bowler: str

    def describe(self) -> str:
        return (
            f"{self.toss_winner} won the toss and chose to "
            f"{self.toss_decision.value} first. {self.striker} and "
            f"{self.non_striker} open the batting, {self.bowler} to bowl."
        )


@dataclass(frozen=True)
class RunsScored:
    """Runs off the bat from a legal delivery."""

    tag: ClassVar[str] = "runs"

    runs: int

    def describe(self) -> str:
        if self.runs == 0:
            return "no run"
        if self.runs == 4:
            return "FOUR"
        if self.runs == 6:
            return "SIX"
        return _runs_text(self.runs)


@dataclass(frozen=True)
class WicketFell:
    """A dismissal, optionally combined with an extra.

    ``next_batter`` may be left out, in which case the engine waits for a
    ``BatterSelected`` before accepting more deliveries.
    """

    tag: ClassVar[str] = "wicket"

    kind: WicketKind
    next_batter: Optional[str] = None
    fielder: Optional[str] = None
    dismissed_side: DismissedSide = DismissedSide.STRIKER
    extra_runs: int = 0

    def describe(self) -> str:
        text = f"WICKET ({self.kind.value})"
        if self.extra_runs:
            text += f", {_runs_text(self.extra_runs)}"
        return text


@dataclass(frozen=True)
class ExtraConceded:
    """Wide, no-ball, bye or leg-bye. ``runs`` is the total for the delivery."""

    tag: ClassVar[str] = "extra"

    kind: ExtrasType
    runs: int = 1

    def describe(self) -> str:
        return f"{self.kind.label} {self.runs}"


@dataclass(frozen=True)
class BowlerSelected:
    tag: ClassVar[str] = "bowler_selected"

    name: str

    def describe(self) -> str:
        return f"{self.name} comes into the attack"


@dataclass(frozen=True)
class BatterSelected:
    tag: ClassVar[str] = "batter_selected"

    name: str

    def describe(self) -> str:
        return f"{self.name} walks out to bat"


@dataclass(frozen=True)
class SecondInningsStarted:
    tag: ClassVar[str] = "second_innings_started"

    striker: str
    non_striker: str
    bowler: str

    def describe(self) -> str:
        return (
            f"Second innings: {self.striker} and {self.non_striker} to open, "
            f"{self.bowler} to bowl"
        )


# ----------------------------------------------------------------------
# Derived events (emitted by the engine, never replayed)
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class OverCompleted:
    tag: ClassVar[str] = "over_completed"

    inning: int
    over: int  # 1-indexed number of the over just finished
    bowler: str
    runs: int

    def describe(self) -> str:
        return f"End of over {self.over}: {_runs_text(self.runs)} off {self.bowler}"


@dataclass(frozen=True)
class InningsCompleted:
    tag: ClassVar[str] = "innings_completed"

    inning: int
    runs: int
    wickets: int
    overs: str

    def describe(self) -> str:
        return (
            f"Innings {self.inning} complete: "
            f"{self.runs}/{self.wickets} ({self.overs} overs)"
        )


@dataclass(frozen=True)
class MatchCompleted:
    tag: ClassVar[str] = "match_completed"

    result: str

    def describe(self) -> str:
        return self.result


InputEvent = Union[
    MatchStarted,
    RunsScored,
    WicketFell,
    ExtraConceded,
    BowlerSelected,
    BatterSelected,
    SecondInningsStarted,
]
DerivedEvent = Union[OverCompleted, InningsCompleted, MatchCompleted]

INPUT_EVENT_TYPES: dict[str, type] = {
    cls.tag: cls
    for cls in (
        MatchStarted,
        RunsScored,
        WicketFell,
        ExtraConceded,
        BowlerSelected,
        BatterSelected,
        SecondInningsStarted,
    )
}

_ENUM_FIELDS: dict[str, type[Enum]] = {
    "toss_decision": TossDecision,
    "kind": WicketKind,
    "dismissed_side": DismissedSide,
}


def event_to_dict(event: InputEvent) -> dict[str, Any]:
    """Convert an input event to a JSON-serializable dict."""
    d = asdict(event)
    for key, value in d.items():
        if isinstance(value, Enum):
            d[key] = value.value
    d["type"] = event.tag
    return d


def event_from_dict(data: dict[str, Any]) -> InputEvent:
    """Rebuild an input event from :func:`event_to_dict` output."""
    fields = dict(data)
    tag = fields.pop("type", None)
    cls = INPUT_EVENT_TYPES.get(tag)
    if cls is None:
        raise ValueError(f"Unknown event type: {tag!r}")

    for key, enum_cls in _ENUM_FIELDS.items():
        if key in fields and fields[key] is not None:
            if cls is ExtraConceded and key == "kind":
                fields[key] = ExtrasType(fields[key])
            else:
                fields[key] = enum_cls(fields[key])
    try:
        return cls(**fields)
    except TypeError as e:
        raise ValueError(f"Malformed {tag} event: {e}") from None


@dataclass
class MatchInfo:
    """Pre-match metadata."""

    match_id: str
    team1_name: str
    team2_name: str
    total_overs: int = 20
    venue: str = ""
    format: str = "t20"
    date: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MatchInfo":
        return cls(**data)
