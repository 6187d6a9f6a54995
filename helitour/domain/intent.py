"""
IntentExtractor port — understands what an inbound message is about.

AI is used here: the extractor reads free text (email body or call
transcript) and returns structured data.  Business rules in the handlers
then operate on that data only.

Every method may raise ExtractionFailure.  Callers must degrade to a safe
default (not spam, not a booking request, unclear operator reply).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Literal

from helitour.domain.booking import ExtractedFields, Operator

SPAM_CONFIDENCE_THRESHOLD = 0.7
CALL_CONFIDENCE_FLOOR = 0.5


@dataclass
class SpamVerdict:
    is_spam: bool
    confidence: float              # 0.0–1.0
    reason: str | None = None

    def is_confident_spam(self, threshold: float = SPAM_CONFIDENCE_THRESHOLD) -> bool:
        return self.is_spam and self.confidence > threshold


@dataclass
class EmailAnalysis:
    """Booking intent of a customer email."""
    is_booking_request: bool
    intent: str | None = None
    fields: ExtractedFields = field(default_factory=ExtractedFields)


@dataclass
class CallExtraction:
    """Booking intent and fields collected during a phone call."""
    is_booking_request: bool
    confidence: float
    intent: str | None = None
    fields: ExtractedFields = field(default_factory=ExtractedFields)


@dataclass
class OperatorReply:
    """Raw oracle output for an operator's email. Flags are independent."""
    is_confirmation: bool = False
    is_rejection: bool = False
    will_handle_directly: bool = False
    confirmation_number: str | None = None
    available_dates: list[str] = field(default_factory=list)   # dates or time slots
    price: float | None = None
    notes: str | None = None


@dataclass
class AvailabilityReply:
    """Customer's answer to an availability follow-up."""
    chosen_time_slot: str | None = None
    confirms_proposed_time: bool = False


DecisionKind = Literal[
    "proposed_times",        # Rainbow offered times, nothing else decided
    "confirmation",
    "will_handle_directly",
    "rejection",
    "alternative_dates",
    "unclear",
]


@dataclass
class OperatorDecision:
    """An operator reply reduced to exactly one outcome."""
    kind: DecisionKind
    reply: OperatorReply


def decide_operator_reply(reply: OperatorReply, operator: Operator) -> OperatorDecision:
    """
    Strict first-match-wins reduction of the oracle flags.

    Rainbow proposed times take precedence only when none of the
    confirmation/rejection/direct-handle flags are set.  Any other operator,
    including ones matching neither alias, follows the generic order.
    """
    flagged = reply.is_confirmation or reply.is_rejection or reply.will_handle_directly

    if operator == Operator.RAINBOW and not flagged and reply.available_dates:
        kind: DecisionKind = "proposed_times"
    elif reply.is_confirmation:
        kind = "confirmation"
    elif reply.will_handle_directly:
        kind = "will_handle_directly"
    elif reply.is_rejection:
        kind = "rejection"
    elif reply.available_dates:
        kind = "alternative_dates"
    else:
        kind = "unclear"
    return OperatorDecision(kind=kind, reply=reply)


class IntentExtractor(ABC):
    """
    Port: classify and extract structured data from inbound free text.

    Implementations may use an LLM (ClaudeIntentExtractor) or deterministic
    keyword matching (SimulatorIntentExtractor).  Both must satisfy the same
    contract.
    """

    @abstractmethod
    async def detect_spam(
        self, text: str, sender: str | None = None, subject: str | None = None
    ) -> SpamVerdict:
        ...

    @abstractmethod
    async def analyze_email(
        self, text: str, sender: str | None = None, subject: str | None = None
    ) -> EmailAnalysis:
        """Is this a booking request, and which booking fields does it carry?"""
        ...

    @abstractmethod
    async def parse_operator_reply(self, text: str) -> OperatorReply:
        ...

    @abstractmethod
    async def extract_call(
        self, transcript: str, caller_phone: str | None = None
    ) -> CallExtraction:
        ...

    @abstractmethod
    async def analyze_availability_reply(self, text: str) -> AvailabilityReply:
        """Did the customer pick one of the offered slots or confirm a proposed time?"""
        ...
