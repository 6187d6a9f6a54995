"""
SimulatorIntentExtractor — deterministic keyword-based extractor for tests.

No LLM calls, no network.  Recognises the phrasing that shows up in real
booking emails, operator replies and call transcripts well enough to drive
every handler branch.
"""

import re

from helitour.domain.booking import ExtractedFields
from helitour.domain.errors import ExtractionFailure
from helitour.domain.intent import (
    AvailabilityReply,
    CallExtraction,
    EmailAnalysis,
    IntentExtractor,
    OperatorReply,
    SpamVerdict,
)

_SPAM_KEYWORDS = [
    r"\bunsubscribe\b", r"\bseo\b", r"\bbacklinks?\b", r"\bcrypto\b",
    r"\bbitcoin\b", r"\blottery\b", r"\bviagra\b", r"\bclick here\b",
    r"\blimited[- ]time offer\b", r"\byou(?:'ve| have) won\b",
    r"\bextended warranty\b", r"\bcar warranty\b",
]
# Weak signals: classified spam, but below the acting threshold
_WEAK_SPAM_KEYWORDS = [r"\bnewsletter\b", r"\bpromotion\b", r"\bdiscount code\b"]

_BOOKING_KEYWORDS = [
    r"\bbook(?:ing)?\b", r"\breserv(?:e|ation)\b", r"\btour\b",
    r"\bhelicopter\b", r"\bflight\b", r"\bavailability\b", r"\bparty of\b",
]

_CONFIRMATION = re.compile(r"\bconfirmed\b|\bbooked\b|\ball set\b", re.IGNORECASE)
_REJECTION = re.compile(
    r"\bnot available\b|\bunavailable\b|\bfully booked\b|\bsold out\b"
    r"|\bno availability\b|\bcan(?:no|')t accommodate\b",
    re.IGNORECASE,
)
_DIRECT = re.compile(
    r"\bdirectly\b|\breach out to the (?:customer|guest)\b", re.IGNORECASE
)
_CONF_NUMBER = re.compile(
    r"(?:booking|confirmation|conf\.?)\s*(?:#|number:?|no\.)\s*(?:is\s+)?([A-Z0-9]*\d[A-Z0-9]*)",
    re.IGNORECASE,
)
_PRICE = re.compile(r"\$\s*(\d+(?:,\d{3})*(?:\.\d{1,2})?)")

_DATE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")
_TIME = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*([ap])\.?m\.?(?![a-z])", re.IGNORECASE)
_DATE_OR_TIME = re.compile(f"{_DATE.pattern}|{_TIME.pattern}", re.IGNORECASE)

_NAME = re.compile(r"(?i:my name is|name's)\s+([A-Z][a-z'-]+(?:\s+[A-Z][a-z'-]+)?)")
_EMAIL = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
_PHONE = re.compile(r"\+?1?[\s(.-]*\d{3}[\s).-]*\d{3}[\s.-]*\d{4}\b")
_PARTY = re.compile(
    r"\bparty of (\d{1,2})\b|\b(\d{1,2})\s+(?:people|persons|passengers|adults|guests|of us)\b",
    re.IGNORECASE,
)
_TIME_WINDOW = re.compile(r"\b(morning|afternoon|evening|flexible)\b", re.IGNORECASE)
_WEIGHT = re.compile(r"\b(\d{2,4})\s*(?:lbs?|pounds)\b", re.IGNORECASE)
_HOTEL = re.compile(r"(?i:staying at)\s+(?:the\s+)?([A-Z][\w'&-]*(?:\s+[A-Z][\w'&-]*)*)")
_DOORS_OFF = re.compile(r"\bdoors?[\s-]?off\b", re.IGNORECASE)
_DOORS_ON = re.compile(r"\bdoors?[\s-]?on\b|\bno doors?[\s-]?off\b", re.IGNORECASE)
_SPECIAL = re.compile(r"special requests?:\s*(.+)", re.IGNORECASE)

_SLOT_WORDS = re.compile(r"\b(morning|afternoon|evening) (?:slot|one|flight)\b", re.IGNORECASE)
_AGREEMENT = re.compile(
    r"\byes\b|\bthat works\b|\bsounds good\b|\bconfirm(?:ed)?\b|\bperfect\b", re.IGNORECASE
)


def _match_any(text: str, patterns: list[str]) -> bool:
    lower = text.lower()
    return any(re.search(p, lower) for p in patterns)


def _format_time(hour: str, minute: str | None, meridiem: str) -> str:
    return f"{int(hour)}:{minute or '00'} {meridiem.upper()}M"


def extract_dates_and_times(text: str) -> list[str]:
    """Dates (YYYY-MM-DD) and times ("2:00 PM") in order of appearance, deduplicated."""
    found: list[str] = []
    for m in _DATE_OR_TIME.finditer(text):
        value = m.group(1) or _format_time(m.group(2), m.group(3), m.group(4))
        if value not in found:
            found.append(value)
    return found


def extract_fields(text: str) -> ExtractedFields:
    name = _NAME.search(text)
    email = _EMAIL.search(text)
    phone = _PHONE.search(text)
    party = _PARTY.search(text)
    date = _DATE.search(text)
    window = _TIME_WINDOW.search(text)
    weight = _WEIGHT.search(text)
    hotel = _HOTEL.search(text)
    special = _SPECIAL.search(text)

    doors_off = None
    if _DOORS_ON.search(text):
        doors_off = False
    elif _DOORS_OFF.search(text):
        doors_off = True

    return ExtractedFields(
        name=name.group(1) if name else None,
        email=email.group(0) if email else None,
        phone=phone.group(0).strip() if phone else None,
        party_size=int(party.group(1) or party.group(2)) if party else None,
        preferred_date=date.group(1) if date else None,
        time_window=window.group(1).lower() if window else None,
        doors_off=doors_off,
        hotel=hotel.group(1) if hotel else None,
        special_requests=special.group(1).strip() if special else None,
        total_weight=int(weight.group(1)) if weight else None,
    )


class SimulatorIntentExtractor(IntentExtractor):
    """
    Keyword-based intent extractor for tests.

    With fail=True every call raises ExtractionFailure, standing in for an
    unavailable model.
    """

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[str] = []

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail:
            raise ExtractionFailure(f"simulated failure in {name}")

    async def detect_spam(
        self, text: str, sender: str | None = None, subject: str | None = None
    ) -> SpamVerdict:
        self._record("detect_spam")
        combined = f"{subject or ''}\n{text}"
        if _match_any(combined, _SPAM_KEYWORDS):
            return SpamVerdict(is_spam=True, confidence=0.95, reason="promotional content")
        if _match_any(combined, _WEAK_SPAM_KEYWORDS):
            return SpamVerdict(is_spam=True, confidence=0.6, reason="looks like a newsletter")
        return SpamVerdict(is_spam=False, confidence=0.9)

    async def analyze_email(
        self, text: str, sender: str | None = None, subject: str | None = None
    ) -> EmailAnalysis:
        self._record("analyze_email")
        combined = f"{subject or ''}\n{text}"
        is_booking = _match_any(combined, _BOOKING_KEYWORDS)
        return EmailAnalysis(
            is_booking_request=is_booking,
            intent="booking request" if is_booking else "general question",
            fields=extract_fields(text),
        )

    async def parse_operator_reply(self, text: str) -> OperatorReply:
        self._record("parse_operator_reply")
        is_rejection = bool(_REJECTION.search(text))
        # "fully booked" is a rejection, not a confirmation
        is_confirmation = bool(_CONFIRMATION.search(_REJECTION.sub(" ", text)))
        number = _CONF_NUMBER.search(text)
        price = _PRICE.search(text)
        return OperatorReply(
            is_confirmation=is_confirmation,
            is_rejection=is_rejection,
            will_handle_directly=bool(_DIRECT.search(text)),
            confirmation_number=number.group(1) if number else None,
            available_dates=extract_dates_and_times(text),
            price=float(price.group(1).replace(",", "")) if price else None,
            notes=text.strip() or None,
        )

    async def extract_call(
        self, transcript: str, caller_phone: str | None = None
    ) -> CallExtraction:
        self._record("extract_call")
        is_booking = _match_any(transcript, _BOOKING_KEYWORDS)
        fields = extract_fields(transcript)
        if not is_booking:
            confidence = 0.3
        elif fields.is_empty():
            confidence = 0.6
        else:
            confidence = 0.9
        return CallExtraction(
            is_booking_request=is_booking,
            confidence=confidence,
            intent="booking call" if is_booking else "other call",
            fields=fields,
        )

    async def analyze_availability_reply(self, text: str) -> AvailabilityReply:
        self._record("analyze_availability_reply")
        times = [t for t in extract_dates_and_times(text) if not _DATE.fullmatch(t)]
        slot_word = _SLOT_WORDS.search(text)
        if times:
            chosen = times[0]
        elif slot_word:
            chosen = f"{slot_word.group(1).lower()} slot"
        else:
            chosen = None
        return AvailabilityReply(
            chosen_time_slot=chosen,
            confirms_proposed_time=bool(_AGREEMENT.search(text)),
        )
