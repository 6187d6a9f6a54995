"""
Email templates, one renderer per TemplateKind.

Handlers decide WHICH template goes to WHOM; this module only turns the
template data dict into a subject and a plain-text body.  Missing keys fall
back to neutral wording so a half-filled booking still renders.
"""

from typing import Any, Callable

from helitour.communication.ports import RenderedEmail, TemplateKind

DEFAULT_BRAND = "Helicopter Tours on Oahu"

# (operator key, island) -> meeting point and parking text
ISLAND_LOGISTICS: dict[tuple[str, str], str] = {
    ("rainbow", "Oahu"): (
        "Check in at the Rainbow Helicopters lobby at Honolulu International "
        "Airport (Kapalulu Place) 45 minutes before departure. Free parking is "
        "available in front of the building."
    ),
    ("blue_hawaiian", "Oahu"): (
        "Check in at the Blue Hawaiian heliport on Lagoon Drive near Honolulu "
        "Airport 45 minutes before departure. Parking is free in the lot next "
        "to the terminal."
    ),
    ("blue_hawaiian", "Maui"): (
        "Check in at the Blue Hawaiian heliport at Kahului Heliport 45 minutes "
        "before departure. Parking is free on site."
    ),
    ("blue_hawaiian", "Big Island"): (
        "Check in at the Blue Hawaiian counter at the Waikoloa or Hilo heliport "
        "shown on your confirmation 45 minutes before departure."
    ),
    ("blue_hawaiian", "Kauai"): (
        "Check in at the Blue Hawaiian heliport at Lihue Airport 45 minutes "
        "before departure. Parking is free on site."
    ),
}
GENERIC_LOGISTICS = (
    "Please arrive 45 minutes before departure. The operator will send the "
    "exact meeting point and parking instructions."
)


def logistics_for(operator: str, island: str) -> str:
    return ISLAND_LOGISTICS.get((operator, island), GENERIC_LOGISTICS)


def _greeting(data: dict[str, Any]) -> str:
    return f"Aloha {data.get('customer_name') or 'there'},"


def _signature(data: dict[str, Any]) -> str:
    brand = data.get("brand_name") or DEFAULT_BRAND
    phone = data.get("phone_number")
    lines = ["Mahalo,", brand]
    if phone:
        lines.append(phone)
    return "\n".join(lines)


def _ref(data: dict[str, Any]) -> str:
    return data.get("ref_code") or ""


def _money(amount: Any) -> str:
    return f"${float(amount):,.2f}"


def _bullets(items: list[str]) -> str:
    return "\n".join(f"  • {item}" for item in items)


def _booking_lines(data: dict[str, Any]) -> list[str]:
    weight = data.get("total_weight")
    return [
        f"- Name: {data.get('customer_name') or 'Not provided'}",
        f"- Email: {data.get('customer_email') or 'Not provided'}",
        f"- Phone: {data.get('customer_phone') or 'Not provided'}",
        f"- Tour: {data.get('tour_name') or 'Not specified'}",
        f"- Party Size: {data.get('party_size') or 'Not specified'}",
        f"- Preferred Date: {data.get('preferred_date') or 'Not specified'}",
        f"- Time Window: {data.get('time_window') or 'Flexible'}",
        f"- Doors Off: {'Yes' if data.get('doors_off') else 'No'}",
        f"- Hotel: {data.get('hotel') or 'Not specified'}",
        f"- Total Weight: {f'{weight} lbs' if weight else 'Not specified'} (please confirm for safety)",
        f"- Special Requests: {data.get('special_requests') or 'None'}",
    ]


# -- operator-facing ---------------------------------------------------------

def _booking_request(data: dict[str, Any]) -> RenderedEmail:
    lines = [f"New Booking Request - Reference: {_ref(data)}", "", *_booking_lines(data)]

    availability = data.get("availability")
    if availability:
        lines.append("")
        slots = availability.get("slots") or []
        if availability.get("available") and slots:
            lines.append("Availability Check Results:")
            lines.append(_bullets([
                f"{s['time']} - {_money(s['price'])}" if s.get("price") else s["time"]
                for s in slots
            ]))
        elif availability.get("error"):
            lines.append(f"Availability Check: {availability['error']} (manual check required)")
        else:
            lines.append("Availability Check: manual check required")

    lines += ["", "Please confirm availability and pricing for this booking.", "",
              _signature(data)]
    return RenderedEmail(
        subject=f"New Helicopter Tour Booking Request - {_ref(data)} - {data.get('customer_name')}",
        text="\n".join(lines),
    )


def _rainbow_inquiry(data: dict[str, Any]) -> RenderedEmail:
    lines = [
        "Aloha Rainbow Helicopters team,",
        "",
        "We have a guest interested in flying with you. Could you let us know "
        "which times you have available on their preferred date?",
        "",
        f"Reference: {_ref(data)}",
        *_booking_lines(data),
        "",
        "Please reply with available times (and price if it differs from your "
        "published rate) and we will confirm with the guest.",
        "",
        _signature(data),
    ]
    return RenderedEmail(
        subject=f"Availability Inquiry - {_ref(data)} - {data.get('preferred_date')}",
        text="\n".join(lines),
    )


# -- internal -----------------------------------------------------------------

def _agent_arrange_rainbow(data: dict[str, Any]) -> RenderedEmail:
    proposed = data.get("proposed_times") or []
    lines = [
        "Action needed: arrange a flight time with Rainbow Helicopters.",
        "",
        f"Reference: {_ref(data)}",
        f"Customer: {data.get('customer_name')} <{data.get('customer_email')}>",
        f"Date: {data.get('preferred_date') or 'Not specified'}",
        f"Party Size: {data.get('party_size') or 'Not specified'}",
    ]
    if proposed:
        lines += ["", "Rainbow proposed:", _bullets(proposed)]
    if data.get("notes"):
        lines += ["", f"Operator notes: {data['notes']}"]
    lines += ["", f"Context: {data.get('context') or 'follow-up sent to customer'}"]
    return RenderedEmail(
        subject=f"[Action] Arrange time with Rainbow - {_ref(data)}",
        text="\n".join(lines),
    )


# -- customer-facing ----------------------------------------------------------

def _booking_received(data: dict[str, Any]) -> RenderedEmail:
    lines = [
        _greeting(data),
        "",
        "Thank you for your helicopter tour request! We have passed it to "
        f"{data.get('operator_name') or 'our operator partner'} and will email you "
        "as soon as they confirm.",
        "",
        f"Reference: {_ref(data)}",
        f"Tour: {data.get('tour_name') or 'To be confirmed'}",
        f"Date: {data.get('preferred_date') or 'To be confirmed'}",
        f"Party Size: {data.get('party_size') or 'To be confirmed'}",
    ]
    if data.get("total_amount"):
        lines.append(f"Estimated Total: {_money(data['total_amount'])}")
    lines += ["", "Reply to this email if anything changes.", "", _signature(data)]
    return RenderedEmail(
        subject=f"We received your helicopter tour request - {_ref(data)}",
        text="\n".join(lines),
    )


def _confirmation_lines(data: dict[str, Any]) -> list[str]:
    lines = [
        f"Reference: {_ref(data)}",
        f"Operator: {data.get('operator_name') or 'Your tour operator'}",
        f"Date: {data.get('preferred_date') or 'See operator confirmation'}",
    ]
    if data.get("time"):
        lines.append(f"Time: {data['time']}")
    lines.append(f"Party Size: {data.get('party_size') or ''}")
    if data.get("confirmation_number"):
        lines.append(f"Confirmation Number: {data['confirmation_number']}")
    if data.get("total_amount"):
        lines.append(f"Total: {_money(data['total_amount'])}")
    return lines


def _final_confirmation(data: dict[str, Any]) -> RenderedEmail:
    lines = [
        _greeting(data),
        "",
        "Great news! Your helicopter tour is confirmed.",
        "",
        *_confirmation_lines(data),
        "",
        f"Getting there ({data.get('island') or 'Oahu'}):",
        data.get("logistics") or GENERIC_LOGISTICS,
        "",
        "Wear dark clothing to reduce reflections in photos, and bring a light jacket.",
        "",
        _signature(data),
    ]
    number = data.get("confirmation_number")
    return RenderedEmail(
        subject=f"Your Helicopter Tour is Confirmed - {number or _ref(data)}",
        text="\n".join(lines),
    )


def _rainbow_confirmation(data: dict[str, Any]) -> RenderedEmail:
    lines = [
        _greeting(data),
        "",
        "You're all set with Rainbow Helicopters!",
        "",
        *_confirmation_lines(data),
        "",
        f"Getting there ({data.get('island') or 'Oahu'}):",
        data.get("logistics") or GENERIC_LOGISTICS,
        "",
        "Rainbow weighs every passenger at check-in for seating balance, so "
        "please make sure the weights you gave us are accurate.",
        "",
        _signature(data),
    ]
    return RenderedEmail(
        subject=f"Confirmed: Rainbow Helicopters Tour - {_ref(data)}",
        text="\n".join(lines),
    )


def _rejection(data: dict[str, Any]) -> RenderedEmail:
    lines = [
        _greeting(data),
        "",
        f"Unfortunately {data.get('operator_name') or 'the operator'} is not able to "
        f"accommodate your tour on {data.get('preferred_date') or 'the requested date'}.",
    ]
    if data.get("reason"):
        lines += ["", f"Operator note: {data['reason']}"]
    lines += [
        "",
        "Reply with another date that works for you and we will check again.",
        "",
        f"Reference: {_ref(data)}",
        "",
        _signature(data),
    ]
    return RenderedEmail(
        subject=f"Update on your helicopter tour request - {_ref(data)}",
        text="\n".join(lines),
    )


def _operator_direct_contact(data: dict[str, Any]) -> RenderedEmail:
    lines = [
        _greeting(data),
        "",
        f"{data.get('operator_name') or 'Your tour operator'} will contact you directly "
        "to confirm your booking details and payment. Please keep an eye on your "
        "inbox and phone.",
        "",
        f"Reference: {_ref(data)}",
        "",
        _signature(data),
    ]
    return RenderedEmail(
        subject=f"The operator will contact you directly - {_ref(data)}",
        text="\n".join(lines),
    )


def _choose_time(data: dict[str, Any]) -> RenderedEmail:
    options = data.get("proposed_times") or []
    lines = [
        _greeting(data),
        "",
        f"{data.get('operator_name') or 'Rainbow Helicopters'} has the following "
        "availability for your tour:",
        "",
        _bullets(options),
        "",
        "Reply with the option you would like and we will lock it in.",
        "",
        f"Reference: {_ref(data)}",
        "",
        _signature(data),
    ]
    return RenderedEmail(
        subject=f"Choose your tour time - {_ref(data)}",
        text="\n".join(lines),
    )


def _alternative_dates(data: dict[str, Any]) -> RenderedEmail:
    options = data.get("alternative_dates") or []
    lines = [
        _greeting(data),
        "",
        f"{data.get('operator_name') or 'The operator'} can't fly on your preferred "
        "date but offered these alternatives:",
        "",
        _bullets(options),
        "",
        "Reply with the one that works best for you.",
        "",
        f"Reference: {_ref(data)}",
        "",
        _signature(data),
    ]
    return RenderedEmail(
        subject=f"Alternative dates for your helicopter tour - {_ref(data)}",
        text="\n".join(lines),
    )


def _available_times(data: dict[str, Any]) -> RenderedEmail:
    slots = data.get("slots") or []
    lines = [
        _greeting(data),
        "",
        f"Here are the available tour times for {data.get('tour_name') or 'your tour'} "
        f"on {data.get('preferred_date')} for {data.get('party_size')} "
        f"{'guest' if data.get('party_size') == 1 else 'guests'}:",
        "",
        _bullets([f"{s['time']} - {_money(s['total_price'])} total" for s in slots]),
        "",
        "Reply with the time you would like, or call us to book right away.",
        "",
        f"Reference: {_ref(data)}",
        "",
        _signature(data),
    ]
    return RenderedEmail(
        subject=f"Available Tour Times - {_ref(data)}",
        text="\n".join(lines),
    )


def _checking_availability(data: dict[str, Any]) -> RenderedEmail:
    lines = [
        _greeting(data),
        "",
        f"We are checking live availability for {data.get('tour_name') or 'your tour'} "
        f"on {data.get('preferred_date')} and will email you the open times shortly.",
    ]
    if data.get("total_price"):
        lines.append(f"Estimated total for your party: {_money(data['total_price'])}")
    lines += ["", f"Reference: {_ref(data)}", "", _signature(data)]
    return RenderedEmail(
        subject=f"Checking availability for your tour - {_ref(data)}",
        text="\n".join(lines),
    )


def _rainbow_holding(data: dict[str, Any]) -> RenderedEmail:
    lines = [
        _greeting(data),
        "",
        "We are arranging your flight time with Rainbow Helicopters for "
        f"{data.get('preferred_date')} and will email you as soon as they reply.",
        "",
        f"Reference: {_ref(data)}",
        "",
        _signature(data),
    ]
    return RenderedEmail(
        subject=f"We're arranging your Rainbow Helicopters tour - {_ref(data)}",
        text="\n".join(lines),
    )


def _inquiry_ack(data: dict[str, Any]) -> RenderedEmail:
    lines = [
        _greeting(data),
        "",
        "Thanks for reaching out! We have started a booking request for you. "
        "To confirm it we still need your party size, preferred date, time of "
        "day and the combined weight of all passengers.",
        "",
        f"Reference: {_ref(data)}",
        "",
        _signature(data),
    ]
    return RenderedEmail(
        subject=f"Your helicopter tour inquiry - {_ref(data)}",
        text="\n".join(lines),
    )


def _reply_ack(data: dict[str, Any]) -> RenderedEmail:
    subject = data.get("subject") or "your helicopter tour"
    if not subject.lower().startswith("re:"):
        subject = f"Re: {subject}"
    lines = [
        _greeting(data),
        "",
        "Thanks for your message. We have added it to your booking and will "
        "follow up shortly.",
        "",
        f"Reference: {_ref(data)}",
        "",
        _signature(data),
    ]
    return RenderedEmail(subject=subject, text="\n".join(lines))


def _how_to_book(data: dict[str, Any]) -> RenderedEmail:
    lines = [
        _greeting(data),
        "",
        "Thanks for your email! To book a helicopter tour, reply with:",
        _bullets([
            "your name and phone number",
            "party size",
            "preferred date",
            "morning, afternoon or flexible",
            "combined weight of all passengers",
        ]),
        "",
        "or call us and our booking agent will take care of everything.",
        "",
        _signature(data),
    ]
    return RenderedEmail(subject="How to book your helicopter tour", text="\n".join(lines))


def _spam_deflection(data: dict[str, Any]) -> RenderedEmail:
    lines = [
        "This inbox only handles helicopter tour bookings. If you meant to book "
        "a tour, reply with your preferred date and party size.",
        "",
        _signature(data),
    ]
    return RenderedEmail(subject="Re: your message", text="\n".join(lines))


_RENDERERS: dict[TemplateKind, Callable[[dict[str, Any]], RenderedEmail]] = {
    TemplateKind.BOOKING_REQUEST: _booking_request,
    TemplateKind.RAINBOW_INQUIRY: _rainbow_inquiry,
    TemplateKind.AGENT_ARRANGE_RAINBOW: _agent_arrange_rainbow,
    TemplateKind.BOOKING_RECEIVED: _booking_received,
    TemplateKind.FINAL_CONFIRMATION: _final_confirmation,
    TemplateKind.RAINBOW_CONFIRMATION: _rainbow_confirmation,
    TemplateKind.REJECTION: _rejection,
    TemplateKind.OPERATOR_DIRECT_CONTACT: _operator_direct_contact,
    TemplateKind.CHOOSE_TIME: _choose_time,
    TemplateKind.ALTERNATIVE_DATES: _alternative_dates,
    TemplateKind.AVAILABLE_TIMES: _available_times,
    TemplateKind.CHECKING_AVAILABILITY: _checking_availability,
    TemplateKind.RAINBOW_HOLDING: _rainbow_holding,
    TemplateKind.INQUIRY_ACK: _inquiry_ack,
    TemplateKind.REPLY_ACK: _reply_ack,
    TemplateKind.HOW_TO_BOOK: _how_to_book,
    TemplateKind.SPAM_DEFLECTION: _spam_deflection,
}


def render(kind: TemplateKind, data: dict[str, Any]) -> RenderedEmail:
    return _RENDERERS[TemplateKind(kind)](data)
