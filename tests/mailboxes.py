"""Fixture mailboxes shared by the handler tests."""

from helitour.domain.booking import Operator
from helitour.domain.directory import OperatorContact

HUB = "bookings@hub.test"
HUB_INBOUND = "inbound@hub.test"
ALERTS = "alerts@hub.test"
AGENT = "agent@hub.test"
BLUE_HAWAIIAN_EMAIL = "desk@bluehawaiian.test"
RAINBOW_EMAIL = "desk@rainbow.test"
CUSTOMER = "jane@example.com"

BLUE_HAWAIIAN = OperatorContact(Operator.BLUE_HAWAIIAN, "Blue Hawaiian Helicopters", BLUE_HAWAIIAN_EMAIL)
RAINBOW = OperatorContact(Operator.RAINBOW, "Rainbow Helicopters", RAINBOW_EMAIL)
