# core/conf.py
"""
Access to the project's FEST tunables.

Settings may override any subset of DEFAULTS via the FEST dict.
"""
from django.conf import settings

DEFAULTS = {
    "INVITE_CODE_MAX_ATTEMPTS": 10,
    "TICKET_ID_MAX_ATTEMPTS": 5,
    "OPTIMISTIC_RETRY_ATTEMPTS": 3,
    "TICKET_PREFIX": "TKT",
    "TEAM_MIN_SIZE_FLOOR": 2,
    "TEAM_MAX_SIZE_CEILING": 20,
}


def fest_setting(name):
    overrides = getattr(settings, "FEST", {}) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
