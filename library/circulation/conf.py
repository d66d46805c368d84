from django.conf import settings

DEFAULTS = {
    'PENDING_DUE_DAYS': 28,
    'LOAN_DAYS': 14,
    'EXTENSION_DAYS': 7,
    'SUSPENSION_DAYS': 7,
}


def circulation_setting(name):
    """Look up a circulation day count, falling back to the built-in default."""
    overrides = getattr(settings, 'CIRCULATION', {})
    return overrides.get(name, DEFAULTS[name])
