"""
Django-Sift Settings

Configuration is read from Django settings under the DJANGO_SIFT key.
All settings have sensible defaults.

Example:
    # settings.py
    DJANGO_SIFT = {
        'DEFAULT_PAGE_SIZE': 50,
        'MAX_PAGE_SIZE': 200,
        'CASE_SENSITIVE_TEXT': False,
    }
"""

from django.conf import settings

DEFAULTS = {
    # Pagination
    "DEFAULT_PAGE_SIZE": 25,
    "MAX_PAGE_SIZE": None,  # None disables clamping
    # Text lookups (contains / starts_with / ends_with / quick search)
    "CASE_SENSITIVE_TEXT": True,
    # Ordering: append the primary key so pages are deterministic
    "TIE_BREAK_ON_PK": True,
    # Logging
    "AUDIT_QUERIES": False,
}


class SiftSettings:
    """
    A settings object that allows django-sift settings to be accessed as
    properties. For example:

        from django_sift.conf import sift_settings
        print(sift_settings.DEFAULT_PAGE_SIZE)

    Settings can be overridden in Django settings.py under DJANGO_SIFT key.
    """

    def __init__(self, defaults=None):
        self.defaults = defaults or DEFAULTS
        self._cached_attrs = set()

    @property
    def user_settings(self):
        if not hasattr(self, "_user_settings"):
            self._user_settings = getattr(settings, "DJANGO_SIFT", {})
        return self._user_settings

    def __getattr__(self, attr):
        if attr not in self.defaults:
            raise AttributeError(f"Invalid django-sift setting: '{attr}'")

        try:
            val = self.user_settings[attr]
        except KeyError:
            val = self.defaults[attr]

        # Cache the result
        self._cached_attrs.add(attr)
        setattr(self, attr, val)
        return val

    def reload(self):
        """Reload settings (useful for testing)."""
        for attr in self._cached_attrs:
            try:
                delattr(self, attr)
            except AttributeError:
                pass
        self._cached_attrs.clear()
        if hasattr(self, "_user_settings"):
            delattr(self, "_user_settings")


sift_settings = SiftSettings(DEFAULTS)
